"""
Smoke tests for configuration loading and validation.
"""

import os

import pytest

from main import load_config, validate_config

DEFAULT_CONFIG = os.path.join(os.path.dirname(__file__), "..", "config", "default.yaml")


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_valid_config_passes(self, valid_config):
        """A complete valid config passes validation."""
        is_valid, error = validate_config(valid_config)

        assert is_valid is True
        assert error is None

    @pytest.mark.parametrize("section", ["camera", "model", "detection", "log_path", "log_level"])
    def test_missing_section(self, valid_config, section):
        """Each required section is enforced."""
        del valid_config[section]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert section in error.lower()

    def test_invalid_device_id_type(self, valid_config):
        """device_id with invalid type fails."""
        valid_config["camera"]["device_id"] = [1, 2, 3]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "device_id" in error.lower()

    def test_bool_device_id_rejected(self, valid_config):
        valid_config["camera"]["device_id"] = True

        is_valid, error = validate_config(valid_config)

        assert is_valid is False

    def test_negative_device_id(self, valid_config):
        """Negative integer device_id fails."""
        valid_config["camera"]["device_id"] = -1

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "device_id" in error.lower()

    def test_string_device_id_valid(self, valid_config):
        """String device_id (video file) is valid."""
        valid_config["camera"]["device_id"] = "videos/sample.mp4"

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_invalid_resolution_format(self, valid_config):
        """Invalid resolution format fails."""
        valid_config["camera"]["resolution"] = 1920  # Should be list

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "resolution" in error.lower()

    def test_invalid_resolution_length(self, valid_config):
        """Resolution with wrong length fails."""
        valid_config["camera"]["resolution"] = [1920]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "resolution" in error.lower()

    def test_invalid_fps(self, valid_config):
        """Non-positive fps fails."""
        valid_config["camera"]["fps"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "fps" in error.lower()

    def test_invalid_camera_backend(self, valid_config):
        """Unknown camera backend fails."""
        valid_config["camera"]["backend"] = "gstreamer"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "backend" in error.lower()

    def test_invalid_pixel_format(self, valid_config):
        valid_config["camera"]["pixel_format"] = "nv21"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "pixel_format" in error.lower()

    @pytest.mark.parametrize("rotate", [0, 90, 180, 270])
    def test_valid_rotations(self, valid_config, rotate):
        valid_config["camera"]["rotate"] = rotate

        is_valid, _ = validate_config(valid_config)

        assert is_valid is True

    def test_invalid_rotation(self, valid_config):
        valid_config["camera"]["rotate"] = 45

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "rotate" in error.lower()

    def test_missing_model_path(self, valid_config):
        del valid_config["model"]["path"]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "model.path" in error

    def test_invalid_providers(self, valid_config):
        valid_config["model"]["providers"] = "CPUExecutionProvider"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "providers" in error

    def test_invalid_thread_count(self, valid_config):
        valid_config["model"]["intra_op_num_threads"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "intra_op_num_threads" in error

    def test_invalid_conf_threshold(self, valid_config):
        """conf_threshold outside [0, 1] fails."""
        valid_config["detection"]["conf_threshold"] = 1.5

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "conf_threshold" in error

    def test_invalid_num_classes(self, valid_config):
        valid_config["detection"]["num_classes"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "num_classes" in error

    def test_invalid_log_level(self, valid_config):
        """Invalid log level fails."""
        valid_config["log_level"] = "VERBOSE"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "log_level" in error.lower()


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_default_yaml(self, temp_config_dir):
        """Config loads from default.yaml when only it exists."""
        config_path = str(temp_config_dir / "config.yaml")

        config = load_config(config_path)

        assert config["camera"]["backend"] == "opencv"
        assert config["camera"]["device_id"] == 0
        assert config["camera"]["resolution"] == [640, 480]

    def test_local_overrides_merge(self, temp_config_dir):
        """Local config.yaml overrides default.yaml."""
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("""
camera:
  resolution: [1920, 1080]
  rotate: 90
""")

        config = load_config(str(config_yaml))

        assert config["camera"]["resolution"] == [1920, 1080]
        assert config["camera"]["rotate"] == 90
        assert config["camera"]["backend"] == "opencv"
        assert config["camera"]["fps"] == 30

    def test_explicit_path_applied_last(self, temp_config_dir):
        """An explicit config path overrides both default.yaml and config.yaml."""
        (temp_config_dir / "config.yaml").write_text("""
detection:
  conf_threshold: 0.3
""")
        explicit = temp_config_dir / "bench.yaml"
        explicit.write_text("""
detection:
  conf_threshold: 0.6
""")

        config = load_config(str(explicit))

        assert config["detection"]["conf_threshold"] == 0.6
        assert config["model"]["path"] == "models/test.onnx"

    def test_invalid_yaml_exits(self, temp_config_dir):
        (temp_config_dir / "default.yaml").write_text("camera: [unclosed")

        with pytest.raises(SystemExit):
            load_config(str(temp_config_dir / "config.yaml"))

    def test_checked_in_default_is_valid(self):
        """The shipped default.yaml passes validation."""
        config = load_config(DEFAULT_CONFIG)

        is_valid, error = validate_config(config)

        assert is_valid is True, error
