"""
NudeNet camera pipeline.

Reads frames from a webcam or video file, runs the NudeNet 320n detector on
a background worker and shows the boxes and a detection summary in a preview
window.

Usage:
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --display: Show the preview window
    --model: Override model.path
    --source: Override camera.device_id (camera index or video file)
"""

import argparse
import logging
import os
import sys
import time
from typing import Any, Dict, Optional, Tuple

import cv2
import numpy as np
import yaml

from analytics.aggregator import DetectionSummary, ResultAggregator, format_summary
from detection.decoder import DetectionDecoder
from detection.labels import create_label_table
from inference.backend import InferenceError, read_model_bytes
from inference.onnx_backend import OnnxConfig, OnnxRuntimeEngine
from models.config import Config
from models.result import Result
from observation.opencv_source import OpenCVSource, OpenCVSourceConfig
from ops.logging import setup_logging
from overlay.renderer import (
    COLOR_SUMMARY,
    COLOR_SUMMARY_ALERT,
    COLOR_SUMMARY_EMPTY,
    OverlayRenderer,
)
from pipeline.engine import PipelineConfig, PipelineEngine

VALID_ROTATIONS = (0, 90, 180, 270)
VALID_PIXEL_FORMATS = ("luminance", "rgba")
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
# Seconds to wait for the last video frame to be processed before shutting down.
EOF_DRAIN_TIMEOUT = 5.0

_PREVIEW_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'model', 'detection', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera', {}) or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if isinstance(camera['device_id'], bool) or not isinstance(camera['device_id'], (int, str)):
        return False, "camera.device_id must be an integer (index) or string (file path)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"

    if 'resolution' in camera:
        resolution = camera['resolution']
        if not isinstance(resolution, list) or len(resolution) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in resolution):
            return False, "camera.resolution values must be positive integers"

    if 'fps' in camera:
        if not isinstance(camera['fps'], int) or camera['fps'] <= 0:
            return False, "camera.fps must be a positive integer"

    if camera.get('backend', 'opencv') != 'opencv':
        return False, "camera.backend must be: opencv"
    if camera.get('pixel_format', 'luminance') not in VALID_PIXEL_FORMATS:
        return False, f"camera.pixel_format must be one of: {', '.join(VALID_PIXEL_FORMATS)}"
    if (camera.get('rotate', 0) or 0) not in VALID_ROTATIONS:
        return False, "camera.rotate must be one of: 0, 90, 180, 270"

    # Model
    model = config.get('model', {}) or {}
    if not isinstance(model.get('path'), str) or not model.get('path'):
        return False, "model.path is required"
    if 'labels_path' in model and model['labels_path'] is not None and not isinstance(model['labels_path'], str):
        return False, "model.labels_path must be a string"
    if 'providers' in model and not isinstance(model['providers'], list):
        return False, "model.providers must be a list"
    threads = model.get('intra_op_num_threads')
    if threads is not None and (not isinstance(threads, int) or threads <= 0):
        return False, "model.intra_op_num_threads must be a positive integer"

    # Detection
    detection = config.get('detection', {}) or {}
    threshold = detection.get('conf_threshold', 0.2)
    if not isinstance(threshold, (int, float)) or not (0 <= threshold <= 1):
        return False, "detection.conf_threshold must be between 0 and 1"
    num_classes = detection.get('num_classes', 18)
    if not isinstance(num_classes, int) or num_classes <= 0:
        return False, "detection.num_classes must be a positive integer"

    # Logging
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def create_engine_from_config(cfg: Config) -> PipelineEngine:
    """Build the pipeline engine (without a session) from typed config."""
    inference_engine = OnnxRuntimeEngine(
        OnnxConfig(
            providers=tuple(cfg.model.providers),
            intra_op_num_threads=cfg.model.intra_op_num_threads,
        )
    )
    return PipelineEngine(
        inference_engine,
        PipelineConfig(
            result_queue_size=cfg.pipeline.result_queue_size,
            stats_log_interval=cfg.pipeline.stats_log_interval,
        ),
        decoder=DetectionDecoder(
            conf_threshold=cfg.detection.conf_threshold,
            num_classes=cfg.detection.num_classes,
        ),
    )


def summary_color(summary: DetectionSummary) -> Tuple[int, int, int]:
    if summary.is_empty:
        return COLOR_SUMMARY_EMPTY
    return COLOR_SUMMARY_ALERT if summary.highlight else COLOR_SUMMARY


class PreviewState:
    """Latest result as seen by the display thread."""

    def __init__(self, renderer: OverlayRenderer, aggregator: ResultAggregator):
        self.renderer = renderer
        self.aggregator = aggregator
        self.summary = aggregator.summarize([])
        self.process_time_ms = 0.0

    def update(self, result: Result) -> None:
        self.renderer.update_detections(result.detections)
        self.summary = self.aggregator.summarize(result.detections)
        self.process_time_ms = result.process_time_ms
        if self.summary.top_detection is not None:
            logging.debug(
                f"Frame {result.frame_index}: {self.summary.detection_count} detections, "
                f"top={self.summary.top_confidence_percent}%"
            )

    def draw(self, preview: np.ndarray) -> np.ndarray:
        annotated = self.renderer.render(preview)
        lines = format_summary(self.summary, self.renderer.labels, self.process_time_ms)
        return self.renderer.render_summary(annotated, lines, summary_color(self.summary))


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='NudeNet camera pipeline')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Show the preview window')
    parser.add_argument('--model', type=str, default=None,
                        help='Override model.path')
    parser.add_argument('--source', type=str, default=None,
                        help='Override camera.device_id (camera index or video file)')
    args = parser.parse_args()

    config = load_config(args.config)
    if args.model:
        config.setdefault('model', {})['path'] = args.model
    if args.source is not None:
        config.setdefault('camera', {})['device_id'] = int(args.source) if args.source.isdigit() else args.source

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    cfg = Config.from_dict(config)

    logging.info("Starting NudeNet camera pipeline")

    try:
        model_bytes = read_model_bytes(cfg.model.path)
    except InferenceError as e:
        logging.error(f"Error reading model: {e}")
        sys.exit(1)

    labels = create_label_table(cfg.model.labels_path)
    preview_state = PreviewState(OverlayRenderer(labels, cfg.overlay), ResultAggregator(cfg.detection.num_classes))

    engine = create_engine_from_config(cfg)
    source = OpenCVSource(OpenCVSourceConfig.from_camera_config(config['camera'], source_id="main-camera"))

    consecutive_failures = 0
    try:
        engine.start()
        # Frames read before the session is READY are dropped by the engine.
        loader = engine.load_session_async(model_bytes)
        source.open()
        if source.is_file:
            # Video files are not live; wait for the session instead of dropping frames.
            loader.join()
            if not engine.is_ready:
                logging.error("Inference session could not be created, stopping")
                return

        while True:
            frame = source.read()
            if frame is None:
                if source.is_file:
                    # Let the worker finish the last frame so its detections are shown.
                    if not engine.wait_idle(timeout=EOF_DRAIN_TIMEOUT):
                        logging.warning("Timed out waiting for the last frame to be processed")
                    engine.dispatch_results(preview_state.update)
                    break
                consecutive_failures += 1
                if consecutive_failures >= cfg.pipeline.max_consecutive_failures:
                    logging.error(f"Too many consecutive failures ({consecutive_failures}), stopping")
                    break
                time.sleep(0.5)
                continue
            consecutive_failures = 0

            engine.submit(frame)
            engine.dispatch_results(preview_state.update)

            if args.display and source.last_preview is not None:
                preview = source.last_preview
                rotation = cfg.camera.rotate % 360
                if rotation in _PREVIEW_ROTATIONS:
                    preview = cv2.rotate(preview, _PREVIEW_ROTATIONS[rotation])
                cv2.imshow("NudeNet", preview_state.draw(preview))
                if cv2.waitKey(1) & 0xFF == ord('q'):
                    break

    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    except Exception as e:
        logging.error(f"Error in main loop: {e}")
        import traceback
        traceback.print_exc()
    finally:
        source.close()
        engine.close()
        if args.display:
            cv2.destroyAllWindows()
        logging.info(
            f"NudeNet camera pipeline stopped: processed={engine.stats.frames_processed}, "
            f"dropped={engine.stats.frames_dropped_stale + engine.stats.frames_dropped_not_ready}"
        )


if __name__ == "__main__":
    main()
