"""
ONNX Runtime inference engine.

Uses onnxruntime if installed. The session is created straight from the
model bytes so the model resource never has to live on disk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .backend import InferenceEngine, InferenceError, SessionHandle


@dataclass(frozen=True)
class OnnxConfig:
    providers: Sequence[str] = ("CPUExecutionProvider",)
    intra_op_num_threads: Optional[int] = None


class OnnxRuntimeEngine(InferenceEngine):
    def __init__(self, cfg: Optional[OnnxConfig] = None):
        self.cfg = cfg or OnnxConfig()
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is not installed. Install with `pip install onnxruntime` "
                "or `pip install .[onnx]`."
            ) from e

        self._ort = ort

    def load_model(self, model_bytes: bytes) -> SessionHandle:
        if not model_bytes:
            raise InferenceError("Model bytes are empty")

        options = self._ort.SessionOptions()
        if self.cfg.intra_op_num_threads:
            options.intra_op_num_threads = self.cfg.intra_op_num_threads

        available = set(self._ort.get_available_providers())
        providers = [p for p in self.cfg.providers if p in available] or ["CPUExecutionProvider"]

        try:
            session = self._ort.InferenceSession(
                model_bytes, sess_options=options, providers=providers
            )
        except Exception as e:
            raise InferenceError(f"Failed to create ONNX Runtime session: {e}") from e

        inputs = session.get_inputs()
        if not inputs:
            raise InferenceError("Model declares no inputs")

        handle = SessionHandle(
            session=session,
            input_name=inputs[0].name,
            output_names=[o.name for o in session.get_outputs()],
        )
        logging.info(
            f"ONNX Runtime session created: input={handle.input_name}, "
            f"shape={inputs[0].shape}, providers={session.get_providers()}"
        )
        return handle

    def run(self, handle: SessionHandle, input_name: str, tensor: np.ndarray) -> np.ndarray:
        if handle.closed or handle.session is None:
            raise InferenceError("Session is closed")

        try:
            outputs = handle.session.run(None, {input_name: tensor})
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}") from e

        if not outputs:
            raise InferenceError("Model returned no outputs")

        raw = np.asarray(outputs[0])
        if raw.ndim != 3:
            raise InferenceError(f"Expected a rank-3 output tensor, got shape {raw.shape}")
        return raw

    def close(self, handle: SessionHandle) -> None:
        # onnxruntime frees native resources when the session is collected.
        handle.session = None
        handle.closed = True
        logging.info("ONNX Runtime session closed")
