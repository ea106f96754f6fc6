"""
Inference engine interface.

The pipeline is engine-agnostic: it only loads a model blob into a session,
runs one named input tensor through it per frame, and closes the session.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, List, Protocol

import numpy as np


class InferenceError(RuntimeError):
    """Session creation or inference run failed."""


@dataclass
class SessionHandle:
    """
    An engine session plus the metadata the pipeline needs to call it.

    Attributes:
        session: Engine-specific session object.
        input_name: Name of the model's image input.
        output_names: Names of the model outputs.
        closed: Set once the engine has released the session.
    """
    session: Any
    input_name: str
    output_names: List[str] = field(default_factory=list)
    closed: bool = False


class InferenceEngine(Protocol):
    def load_model(self, model_bytes: bytes) -> SessionHandle:
        ...

    def run(self, handle: SessionHandle, input_name: str, tensor: np.ndarray) -> np.ndarray:
        ...

    def close(self, handle: SessionHandle) -> None:
        ...


def read_model_bytes(path: str) -> bytes:
    """Read an opaque model blob from disk."""
    if not os.path.exists(path):
        raise InferenceError(f"Model file not found: {path}")
    with open(path, "rb") as f:
        data = f.read()
    if not data:
        raise InferenceError(f"Model file is empty: {path}")
    return data
