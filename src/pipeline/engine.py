"""
Pipeline engine for the NudeNet camera pipeline.

This module owns the per-frame flow:
    frame -> FrameSampler -> ImagePreprocessor -> inference -> DetectionDecoder

Frames arrive from the camera thread through submit(), are processed one at a
time on a dedicated worker thread, and results travel back to the consumer
through a single-consumer ResultQueue.

Session lifecycle is an explicit state machine:
    UNINITIALIZED -> SESSION_LOADING -> READY -> CLOSED
Frames that arrive before READY are released and dropped, never queued.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

import numpy as np

from detection.decoder import DetectionDecoder
from inference.backend import InferenceEngine, SessionHandle
from inference.preprocess import ImagePreprocessor
from models.frame import Frame
from models.result import Result
from observation.sampler import FrameSampler
from .queues import LatestFrameSlot, ResultQueue


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    SESSION_LOADING = "session_loading"
    READY = "ready"
    CLOSED = "closed"


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline engine.

    Attributes:
        result_queue_size: Results kept for the consumer before the oldest is discarded.
        worker_poll_interval: Seconds the worker waits for a frame before re-checking stop.
        stats_log_interval: Seconds between status log messages.
    """
    result_queue_size: int = 8
    worker_poll_interval: float = 0.1
    stats_log_interval: float = 60.0


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frames_submitted: int = 0
    frames_processed: int = 0
    frames_dropped_not_ready: int = 0
    frames_dropped_stale: int = 0
    frames_rejected: int = 0
    inference_failures: int = 0
    results_emitted: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)


class PipelineEngine:
    """
    Runs frames through preprocessing, inference and decoding.

    Example:
        engine = PipelineEngine(OnnxRuntimeEngine())
        engine.start()
        engine.load_session_async(read_model_bytes("models/nudenet_320n.onnx"))
        ...
        engine.submit(frame)                  # camera thread
        engine.dispatch_results(update_ui)    # consumer thread
        ...
        engine.close()
    """

    def __init__(
        self,
        inference_engine: InferenceEngine,
        config: Optional[PipelineConfig] = None,
        sampler: Optional[FrameSampler] = None,
        preprocessor: Optional[ImagePreprocessor] = None,
        decoder: Optional[DetectionDecoder] = None,
    ):
        self._engine = inference_engine
        self.config = config or PipelineConfig()
        self.sampler = sampler or FrameSampler()
        self.preprocessor = preprocessor or ImagePreprocessor()
        self.decoder = decoder or DetectionDecoder()
        self.stats = PipelineStats()
        self._stats_lock = threading.Lock()

        self._state = SessionState.UNINITIALIZED
        self._state_lock = threading.RLock()
        self._session: Optional[SessionHandle] = None
        # Held for the whole of every run() so at most one inference is in flight.
        self._session_lock = threading.Lock()

        self._slot = LatestFrameSlot()
        # Frames accepted by submit() that have not been processed or dropped yet.
        self._unfinished = 0
        self._idle = threading.Condition()
        self._results = ResultQueue(self.config.result_queue_size)
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None

    @property
    def state(self) -> SessionState:
        with self._state_lock:
            return self._state

    @property
    def is_ready(self) -> bool:
        return self.state is SessionState.READY

    # Session lifecycle

    def load_session(self, model_bytes: bytes) -> bool:
        """
        Create the inference session and move to READY.

        If a session is already attached this behaves like swap_session().
        Returns False (and logs) when the session could not be created.
        """
        with self._state_lock:
            swapping = self._state is SessionState.READY
            if not swapping and not self._begin_loading():
                return False
        if swapping:
            return self.swap_session(model_bytes)
        return self._finish_loading(model_bytes)

    def load_session_async(self, model_bytes: bytes) -> threading.Thread:
        """Run load_session() on a background thread."""
        thread = threading.Thread(
            target=self.load_session,
            args=(model_bytes,),
            name="session-loader",
            daemon=True,
        )
        thread.start()
        return thread

    def swap_session(self, model_bytes: bytes) -> bool:
        """
        Replace the current session with one built from `model_bytes`.

        The old session is detached first (waiting for any in-flight
        inference), then closed, then the new one is loaded.
        """
        with self._state_lock:
            if not self._begin_loading():
                return False

        old = self._detach_session()
        if old is not None:
            self._close_handle(old)
        if self._slot.clear() is not None:
            self._frame_done()
        return self._finish_loading(model_bytes)

    def _begin_loading(self) -> bool:
        if self._state is SessionState.CLOSED:
            logging.warning("Pipeline is closed, not loading a session")
            return False
        if self._state is SessionState.SESSION_LOADING:
            logging.warning("Session already loading, ignoring request")
            return False
        self._state = SessionState.SESSION_LOADING
        logging.info("Loading inference session")
        return True

    def _finish_loading(self, model_bytes: bytes) -> bool:
        try:
            handle = self._engine.load_model(model_bytes)
        except Exception as e:
            logging.error(f"Error creating inference session: {e}")
            with self._state_lock:
                if self._state is SessionState.SESSION_LOADING:
                    self._state = SessionState.UNINITIALIZED
            return False

        with self._state_lock:
            if self._state is SessionState.CLOSED:
                # Closed while the model was loading.
                self._close_handle(handle)
                return False
            with self._session_lock:
                self._session = handle
            self._state = SessionState.READY
        logging.info(f"Inference session ready (input={handle.input_name})")
        return True

    def _detach_session(self) -> Optional[SessionHandle]:
        with self._session_lock:
            handle, self._session = self._session, None
        return handle

    def _close_handle(self, handle: SessionHandle) -> None:
        try:
            self._engine.close(handle)
        except Exception as e:
            logging.error(f"Error closing inference session: {e}")

    # Frame intake

    def submit(self, frame: Frame) -> bool:
        """
        Offer a frame for processing. Called from the camera thread.

        Returns False if the frame was dropped because no session is ready.
        A pending frame that has not been picked up yet is replaced.
        """
        self._count("frames_submitted")
        if not self.is_ready:
            self._count("frames_dropped_not_ready")
            logging.debug(f"Dropping frame {frame.frame_index}: pipeline is {self.state.value}")
            frame.release()
            return False

        with self._idle:
            self._unfinished += 1
        evicted = self._slot.put(frame)
        if evicted is not None:
            self._frame_done()
            self._count("frames_dropped_stale")
            if evicted is frame:
                logging.debug(f"Dropping frame {frame.frame_index}: pipeline is closing")
                return False
            logging.debug(f"Dropping stale frame {evicted.frame_index} for frame {frame.frame_index}")
        return True

    # Processing

    def process_frame(self, frame: Frame) -> Optional[Result]:
        """
        Run one frame through the whole chain synchronously.

        The frame and every intermediate frame are released before returning.
        Returns None when the frame is rejected or no session is attached; an
        inference failure yields an empty Result carrying the error.
        """
        frame_index = frame.frame_index
        try:
            tensor = self._prepare(frame)
        except ValueError as e:
            self._count("frames_rejected")
            logging.warning(f"Rejected frame {frame_index}: {e}")
            return None
        finally:
            frame.release()
        return self._infer(tensor, frame_index)

    def _prepare(self, frame: Frame) -> np.ndarray:
        sampled = self.sampler.sample(frame)
        frame.release()
        try:
            return self.preprocessor.preprocess(sampled)
        finally:
            sampled.release()

    def _infer(self, tensor: np.ndarray, frame_index: int) -> Optional[Result]:
        with self._session_lock:
            handle = self._session
            if handle is None:
                logging.debug(f"No session attached, skipping frame {frame_index}")
                return None

            start = time.monotonic()
            try:
                raw_output = self._engine.run(
                    handle, handle.input_name, tensor.reshape(self.preprocessor.input_shape)
                )
            except Exception as e:
                return self._failed(frame_index, e)
            process_time_ms = (time.monotonic() - start) * 1000.0

        try:
            detections = self.decoder.decode(raw_output)
        except ValueError as e:
            return self._failed(frame_index, e)
        self._count("frames_processed")
        return Result(
            detections=detections,
            process_time_ms=process_time_ms,
            frame_index=frame_index,
        )

    def _failed(self, frame_index: int, error: Exception) -> Result:
        self._count("inference_failures")
        logging.error(f"Error processing frame {frame_index}: {error}")
        return Result(frame_index=frame_index, error=str(error))

    def _count(self, counter: str) -> None:
        # Counters are bumped from the camera thread and the worker thread.
        with self._stats_lock:
            setattr(self.stats, counter, getattr(self.stats, counter) + 1)

    def run_once(self, timeout: Optional[float] = None) -> bool:
        """
        Process the pending frame, if any, and publish its result.

        Returns True if a frame was taken from the slot.
        """
        frame = self._slot.take(timeout)
        if frame is None:
            return False

        try:
            result = self.process_frame(frame)
            if result is not None:
                self._results.put(result)
                self._count("results_emitted")
        finally:
            self._frame_done()
        self._log_stats_periodically()
        return True

    def _frame_done(self) -> None:
        with self._idle:
            self._unfinished -= 1
            self._idle.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every frame accepted by submit() has been processed or dropped.

        Returns False if frames were still outstanding when `timeout` expired.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._unfinished <= 0, timeout)

    def _worker_loop(self) -> None:
        logging.info("Pipeline worker started")
        while not self._stop_event.is_set():
            try:
                self.run_once(timeout=self.config.worker_poll_interval)
            except Exception:
                logging.exception("Unexpected error in pipeline worker, continuing")
        logging.info("Pipeline worker stopped")

    def _log_stats_periodically(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Pipeline stats: submitted={self.stats.frames_submitted}, "
                f"processed={self.stats.frames_processed}, "
                f"stale={self.stats.frames_dropped_stale}, "
                f"not_ready={self.stats.frames_dropped_not_ready}, "
                f"rejected={self.stats.frames_rejected}, "
                f"failures={self.stats.inference_failures}"
            )
            self.stats.last_stats_log_time = now

    # Result hand-off

    def dispatch_results(self, callback: Callable[[Result], None]) -> int:
        """Deliver pending results to `callback` on the calling thread."""
        return self._results.dispatch(callback)

    def get_result(self, timeout: Optional[float] = None) -> Optional[Result]:
        return self._results.get(timeout)

    # Worker lifecycle

    def start(self) -> None:
        """Start the worker thread."""
        if self._worker is not None and self._worker.is_alive():
            return
        if self.state is SessionState.CLOSED:
            raise RuntimeError("Cannot start a closed pipeline")
        self._stop_event.clear()
        self._worker = threading.Thread(target=self._worker_loop, name="pipeline-worker", daemon=True)
        self._worker.start()

    def close(self, timeout: float = 5.0) -> None:
        """Stop the worker, drop pending frames and release the session."""
        with self._state_lock:
            if self._state is SessionState.CLOSED:
                return
            self._state = SessionState.CLOSED

        self._stop_event.set()
        self._slot.close()
        if self._worker is not None:
            self._worker.join(timeout)
            self._worker = None
        with self._idle:
            self._unfinished = 0
            self._idle.notify_all()

        handle = self._detach_session()
        if handle is not None:
            self._close_handle(handle)
        logging.info("Pipeline closed")

    def __enter__(self) -> "PipelineEngine":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
