"""
Hand-off primitives between the camera, the worker and the consumer.

- LatestFrameSlot: bounded queue of depth 1 that keeps only the newest frame.
- ResultQueue: worker -> consumer hand-off, drained by a single consumer.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, List, Optional

from models.frame import Frame
from models.result import Result


class LatestFrameSlot:
    """Holds at most one pending frame; a newer frame evicts the older one."""

    def __init__(self):
        self._frame: Optional[Frame] = None
        self._closed = False
        self._cond = threading.Condition()

    def put(self, frame: Frame) -> Optional[Frame]:
        """
        Store `frame` as the pending frame.

        Returns the evicted frame (already released), or None. After close()
        the incoming frame itself is released and returned.
        """
        with self._cond:
            if self._closed:
                frame.release()
                return frame
            evicted = self._frame
            self._frame = frame
            self._cond.notify()
        if evicted is not None:
            evicted.release()
        return evicted

    def take(self, timeout: Optional[float] = None) -> Optional[Frame]:
        """Wait for and remove the pending frame. None on timeout or close."""
        with self._cond:
            if self._frame is None and not self._closed:
                self._cond.wait(timeout)
            frame, self._frame = self._frame, None
            return frame

    def clear(self) -> Optional[Frame]:
        """Release and drop any pending frame."""
        with self._cond:
            frame, self._frame = self._frame, None
        if frame is not None:
            frame.release()
        return frame

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self.clear()

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._frame is not None


class ResultQueue:
    """
    Results travelling from the worker thread to the consumer thread.

    The queue is bounded; when the consumer falls behind the oldest result is
    discarded so the newest one is always delivered.
    """

    def __init__(self, maxsize: int = 8):
        self._queue: "queue.Queue[Result]" = queue.Queue(maxsize=max(1, maxsize))

    def put(self, result: Result) -> None:
        while True:
            try:
                self._queue.put_nowait(result)
                return
            except queue.Full:
                try:
                    dropped = self._queue.get_nowait()
                    logging.debug(f"Result queue full, discarding result for frame {dropped.frame_index}")
                except queue.Empty:
                    pass

    def get(self, timeout: Optional[float] = None) -> Optional[Result]:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[Result]:
        results: List[Result] = []
        while True:
            try:
                results.append(self._queue.get_nowait())
            except queue.Empty:
                return results

    def dispatch(self, callback: Callable[[Result], None]) -> int:
        """Drain pending results into `callback` on the calling thread."""
        results = self.drain()
        for result in results:
            try:
                callback(result)
            except Exception as e:
                logging.warning(f"Result callback error: {e}")
        return len(results)

    def __len__(self) -> int:
        return self._queue.qsize()
