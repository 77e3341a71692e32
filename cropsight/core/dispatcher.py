"""
Background crop dispatcher.

Runs crop commits off the interaction thread. Each source image (identified
by a caller-chosen key) has at most one extraction in flight; a newer request
for the same key replaces any queued one, and only the newest request's
result is kept (last-result-wins).
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Optional

from .engine import run_crop
from .models import CropResult, GestureState, MaskShape

logger = logging.getLogger(__name__)


@dataclass
class CropRequest:
    """One queued or running crop commit."""
    key: Hashable
    generation: int
    image: Any
    state: GestureState
    shape: MaskShape
    rotate: bool
    callback: Optional[Callable[[CropResult], None]] = None
    future: Future = field(default_factory=Future)
    created_at: float = field(default_factory=time.time)


class CropDispatcher:
    """
    Executes crop commits on a thread pool with one in-flight job per image.

    Gesture state is passed as an immutable snapshot, so the worker never
    races with further gesture updates on the interaction thread.
    """

    def __init__(self, max_workers: int = 4):
        self.max_workers = max_workers
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="CropSight-Worker"
        )

        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)
        self._generations: Dict[Hashable, int] = {}
        self._running: Dict[Hashable, CropRequest] = {}
        self._pending: Dict[Hashable, CropRequest] = {}
        self._latest: Dict[Hashable, CropResult] = {}
        self._shutdown = False

        self.stats = {
            'requests_submitted': 0,
            'requests_completed': 0,
            'requests_superseded': 0,
            'results_discarded': 0,
            'requests_failed': 0,
        }

        logger.debug(f"CropDispatcher initialized with {max_workers} workers")

    def __enter__(self) -> 'CropDispatcher':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)

    def submit(self, key: Hashable, image: Any, state: GestureState,
               shape: MaskShape = MaskShape.SQUARE, rotate: bool = False,
               callback: Optional[Callable[[CropResult], None]] = None) -> Future:
        """
        Queue a crop commit for ``image``.

        Args:
            key: Identifies the source image; requests with the same key
                supersede each other
            image: Source image
            state: Gesture state snapshot (CropEngine.snapshot())
            shape: Output mask shape
            rotate: Whether to apply the snapshot's angle
            callback: Called with the CropResult if this request is still the
                newest for its key when it completes

        Returns:
            Future resolving to this request's CropResult. It is cancelled if
            a newer request replaces it before it starts.
        """
        with self._lock:
            if self._shutdown:
                raise RuntimeError("CropDispatcher is shutting down")

            generation = self._generations.get(key, 0) + 1
            self._generations[key] = generation
            request = CropRequest(
                key=key,
                generation=generation,
                image=image,
                state=state,
                shape=MaskShape.parse(shape),
                rotate=rotate,
                callback=callback,
            )
            self.stats['requests_submitted'] += 1

            if key in self._running:
                superseded = self._pending.pop(key, None)
                if superseded is not None:
                    superseded.future.cancel()
                    self.stats['requests_superseded'] += 1
                    logger.debug(f"Request {key!r}#{superseded.generation} superseded by #{generation}")
                self._pending[key] = request
            else:
                self._start(request)

            return request.future

    def latest(self, key: Hashable) -> Optional[CropResult]:
        """Newest completed result for ``key`` without consuming it."""
        with self._lock:
            return self._latest.get(key)

    def take_latest(self, key: Hashable) -> Optional[CropResult]:
        """Consume the newest completed result for ``key``."""
        with self._lock:
            result = self._latest.pop(key, None)
            self._forget_if_idle(key)
            return result

    def discard(self, key: Hashable) -> None:
        """Drop the stored result for ``key``, e.g. when its image is closed."""
        with self._lock:
            self._latest.pop(key, None)
            self._forget_if_idle(key)

    def is_busy(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._running or key in self._pending

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no request is running or queued.

        Returns:
            True if idle, False if the timeout expired first
        """
        with self._idle:
            return self._idle.wait_for(
                lambda: not self._running and not self._pending, timeout=timeout
            )

    def shutdown(self, wait: bool = True) -> None:
        """Cancel queued requests and stop the worker pool."""
        logger.debug("Shutting down CropDispatcher...")

        with self._lock:
            self._shutdown = True
            for request in self._pending.values():
                request.future.cancel()
            self._pending.clear()
            self._idle.notify_all()

        self.executor.shutdown(wait=wait)

    def _start(self, request: CropRequest) -> None:
        if not request.future.set_running_or_notify_cancel():
            # Caller cancelled the future before it started
            return
        self._running[request.key] = request
        self.executor.submit(self._execute, request)

    def _execute(self, request: CropRequest) -> None:
        result = None
        error = None
        try:
            result = run_crop(request.image, request.state, request.shape, request.rotate)
        except Exception as e:
            # run_crop maps crop failures into the result; anything else is a
            # caller error such as an unsupported image type
            error = e
            logger.error(f"Crop request {request.key!r}#{request.generation} failed: {e}")

        callback = self._finish(request, result, error)

        if error is not None:
            request.future.set_exception(error)
        else:
            request.future.set_result(result)

        if callback is not None:
            try:
                callback(result)
            except Exception as e:
                logger.error(f"Crop callback failed: {e}")

    def _finish(self, request: CropRequest, result: Optional[CropResult],
                error: Optional[Exception]) -> Optional[Callable]:
        """Record the outcome and start the queued request, if any."""
        callback = None
        with self._lock:
            self._running.pop(request.key, None)

            if error is not None:
                self.stats['requests_failed'] += 1
            else:
                self.stats['requests_completed'] += 1
                if request.generation == self._generations.get(request.key):
                    self._latest[request.key] = result
                    callback = request.callback
                else:
                    self.stats['results_discarded'] += 1

            next_request = self._pending.pop(request.key, None)
            if next_request is not None and not self._shutdown:
                self._start(next_request)

            self._forget_if_idle(request.key)
            self._idle.notify_all()

        return callback

    def _forget_if_idle(self, key: Hashable) -> None:
        # Generations only order requests that are still in flight or stored
        if key not in self._running and key not in self._pending and key not in self._latest:
            self._generations.pop(key, None)
