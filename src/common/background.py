import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class _Completion:
    name: str
    on_result: Callable[[Any], None] | None
    on_error: Callable[[Exception], None] | None
    result: Any = None
    error: Exception | None = None


class BackgroundRunner:
    """Runs fire-and-forget work off the caller's thread.

    Work functions execute in a small thread pool, but their callbacks are
    queued and only invoked from ``drain()``, so whoever owns mutable state
    applies every result on its own thread.
    """

    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="hybridchat-bg"
        )
        self._completed: queue.SimpleQueue[_Completion] = queue.SimpleQueue()
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self._closing = threading.Event()

    def submit(
        self,
        name: str,
        fn: Callable[[], Any],
        *,
        on_result: Callable[[Any], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        delay: float = 0.0,
    ) -> Future:
        def _run() -> None:
            if delay > 0 and self._closing.wait(delay):
                return
            completion = _Completion(name=name, on_result=on_result, on_error=on_error)
            try:
                completion.result = fn()
            except Exception as e:
                logger.warning(f"Background task {name} failed: {e}")
                completion.error = e
            self._completed.put(completion)

        future = self._executor.submit(_run)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def drain(self, wait: bool = False, timeout: float | None = None) -> int:
        if wait:
            with self._lock:
                futures = list(self._pending)
            for future in futures:
                future.exception(timeout=timeout)

        applied = 0
        while True:
            try:
                completion = self._completed.get_nowait()
            except queue.Empty:
                break
            applied += 1
            if completion.error is not None:
                if completion.on_error is not None:
                    completion.on_error(completion.error)
                continue
            if completion.on_result is not None:
                completion.on_result(completion.result)
        return applied

    def shutdown(self) -> None:
        self._closing.set()
        self._executor.shutdown(wait=False, cancel_futures=True)
