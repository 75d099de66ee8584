"""Background persistence of suggestion actions."""

import logging
import queue
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable

logger = logging.getLogger(__name__)


class ActionSync:
    """
    Runs action-store writes on a single background worker.

    Writes are applied in submission order. Failures are logged and put on
    the errors queue; they never reach the caller that submitted them.
    With background=False every write runs inline, which is what the CLI
    and the tests use.
    """

    def __init__(self, background: bool = True):
        self.errors: queue.Queue[Exception] = queue.Queue()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="action-sync") if background else None
        self._pending: list[Future] = []

    def submit(self, fn: Callable, *args) -> None:
        if self._executor is None:
            self._run(fn, *args)
            return
        self._pending = [f for f in self._pending if not f.done()]
        self._pending.append(self._executor.submit(self._run, fn, *args))

    def _run(self, fn: Callable, *args) -> None:
        try:
            fn(*args)
        except Exception as e:
            logger.error(f"Failed to sync suggestion action via {getattr(fn, '__name__', fn)}: {e}")
            self.errors.put(e)

    def flush(self) -> None:
        """Block until every submitted write has finished."""
        wait(self._pending)
        self._pending.clear()

    def drain_errors(self) -> list[Exception]:
        errors = []
        while not self.errors.empty():
            errors.append(self.errors.get_nowait())
        return errors

    def close(self) -> None:
        self.flush()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
