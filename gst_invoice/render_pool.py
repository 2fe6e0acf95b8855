"""Process-pool execution of invoice renders."""

from __future__ import annotations

import logging
import multiprocessing as mp
import threading
from concurrent.futures import (
    CancelledError,
    Executor,
    Future,
    InvalidStateError,
    ProcessPoolExecutor,
    TimeoutError as FutureTimeoutError,
)
from concurrent.futures.process import BrokenProcessPool
from typing import Callable, Optional

from .config import (
    CURRENCY_SYMBOL,
    MAX_CONCURRENT_RENDERS,
    MAX_INFLIGHT_RENDERS,
    RENDER_QUEUE_TIMEOUT_MS,
    RENDER_TIMEOUT_MS,
)
from .errors import RenderBusyError, RenderError, RenderTimeoutError
from .ledger import InvoiceSnapshot

logger = logging.getLogger(__name__)


class DependencyError(RuntimeError):
    """Raised when a required runtime dependency is missing."""


def load_render_snapshot():
    try:
        from .rendering import render_snapshot
    except ModuleNotFoundError as exc:
        if exc.name == "fpdf":
            raise DependencyError(
                "Missing dependency 'fpdf2'. Install the project with 'pip install .'."
            ) from exc
        raise
    return render_snapshot


def create_process_executor(max_workers: int) -> Executor:
    return ProcessPoolExecutor(
        max_workers=max_workers,
        mp_context=mp.get_context("spawn"),
    )


def _terminate_workers(executor: Executor) -> None:
    terminate = getattr(executor, "terminate_workers", None)
    if terminate is not None:
        terminate()
        return
    # Older interpreters have no public way to stop a running worker.
    processes = getattr(executor, "_processes", None) or {}
    for process in list(processes.values()):
        if process.is_alive():
            process.terminate()
    executor.shutdown(wait=False, cancel_futures=True)


def as_render_error(exc: BaseException) -> RenderError:
    if isinstance(exc, RenderError):
        return exc
    if isinstance(exc, BrokenProcessPool):
        error = RenderError("Render worker crashed; retry shortly.", retryable=True)
    elif isinstance(exc, MemoryError):
        error = RenderError("Renderer ran out of memory; retry later.", retryable=True)
    else:
        error = RenderError(f"PDF rendering failed: {exc}")
    error.__cause__ = exc
    return error


class RenderFuture(Future):
    """Caller-facing future for one render, backed by the executor job."""

    def __init__(self, job: Future) -> None:
        super().__init__()
        self.job = job


class RenderPool:
    """Bounded pool of render workers.

    Each submitted render holds one in-flight slot from submission until its
    future completes, whatever the outcome. The executor is created lazily and
    recreated after it breaks or after running workers are torn down by
    ``cancel``.
    """

    def __init__(
        self,
        max_workers: int = MAX_CONCURRENT_RENDERS,
        max_inflight: int = MAX_INFLIGHT_RENDERS,
        queue_timeout_ms: int = RENDER_QUEUE_TIMEOUT_MS,
        render_timeout_ms: int = RENDER_TIMEOUT_MS,
        currency_symbol: str = CURRENCY_SYMBOL,
        executor_factory: Optional[Callable[[int], Executor]] = None,
        render_func: Optional[Callable[..., object]] = None,
    ) -> None:
        self.max_workers = max_workers
        self.max_inflight = max_inflight
        self.queue_timeout_ms = queue_timeout_ms
        self.render_timeout_ms = render_timeout_ms
        self.currency_symbol = currency_symbol
        self._executor_factory = executor_factory or create_process_executor
        self._render_func = render_func
        self._slots = threading.BoundedSemaphore(max_inflight)
        self._lock = threading.Lock()
        self._executor: Optional[Executor] = None
        self._closed = False

    def __enter__(self) -> "RenderPool":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def start(self) -> None:
        self._get_render_func()
        self._get_executor()

    def _get_render_func(self) -> Callable[..., object]:
        if self._render_func is None:
            self._render_func = load_render_snapshot()
        return self._render_func

    def _get_executor(self) -> Executor:
        with self._lock:
            if self._closed:
                raise RenderError("Render pool is closed.")
            if self._executor is None:
                self._executor = self._executor_factory(self.max_workers)
            return self._executor

    def _discard_executor(self, previous: Executor, terminate: bool = False) -> None:
        with self._lock:
            if self._executor is not previous:
                return
            self._executor = None
        logger.warning("Discarding render executor (terminate=%s)", terminate)
        try:
            if terminate:
                _terminate_workers(previous)
            else:
                previous.shutdown(wait=False, cancel_futures=True)
        except Exception:
            logger.exception("Render executor shutdown failed")

    def _acquire_slot(self) -> None:
        if not self._slots.acquire(timeout=self.queue_timeout_ms / 1000.0):
            raise RenderBusyError("Render queue is full; retry shortly.")

    def submit(self, snapshot: InvoiceSnapshot) -> RenderFuture:
        """Queue a render and return its future without waiting.

        The returned future resolves with a RenderedDocument or fails with a
        RenderError; worker crashes never reach the caller as executor errors.
        """
        render_func = self._get_render_func()
        self._acquire_slot()
        try:
            executor = self._get_executor()
            try:
                job = executor.submit(render_func, snapshot, self.currency_symbol)
            except BrokenProcessPool:
                self._discard_executor(executor)
                executor = self._get_executor()
                job = executor.submit(render_func, snapshot, self.currency_symbol)
        except BaseException:
            self._slots.release()
            raise
        job.add_done_callback(lambda _: self._slots.release())
        future = RenderFuture(job)
        job.add_done_callback(lambda done: self._settle(future, done, executor))
        return future

    def _settle(self, future: RenderFuture, job: Future, executor: Executor) -> None:
        try:
            if job.cancelled():
                future.cancel()
                return
            exc = job.exception()
            if exc is None:
                future.set_result(job.result())
                return
            if isinstance(exc, BrokenProcessPool):
                self._discard_executor(executor)
            future.set_exception(as_render_error(exc))
        except InvalidStateError:
            # Cancelled by the caller while the job was finishing.
            pass

    def render(self, snapshot: InvoiceSnapshot, timeout_ms: Optional[int] = None):
        """Render synchronously; returns a RenderedDocument or raises RenderError."""
        timeout_ms = self.render_timeout_ms if timeout_ms is None else timeout_ms
        future = self.submit(snapshot)
        try:
            return future.result(timeout=timeout_ms / 1000.0)
        except FutureTimeoutError:
            self.cancel(future)
            raise RenderTimeoutError(f"Render exceeded timeout of {timeout_ms} ms.") from None
        except CancelledError as exc:
            raise RenderError("Render was cancelled.", retryable=True) from exc

    def cancel(self, future: Future) -> bool:
        """Stop a render. Returns False if it had already finished.

        A render that is still queued is simply dropped. One that is running
        cannot be interrupted inside its worker, so the workers are torn down
        to release their memory and CPU; other renders running at that moment
        fail with a retryable RenderError. Either way ``future`` ends up
        cancelled.
        """
        if future.done():
            return False
        job = getattr(future, "job", future)
        if job.cancel():
            future.cancel()
            return True
        with self._lock:
            executor = self._executor
        if executor is not None:
            self._discard_executor(executor, terminate=True)
        future.cancel()
        return True

    def close(self) -> None:
        with self._lock:
            self._closed = True
            executor = self._executor
            self._executor = None
        if executor is not None:
            try:
                executor.shutdown(wait=False, cancel_futures=True)
            except Exception:
                logger.exception("Render executor shutdown failed")
