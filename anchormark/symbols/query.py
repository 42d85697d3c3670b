"""Non-blocking and time-bounded symbol queries.

Providers run on a background worker against a snapshot of the buffer.
Completed results wait in a queue until the event loop calls ``drain``, so
continuations (and every bookmark mutation they perform) run on the loop
thread.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from queue import Empty, Queue

from ..anchors.types import Symbol
from ..editor.buffer import SourceBuffer
from .provider import SymbolProvider

logger = logging.getLogger(__name__)

SymbolContinuation = Callable[[list[Symbol]], None]


@dataclass(frozen=True)
class SymbolQueryRequest:
    """One queued outline request."""

    request_id: int
    snapshot: SourceBuffer
    on_result: SymbolContinuation


@dataclass(frozen=True)
class SymbolQueryResult:
    request: SymbolQueryRequest
    symbols: list[Symbol]


def _snapshot(buffer: SourceBuffer) -> SourceBuffer:
    """Detached copy of the buffer text so workers never see concurrent edits."""
    return SourceBuffer(buffer.path, list(buffer.lines), readonly=True)


def _run_provider(provider: SymbolProvider, buffer: SourceBuffer) -> list[Symbol]:
    """Invoke ``provider``; any failure counts as an empty outline."""
    try:
        return list(provider(buffer) or [])
    except Exception as exc:
        logger.debug("symbol provider failed for %s: %s", buffer.path, exc)
        return []


class SymbolQueryScheduler:
    """FIFO background outline queries with loop-side continuations."""

    def __init__(self, provider: SymbolProvider | None) -> None:
        self.provider = provider
        self._lock = threading.Lock()
        self._pending: deque[SymbolQueryRequest] = deque()
        self._running = False
        self._next_request_id = 1
        self._results: Queue[SymbolQueryResult] = Queue()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def available(self) -> bool:
        return self.provider is not None

    def _worker(self) -> None:
        while True:
            with self._lock:
                if not self._pending:
                    self._running = False
                    return
                request = self._pending.popleft()

            symbols = _run_provider(self.provider, request.snapshot) if self.provider else []
            self._results.put(SymbolQueryResult(request=request, symbols=symbols))

    def request(self, buffer: SourceBuffer, on_result: SymbolContinuation) -> int:
        """Queue an outline request and return immediately.

        ``on_result`` runs later, from ``drain``, with the symbol list (empty
        when no provider is attached or the provider fails).
        """
        with self._lock:
            request_id = self._next_request_id
            self._next_request_id += 1
            request = SymbolQueryRequest(request_id=request_id, snapshot=_snapshot(buffer), on_result=on_result)
            if self.provider is None:
                self._results.put(SymbolQueryResult(request=request, symbols=[]))
                return request_id
            self._pending.append(request)
            if self._running:
                return request_id
            self._running = True

        worker = threading.Thread(
            target=self._worker,
            name="anchormark-symbol-query",
            daemon=True,
        )
        worker.start()
        return request_id

    def drain(self) -> int:
        """Run continuations for every completed request; return how many ran."""
        completed = 0
        while True:
            try:
                result = self._results.get_nowait()
            except Empty:
                break
            result.request.on_result(result.symbols)
            completed += 1
        return completed

    def query_blocking(self, buffer: SourceBuffer, timeout_seconds: float) -> list[Symbol]:
        """Query synchronously, waiting at most ``timeout_seconds``.

        A timeout or provider error yields an empty list.
        """
        if self.provider is None:
            return []
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="anchormark-symbols")
        future = self._executor.submit(_run_provider, self.provider, _snapshot(buffer))
        try:
            return future.result(timeout=max(0.0, timeout_seconds))
        except FutureTimeoutError:
            logger.debug("symbol query for %s timed out after %.3fs", buffer.path, timeout_seconds)
            future.cancel()
            # The stuck call keeps its worker; later queries get a fresh executor.
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
            return []

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None


__all__ = ["SymbolContinuation", "SymbolQueryRequest", "SymbolQueryResult", "SymbolQueryScheduler"]
