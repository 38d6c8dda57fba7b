"""Bounded-concurrency dispatcher in front of the inference service.

Callers submit :class:`GenerationRequest` objects and await the result. The
queue serves entries strictly FIFO as slots free up, bounds every backend call
with a hard timeout, and turns every failure into a :class:`GenerationFailure`
instead of raising, so a dead or slow server can never stall a caller.

Completion order is not submission order: an early request in a slow slot can
finish after a later one.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Literal, Optional, Protocol

from ..local_llm import (
    GenerationRequest,
    LocalLLMConnectionError,
    LocalLLMEmptyResponse,
    LocalLLMError,
    LocalLLMHTTPError,
)
from ..logging_utils import LOG_TAG_ERROR, is_verbose, log_error


DEFAULT_CONCURRENCY = 10
DEFAULT_TIMEOUT_SECONDS = 5.0

FailureKind = Literal["timeout", "http", "network", "empty", "backend"]


class GenerationBackend(Protocol):
    async def generate(self, generation: GenerationRequest) -> str: ...


@dataclass(frozen=True)
class GenerationFailure:
    kind: FailureKind
    detail: str = ""


@dataclass(frozen=True)
class GenerationOutcome:
    """Either ``text`` or ``failure`` is set, never both."""

    text: Optional[str] = None
    failure: Optional[GenerationFailure] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.failure is None and self.text is not None

    def text_or_none(self) -> Optional[str]:
        return self.text if self.ok else None


@dataclass(frozen=True)
class QueueStatus:
    queued: int
    active: int
    completed: int
    failed: int
    concurrency: int


@dataclass
class _QueueEntry:
    request: GenerationRequest
    future: "asyncio.Future[GenerationOutcome]"


def _classify(exc: BaseException) -> GenerationFailure:
    if isinstance(exc, asyncio.TimeoutError):
        return GenerationFailure("timeout", "generation timed out")
    if isinstance(exc, LocalLLMHTTPError):
        return GenerationFailure("http", str(exc))
    if isinstance(exc, LocalLLMConnectionError):
        return GenerationFailure("network", str(exc))
    if isinstance(exc, LocalLLMEmptyResponse):
        return GenerationFailure("empty", str(exc))
    if isinstance(exc, LocalLLMError):
        return GenerationFailure("backend", str(exc))
    return GenerationFailure("backend", f"{type(exc).__name__}: {exc}")


class GenerationQueue:
    """FIFO queue with at most ``concurrency`` backend calls in flight.

    Invariants:
    - ``active`` never exceeds ``concurrency``.
    - Every submitted entry resolves, because each slot's timeout guarantees
      it finishes and re-dispatches even if the backend hangs.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if concurrency < 1:
            raise ValueError("GenerationQueue concurrency must be at least 1")
        self.backend = backend
        self.concurrency = concurrency
        self.timeout = timeout
        self._pending: Deque[_QueueEntry] = deque()
        self._active = 0
        self._completed = 0
        self._failed = 0
        self._workers: set[asyncio.Task] = set()
        self._closed = False

    @property
    def active(self) -> int:
        return self._active

    @property
    def queued(self) -> int:
        return len(self._pending)

    def status(self) -> QueueStatus:
        return QueueStatus(
            queued=self.queued,
            active=self._active,
            completed=self._completed,
            failed=self._failed,
            concurrency=self.concurrency,
        )

    async def submit_outcome(self, generation: GenerationRequest) -> GenerationOutcome:
        """Enqueue ``generation`` and wait for its outcome. Never raises for backend failures."""
        loop = asyncio.get_running_loop()
        entry = _QueueEntry(request=generation, future=loop.create_future())
        self._pending.append(entry)
        self._dispatch()
        return await asyncio.shield(entry.future)

    async def submit(self, generation: GenerationRequest) -> Optional[str]:
        """Enqueue and return generated text, or None when generation failed."""
        outcome = await self.submit_outcome(generation)
        return outcome.text_or_none()

    def _dispatch(self) -> None:
        if self._closed:
            return
        while self._pending and self._active < self.concurrency:
            entry = self._pending.popleft()
            self._active += 1
            worker = asyncio.ensure_future(self._run(entry))
            self._workers.add(worker)
            worker.add_done_callback(self._workers.discard)

    async def _run(self, entry: _QueueEntry) -> None:
        started = time.monotonic()
        try:
            text = await asyncio.wait_for(
                self.backend.generate(entry.request),
                timeout=self.timeout,
            )
            if not text or not text.strip():
                outcome = GenerationOutcome(
                    failure=GenerationFailure("empty", "backend returned no text"),
                    elapsed=time.monotonic() - started,
                )
            else:
                outcome = GenerationOutcome(text=text, elapsed=time.monotonic() - started)
        except asyncio.CancelledError:
            outcome = GenerationOutcome(
                failure=GenerationFailure("backend", "generation cancelled"),
                elapsed=time.monotonic() - started,
            )
        except Exception as exc:
            outcome = GenerationOutcome(failure=_classify(exc), elapsed=time.monotonic() - started)
        finally:
            self._active -= 1

        if outcome.ok:
            self._completed += 1
        else:
            self._failed += 1
            if is_verbose():
                label = entry.request.label or "generate"
                log_error(
                    f"  {LOG_TAG_ERROR} [Queue] {label} failed ({outcome.failure.kind}): "
                    f"{outcome.failure.detail}"
                )

        if not entry.future.done():
            entry.future.set_result(outcome)
        self._dispatch()

    async def close(self) -> None:
        """Fail queued entries and cancel in-flight workers; every caller still resolves."""
        self._closed = True
        while self._pending:
            entry = self._pending.popleft()
            if not entry.future.done():
                entry.future.set_result(
                    GenerationOutcome(failure=GenerationFailure("backend", "queue closed"))
                )
        for worker in list(self._workers):
            worker.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)


__all__ = [
    "DEFAULT_CONCURRENCY",
    "DEFAULT_TIMEOUT_SECONDS",
    "GenerationBackend",
    "GenerationFailure",
    "GenerationOutcome",
    "GenerationQueue",
    "QueueStatus",
]
