"""Concurrent dispatch of independent analyzer branches.

:func:`settle_all` is the single join point: every branch runs on a worker thread,
each branch's exception is folded into its own :class:`AnalyzerOutcome`, and the
result is keyed by branch name in submission order, never completion order.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ..models.base import AnalyzerOutcome
from ..utils.timing import elapsed_ms, utc_timestamp

logger = logging.getLogger(__name__)


class FanOutTimeoutError(TimeoutError):
    """Raised when branches are still pending at the request deadline."""

    def __init__(self, pending: Sequence[str], timeout: float) -> None:
        self.pending = list(pending)
        self.timeout = timeout
        super().__init__(
            f"Analysis timed out after {timeout:g}s; pending branches: {', '.join(self.pending)}"
        )


@dataclass(frozen=True, slots=True)
class Branch:
    """A named unit of remote work."""

    name: str
    call: Callable[[], Any]


def _run_branch(branch: Branch) -> AnalyzerOutcome[Any]:
    try:
        return AnalyzerOutcome.success(branch.name, branch.call())
    except Exception as exc:
        logger.warning("Branch '%s' failed: %s", branch.name, exc)
        return AnalyzerOutcome.failure(branch.name, exc)


def settle_all(
    branches: Sequence[Branch],
    *,
    max_workers: int | None = None,
    timeout: float | None = None,
) -> dict[str, AnalyzerOutcome[Any]]:
    """Run every branch concurrently and wait until all of them have settled.

    A failing branch never cancels its siblings. If ``timeout`` elapses first the
    still-pending branches are abandoned and :class:`FanOutTimeoutError` is raised;
    outcomes that had already settled are discarded with the request.
    """
    names = [branch.name for branch in branches]
    if len(set(names)) != len(names):
        raise ValueError(f"Branch names must be unique: {names}")
    if not branches:
        return {}

    executor = ThreadPoolExecutor(
        max_workers=max_workers or len(branches),
        thread_name_prefix="fanout",
    )
    futures: dict[str, Future[AnalyzerOutcome[Any]]] = {}
    abandoned = False
    try:
        for branch in branches:
            futures[branch.name] = executor.submit(_run_branch, branch)
        _, pending = wait(futures.values(), timeout=timeout)
        if pending:
            abandoned = True
            for future in pending:
                future.cancel()
            stalled = [name for name, future in futures.items() if future in pending]
            raise FanOutTimeoutError(stalled, timeout or 0.0)
    finally:
        executor.shutdown(wait=not abandoned, cancel_futures=abandoned)

    return {name: futures[name].result() for name in names}


@dataclass(frozen=True, slots=True)
class CompositeAnalysisResult:
    """Per-branch outcomes of one request plus when and how long it ran."""

    outcomes: Mapping[str, AnalyzerOutcome[Any]]
    processing_time_ms: int
    timestamp: str = field(default_factory=utc_timestamp)

    def succeeded(self) -> list[str]:
        return [name for name, outcome in self.outcomes.items() if outcome.ok]

    def failed(self) -> list[str]:
        return [name for name, outcome in self.outcomes.items() if not outcome.ok]

    def as_dict(self) -> dict[str, Any]:
        return {
            "results": {name: outcome.as_dict() for name, outcome in self.outcomes.items()},
            "processingTime": self.processing_time_ms,
            "timestamp": self.timestamp,
        }


class FanOutOrchestrator:
    """Runs a set of branches and assembles a :class:`CompositeAnalysisResult`."""

    def __init__(self, *, max_workers: int = 4, timeout: float | None = None) -> None:
        self.max_workers = max_workers
        self.timeout = timeout

    def run(self, branches: Sequence[Branch]) -> CompositeAnalysisResult:
        started = time.perf_counter()
        outcomes = settle_all(
            branches,
            max_workers=min(self.max_workers, len(branches)) or None,
            timeout=self.timeout,
        )
        result = CompositeAnalysisResult(
            outcomes=MappingProxyType(outcomes),
            processing_time_ms=elapsed_ms(started),
        )
        logger.info(
            "Fan-out settled %d branches in %dms (%d failed)",
            len(outcomes),
            result.processing_time_ms,
            len(result.failed()),
        )
        return result
