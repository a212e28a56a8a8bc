"""Parallel composite fetch with priority-ordered error selection.

Runs a small, fixed set of independent store reads concurrently, waits for
all of them, and reports either every result (in task order) or exactly one
error: the failure of the earliest task in the list.

Example:
    fetcher = CompositeFetcher()
    outcome = await fetcher.run([
        FetchTask("patient", read_patient, action="reading"),
        FetchTask("observations", search_observations),
    ])
    if outcome.error:
        print(outcome.error)
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

from .errors import (
    CompositeFetchError,
    EntityNotFoundError,
    FetchTimeoutError,
    ResourceNotFoundError,
)

logger = logging.getLogger(__name__)

ResourceSet = list[dict[str, Any]]
FetchOperation = Callable[[], Awaitable[ResourceSet]]


@dataclass(frozen=True)
class FetchTask:
    """A labelled unit of work run once per composite fetch."""

    label: str
    operation: FetchOperation
    # Verb used when wrapping a failure ("loading observations: ...")
    action: str = "loading"


@dataclass
class CompositeResult:
    """Outcome of one composite fetch.

    ``results`` holds one ResourceSet per task in task order, or None when
    any task failed.
    """

    results: list[ResourceSet] | None
    elapsed: float
    error: CompositeFetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CompositeFetcher:
    """Fan-out/join over FetchTasks with a single prioritised error.

    Args:
        timeout: Optional bound in seconds on the whole fetch. Tasks still
            running at the deadline are cancelled and fail with
            FetchTimeoutError.
    """

    def __init__(self, timeout: float | None = None):
        self._timeout = timeout

    async def run(self, tasks: Sequence[FetchTask]) -> CompositeResult:
        """Run every task concurrently and join them all.

        A failing task never cancels its siblings. The reported error belongs
        to the lowest-index failed task.
        """
        if not tasks:
            raise ValueError("CompositeFetcher.run requires at least one task")

        slots: list[ResourceSet | None] = [None] * len(tasks)
        errors: list[BaseException | None] = [None] * len(tasks)

        async def _run_slot(index: int, task: FetchTask) -> None:
            # Each coroutine writes only its own index.
            try:
                slots[index] = list(await task.operation())
            except Exception as e:
                errors[index] = e

        start = time.perf_counter()
        pending = [
            asyncio.create_task(_run_slot(i, task), name=f"fetch:{task.label}")
            for i, task in enumerate(tasks)
        ]
        try:
            _, not_done = await asyncio.wait(pending, timeout=self._timeout)
            if not_done:
                for child in not_done:
                    child.cancel()
                await asyncio.gather(*not_done, return_exceptions=True)
                # Set after the gather so cleanup errors raised on cancel
                # cannot replace the timeout
                for i, child in enumerate(pending):
                    if child in not_done:
                        errors[i] = FetchTimeoutError(
                            f"timed out after {self._timeout:g}s"
                        )
        finally:
            for child in pending:
                if not child.done():
                    child.cancel()
        elapsed = time.perf_counter() - start

        error = self._select_error(tasks, errors)
        if error is not None:
            failed = sum(e is not None for e in errors)
            logger.info(
                f"[COMPOSITE_FETCH] {failed} of {len(tasks)} tasks failed in {elapsed * 1000:.1f}ms: {error}"
            )
            return CompositeResult(results=None, elapsed=elapsed, error=error)

        logger.info(f"[COMPOSITE_FETCH] {len(tasks)} tasks ok in {elapsed * 1000:.1f}ms")
        return CompositeResult(
            results=[slot if slot is not None else [] for slot in slots],
            elapsed=elapsed,
        )

    @staticmethod
    def _select_error(
        tasks: Sequence[FetchTask],
        errors: list[BaseException | None],
    ) -> CompositeFetchError | None:
        selected: CompositeFetchError | None = None
        for task, exc in zip(tasks, errors):
            if exc is None:
                continue
            logger.debug(f"[COMPOSITE_FETCH] {task.label} failed: {type(exc).__name__}: {exc}")
            if selected is None:
                selected = _describe_failure(task, exc)
        return selected


def _describe_failure(task: FetchTask, exc: BaseException) -> CompositeFetchError:
    """Turn a task failure into the error shown to the operator."""
    if isinstance(exc, ResourceNotFoundError):
        subject = f"{task.label} {exc.resource_id}" if exc.resource_id else task.label
        error: CompositeFetchError = EntityNotFoundError(f"{subject} not found", task.label)
    else:
        error = CompositeFetchError(f"{task.action} {task.label}: {exc}", task.label)
    error.__cause__ = exc
    return error
