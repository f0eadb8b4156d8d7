"""
Running compensated steps.

A run keeps an undo log of (value, compensator) pairs. When a step fails
the log is unwound newest first, and the outcome reports how much of it
could actually be undone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from kungfu import Result, Ok, Error

from cartsync.rollback._types import Applied, Compensator, RolledBack, Step, Then

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UndoLog:
    entries: list[tuple[Any, Compensator[Any]]] = field(default_factory=list)

    def record[T](self, value: T, compensate: Compensator[T] | None) -> None:
        if compensate is not None:
            self.entries.append((value, compensate))

    async def unwind(self) -> tuple[int, int]:
        """Run every recorded compensator, newest first. Returns (run, failed)."""
        undone = failed = 0
        while self.entries:
            value, compensate = self.entries.pop()
            try:
                await compensate(value)
            except Exception:
                logger.exception("Compensator %r failed", compensate)
                failed += 1
            else:
                undone += 1
        return undone, failed


async def _attempt[T, E](step: Step[T, E], log: UndoLog) -> Result[T, E]:
    match await step.action:
        case Ok(value):
            log.record(value, step.compensate)
            return Ok(value)
        case Error(e):
            return Error(e)


async def _abort[E](error: E, position: int, log: UndoLog) -> Result[Any, RolledBack[E]]:
    undone, failed = await log.unwind()
    logger.debug("Step %d failed, %d compensator(s) run, %d failed", position, undone, failed)
    return Error(RolledBack(
        error=error,
        step_failed=position,
        compensators_run=undone,
        compensators_failed=failed,
    ))


async def run_chain[T, U, E, E2](chain: Then[T, U, E, E2]) -> Result[Applied[U], RolledBack[E | E2]]:
    """
    Execute `inner`, then the step `f` builds from its value.

    The second step is only constructed once the first succeeded, so it
    sees whatever state the first one established.
    """
    log = UndoLog()
    match await _attempt(chain.inner, log):
        case Ok(value):
            pass
        case Error(e):
            return await _abort(e, 1, log)

    match await _attempt(chain.f(value), log):
        case Ok(final):
            return Ok(Applied(value=final, steps_executed=2, compensators_recorded=len(log.entries)))
        case Error(e):
            return await _abort(e, 2, log)


__all__ = ("UndoLog", "run_chain")
