"""
Rollback types — compensated steps and their outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Callable, Awaitable
from kungfu import LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Compensator — Undo Action
# ═══════════════════════════════════════════════════════════════════════════════

type Compensator[T] = Callable[[T], Awaitable[None]]
"""Receives the value the step produced and undoes it."""

# ═══════════════════════════════════════════════════════════════════════════════
# Step — Fallible Action + Compensator
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Step[T, E]:
    """
    A single step: action + compensator.

    When the action succeeds its compensator is recorded together with the
    produced value. If a later step fails, recorded compensators run in
    reverse order.
    """

    action: LazyCoroResult[T, E]
    compensate: Compensator[T] | None

    def then[U, E2](
        self,
        f: Callable[[T], Step[U, E2]],
    ) -> Then[T, U, E, E2]:
        """Chain another step after this one."""
        return Then(self, f)


@dataclass(frozen=True, slots=True)
class Then[T, U, E, E2]:
    """Sequential composition (monadic bind)."""

    inner: Step[T, E]
    f: Callable[[T], Step[U, E2]]


# ═══════════════════════════════════════════════════════════════════════════════
# Outcomes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Applied[T]:
    """All steps succeeded."""

    value: T
    steps_executed: int
    compensators_recorded: int


@dataclass(frozen=True, slots=True)
class RolledBack[E]:
    """A step failed; recorded compensators were run."""

    error: E
    step_failed: int
    compensators_run: int
    compensators_failed: int

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


__all__ = (
    "Compensator",
    "Step",
    "Then",
    "Applied",
    "RolledBack",
)
