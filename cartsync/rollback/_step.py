"""
Step creation.
"""

from __future__ import annotations

from kungfu import LazyCoroResult, Ok

from cartsync.lift import from_result
from cartsync.rollback._types import Step, Compensator

# ═══════════════════════════════════════════════════════════════════════════════
# step() — Primary Constructor
# ═══════════════════════════════════════════════════════════════════════════════


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
) -> Step[T, E]:
    """
    Create a compensated step.

    Args:
        action: The operation to perform (LazyCoroResult)
        compensate: Undo for the action's value, run if a later step fails

    Example:
        from cartsync import rollback as R

        push = (
            R.checkpoint(before, restore)
            .then(lambda _: R.step(client.replace(binding, cart)))
        )
    """
    return Step(action=action, compensate=compensate)


# ═══════════════════════════════════════════════════════════════════════════════
# checkpoint() — Record a Value to Restore
# ═══════════════════════════════════════════════════════════════════════════════


def checkpoint[T](value: T, restore: Compensator[T]) -> Step[T, object]:
    """
    A step that always succeeds with `value` and restores it on rollback.

    Used as the first link of an optimistic update: the value is the
    state captured before the change was applied.
    """
    return Step(action=from_result(Ok(value)), compensate=restore)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("step", "checkpoint")
