"""
Rollback — optimistic changes with compensation.

    from cartsync import rollback as R

    change = R.checkpoint(before, restore).then(lambda _: R.step(push_remote()))
    result = await R.run_chain(change)
"""

from __future__ import annotations

from cartsync.rollback._types import (
    Compensator,
    Step,
    Then,
    Applied,
    RolledBack,
)
from cartsync.rollback._step import step, checkpoint
from cartsync.rollback._run import run_chain

__all__ = (
    "Compensator",
    "Step",
    "Then",
    "Applied",
    "RolledBack",
    "step",
    "checkpoint",
    "run_chain",
)
