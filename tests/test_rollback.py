from __future__ import annotations

import pytest
from kungfu import Ok, Error

from cartsync import rollback as R
from cartsync.lift import from_result
from tests.helpers import err, ok


@pytest.mark.asyncio
async def test_chain_success_keeps_changes() -> None:
    restored: list[str] = []

    async def restore(value: str) -> None:
        restored.append(value)

    change = R.checkpoint("before", restore).then(lambda _: R.step(from_result(Ok("pushed"))))
    applied = ok(await R.run_chain(change))

    assert applied.value == "pushed"
    assert applied.steps_executed == 2
    assert applied.compensators_recorded == 1
    assert restored == []


@pytest.mark.asyncio
async def test_failed_push_restores_checkpoint() -> None:
    restored: list[str] = []

    async def restore(value: str) -> None:
        restored.append(value)

    change = R.checkpoint("before", restore).then(lambda _: R.step(from_result(Error("offline"))))
    rolled_back = err(await R.run_chain(change))

    assert rolled_back.error == "offline"
    assert rolled_back.step_failed == 2
    assert rolled_back.compensators_run == 1
    assert rolled_back.rollback_complete
    assert restored == ["before"]


@pytest.mark.asyncio
async def test_failing_compensator_is_counted() -> None:
    async def restore(value: str) -> None:
        raise RuntimeError("disk full")

    change = R.checkpoint("before", restore).then(lambda _: R.step(from_result(Error("offline"))))
    rolled_back = err(await R.run_chain(change))

    assert rolled_back.compensators_failed == 1
    assert not rolled_back.rollback_complete


@pytest.mark.asyncio
async def test_failing_step_does_not_undo_itself() -> None:
    order: list[str] = []

    async def undo_first(value: int) -> None:
        order.append("first")

    async def undo_second(value: int) -> None:
        order.append("second")

    change = R.checkpoint(1, undo_first).then(
        lambda _: R.step(from_result(Ok(2)), undo_second)
    )
    ok(await R.run_chain(change))

    failing = R.checkpoint(1, undo_first).then(
        lambda _: R.step(from_result(Error("boom")), undo_second)
    )
    rolled_back = err(await R.run_chain(failing))

    assert rolled_back.error == "boom"
    assert order == ["first"]


@pytest.mark.asyncio
async def test_failing_first_step_has_nothing_to_undo() -> None:
    async def undo(value: int) -> None:
        pytest.fail("a step that failed must not be compensated")

    chain = R.step(from_result(Error("nope")), undo).then(lambda _: R.step(from_result(Ok(2))))
    rolled_back = err(await R.run_chain(chain))

    assert rolled_back.compensators_run == 0
    assert rolled_back.step_failed == 1
