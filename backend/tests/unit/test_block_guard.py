import pytest

from app.domain.blocks import service
from app.domain.common.exceptions import InvalidOperation, NotFound
from app.infra.auth import AuthenticatedUser

ALICE = AuthenticatedUser(id="alice")
BOB = AuthenticatedUser(id="bob")


@pytest.mark.asyncio
async def test_block_is_symmetric_for_checks(world):
    assert await service.is_blocked("alice", "bob") is False

    await service.block(ALICE, "bob")

    assert await service.is_blocked("alice", "bob") is True
    assert await service.is_blocked("bob", "alice") is True
    assert await service.has_blocked("alice", "bob") is True
    assert await service.has_blocked("bob", "alice") is False
    assert await service.list_blocked(ALICE) == ["bob"]
    assert await service.list_blocked(BOB) == []


@pytest.mark.asyncio
async def test_block_and_unblock_are_idempotent(world, fake_redis):
    await service.block(ALICE, "bob")
    await service.block(ALICE, "bob")
    assert await service.list_blocked(ALICE) == ["bob"]

    await service.unblock(ALICE, "bob")
    await service.unblock(ALICE, "bob")
    assert await service.is_blocked("alice", "bob") is False

    events = await fake_redis.xrange("x:blocks.events")
    assert [fields["event"] for _, fields in events] == ["blocked", "unblocked"]


@pytest.mark.asyncio
async def test_unblock_only_removes_own_entry(world):
    await service.block(ALICE, "bob")
    await service.block(BOB, "alice")

    await service.unblock(ALICE, "bob")

    assert await service.is_blocked("alice", "bob") is True
    assert await service.list_blocked(ALICE) == []
    assert await service.list_blocked(BOB) == ["alice"]


@pytest.mark.asyncio
async def test_self_block_is_invalid(world):
    with pytest.raises(InvalidOperation) as exc:
        await service.block(ALICE, "alice")
    assert exc.value.reason == "self_block"


@pytest.mark.asyncio
async def test_blocking_unknown_user_is_not_found(world):
    with pytest.raises(NotFound):
        await service.block(ALICE, "nobody")
