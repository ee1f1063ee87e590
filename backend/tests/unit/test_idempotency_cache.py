import pytest

from app.infra import idempotency
from app.infra.idempotency import IdempotencyConflictError


@pytest.mark.asyncio
async def test_begin_reserves_then_replays_completed_result():
    digest = idempotency.hash_payload('{"content": "hi"}')

    assert await idempotency.begin("k1", "chat.messages.send", payload_hash=digest) is None
    await idempotency.complete("k1", "chat.messages.send", "msg-1", payload_hash=digest)

    assert await idempotency.begin("k1", "chat.messages.send", payload_hash=digest) == {"result_id": "msg-1"}


@pytest.mark.asyncio
async def test_begin_rejects_reused_key_with_different_payload():
    await idempotency.begin("k1", "chat.messages.send", payload_hash="aaa")
    await idempotency.complete("k1", "chat.messages.send", "msg-1", payload_hash="aaa")

    with pytest.raises(IdempotencyConflictError) as exc:
        await idempotency.begin("k1", "chat.messages.send", payload_hash="bbb")
    assert exc.value.reason == "idempotency_conflict"


@pytest.mark.asyncio
async def test_begin_reports_in_flight_reservation():
    await idempotency.begin("k1", "chat.messages.send", payload_hash="aaa")

    with pytest.raises(IdempotencyConflictError) as exc:
        await idempotency.begin("k1", "chat.messages.send", payload_hash="aaa")
    assert exc.value.reason == "idempotency_in_progress"


@pytest.mark.asyncio
async def test_abandon_releases_reservation():
    await idempotency.begin("k1", "chat.messages.send", payload_hash="aaa")
    await idempotency.abandon("k1", "chat.messages.send")

    assert await idempotency.begin("k1", "chat.messages.send", payload_hash="aaa") is None


@pytest.mark.asyncio
async def test_claim_is_first_writer_wins(fake_redis):
    assert await idempotency.claim("chat:c1:m1") is True
    assert await idempotency.claim("chat:c1:m1") is False
    assert await idempotency.claim("chat:c1:m2") is True
    assert 0 < await fake_redis.ttl("dedupe:chat:c1:m1") <= 120
