import asyncio

import pytest

from app.domain.blocks import service as blocks
from app.domain.chat import service
from app.domain.chat.schemas import SendMessageRequest
from app.domain.common.exceptions import Forbidden, InvalidInput, NotFound
from app.infra.auth import AuthenticatedUser

ALICE = AuthenticatedUser(id="alice")
BOB = AuthenticatedUser(id="bob")
CAROL = AuthenticatedUser(id="carol")


async def _chat():
    return await service.provision_for_match("match-1", ("alice", "bob"))


def _text(chat_id: str, content: str) -> SendMessageRequest:
    return SendMessageRequest(chat_id=chat_id, content=content)


@pytest.mark.asyncio
async def test_provision_is_idempotent_per_match(world):
    first = await _chat()
    second = await service.provision_for_match("match-1", ("alice", "bob"))

    assert first.id == second.id
    assert (await service.get_chat_for_match("match-1")).id == first.id


@pytest.mark.asyncio
async def test_messages_are_appended_in_order_with_last_message(world):
    chat = await _chat()

    first = await service.send_message(ALICE, _text(chat.id, "hi bob"))
    second = await service.send_message(BOB, _text(chat.id, "  hey alice  "))

    assert (first.seq, second.seq) == (1, 2)
    assert second.content == "hey alice"
    detail = await service.fetch_chat(ALICE, chat.id)
    assert [m.id for m in detail.messages] == [first.id, second.id]
    assert detail.last_message.content == "hey alice"
    assert detail.last_message.sender_id == "bob"
    assert detail.is_blocked is False
    assert {p.name for p in detail.participants} == {"Alice", "Bob"}


@pytest.mark.asyncio
async def test_concurrent_sends_keep_dense_sequence(world):
    chat = await _chat()

    sent = await asyncio.gather(
        *[service.send_message(ALICE if i % 2 else BOB, _text(chat.id, f"msg {i}")) for i in range(10)]
    )

    assert sorted(m.seq for m in sent) == list(range(1, 11))
    detail = await service.fetch_chat(BOB, chat.id)
    assert [m.seq for m in detail.messages] == list(range(1, 11))
    assert detail.last_message.content == detail.messages[-1].content


@pytest.mark.asyncio
async def test_image_message_uses_photo_preview(world):
    chat = await _chat()

    message = await service.send_message(
        ALICE, SendMessageRequest(chat_id=chat.id, message_type="image", image_ref="uploads/rex.jpg")
    )

    assert message.message_type == "image"
    assert message.content == "uploads/rex.jpg"
    detail = await service.fetch_chat(BOB, chat.id)
    assert detail.last_message.content == "Photo"


@pytest.mark.asyncio
async def test_empty_content_is_rejected_without_persisting(world):
    chat = await _chat()

    with pytest.raises(InvalidInput) as exc:
        await service.send_message(ALICE, _text(chat.id, "   "))
    assert exc.value.reason == "empty_message"
    with pytest.raises(InvalidInput) as exc:
        await service.send_message(ALICE, SendMessageRequest(chat_id=chat.id, message_type="image"))
    assert exc.value.reason == "image_required"

    detail = await service.fetch_chat(ALICE, chat.id)
    assert detail.messages == []
    assert detail.last_message is None


@pytest.mark.asyncio
async def test_non_participant_cannot_read_or_send(world):
    chat = await _chat()

    with pytest.raises(Forbidden) as exc:
        await service.fetch_chat(CAROL, chat.id)
    assert exc.value.reason == "not_participant"
    with pytest.raises(Forbidden):
        await service.send_message(CAROL, _text(chat.id, "let me in"))
    with pytest.raises(NotFound):
        await service.fetch_chat(ALICE, "missing-chat")


@pytest.mark.asyncio
async def test_block_in_either_direction_stops_sends(world):
    chat = await _chat()
    await blocks.block(BOB, "alice")

    with pytest.raises(Forbidden) as exc:
        await service.send_message(ALICE, _text(chat.id, "still there?"))
    assert exc.value.reason == "blocked_by_peer"
    with pytest.raises(Forbidden) as exc:
        await service.send_message(BOB, _text(chat.id, "still there?"))
    assert exc.value.reason == "blocked_by_you"

    detail = await service.fetch_chat(ALICE, chat.id)
    assert detail.is_blocked is True
    assert detail.messages == []

    await blocks.unblock(BOB, "alice")
    message = await service.send_message(ALICE, _text(chat.id, "welcome back"))
    assert message.seq == 1

    await blocks.block(BOB, "alice")
    with pytest.raises(Forbidden) as exc:
        await service.send_message(ALICE, _text(chat.id, "again?"))
    assert exc.value.reason == "blocked_by_peer"
    detail = await service.fetch_chat(BOB, chat.id)
    assert [m.seq for m in detail.messages] == [1]
    assert detail.is_blocked is True


@pytest.mark.asyncio
async def test_list_chats_orders_by_latest_activity(world):
    older = await _chat()
    newer = await service.provision_for_match("match-2", ("carol", "alice"))
    await service.send_message(ALICE, _text(older.id, "first"))
    await service.send_message(CAROL, _text(newer.id, "second"))

    chats = await service.list_chats(ALICE)

    assert [c.id for c in chats] == [newer.id, older.id]
    assert chats[0].last_message.content == "second"
    assert [c.id for c in await service.list_chats(BOB)] == [older.id]


@pytest.mark.asyncio
async def test_get_message_is_scoped_to_chat(world):
    chat = await _chat()
    other = await service.provision_for_match("match-2", ("alice", "carol"))
    message = await service.send_message(ALICE, _text(chat.id, "scoped"))

    assert (await service.get_message(BOB, chat.id, message.id)).content == "scoped"
    with pytest.raises(NotFound):
        await service.get_message(ALICE, other.id, message.id)
