import pytest

from app.domain.chat import service as chat_service
from app.domain.chat import sockets

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}
CAROL = {"X-User-Id": "carol"}


async def _chat_id() -> str:
    chat = await chat_service.provision_for_match("match-1", ("alice", "bob"))
    return chat.id


@pytest.mark.asyncio
async def test_send_and_fetch_messages(api_client, world):
    chat_id = await _chat_id()

    sent = await api_client.post("/chat/messages", json={"chat_id": chat_id, "content": "hi bob"}, headers=ALICE)
    assert sent.status_code == 201
    message = sent.json()
    assert message["seq"] == 1
    assert message["sender_id"] == "alice"

    detail = await api_client.get(f"/chat/{chat_id}", headers=BOB)
    assert detail.status_code == 200
    body = detail.json()
    assert [m["id"] for m in body["messages"]] == [message["id"]]
    assert body["last_message"]["content"] == "hi bob"
    assert body["is_blocked"] is False

    listing = await api_client.get("/chat", headers=BOB)
    assert [c["id"] for c in listing.json()] == [chat_id]


@pytest.mark.asyncio
async def test_send_rejections(api_client, world):
    chat_id = await _chat_id()

    empty = await api_client.post("/chat/messages", json={"chat_id": chat_id, "content": "  "}, headers=ALICE)
    assert empty.status_code == 400
    assert empty.json()["detail"] == "empty_message"

    outsider = await api_client.post("/chat/messages", json={"chat_id": chat_id, "content": "hey"}, headers=CAROL)
    assert outsider.status_code == 403
    assert outsider.json()["detail"] == "not_participant"

    missing = await api_client.get("/chat/nope", headers=ALICE)
    assert missing.status_code == 404

    await api_client.post("/blocks", json={"target_user_id": "alice"}, headers=BOB)
    blocked = await api_client.post("/chat/messages", json={"chat_id": chat_id, "content": "hey"}, headers=ALICE)
    assert blocked.status_code == 403
    assert blocked.json()["detail"] == "blocked_by_peer"
    assert (await api_client.get(f"/chat/{chat_id}", headers=ALICE)).json()["is_blocked"] is True


@pytest.mark.asyncio
async def test_idempotency_key_replays_persisted_message(api_client, world):
    chat_id = await _chat_id()
    headers = {**ALICE, "Idempotency-Key": "send-1"}
    payload = {"chat_id": chat_id, "content": "only once"}

    first = await api_client.post("/chat/messages", json=payload, headers=headers)
    replay = await api_client.post("/chat/messages", json=payload, headers=headers)

    assert first.status_code == 201
    assert replay.status_code == 200
    assert replay.json()["id"] == first.json()["id"]
    detail = (await api_client.get(f"/chat/{chat_id}", headers=ALICE)).json()
    assert len(detail["messages"]) == 1

    conflict = await api_client.post(
        "/chat/messages", json={"chat_id": chat_id, "content": "different"}, headers=headers
    )
    assert conflict.status_code == 409
    assert conflict.json()["detail"] == "idempotency_conflict"


@pytest.mark.asyncio
async def test_failed_send_releases_idempotency_key(api_client, world):
    chat_id = await _chat_id()
    headers = {**ALICE, "Idempotency-Key": "send-2"}

    failed = await api_client.post("/chat/messages", json={"chat_id": chat_id, "content": " "}, headers=headers)
    assert failed.status_code == 400

    retried = await api_client.post("/chat/messages", json={"chat_id": chat_id, "content": "fixed"}, headers=headers)
    assert retried.status_code == 201


@pytest.mark.asyncio
async def test_send_schedules_server_push(api_client, world, monkeypatch):
    chat_id = await _chat_id()
    scheduled = []
    monkeypatch.setattr(
        sockets, "schedule_broadcast", lambda message, origin_sid=None: scheduled.append((message.id, origin_sid))
    )

    sent = await api_client.post("/chat/messages", json={"chat_id": chat_id, "content": "push me"}, headers=ALICE)
    tagged = await api_client.post(
        "/chat/messages",
        json={"chat_id": chat_id, "content": "from tab one"},
        headers={**ALICE, "X-Socket-Id": "sid-a1"},
    )

    assert scheduled == [(sent.json()["id"], None), (tagged.json()["id"], "sid-a1")]


@pytest.mark.asyncio
async def test_server_push_can_be_disabled(api_client, world, monkeypatch):
    from app.settings import settings

    chat_id = await _chat_id()
    scheduled = []
    monkeypatch.setattr(
        sockets, "schedule_broadcast", lambda message, origin_sid=None: scheduled.append((message.id, origin_sid))
    )
    monkeypatch.setattr(settings, "realtime_server_push", False)

    sent = await api_client.post("/chat/messages", json={"chat_id": chat_id, "content": "quiet"}, headers=ALICE)

    assert sent.status_code == 201
    assert scheduled == []


@pytest.mark.asyncio
async def test_store_outage_maps_to_retryable_503(api_client, world, monkeypatch):
    chat_id = await _chat_id()

    async def broken(*_args, **_kwargs):
        raise ConnectionError("database unreachable")

    monkeypatch.setattr(chat_service, "send_message", broken)

    response = await api_client.post("/chat/messages", json={"chat_id": chat_id, "content": "hi"}, headers=ALICE)

    assert response.status_code == 503
    body = response.json()
    assert body["detail"] == "service_unavailable"
    assert body["retryable"] is True
