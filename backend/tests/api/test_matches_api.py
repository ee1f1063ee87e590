import asyncio

import pytest

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}
CAROL = {"X-User-Id": "carol"}


async def _send(api_client, headers, from_pet, target_pet):
    return await api_client.post(
        "/matches/interests",
        json={"from_pet_id": from_pet, "target_pet_id": target_pet},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_interest_accept_flow(api_client, world):
    sent = await _send(api_client, ALICE, "pet-rex", "pet-luna")
    assert sent.status_code == 201
    interest = sent.json()
    assert interest["status"] == "pending"

    incoming = await api_client.get("/matches/interests/incoming", headers=BOB)
    assert incoming.status_code == 200
    items = incoming.json()["items"]
    assert [item["interest"]["id"] for item in items] == [interest["id"]]
    assert items[0]["from_pet"]["name"] == "Rex"

    resolved = await api_client.put(
        f"/matches/interests/{interest['id']}",
        json={"target_pet_id": "pet-luna", "action": "accepted"},
        headers=BOB,
    )
    assert resolved.status_code == 200
    body = resolved.json()
    assert body["interest"]["status"] == "accepted"
    assert body["match"]["status"] == "matched"
    chat_id = body["match"]["chat_id"]
    assert chat_id

    matches = await api_client.get("/matches", headers=ALICE)
    assert matches.status_code == 200
    assert [m["chat_id"] for m in matches.json()] == [chat_id]

    chat = await api_client.get(f"/chat/{chat_id}", headers=ALICE)
    assert chat.status_code == 200
    assert {p["id"] for p in chat.json()["participants"]} == {"alice", "bob"}

    sent = await api_client.post("/chat/messages", json={"chat_id": chat_id, "content": "hello"}, headers=ALICE)
    assert sent.status_code == 201
    messages = (await api_client.get(f"/chat/{chat_id}", headers=BOB)).json()["messages"]
    assert [(m["content"], m["sender_id"]) for m in messages] == [("hello", "alice")]


@pytest.mark.asyncio
async def test_error_bodies_carry_reason_message_and_request_id(api_client, world):
    await _send(api_client, ALICE, "pet-rex", "pet-luna")

    duplicate = await _send(api_client, ALICE, "pet-rex", "pet-luna")
    assert duplicate.status_code == 409
    body = duplicate.json()
    assert body["detail"] == "interest_exists"
    assert body["message"]
    assert body["request_id"] == duplicate.headers["X-Request-Id"]

    not_owner = await _send(api_client, CAROL, "pet-rex", "pet-luna")
    assert not_owner.status_code == 403
    assert not_owner.json()["detail"] == "not_pet_owner"

    missing = await _send(api_client, ALICE, "pet-rex", "pet-ghost")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_resolve_status_codes(api_client, world):
    interest = (await _send(api_client, ALICE, "pet-rex", "pet-luna")).json()
    path = f"/matches/interests/{interest['id']}"

    rejected = await api_client.put(path, json={"target_pet_id": "pet-luna", "action": "rejected"}, headers=BOB)
    assert rejected.status_code == 200
    assert rejected.json()["match"] is None

    again = await api_client.put(path, json={"target_pet_id": "pet-luna", "action": "accepted"}, headers=BOB)
    assert again.status_code == 409
    assert again.json()["detail"] == "interest_already_resolved"

    bad_action = await api_client.put(path, json={"target_pet_id": "pet-luna", "action": "maybe"}, headers=BOB)
    assert bad_action.status_code == 422
    assert bad_action.json()["detail"] == "validation_error"


@pytest.mark.asyncio
async def test_concurrent_accepts_over_http_yield_one_match(api_client, world):
    interest = (await _send(api_client, ALICE, "pet-rex", "pet-luna")).json()
    path = f"/matches/interests/{interest['id']}"

    responses = await asyncio.gather(
        *[
            api_client.put(path, json={"target_pet_id": "pet-luna", "action": "accepted"}, headers=BOB)
            for _ in range(3)
        ]
    )

    assert sorted(r.status_code for r in responses) == [200, 409, 409]
    matches = (await api_client.get("/matches", headers=BOB)).json()
    assert len(matches) == 1
    chats = (await api_client.get("/chat", headers=BOB)).json()
    assert len(chats) == 1


@pytest.mark.asyncio
async def test_requests_without_identity_are_unauthorized(api_client, world):
    response = await api_client.get("/matches")
    assert response.status_code == 401
    assert response.json()["detail"] == "invalid_token"
