import pytest

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


@pytest.mark.asyncio
async def test_block_unblock_round(api_client, world):
    blocked = await api_client.post("/blocks", json={"target_user_id": "bob"}, headers=ALICE)
    assert blocked.status_code == 200
    assert blocked.json() == {"status": "ok"}

    listing = await api_client.get("/blocks", headers=ALICE)
    assert listing.json() == {"blocked_user_ids": ["bob"]}

    removed = await api_client.post("/blocks/remove", json={"target_user_id": "bob"}, headers=ALICE)
    assert removed.status_code == 200
    assert (await api_client.get("/blocks", headers=ALICE)).json() == {"blocked_user_ids": []}


@pytest.mark.asyncio
async def test_block_errors(api_client, world):
    self_block = await api_client.post("/blocks", json={"target_user_id": "alice"}, headers=ALICE)
    assert self_block.status_code == 400
    assert self_block.json()["detail"] == "self_block"

    unknown = await api_client.post("/blocks", json={"target_user_id": "nobody"}, headers=ALICE)
    assert unknown.status_code == 404

    empty = await api_client.post("/blocks", json={"target_user_id": ""}, headers=ALICE)
    assert empty.status_code == 422
