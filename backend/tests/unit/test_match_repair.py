from datetime import datetime, timedelta, timezone

import pytest

from app.domain.chat import service as chat_service
from app.domain.matches import repair
from app.domain.matches.models import Match, MatchStatus
from app.domain.matches.repo import MatchRepository, seed_match
from app.domain.profiles import repo as profiles_repo
from app.domain.profiles.models import Pet
from app.settings import settings


def _unlinked(match_id: str, pet1: str, pet2: str, *, age_s: int = 600) -> Match:
    created = datetime.now(timezone.utc) - timedelta(seconds=age_s)
    return Match(
        id=match_id,
        pet1_id=pet1,
        pet2_id=pet2,
        status=MatchStatus.MATCHED,
        created_at=created,
        updated_at=created,
    )


@pytest.mark.asyncio
async def test_repair_links_chat_for_stale_match(world):
    await seed_match(_unlinked("m-1", "pet-rex", "pet-luna"))

    report = await repair.repair_unlinked_matches()

    assert (report.scanned, report.repaired, report.cancelled, report.failed) == (1, 1, 0, 0)
    match = await MatchRepository().get_match("m-1")
    assert match.chat_id is not None
    chat = await chat_service.get_chat_for_match("m-1")
    assert chat.id == match.chat_id
    assert set(chat.participants) == {"alice", "bob"}


@pytest.mark.asyncio
async def test_repair_skips_recent_matches(world):
    await seed_match(_unlinked("m-1", "pet-rex", "pet-luna", age_s=5))

    report = await repair.repair_unlinked_matches()

    assert report.scanned == 0
    assert (await MatchRepository().get_match("m-1")).chat_id is None


@pytest.mark.asyncio
async def test_repair_cancels_when_pets_are_gone(world, fake_redis):
    await seed_match(_unlinked("m-1", "pet-rex", "pet-vanished"))

    report = await repair.repair_unlinked_matches()

    assert report.cancelled == 1
    match = await MatchRepository().get_match("m-1")
    assert match.status is MatchStatus.CANCELLED
    assert match.chat_id is None
    events = await fake_redis.xrange("x:matches.events")
    assert events[-1][1] == {"event": "match.cancelled", "match_id": "m-1", "reason": "participants_unresolvable"}


@pytest.mark.asyncio
async def test_repair_cancels_when_pets_share_an_owner(world):
    await profiles_repo.seed_pet(Pet(id="pet-max", owner_id="alice", name="Max"))
    await seed_match(_unlinked("m-1", "pet-rex", "pet-max"))

    report = await repair.repair_unlinked_matches()

    assert report.cancelled == 1
    assert (await MatchRepository().get_match("m-1")).status is MatchStatus.CANCELLED


@pytest.mark.asyncio
async def test_repair_gives_up_after_max_attempts(world, monkeypatch):
    async def failing_provision(*_args, **_kwargs):
        raise ConnectionError("chat store down")

    monkeypatch.setattr(chat_service, "provision_for_match", failing_provision)
    monkeypatch.setattr(settings, "match_repair_max_attempts", 2)
    await seed_match(_unlinked("m-1", "pet-rex", "pet-luna"))

    first = await repair.repair_unlinked_matches()
    assert (first.failed, first.cancelled) == (1, 0)
    assert (await MatchRepository().get_match("m-1")).repair_attempts == 1

    second = await repair.repair_unlinked_matches()
    assert (second.failed, second.cancelled) == (0, 1)
    assert (await MatchRepository().get_match("m-1")).status is MatchStatus.CANCELLED

    third = await repair.repair_unlinked_matches()
    assert third.scanned == 0


@pytest.mark.asyncio
async def test_repair_ignores_linked_and_cancelled_matches(world):
    linked = _unlinked("m-1", "pet-rex", "pet-luna")
    linked.chat_id = "chat-existing"
    cancelled = _unlinked("m-2", "pet-rex", "pet-milo")
    cancelled.status = MatchStatus.CANCELLED
    await seed_match(linked)
    await seed_match(cancelled)

    report = await repair.repair_unlinked_matches()

    assert report.scanned == 0
