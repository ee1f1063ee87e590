"""Interest ledger and match storage.

Two write paths carry the correctness guarantees:

- interest append is an insert-if-absent keyed by (target_pet_id, from_pet_id);
- accept is a conditional pending -> accepted transition plus an insert-if-absent
  of the match keyed by the canonical pet pair, committed together.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

import ulid

from app.domain.matches.models import (
	AcceptOutcome,
	Interest,
	InterestStatus,
	Match,
	MatchStatus,
	canonical_pair,
)
from app.infra.postgres import get_pool
from app.settings import settings

_INTEREST_COLUMNS = "id, target_pet_id, from_pet_id, status, created_at, resolved_at"
_MATCH_COLUMNS = "id, pet1_id, pet2_id, status, chat_id, repair_attempts, created_at, updated_at"


def _now() -> datetime:
	return datetime.now(timezone.utc)


class _InMemoryStore:
	"""Interests and matches share one lock so accept commits as a unit."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._interests: Dict[str, Interest] = {}
		self._interest_keys: Dict[Tuple[str, str], str] = {}
		self._matches: Dict[str, Match] = {}
		self._match_pairs: Dict[Tuple[str, str], str] = {}

	async def insert_interest(self, target_pet_id: str, from_pet_id: str) -> Optional[Interest]:
		async with self._lock:
			key = (target_pet_id, from_pet_id)
			if key in self._interest_keys:
				return None
			interest = Interest(
				id=str(ulid.new()),
				target_pet_id=target_pet_id,
				from_pet_id=from_pet_id,
				status=InterestStatus.PENDING,
				created_at=_now(),
			)
			self._interests[interest.id] = interest
			self._interest_keys[key] = interest.id
			return interest

	async def get_interest(self, interest_id: str) -> Optional[Interest]:
		async with self._lock:
			return self._interests.get(interest_id)

	async def list_interests(self, target_pet_ids: Iterable[str], status: Optional[InterestStatus]) -> List[Interest]:
		wanted = set(target_pet_ids)
		async with self._lock:
			items = [
				i
				for i in self._interests.values()
				if i.target_pet_id in wanted and (status is None or i.status is status)
			]
		items.sort(key=lambda i: (i.created_at, i.id))
		return items

	def _transition(self, interest_id: str, target_pet_id: str, status: InterestStatus) -> Optional[Interest]:
		interest = self._interests.get(interest_id)
		if interest is None or interest.target_pet_id != target_pet_id or not interest.is_pending:
			return None
		interest.status = status
		interest.resolved_at = _now()
		return interest

	async def reject_interest(self, interest_id: str, target_pet_id: str) -> Optional[Interest]:
		async with self._lock:
			return self._transition(interest_id, target_pet_id, InterestStatus.REJECTED)

	async def accept_interest(self, interest_id: str, target_pet_id: str) -> Optional[AcceptOutcome]:
		async with self._lock:
			interest = self._transition(interest_id, target_pet_id, InterestStatus.ACCEPTED)
			if interest is None:
				return None
			pair = canonical_pair(interest.from_pet_id, interest.target_pet_id)
			existing_id = self._match_pairs.get(pair)
			if existing_id is not None:
				return AcceptOutcome(interest=interest, match=self._matches[existing_id], created=False)
			now = _now()
			match = Match(
				id=str(ulid.new()),
				pet1_id=interest.from_pet_id,
				pet2_id=interest.target_pet_id,
				status=MatchStatus.MATCHED,
				created_at=now,
				updated_at=now,
			)
			self._matches[match.id] = match
			self._match_pairs[pair] = match.id
			return AcceptOutcome(interest=interest, match=match, created=True)

	async def get_match(self, match_id: str) -> Optional[Match]:
		async with self._lock:
			return self._matches.get(match_id)

	async def list_matches(self, pet_ids: Iterable[str]) -> List[Match]:
		wanted = set(pet_ids)
		async with self._lock:
			items = [m for m in self._matches.values() if m.pet1_id in wanted or m.pet2_id in wanted]
		items.sort(key=lambda m: (m.created_at, m.id), reverse=True)
		return items

	async def attach_chat(self, match_id: str, chat_id: str) -> Optional[Match]:
		async with self._lock:
			match = self._matches.get(match_id)
			if match is None:
				return None
			if match.chat_id is None:
				match.chat_id = chat_id
				match.updated_at = _now()
			return match

	async def list_unlinked(self, cutoff: datetime, limit: int) -> List[Match]:
		async with self._lock:
			items = [
				m
				for m in self._matches.values()
				if m.status is MatchStatus.MATCHED and m.chat_id is None and m.created_at <= cutoff
			]
		items.sort(key=lambda m: (m.created_at, m.id))
		return items[:limit]

	async def record_repair_attempt(self, match_id: str) -> int:
		async with self._lock:
			match = self._matches.get(match_id)
			if match is None:
				return 0
			match.repair_attempts += 1
			match.updated_at = _now()
			return match.repair_attempts

	async def cancel_unlinked(self, match_id: str) -> Optional[Match]:
		async with self._lock:
			match = self._matches.get(match_id)
			if match is None or match.chat_id is not None or match.status is not MatchStatus.MATCHED:
				return None
			match.status = MatchStatus.CANCELLED
			match.updated_at = _now()
			return match

	async def put_match(self, match: Match) -> Match:
		async with self._lock:
			self._matches[match.id] = match
			self._match_pairs[match.pair] = match.id
			return match

	async def clear(self) -> None:
		async with self._lock:
			self._interests.clear()
			self._interest_keys.clear()
			self._matches.clear()
			self._match_pairs.clear()


_MEMORY_STORE = _InMemoryStore()


class MatchRepository:
	"""asyncpg-backed interest ledger and match table with an in-memory variant."""

	@property
	def _memory(self) -> bool:
		return settings.uses_memory_store()

	async def insert_interest(self, target_pet_id: str, from_pet_id: str) -> Optional[Interest]:
		"""Append a pending interest; None when one already exists for the pair."""
		if self._memory:
			return await _MEMORY_STORE.insert_interest(target_pet_id, from_pet_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"""
				INSERT INTO pet_interests (id, target_pet_id, from_pet_id, status)
				VALUES ($1, $2, $3, 'pending')
				ON CONFLICT (target_pet_id, from_pet_id) DO NOTHING
				RETURNING {_INTEREST_COLUMNS}
				""",
				str(ulid.new()),
				target_pet_id,
				from_pet_id,
			)
		return Interest.from_record(row) if row else None

	async def get_interest(self, interest_id: str) -> Optional[Interest]:
		if self._memory:
			return await _MEMORY_STORE.get_interest(interest_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"SELECT {_INTEREST_COLUMNS} FROM pet_interests WHERE id = $1",
				interest_id,
			)
		return Interest.from_record(row) if row else None

	async def list_interests(
		self,
		target_pet_ids: Iterable[str],
		*,
		status: Optional[InterestStatus] = None,
	) -> List[Interest]:
		pet_ids = [str(p) for p in target_pet_ids]
		if not pet_ids:
			return []
		if self._memory:
			return await _MEMORY_STORE.list_interests(pet_ids, status)
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_INTEREST_COLUMNS}
				FROM pet_interests
				WHERE target_pet_id = ANY($1::text[])
					AND ($2::text IS NULL OR status = $2)
				ORDER BY created_at ASC, id ASC
				""",
				pet_ids,
				status.value if status else None,
			)
		return [Interest.from_record(row) for row in rows]

	async def reject_interest(self, interest_id: str, target_pet_id: str) -> Optional[Interest]:
		"""Conditional pending -> rejected; None when the interest is not pending."""
		if self._memory:
			return await _MEMORY_STORE.reject_interest(interest_id, target_pet_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"""
				UPDATE pet_interests
				SET status = 'rejected', resolved_at = NOW()
				WHERE id = $1 AND target_pet_id = $2 AND status = 'pending'
				RETURNING {_INTEREST_COLUMNS}
				""",
				interest_id,
				target_pet_id,
			)
		return Interest.from_record(row) if row else None

	async def accept_interest(self, interest_id: str, target_pet_id: str) -> Optional[AcceptOutcome]:
		"""Accept a pending interest and ensure the pair's match in one transaction.

		Returns None (and writes nothing) when the interest is no longer pending.
		"""
		if self._memory:
			return await _MEMORY_STORE.accept_interest(interest_id, target_pet_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					f"""
					UPDATE pet_interests
					SET status = 'accepted', resolved_at = NOW()
					WHERE id = $1 AND target_pet_id = $2 AND status = 'pending'
					RETURNING {_INTEREST_COLUMNS}
					""",
					interest_id,
					target_pet_id,
				)
				if row is None:
					return None
				interest = Interest.from_record(row)
				pet_low, pet_high = canonical_pair(interest.from_pet_id, interest.target_pet_id)
				match_row = await conn.fetchrow(
					f"""
					INSERT INTO matches (id, pet1_id, pet2_id, pet_low, pet_high, status)
					VALUES ($1, $2, $3, $4, $5, 'matched')
					ON CONFLICT (pet_low, pet_high) DO NOTHING
					RETURNING {_MATCH_COLUMNS}
					""",
					str(ulid.new()),
					interest.from_pet_id,
					interest.target_pet_id,
					pet_low,
					pet_high,
				)
				created = match_row is not None
				if match_row is None:
					match_row = await conn.fetchrow(
						f"SELECT {_MATCH_COLUMNS} FROM matches WHERE pet_low = $1 AND pet_high = $2",
						pet_low,
						pet_high,
					)
		return AcceptOutcome(interest=interest, match=Match.from_record(match_row), created=created)

	async def get_match(self, match_id: str) -> Optional[Match]:
		if self._memory:
			return await _MEMORY_STORE.get_match(match_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(f"SELECT {_MATCH_COLUMNS} FROM matches WHERE id = $1", match_id)
		return Match.from_record(row) if row else None

	async def list_matches(self, pet_ids: Iterable[str]) -> List[Match]:
		ids = [str(p) for p in pet_ids]
		if not ids:
			return []
		if self._memory:
			return await _MEMORY_STORE.list_matches(ids)
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_MATCH_COLUMNS}
				FROM matches
				WHERE pet1_id = ANY($1::text[]) OR pet2_id = ANY($1::text[])
				ORDER BY created_at DESC, id DESC
				""",
				ids,
			)
		return [Match.from_record(row) for row in rows]

	async def attach_chat(self, match_id: str, chat_id: str) -> Optional[Match]:
		"""Link a chat to its match; an already linked match keeps its chat."""
		if self._memory:
			return await _MEMORY_STORE.attach_chat(match_id, chat_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"UPDATE matches SET chat_id = $2, updated_at = NOW() WHERE id = $1 AND chat_id IS NULL",
				match_id,
				chat_id,
			)
			row = await conn.fetchrow(f"SELECT {_MATCH_COLUMNS} FROM matches WHERE id = $1", match_id)
		return Match.from_record(row) if row else None

	async def list_unlinked(self, cutoff: datetime, *, limit: int) -> List[Match]:
		if self._memory:
			return await _MEMORY_STORE.list_unlinked(cutoff, limit)
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_MATCH_COLUMNS}
				FROM matches
				WHERE status = 'matched' AND chat_id IS NULL AND created_at <= $1
				ORDER BY created_at ASC, id ASC
				LIMIT $2
				""",
				cutoff,
				limit,
			)
		return [Match.from_record(row) for row in rows]

	async def record_repair_attempt(self, match_id: str) -> int:
		if self._memory:
			return await _MEMORY_STORE.record_repair_attempt(match_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			attempts = await conn.fetchval(
				"""
				UPDATE matches
				SET repair_attempts = repair_attempts + 1, updated_at = NOW()
				WHERE id = $1
				RETURNING repair_attempts
				""",
				match_id,
			)
		return int(attempts or 0)

	async def cancel_unlinked(self, match_id: str) -> Optional[Match]:
		"""Cancel a match that still has no chat; None if it was linked meanwhile."""
		if self._memory:
			return await _MEMORY_STORE.cancel_unlinked(match_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"""
				UPDATE matches
				SET status = 'cancelled', updated_at = NOW()
				WHERE id = $1 AND chat_id IS NULL AND status = 'matched'
				RETURNING {_MATCH_COLUMNS}
				""",
				match_id,
			)
		return Match.from_record(row) if row else None


async def seed_match(match: Match) -> Match:
	"""Place a match directly into the in-memory store."""
	return await _MEMORY_STORE.put_match(match)


async def reset_memory_store() -> None:
	await _MEMORY_STORE.clear()
