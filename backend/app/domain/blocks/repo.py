"""Block relation storage: one row per (blocker, blocked) pair."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Set

from app.infra.postgres import get_pool
from app.settings import settings


class _InMemoryStore:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._blocked: Dict[str, Set[str]] = {}

	async def add(self, blocker_id: str, blocked_id: str) -> bool:
		async with self._lock:
			entries = self._blocked.setdefault(blocker_id, set())
			if blocked_id in entries:
				return False
			entries.add(blocked_id)
			return True

	async def remove(self, blocker_id: str, blocked_id: str) -> bool:
		async with self._lock:
			entries = self._blocked.get(blocker_id)
			if not entries or blocked_id not in entries:
				return False
			entries.discard(blocked_id)
			return True

	async def either_direction(self, user_a: str, user_b: str) -> bool:
		async with self._lock:
			return user_b in self._blocked.get(user_a, ()) or user_a in self._blocked.get(user_b, ())

	async def has_block(self, blocker_id: str, blocked_id: str) -> bool:
		async with self._lock:
			return blocked_id in self._blocked.get(blocker_id, ())

	async def list_for(self, blocker_id: str) -> List[str]:
		async with self._lock:
			return sorted(self._blocked.get(blocker_id, ()))

	async def clear(self) -> None:
		async with self._lock:
			self._blocked.clear()


_MEMORY_STORE = _InMemoryStore()


class BlockRepository:
	"""Reads always hit the store; block state is never cached."""

	async def add(self, blocker_id: str, blocked_id: str) -> bool:
		if settings.uses_memory_store():
			return await _MEMORY_STORE.add(blocker_id, blocked_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				INSERT INTO user_blocks (blocker_id, blocked_id)
				VALUES ($1, $2)
				ON CONFLICT (blocker_id, blocked_id) DO NOTHING
				RETURNING blocker_id
				""",
				blocker_id,
				blocked_id,
			)
		return row is not None

	async def remove(self, blocker_id: str, blocked_id: str) -> bool:
		if settings.uses_memory_store():
			return await _MEMORY_STORE.remove(blocker_id, blocked_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"DELETE FROM user_blocks WHERE blocker_id = $1 AND blocked_id = $2",
				blocker_id,
				blocked_id,
			)
		return status.endswith(" 1")

	async def either_direction(self, user_a: str, user_b: str) -> bool:
		if settings.uses_memory_store():
			return await _MEMORY_STORE.either_direction(user_a, user_b)
		pool = await get_pool()
		async with pool.acquire() as conn:
			found = await conn.fetchval(
				"""
				SELECT EXISTS (
					SELECT 1 FROM user_blocks
					WHERE (blocker_id = $1 AND blocked_id = $2)
						OR (blocker_id = $2 AND blocked_id = $1)
				)
				""",
				user_a,
				user_b,
			)
		return bool(found)

	async def has_block(self, blocker_id: str, blocked_id: str) -> bool:
		if settings.uses_memory_store():
			return await _MEMORY_STORE.has_block(blocker_id, blocked_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			found = await conn.fetchval(
				"SELECT EXISTS (SELECT 1 FROM user_blocks WHERE blocker_id = $1 AND blocked_id = $2)",
				blocker_id,
				blocked_id,
			)
		return bool(found)

	async def list_for(self, blocker_id: str) -> List[str]:
		if settings.uses_memory_store():
			return await _MEMORY_STORE.list_for(blocker_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT blocked_id FROM user_blocks WHERE blocker_id = $1 ORDER BY blocked_id",
				blocker_id,
			)
		return [str(row["blocked_id"]) for row in rows]


async def reset_memory_store() -> None:
	await _MEMORY_STORE.clear()
