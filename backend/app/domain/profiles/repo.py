"""Profile store lookups backed by asyncpg with an in-memory variant."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

from app.domain.profiles.models import Pet, User
from app.infra.postgres import get_pool
from app.settings import settings


class _InMemoryStore:
	"""Process-local profile records used by tests and local demos."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._users: Dict[str, User] = {}
		self._pets: Dict[str, Pet] = {}

	async def put_user(self, user: User) -> User:
		async with self._lock:
			self._users[user.id] = user
			return user

	async def put_pet(self, pet: Pet) -> Pet:
		async with self._lock:
			self._pets[pet.id] = pet
			return pet

	async def get_user(self, user_id: str) -> Optional[User]:
		async with self._lock:
			return self._users.get(user_id)

	async def get_pet(self, pet_id: str) -> Optional[Pet]:
		async with self._lock:
			return self._pets.get(pet_id)

	async def list_pets_owned_by(self, user_id: str) -> List[Pet]:
		async with self._lock:
			pets = [pet for pet in self._pets.values() if pet.owner_id == user_id]
			pets.sort(key=lambda p: (p.created_at, p.id))
			return pets

	async def clear(self) -> None:
		async with self._lock:
			self._users.clear()
			self._pets.clear()


_MEMORY_STORE = _InMemoryStore()


class ProfileRepository:
	"""Read-only access to pets and users."""

	async def get_user(self, user_id: str) -> Optional[User]:
		if settings.uses_memory_store():
			return await _MEMORY_STORE.get_user(user_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"SELECT id, name, is_active, is_banned FROM users WHERE id = $1",
				user_id,
			)
		return User.from_record(row) if row else None

	async def get_pet(self, pet_id: str) -> Optional[Pet]:
		if settings.uses_memory_store():
			return await _MEMORY_STORE.get_pet(pet_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"SELECT id, owner_id, name, species, is_active, created_at FROM pets WHERE id = $1",
				pet_id,
			)
		return Pet.from_record(row) if row else None

	async def list_pets_owned_by(self, user_id: str) -> List[Pet]:
		if settings.uses_memory_store():
			return await _MEMORY_STORE.list_pets_owned_by(user_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT id, owner_id, name, species, is_active, created_at
				FROM pets
				WHERE owner_id = $1
				ORDER BY created_at ASC, id ASC
				""",
				user_id,
			)
		return [Pet.from_record(row) for row in rows]


_REPOSITORY = ProfileRepository()


async def get_user(user_id: str) -> Optional[User]:
	return await _REPOSITORY.get_user(str(user_id))


async def get_pet(pet_id: str) -> Optional[Pet]:
	return await _REPOSITORY.get_pet(str(pet_id))


async def list_pets_owned_by(user_id: str) -> List[Pet]:
	return await _REPOSITORY.list_pets_owned_by(str(user_id))


async def seed_user(user: User) -> User:
	"""Register a user with the in-memory store."""
	return await _MEMORY_STORE.put_user(user)


async def seed_pet(pet: Pet) -> Pet:
	"""Register a pet with the in-memory store."""
	return await _MEMORY_STORE.put_pet(pet)


async def reset_memory_store() -> None:
	await _MEMORY_STORE.clear()
