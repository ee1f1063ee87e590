"""Block guard: per-user block relation consulted symmetrically."""

from __future__ import annotations

import logging
from typing import List

from app.domain.blocks import audit
from app.domain.blocks.repo import BlockRepository
from app.domain.common.exceptions import InvalidOperation, NotFound
from app.domain.profiles import repo as profiles
from app.infra.auth import AuthenticatedUser

logger = logging.getLogger(__name__)


class BlockService:
	def __init__(self, repository: BlockRepository | None = None) -> None:
		self._repo = repository or BlockRepository()

	async def block(self, auth_user: AuthenticatedUser, target_user_id: str) -> None:
		blocker_id = str(auth_user.id)
		target_id = str(target_user_id)
		if blocker_id == target_id:
			raise InvalidOperation("self_block", "You cannot block yourself.")
		if await profiles.get_user(target_id) is None:
			raise NotFound("user_not_found", "That user does not exist.")
		created = await self._repo.add(blocker_id, target_id)
		audit.inc_block("block")
		if created:
			logger.info("user_blocked", extra={"blocker_id": blocker_id, "blocked_id": target_id})
			await audit.log_block_event("blocked", {"blocker_id": blocker_id, "blocked_id": target_id})

	async def unblock(self, auth_user: AuthenticatedUser, target_user_id: str) -> None:
		blocker_id = str(auth_user.id)
		target_id = str(target_user_id)
		removed = await self._repo.remove(blocker_id, target_id)
		audit.inc_block("unblock")
		if removed:
			logger.info("user_unblocked", extra={"blocker_id": blocker_id, "blocked_id": target_id})
			await audit.log_block_event("unblocked", {"blocker_id": blocker_id, "blocked_id": target_id})

	async def is_blocked(self, user_a: str, user_b: str) -> bool:
		return await self._repo.either_direction(str(user_a), str(user_b))

	async def has_blocked(self, blocker_id: str, blocked_id: str) -> bool:
		return await self._repo.has_block(str(blocker_id), str(blocked_id))

	async def list_blocked(self, auth_user: AuthenticatedUser) -> List[str]:
		return await self._repo.list_for(str(auth_user.id))


_SERVICE = BlockService()


async def block(auth_user: AuthenticatedUser, target_user_id: str) -> None:
	await _SERVICE.block(auth_user, target_user_id)


async def unblock(auth_user: AuthenticatedUser, target_user_id: str) -> None:
	await _SERVICE.unblock(auth_user, target_user_id)


async def is_blocked(user_a: str, user_b: str) -> bool:
	return await _SERVICE.is_blocked(user_a, user_b)


async def has_blocked(blocker_id: str, blocked_id: str) -> bool:
	return await _SERVICE.has_blocked(blocker_id, blocked_id)


async def list_blocked(auth_user: AuthenticatedUser) -> List[str]:
	return await _SERVICE.list_blocked(auth_user)
