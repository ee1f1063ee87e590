"""Match resolver: interest sends, resolutions, and chat provisioning for matches."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from app.domain.chat import service as chat_service
from app.domain.common.exceptions import Conflict, InvalidState, NotFound
from app.domain.matches import audit, policy
from app.domain.matches.models import InterestStatus, Match, MatchStatus
from app.domain.matches.repo import MatchRepository
from app.domain.matches.schemas import (
	IncomingInterest,
	IncomingInterestList,
	InterestSummary,
	MatchSummary,
	PetSummary,
	ResolveInterestRequest,
	ResolveResult,
	SendInterestRequest,
)
from app.domain.profiles import repo as profiles
from app.domain.profiles.models import Pet
from app.infra.auth import AuthenticatedUser

logger = logging.getLogger(__name__)


class MatchService:
	def __init__(self, repository: MatchRepository | None = None) -> None:
		self._repo = repository or MatchRepository()

	@property
	def repository(self) -> MatchRepository:
		return self._repo

	async def send_interest(self, auth_user: AuthenticatedUser, payload: SendInterestRequest) -> InterestSummary:
		from_pet = await profiles.get_pet(payload.from_pet_id)
		target_pet = await profiles.get_pet(payload.target_pet_id)
		from_pet, target_pet = policy.ensure_can_send(str(auth_user.id), from_pet, target_pet)
		interest = await self._repo.insert_interest(target_pet.id, from_pet.id)
		if interest is None:
			audit.inc_interest_sent("duplicate")
			raise Conflict("interest_exists", "Interest has already been sent to this pet.")
		audit.inc_interest_sent("ok")
		logger.info(
			"interest_sent",
			extra={"interest_id": interest.id, "from_pet_id": from_pet.id, "target_pet_id": target_pet.id},
		)
		await audit.log_match_event(
			"interest.sent",
			{"interest_id": interest.id, "from_pet_id": from_pet.id, "target_pet_id": target_pet.id},
		)
		return InterestSummary.from_model(interest)

	async def resolve_interest(
		self,
		auth_user: AuthenticatedUser,
		interest_id: str,
		payload: ResolveInterestRequest,
	) -> ResolveResult:
		target_pet = policy.ensure_pet_owner(str(auth_user.id), await profiles.get_pet(payload.target_pet_id))
		interest = policy.ensure_resolvable(await self._repo.get_interest(interest_id), target_pet)

		if payload.action == InterestStatus.REJECTED.value:
			rejected = await self._repo.reject_interest(interest.id, target_pet.id)
			if rejected is None:
				raise InvalidState("interest_already_resolved", "This interest has already been answered.")
			audit.inc_interest_resolved(rejected.status.value)
			await audit.log_match_event(
				"interest.rejected",
				{"interest_id": rejected.id, "target_pet_id": target_pet.id},
			)
			return ResolveResult(interest=InterestSummary.from_model(rejected))

		from_pet = await profiles.get_pet(interest.from_pet_id)
		if from_pet is None:
			raise NotFound("pet_not_found", "The pet that sent this interest no longer exists.")
		outcome = await self._repo.accept_interest(interest.id, target_pet.id)
		if outcome is None:
			# Lost a race with another resolution of the same interest
			raise InvalidState("interest_already_resolved", "This interest has already been answered.")
		audit.inc_interest_resolved(outcome.interest.status.value)
		if outcome.created:
			audit.inc_match_created()
			logger.info(
				"match_created",
				extra={"match_id": outcome.match.id, "pet1_id": outcome.match.pet1_id, "pet2_id": outcome.match.pet2_id},
			)
		await audit.log_match_event(
			"interest.accepted",
			{
				"interest_id": outcome.interest.id,
				"match_id": outcome.match.id,
				"match_created": "1" if outcome.created else "0",
			},
		)
		match = await self.link_chat(outcome.match, pets={from_pet.id: from_pet, target_pet.id: target_pet})
		return ResolveResult(
			interest=InterestSummary.from_model(outcome.interest),
			match=self._summary(match, {from_pet.id: from_pet, target_pet.id: target_pet}),
		)

	async def link_chat(self, match: Match, *, pets: Optional[Dict[str, Pet]] = None) -> Match:
		"""Ensure a matched pair has its chat.

		A failure here leaves the match without a chat; it is logged and counted
		and the repair job retries it later.
		"""
		if match.chat_id is not None or match.status is not MatchStatus.MATCHED:
			return match
		pets = pets or {}
		pet1 = pets.get(match.pet1_id) or await profiles.get_pet(match.pet1_id)
		pet2 = pets.get(match.pet2_id) or await profiles.get_pet(match.pet2_id)
		participants = policy.chat_participants(pet1, pet2)
		if participants is None:
			logger.warning("match_chat_unprovisionable", extra={"match_id": match.id})
			return match
		try:
			chat = await chat_service.provision_for_match(match.id, participants)
			linked = await self._repo.attach_chat(match.id, chat.id)
		except Exception:
			audit.inc_chat_provision_failure()
			logger.exception("match_chat_provision_failed", extra={"match_id": match.id})
			await audit.log_match_event("match.chat_missing", {"match_id": match.id})
			return match
		await audit.log_match_event("match.chat_linked", {"match_id": match.id, "chat_id": chat.id})
		return linked or match

	async def list_matches(self, auth_user: AuthenticatedUser) -> List[MatchSummary]:
		owned = await profiles.list_pets_owned_by(str(auth_user.id))
		pets: Dict[str, Pet] = {pet.id: pet for pet in owned}
		matches = await self._repo.list_matches(pets.keys())
		items: List[MatchSummary] = []
		for match in matches:
			for pet_id in (match.pet1_id, match.pet2_id):
				if pet_id not in pets:
					pet = await profiles.get_pet(pet_id)
					if pet is not None:
						pets[pet_id] = pet
			items.append(self._summary(match, pets))
		return items

	async def list_incoming(self, auth_user: AuthenticatedUser) -> IncomingInterestList:
		owned = await profiles.list_pets_owned_by(str(auth_user.id))
		interests = await self._repo.list_interests([pet.id for pet in owned], status=InterestStatus.PENDING)
		items: List[IncomingInterest] = []
		for interest in interests:
			from_pet = await profiles.get_pet(interest.from_pet_id)
			items.append(
				IncomingInterest(
					interest=InterestSummary.from_model(interest),
					from_pet=PetSummary.from_model(from_pet) if from_pet else None,
				)
			)
		return IncomingInterestList(items=items)

	@staticmethod
	def _summary(match: Match, pets: Dict[str, Pet]) -> MatchSummary:
		return MatchSummary.from_model(match, pet1=pets.get(match.pet1_id), pet2=pets.get(match.pet2_id))


_SERVICE = MatchService()


async def send_interest(auth_user: AuthenticatedUser, payload: SendInterestRequest) -> InterestSummary:
	return await _SERVICE.send_interest(auth_user, payload)


async def resolve_interest(
	auth_user: AuthenticatedUser,
	interest_id: str,
	payload: ResolveInterestRequest,
) -> ResolveResult:
	return await _SERVICE.resolve_interest(auth_user, interest_id, payload)


async def list_matches(auth_user: AuthenticatedUser) -> List[MatchSummary]:
	return await _SERVICE.list_matches(auth_user)


async def list_incoming(auth_user: AuthenticatedUser) -> IncomingInterestList:
	return await _SERVICE.list_incoming(auth_user)


async def link_chat(match: Match) -> Match:
	return await _SERVICE.link_chat(match)


def default_service() -> MatchService:
	return _SERVICE
