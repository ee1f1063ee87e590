"""Guard checks for sending and resolving interests."""

from __future__ import annotations

from typing import Optional, Tuple

from app.domain.common.exceptions import Forbidden, InvalidOperation, InvalidState, NotFound
from app.domain.matches.models import Interest
from app.domain.profiles.models import Pet


def ensure_can_send(user_id: str, from_pet: Optional[Pet], target_pet: Optional[Pet]) -> Tuple[Pet, Pet]:
	if from_pet is None or from_pet.owner_id != str(user_id):
		raise Forbidden("not_pet_owner", "You can only send interest from your own pets.")
	if target_pet is None:
		raise NotFound("pet_not_found", "That pet does not exist.")
	if not target_pet.is_active:
		raise InvalidState("pet_inactive", "That pet is no longer available.")
	if target_pet.owner_id == str(user_id):
		raise InvalidOperation("self_interest", "You cannot send interest to your own pet.")
	return from_pet, target_pet


def ensure_pet_owner(user_id: str, pet: Optional[Pet]) -> Pet:
	if pet is None or pet.owner_id != str(user_id):
		raise Forbidden("not_pet_owner", "You can only manage interests for your own pets.")
	return pet


def ensure_resolvable(interest: Optional[Interest], target_pet: Pet) -> Interest:
	if interest is None or interest.target_pet_id != target_pet.id:
		raise NotFound("interest_not_found", "That interest does not exist.")
	if not interest.is_pending:
		raise InvalidState("interest_already_resolved", "This interest has already been answered.")
	return interest


def chat_participants(pet1: Optional[Pet], pet2: Optional[Pet]) -> Optional[Tuple[str, str]]:
	"""Owners of both pets, or None when the pair no longer has two distinct owners."""
	if pet1 is None or pet2 is None:
		return None
	if pet1.owner_id == pet2.owner_id:
		return None
	return (pet2.owner_id, pet1.owner_id)
