"""Pydantic schemas for the interest and match API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.domain.profiles.models import Pet

from .models import Interest, Match


class SendInterestRequest(BaseModel):
	from_pet_id: str = Field(..., min_length=1, description="Pet owned by the caller")
	target_pet_id: str = Field(..., min_length=1)


class ResolveInterestRequest(BaseModel):
	target_pet_id: str = Field(..., min_length=1, description="Pet that received the interest")
	action: Literal["accepted", "rejected"]


class PetSummary(BaseModel):
	id: str
	name: str
	species: Optional[str] = None
	owner_id: str

	@classmethod
	def from_model(cls, pet: Pet) -> "PetSummary":
		return cls(**pet.to_summary())


class InterestSummary(BaseModel):
	id: str
	target_pet_id: str
	from_pet_id: str
	status: Literal["pending", "accepted", "rejected"]
	created_at: datetime
	resolved_at: Optional[datetime] = None

	@classmethod
	def from_model(cls, interest: Interest) -> "InterestSummary":
		return cls(
			id=interest.id,
			target_pet_id=interest.target_pet_id,
			from_pet_id=interest.from_pet_id,
			status=interest.status.value,
			created_at=interest.created_at,
			resolved_at=interest.resolved_at,
		)


class MatchSummary(BaseModel):
	id: str
	pet1_id: str
	pet2_id: str
	pet1: Optional[PetSummary] = None
	pet2: Optional[PetSummary] = None
	status: Literal["matched", "completed", "cancelled"]
	chat_id: Optional[str] = None
	created_at: datetime

	@classmethod
	def from_model(
		cls,
		match: Match,
		*,
		pet1: Pet | None = None,
		pet2: Pet | None = None,
	) -> "MatchSummary":
		return cls(
			id=match.id,
			pet1_id=match.pet1_id,
			pet2_id=match.pet2_id,
			pet1=PetSummary.from_model(pet1) if pet1 else None,
			pet2=PetSummary.from_model(pet2) if pet2 else None,
			status=match.status.value,
			chat_id=match.chat_id,
			created_at=match.created_at,
		)


class ResolveResult(BaseModel):
	interest: InterestSummary
	match: Optional[MatchSummary] = None


class IncomingInterest(BaseModel):
	interest: InterestSummary
	from_pet: Optional[PetSummary] = None


class IncomingInterestList(BaseModel):
	items: List[IncomingInterest]
