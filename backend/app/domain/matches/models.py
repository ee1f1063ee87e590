"""Domain models for interests and matches."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class InterestStatus(str, Enum):
	PENDING = "pending"
	ACCEPTED = "accepted"
	REJECTED = "rejected"


class MatchStatus(str, Enum):
	MATCHED = "matched"
	COMPLETED = "completed"
	CANCELLED = "cancelled"


def canonical_pair(pet_a: str, pet_b: str) -> Tuple[str, str]:
	"""Order-independent key for an unordered pet pair."""
	ordered = sorted((str(pet_a), str(pet_b)))
	return (ordered[0], ordered[1])


@dataclass(slots=True)
class Interest:
	id: str
	target_pet_id: str
	from_pet_id: str
	status: InterestStatus
	created_at: datetime
	resolved_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record) -> "Interest":
		return cls(
			id=str(record["id"]),
			target_pet_id=str(record["target_pet_id"]),
			from_pet_id=str(record["from_pet_id"]),
			status=InterestStatus(record["status"]),
			created_at=record["created_at"],
			resolved_at=record["resolved_at"],
		)

	@property
	def is_pending(self) -> bool:
		return self.status is InterestStatus.PENDING


@dataclass(slots=True)
class Match:
	id: str
	pet1_id: str
	pet2_id: str
	status: MatchStatus
	created_at: datetime
	chat_id: Optional[str] = None
	repair_attempts: int = 0
	updated_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record) -> "Match":
		chat_id = record["chat_id"]
		return cls(
			id=str(record["id"]),
			pet1_id=str(record["pet1_id"]),
			pet2_id=str(record["pet2_id"]),
			status=MatchStatus(record["status"]),
			created_at=record["created_at"],
			chat_id=str(chat_id) if chat_id is not None else None,
			repair_attempts=int(record["repair_attempts"] or 0),
			updated_at=record["updated_at"],
		)

	@property
	def pair(self) -> Tuple[str, str]:
		return canonical_pair(self.pet1_id, self.pet2_id)


@dataclass(slots=True)
class AcceptOutcome:
	"""Result of the atomic accept step: the interest plus the pair's match."""

	interest: Interest
	match: Match
	created: bool
