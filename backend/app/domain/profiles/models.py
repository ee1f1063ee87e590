"""Pet and user records consumed by the matchmaking core."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass(slots=True)
class User:
	id: str
	name: str
	is_active: bool = True
	is_banned: bool = False

	@classmethod
	def from_record(cls, record) -> "User":
		return cls(
			id=str(record["id"]),
			name=str(record["name"]),
			is_active=bool(record["is_active"]),
			is_banned=bool(record["is_banned"]),
		)

	def can_connect(self) -> bool:
		return self.is_active and not self.is_banned


@dataclass(slots=True)
class Pet:
	id: str
	owner_id: str
	name: str
	species: Optional[str] = None
	is_active: bool = True
	created_at: datetime = None  # type: ignore[assignment]

	def __post_init__(self) -> None:
		if self.created_at is None:
			self.created_at = datetime.now(timezone.utc)

	@classmethod
	def from_record(cls, record) -> "Pet":
		return cls(
			id=str(record["id"]),
			owner_id=str(record["owner_id"]),
			name=str(record["name"]),
			species=record["species"],
			is_active=bool(record["is_active"]),
			created_at=record["created_at"],
		)

	def to_summary(self) -> dict:
		return {"id": self.id, "name": self.name, "species": self.species, "owner_id": self.owner_id}
