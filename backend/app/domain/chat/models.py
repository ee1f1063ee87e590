"""Domain models for match chats."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

PREVIEW_MAX_CHARS = 120
IMAGE_PREVIEW = "Photo"


class MessageType(str, Enum):
	TEXT = "text"
	IMAGE = "image"


def preview_for(content: str, message_type: MessageType) -> str:
	"""Denormalised preview shown in chat lists."""
	if message_type is MessageType.IMAGE:
		return IMAGE_PREVIEW
	if len(content) <= PREVIEW_MAX_CHARS:
		return content
	return content[:PREVIEW_MAX_CHARS]


@dataclass(slots=True)
class LastMessage:
	preview: str
	sender_id: str
	message_type: MessageType
	created_at: datetime


@dataclass(slots=True)
class Chat:
	id: str
	match_id: str
	participants: Tuple[str, str]
	created_at: datetime
	last_seq: int = 0
	last_message: Optional[LastMessage] = None

	@classmethod
	def from_record(cls, record) -> "Chat":
		last_message = None
		if record["last_message_at"] is not None:
			last_message = LastMessage(
				preview=record["last_message_preview"] or "",
				sender_id=str(record["last_message_sender_id"]),
				message_type=MessageType(record["last_message_type"]),
				created_at=record["last_message_at"],
			)
		return cls(
			id=str(record["id"]),
			match_id=str(record["match_id"]),
			participants=(str(record["participant_a"]), str(record["participant_b"])),
			created_at=record["created_at"],
			last_seq=int(record["last_seq"]),
			last_message=last_message,
		)

	def is_participant(self, user_id: str) -> bool:
		return str(user_id) in self.participants

	def peer_of(self, user_id: str) -> str:
		first, second = self.participants
		return second if str(user_id) == first else first


@dataclass(slots=True)
class Message:
	id: str
	chat_id: str
	seq: int
	sender_id: str
	content: str
	message_type: MessageType
	created_at: datetime

	@classmethod
	def from_record(cls, record) -> "Message":
		return cls(
			id=str(record["id"]),
			chat_id=str(record["chat_id"]),
			seq=int(record["seq"]),
			sender_id=str(record["sender_id"]),
			content=record["content"],
			message_type=MessageType(record["message_type"]),
			created_at=record["created_at"],
		)
