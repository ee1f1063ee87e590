"""Pydantic schemas for the chat API and realtime payloads."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.domain.common.exceptions import InvalidInput

from .models import Chat, LastMessage, Message


class SendMessageRequest(BaseModel):
	chat_id: str = Field(..., min_length=1)
	content: Optional[str] = Field(default=None, max_length=4000)
	image_ref: Optional[str] = Field(default=None, max_length=1024, description="Opaque reference to an uploaded image")
	message_type: Literal["text", "image"] = "text"

	def message_content(self) -> str:
		"""Return the content to persist or raise InvalidInput."""
		if self.message_type == "image":
			ref = (self.image_ref or "").strip()
			if not ref:
				raise InvalidInput("image_required", "Attach an image to send a photo.")
			return ref
		text = (self.content or "").strip()
		if not text:
			raise InvalidInput("empty_message", "Message cannot be empty.")
		return text


class MessageResponse(BaseModel):
	id: str
	chat_id: str
	seq: int
	sender_id: str
	content: str
	message_type: Literal["text", "image"]
	created_at: datetime

	@classmethod
	def from_model(cls, message: Message) -> "MessageResponse":
		return cls(
			id=message.id,
			chat_id=message.chat_id,
			seq=message.seq,
			sender_id=message.sender_id,
			content=message.content,
			message_type=message.message_type.value,
			created_at=message.created_at,
		)


class LastMessageSummary(BaseModel):
	content: str
	sender_id: str
	message_type: Literal["text", "image"]
	created_at: datetime

	@classmethod
	def from_model(cls, last: LastMessage | None) -> Optional["LastMessageSummary"]:
		if last is None:
			return None
		return cls(
			content=last.preview,
			sender_id=last.sender_id,
			message_type=last.message_type.value,
			created_at=last.created_at,
		)


class Participant(BaseModel):
	id: str
	name: Optional[str] = None


class ChatSummary(BaseModel):
	id: str
	match_id: str
	participants: List[Participant]
	last_message: Optional[LastMessageSummary] = None
	created_at: datetime

	@classmethod
	def from_model(cls, chat: Chat, participants: List[Participant]) -> "ChatSummary":
		return cls(
			id=chat.id,
			match_id=chat.match_id,
			participants=participants,
			last_message=LastMessageSummary.from_model(chat.last_message),
			created_at=chat.created_at,
		)


class ChatDetail(ChatSummary):
	messages: List[MessageResponse]
	# Advisory only; send_message re-checks blocks on every call
	is_blocked: bool = False


class RelayPayload(BaseModel):
	"""Persisted message echoed by a client for fan-out to its room."""

	chat_id: str = Field(..., min_length=1)
	id: str = Field(..., min_length=1, description="Server-assigned message id")
	sender_id: str = Field(..., min_length=1)
