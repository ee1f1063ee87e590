"""Chat store: one chat per match, append-only message history."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import ulid

from app.domain.chat.models import Chat, LastMessage, Message, MessageType, preview_for
from app.infra.postgres import get_pool
from app.settings import settings

_CHAT_COLUMNS = (
	"id, match_id, participant_a, participant_b, last_seq, last_message_preview, "
	"last_message_sender_id, last_message_type, last_message_at, created_at"
)
_MESSAGE_COLUMNS = "id, chat_id, seq, sender_id, content, message_type, created_at"


class _InMemoryStore:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._chats: Dict[str, Chat] = {}
		self._by_match: Dict[str, str] = {}
		self._messages: Dict[str, List[Message]] = {}
		self._message_index: Dict[str, Message] = {}

	async def ensure_for_match(self, match_id: str, participants: Tuple[str, str]) -> Tuple[Chat, bool]:
		async with self._lock:
			existing = self._by_match.get(match_id)
			if existing is not None:
				return self._chats[existing], False
			chat = Chat(
				id=str(ulid.new()),
				match_id=match_id,
				participants=participants,
				created_at=datetime.now(timezone.utc),
			)
			self._chats[chat.id] = chat
			self._by_match[match_id] = chat.id
			self._messages[chat.id] = []
			return chat, True

	async def get_chat(self, chat_id: str) -> Optional[Chat]:
		async with self._lock:
			return self._chats.get(chat_id)

	async def get_for_match(self, match_id: str) -> Optional[Chat]:
		async with self._lock:
			chat_id = self._by_match.get(match_id)
			return self._chats.get(chat_id) if chat_id else None

	async def list_for_user(self, user_id: str) -> List[Chat]:
		async with self._lock:
			return [chat for chat in self._chats.values() if chat.is_participant(user_id)]

	async def append_message(
		self,
		chat_id: str,
		sender_id: str,
		content: str,
		message_type: MessageType,
	) -> Optional[Message]:
		async with self._lock:
			chat = self._chats.get(chat_id)
			if chat is None:
				return None
			chat.last_seq += 1
			message = Message(
				id=str(ulid.new()),
				chat_id=chat_id,
				seq=chat.last_seq,
				sender_id=sender_id,
				content=content,
				message_type=message_type,
				created_at=datetime.now(timezone.utc),
			)
			self._messages[chat_id].append(message)
			self._message_index[message.id] = message
			chat.last_message = LastMessage(
				preview=preview_for(content, message_type),
				sender_id=sender_id,
				message_type=message_type,
				created_at=message.created_at,
			)
			return message

	async def list_messages(self, chat_id: str) -> List[Message]:
		async with self._lock:
			return list(self._messages.get(chat_id, []))

	async def get_message(self, message_id: str) -> Optional[Message]:
		async with self._lock:
			return self._message_index.get(message_id)

	async def clear(self) -> None:
		async with self._lock:
			self._chats.clear()
			self._by_match.clear()
			self._messages.clear()
			self._message_index.clear()


_MEMORY_STORE = _InMemoryStore()


class ChatRepository:
	"""Repository backed by asyncpg with an in-memory variant."""

	@property
	def _memory(self) -> bool:
		return settings.uses_memory_store()

	async def ensure_for_match(self, match_id: str, participants: Tuple[str, str]) -> Tuple[Chat, bool]:
		"""Return the match's chat, creating it at most once. The flag reports creation."""
		if self._memory:
			return await _MEMORY_STORE.ensure_for_match(match_id, participants)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"""
				INSERT INTO chats (id, match_id, participant_a, participant_b)
				VALUES ($1, $2, $3, $4)
				ON CONFLICT (match_id) DO NOTHING
				RETURNING {_CHAT_COLUMNS}
				""",
				str(ulid.new()),
				match_id,
				participants[0],
				participants[1],
			)
			if row is not None:
				return Chat.from_record(row), True
			row = await conn.fetchrow(f"SELECT {_CHAT_COLUMNS} FROM chats WHERE match_id = $1", match_id)
		return Chat.from_record(row), False

	async def get_chat(self, chat_id: str) -> Optional[Chat]:
		if self._memory:
			return await _MEMORY_STORE.get_chat(chat_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(f"SELECT {_CHAT_COLUMNS} FROM chats WHERE id = $1", chat_id)
		return Chat.from_record(row) if row else None

	async def get_for_match(self, match_id: str) -> Optional[Chat]:
		if self._memory:
			return await _MEMORY_STORE.get_for_match(match_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(f"SELECT {_CHAT_COLUMNS} FROM chats WHERE match_id = $1", match_id)
		return Chat.from_record(row) if row else None

	async def list_for_user(self, user_id: str) -> List[Chat]:
		if self._memory:
			chats = await _MEMORY_STORE.list_for_user(user_id)
			chats.sort(key=_activity_key, reverse=True)
			return chats
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_CHAT_COLUMNS}
				FROM chats
				WHERE participant_a = $1 OR participant_b = $1
				ORDER BY COALESCE(last_message_at, created_at) DESC, id DESC
				""",
				user_id,
			)
		return [Chat.from_record(row) for row in rows]

	async def append_message(
		self,
		chat_id: str,
		sender_id: str,
		content: str,
		message_type: MessageType,
	) -> Optional[Message]:
		"""Allocate the next sequence, persist the message and refresh the preview together."""
		if self._memory:
			return await _MEMORY_STORE.append_message(chat_id, sender_id, content, message_type)
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				seq = await conn.fetchval(
					"UPDATE chats SET last_seq = last_seq + 1 WHERE id = $1 RETURNING last_seq",
					chat_id,
				)
				if seq is None:
					return None
				row = await conn.fetchrow(
					f"""
					INSERT INTO chat_messages (id, chat_id, seq, sender_id, content, message_type)
					VALUES ($1, $2, $3, $4, $5, $6)
					RETURNING {_MESSAGE_COLUMNS}
					""",
					str(ulid.new()),
					chat_id,
					int(seq),
					sender_id,
					content,
					message_type.value,
				)
				await conn.execute(
					"""
					UPDATE chats
					SET last_message_preview = $2,
						last_message_sender_id = $3,
						last_message_type = $4,
						last_message_at = $5
					WHERE id = $1
					""",
					chat_id,
					preview_for(content, message_type),
					sender_id,
					message_type.value,
					row["created_at"],
				)
		return Message.from_record(row)

	async def list_messages(self, chat_id: str) -> List[Message]:
		"""Full history in append order."""
		if self._memory:
			return await _MEMORY_STORE.list_messages(chat_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"SELECT {_MESSAGE_COLUMNS} FROM chat_messages WHERE chat_id = $1 ORDER BY seq ASC",
				chat_id,
			)
		return [Message.from_record(row) for row in rows]

	async def get_message(self, message_id: str) -> Optional[Message]:
		if self._memory:
			return await _MEMORY_STORE.get_message(message_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(f"SELECT {_MESSAGE_COLUMNS} FROM chat_messages WHERE id = $1", message_id)
		return Message.from_record(row) if row else None


def _activity_key(chat: Chat):
	last_at = chat.last_message.created_at if chat.last_message else chat.created_at
	return (last_at, chat.id)


async def reset_memory_store() -> None:
	await _MEMORY_STORE.clear()
