"""Socket.IO namespace relaying persisted chat messages to joined sessions.

The namespace carries no durable state: history in the chat store is
authoritative and a missed broadcast is recovered by fetching the chat.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

import socketio
from fastapi import HTTPException
from pydantic import ValidationError
from socketio.exceptions import ConnectionRefusedError

from app.domain.chat import service as chat_service
from app.domain.chat.schemas import MessageResponse, RelayPayload
from app.domain.common.exceptions import DomainError
from app.domain.profiles import repo as profiles
from app.infra import idempotency
from app.infra.auth import AuthenticatedUser, resolve_socket_user
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_namespace: "ChatNamespace" | None = None
_pending: Set[asyncio.Task] = set()


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def _bearer(value: Optional[str]) -> Optional[str]:
	if value and value.lower().startswith("bearer "):
		return value.split(" ", 1)[1].strip() or None
	return None


@dataclass(slots=True)
class ChatSession:
	"""Per-connection state: who is connected and which chats they joined."""

	user: AuthenticatedUser
	joined: Set[str] = field(default_factory=set)


class ChatNamespace(socketio.AsyncNamespace):
	"""Namespace that places clients in one room per joined chat."""

	def __init__(self) -> None:
		super().__init__("/chat")
		self._sessions: Dict[str, ChatSession] = {}

	async def trigger_event(self, event: str, *args):
		# Client events are hyphenated (join-chat); handlers are on_join_chat
		return await super().trigger_event(event.replace("-", "_"), *args)

	@property
	def sessions(self) -> Dict[str, ChatSession]:
		return self._sessions

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		scope = environ.get("asgi.scope", environ)
		auth_payload = auth or environ.get("auth") or {}
		token = auth_payload.get("token") or _bearer(
			environ.get("HTTP_AUTHORIZATION") or _header(scope, "authorization")
		)
		dev_user_id = auth_payload.get("userId") or environ.get("HTTP_X_USER_ID") or _header(scope, "x-user-id")
		try:
			user = resolve_socket_user(token, dev_user_id)
		except HTTPException:
			raise ConnectionRefusedError("unauthenticated")
		record = await profiles.get_user(user.id)
		if record is None or not record.can_connect():
			logger.info("chat_socket_refused", extra={"user_id": user.id})
			raise ConnectionRefusedError("account_unavailable")
		self._sessions[sid] = ChatSession(user=user)
		obs_metrics.socket_connected(self.namespace)
		await self.emit("chat:ack", {"ok": True, "user_id": user.id}, room=sid)

	async def on_disconnect(self, sid: str, reason: Optional[str] = None) -> None:
		# Rooms are released by the server on disconnect
		if self._sessions.pop(sid, None) is not None:
			obs_metrics.socket_disconnected(self.namespace)

	async def on_join_chat(self, sid: str, chat_id) -> Optional[dict]:
		obs_metrics.socket_event(self.namespace, "join-chat")
		session = self._sessions.get(sid)
		if session is None or not isinstance(chat_id, str) or not chat_id:
			obs_metrics.socket_drop("join-chat", "invalid")
			return None
		try:
			await chat_service.require_participant(session.user, chat_id)
		except DomainError as exc:
			# Dropped without an error so chat existence is not revealed
			obs_metrics.socket_drop("join-chat", exc.reason)
			return None
		session.joined.add(chat_id)
		await self.enter_room(sid, self.chat_room(chat_id))
		return {"ok": True, "chat_id": chat_id}

	async def on_leave_chat(self, sid: str, chat_id) -> None:
		obs_metrics.socket_event(self.namespace, "leave-chat")
		session = self._sessions.get(sid)
		if session is None or chat_id not in session.joined:
			return
		session.joined.discard(chat_id)
		await self.leave_room(sid, self.chat_room(chat_id))

	async def on_send_message(self, sid: str, payload) -> None:
		obs_metrics.socket_event(self.namespace, "send-message")
		session = self._sessions.get(sid)
		if session is None:
			obs_metrics.socket_drop("send-message", "unauthenticated")
			return
		try:
			relay = RelayPayload.model_validate(payload)
		except ValidationError:
			obs_metrics.socket_drop("send-message", "invalid_payload")
			return
		if relay.chat_id not in session.joined:
			obs_metrics.socket_drop("send-message", "not_joined")
			return
		if relay.sender_id != session.user.id:
			obs_metrics.socket_drop("send-message", "sender_mismatch")
			return
		try:
			message = await chat_service.get_message(session.user, relay.chat_id, relay.id)
		except DomainError as exc:
			obs_metrics.socket_drop("send-message", exc.reason)
			return
		await self.deliver(MessageResponse.from_model(message), origin="client", skip_sid=sid)

	async def deliver(self, message: MessageResponse, *, origin: str, skip_sid=None) -> bool:
		"""Emit receive-message to the chat room once per de-duplication window."""
		if not await idempotency.claim(f"chat:{message.chat_id}:{message.id}"):
			obs_metrics.socket_drop("receive-message", "duplicate")
			return False
		await self.emit(
			"receive-message",
			message.model_dump(mode="json"),
			room=self.chat_room(message.chat_id),
			skip_sid=skip_sid,
		)
		obs_metrics.socket_event(self.namespace, "receive-message")
		obs_metrics.inc_chat_relay(origin)
		return True

	def owns_session(self, sid: Optional[str], user_id: str, chat_id: str) -> bool:
		session = self._sessions.get(sid) if sid else None
		return session is not None and session.user.id == user_id and chat_id in session.joined

	@staticmethod
	def chat_room(chat_id: str) -> str:
		return f"chat:{chat_id}"


def set_namespace(namespace: Optional[ChatNamespace]) -> None:
	global _namespace
	_namespace = namespace


async def broadcast_message(message: MessageResponse, origin_sid: Optional[str] = None) -> bool:
	"""Push a persisted message to the chat room.

	Only the socket that issued the send is skipped; the sender's other
	sessions receive the push like any other room member. Without an origin
	the whole room is addressed and clients drop ids they already hold.
	"""
	if _namespace is None:
		return False
	skip_sid = origin_sid if _namespace.owns_session(origin_sid, message.sender_id, message.chat_id) else None
	return await _namespace.deliver(message, origin="server", skip_sid=skip_sid)


def _on_broadcast_done(task: asyncio.Task) -> None:
	_pending.discard(task)
	if task.cancelled():
		return
	exc = task.exception()
	if exc is not None:
		logger.warning("chat_broadcast_failed", exc_info=exc)
		obs_metrics.socket_drop("receive-message", "error")


def schedule_broadcast(message: MessageResponse, origin_sid: Optional[str] = None) -> Optional[asyncio.Task]:
	"""Fire-and-forget broadcast; the caller never waits on delivery."""
	if _namespace is None:
		return None
	task = asyncio.create_task(broadcast_message(message, origin_sid), name=f"chat-broadcast:{message.id}")
	_pending.add(task)
	task.add_done_callback(_on_broadcast_done)
	return task


async def drain_pending() -> None:
	"""Wait for in-flight broadcasts; used on shutdown and in tests."""
	if _pending:
		await asyncio.gather(*list(_pending), return_exceptions=True)
