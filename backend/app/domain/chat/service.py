"""Chat service: provisioning, history, and guarded message sends."""

from __future__ import annotations

import logging
from typing import List, Tuple

from app.domain.blocks import service as blocks
from app.domain.chat.models import Chat, Message, MessageType
from app.domain.chat.repo import ChatRepository
from app.domain.chat.schemas import (
	ChatDetail,
	ChatSummary,
	MessageResponse,
	Participant,
	SendMessageRequest,
)
from app.domain.common.exceptions import Forbidden, InvalidInput, NotFound
from app.domain.profiles import repo as profiles
from app.infra.auth import AuthenticatedUser
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class ChatService:
	def __init__(self, repository: ChatRepository | None = None) -> None:
		self._repo = repository or ChatRepository()

	async def provision_for_match(self, match_id: str, participants: Tuple[str, str]) -> Chat:
		chat, created = await self._repo.ensure_for_match(match_id, participants)
		if created:
			logger.info("chat_provisioned", extra={"match_id": match_id, "chat_id": chat.id})
		return chat

	async def get_chat_for_match(self, match_id: str) -> Chat | None:
		return await self._repo.get_for_match(match_id)

	async def require_participant(self, auth_user: AuthenticatedUser, chat_id: str) -> Chat:
		chat = await self._repo.get_chat(chat_id)
		if chat is None:
			raise NotFound("chat_not_found", "That conversation does not exist.")
		if not chat.is_participant(str(auth_user.id)):
			raise Forbidden("not_participant", "You are not part of this conversation.")
		return chat

	async def _participants(self, chat: Chat) -> List[Participant]:
		items: List[Participant] = []
		for user_id in chat.participants:
			user = await profiles.get_user(user_id)
			items.append(Participant(id=user_id, name=user.name if user else None))
		return items

	async def fetch_chat(self, auth_user: AuthenticatedUser, chat_id: str) -> ChatDetail:
		chat = await self.require_participant(auth_user, chat_id)
		messages = await self._repo.list_messages(chat.id)
		blocked = await blocks.is_blocked(*chat.participants)
		summary = ChatSummary.from_model(chat, await self._participants(chat))
		return ChatDetail(
			**summary.model_dump(),
			messages=[MessageResponse.from_model(m) for m in messages],
			is_blocked=blocked,
		)

	async def list_chats(self, auth_user: AuthenticatedUser) -> List[ChatSummary]:
		chats = await self._repo.list_for_user(str(auth_user.id))
		return [ChatSummary.from_model(chat, await self._participants(chat)) for chat in chats]

	async def send_message(self, auth_user: AuthenticatedUser, payload: SendMessageRequest) -> MessageResponse:
		sender_id = str(auth_user.id)
		chat = await self.require_participant(auth_user, payload.chat_id)
		peer_id = chat.peer_of(sender_id)
		# Checked against the store on every send; an unblock/reblock takes effect immediately
		if await blocks.has_blocked(sender_id, peer_id):
			obs_metrics.inc_chat_send_reject("blocked_by_you")
			raise Forbidden("blocked_by_you", "You have blocked this user. Unblock them to send messages.")
		if await blocks.has_blocked(peer_id, sender_id):
			obs_metrics.inc_chat_send_reject("blocked_by_peer")
			raise Forbidden("blocked_by_peer", "You cannot send messages to this user.")
		try:
			content = payload.message_content()
		except InvalidInput as exc:
			obs_metrics.inc_chat_send_reject(exc.reason)
			raise
		message_type = MessageType(payload.message_type)
		message = await self._repo.append_message(chat.id, sender_id, content, message_type)
		if message is None:
			raise NotFound("chat_not_found", "That conversation does not exist.")
		obs_metrics.inc_chat_send(message_type.value)
		logger.info(
			"chat_message_sent",
			extra={"chat_id": chat.id, "message_id": message.id, "seq": message.seq},
		)
		return MessageResponse.from_model(message)

	async def get_message(self, auth_user: AuthenticatedUser, chat_id: str, message_id: str) -> Message:
		"""Return a persisted message from a chat the user participates in."""
		chat = await self.require_participant(auth_user, chat_id)
		message = await self._repo.get_message(message_id)
		if message is None or message.chat_id != chat.id:
			raise NotFound("message_not_found", "That message does not exist.")
		return message


_SERVICE = ChatService()


async def provision_for_match(match_id: str, participants: Tuple[str, str]) -> Chat:
	return await _SERVICE.provision_for_match(match_id, participants)


async def get_chat_for_match(match_id: str) -> Chat | None:
	return await _SERVICE.get_chat_for_match(match_id)


async def fetch_chat(auth_user: AuthenticatedUser, chat_id: str) -> ChatDetail:
	return await _SERVICE.fetch_chat(auth_user, chat_id)


async def list_chats(auth_user: AuthenticatedUser) -> List[ChatSummary]:
	return await _SERVICE.list_chats(auth_user)


async def send_message(auth_user: AuthenticatedUser, payload: SendMessageRequest) -> MessageResponse:
	return await _SERVICE.send_message(auth_user, payload)


async def get_message(auth_user: AuthenticatedUser, chat_id: str, message_id: str) -> Message:
	return await _SERVICE.get_message(auth_user, chat_id, message_id)


async def require_participant(auth_user: AuthenticatedUser, chat_id: str) -> Chat:
	return await _SERVICE.require_participant(auth_user, chat_id)
