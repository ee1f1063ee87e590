"""FastAPI endpoints for match chats."""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Request, Response, status

from app.domain.chat import service, sockets
from app.domain.chat.schemas import ChatDetail, ChatSummary, MessageResponse, SendMessageRequest
from app.infra import idempotency
from app.infra.auth import AuthenticatedUser, get_current_user
from app.api.request_id import REQUEST_ID_HEADER, get_request_id
from app.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

SEND_HANDLER = "chat.messages.send"
SOCKET_ID_HEADER = "X-Socket-Id"


@router.get("", response_model=List[ChatSummary])
async def list_chats_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[ChatSummary]:
	return await service.list_chats(auth_user)


@router.post("/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message_endpoint(
	payload: SendMessageRequest,
	request: Request,
	response: Response,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
	socket_id: Optional[str] = Header(default=None, alias=SOCKET_ID_HEADER),
) -> MessageResponse:
	request_id = get_request_id(request)
	response.headers[REQUEST_ID_HEADER] = request_id
	if not idempotency_key:
		return await _send(auth_user, payload, socket_id)

	# Keys are scoped per user so two senders never share a reservation
	key = f"{auth_user.id}:{idempotency_key}"
	serialized = json.dumps(payload.model_dump(mode="json"), sort_keys=True)
	payload_hash = idempotency.hash_payload(serialized)
	existing = await idempotency.begin(key, SEND_HANDLER, payload_hash=payload_hash)
	if existing:
		message = await service.get_message(auth_user, payload.chat_id, existing["result_id"])
		response.status_code = status.HTTP_200_OK
		return MessageResponse.from_model(message)
	try:
		result = await _send(auth_user, payload, socket_id)
	except Exception:
		await idempotency.abandon(key, SEND_HANDLER)
		raise
	await idempotency.complete(key, SEND_HANDLER, result.id, payload_hash=payload_hash)
	return result


@router.get("/{chat_id}", response_model=ChatDetail)
async def fetch_chat_endpoint(
	chat_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ChatDetail:
	return await service.fetch_chat(auth_user, chat_id)


async def _send(
	auth_user: AuthenticatedUser,
	payload: SendMessageRequest,
	socket_id: Optional[str] = None,
) -> MessageResponse:
	result = await service.send_message(auth_user, payload)
	if settings.realtime_server_push:
		# Delivery is not awaited; history is authoritative if the push is lost
		sockets.schedule_broadcast(result, origin_sid=socket_id)
	return result
