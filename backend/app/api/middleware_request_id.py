"""Middleware assigning each request an id on request.state and the response."""

from __future__ import annotations

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.request_id import REQUEST_ID_ATTR, REQUEST_ID_HEADER

MAX_CLIENT_ID_LENGTH = 128


def _accept_client_id(value: str | None) -> str | None:
	if not value:
		return None
	value = value.strip()
	if not value or len(value) > MAX_CLIENT_ID_LENGTH or not value.isprintable():
		return None
	return value


class RequestIdMiddleware(BaseHTTPMiddleware):
	"""Reuse a sane client-supplied X-Request-Id, else mint one."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		rid = _accept_client_id(request.headers.get(REQUEST_ID_HEADER)) or str(uuid.uuid4())
		setattr(request.state, REQUEST_ID_ATTR, rid)
		response = await call_next(request)
		response.headers[REQUEST_ID_HEADER] = rid
		return response
