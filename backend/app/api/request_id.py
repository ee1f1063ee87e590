"""Request ID helper for endpoints.

RequestIdMiddleware stores the id on request.state; the observability
middleware binds it into the logging context.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from app.obs import logging as obs_logging

REQUEST_ID_ATTR = "request_id"
REQUEST_ID_HEADER = "X-Request-Id"


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
    """Return the current request id, else a default."""
    if request is not None:
        rid = getattr(request.state, REQUEST_ID_ATTR, None) or request.headers.get(REQUEST_ID_HEADER)
        if rid:
            return str(rid)
    return obs_logging.current_request_id() or default
