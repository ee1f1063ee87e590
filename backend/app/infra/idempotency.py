"""Short-lived idempotency keys stored in Redis.

`begin`/`complete` back the HTTP Idempotency-Key header; `claim` is the
first-writer-wins window used to de-duplicate realtime deliveries.
"""

from __future__ import annotations

import hashlib
import json
from typing import Optional

from app.infra.redis import redis_client
from app.obs import metrics as obs_metrics
from app.settings import settings


class IdempotencyConflictError(Exception):
    """Raised when an idempotency key is replayed with a conflicting payload."""

    reason = "idempotency_conflict"

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason


def hash_payload(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def _key(handler: str, key: str) -> str:
    return f"idem:{handler}:{key}"


async def begin(
    key: str,
    handler: str,
    *,
    payload_hash: Optional[str],
    ttl_s: int | None = None,
) -> Optional[dict[str, str]]:
    """Reserve or replay an idempotency key.

    Returns None when the caller should proceed, or {"result_id": ...} for a replay.
    """
    ttl = ttl_s or settings.idempotency_ttl_seconds
    record = json.dumps({"payload_hash": payload_hash, "result_id": None})
    reserved = await redis_client.set(_key(handler, key), record, nx=True, ex=ttl)
    if reserved:
        obs_metrics.inc_idem("miss")
        return None

    raw = await redis_client.get(_key(handler, key))
    existing = json.loads(raw) if raw else {}
    existing_hash = existing.get("payload_hash")
    if payload_hash and existing_hash and existing_hash != payload_hash:
        obs_metrics.inc_idem("conflict")
        raise IdempotencyConflictError()
    rid = existing.get("result_id")
    if rid:
        obs_metrics.inc_idem("hit")
        return {"result_id": str(rid)}
    obs_metrics.inc_idem("in_progress")
    raise IdempotencyConflictError("idempotency_in_progress")


async def complete(key: str, handler: str, result_id: str, *, payload_hash: Optional[str] = None) -> None:
    ttl = settings.idempotency_ttl_seconds
    record = json.dumps({"payload_hash": payload_hash, "result_id": result_id})
    await redis_client.set(_key(handler, key), record, ex=ttl)


async def abandon(key: str, handler: str) -> None:
    """Release a reservation whose request failed so the client may retry."""
    await redis_client.delete(_key(handler, key))


async def claim(key: str, ttl_s: int | None = None) -> bool:
    """Return True for the first caller to claim `key` within the TTL window."""
    ttl = ttl_s or settings.realtime_dedupe_ttl_seconds
    return bool(await redis_client.set(f"dedupe:{key}", "1", nx=True, ex=ttl))
