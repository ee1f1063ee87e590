"""Audit helpers for block changes."""

from __future__ import annotations

import logging
from typing import Dict

from redis.exceptions import RedisError

from app.infra.redis import redis_client
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


async def log_block_event(event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **fields}
	try:
		await redis_client.xadd("x:blocks.events", payload)
	except (RedisError, OSError):
		logger.warning("audit_write_failed", extra={"stream": "x:blocks.events", "event": event}, exc_info=True)


def inc_block(action: str) -> None:
	obs_metrics.inc_block(action)
