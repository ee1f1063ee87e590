"""Audit helpers for interests and matches."""

from __future__ import annotations

import logging
from typing import Dict

from redis.exceptions import RedisError

from app.infra.redis import redis_client
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

MATCH_STREAM = "x:matches.events"


async def log_match_event(event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **{k: v for k, v in fields.items() if v is not None}}
	try:
		await redis_client.xadd(MATCH_STREAM, payload)
	except (RedisError, OSError):
		logger.warning("audit_write_failed", extra={"stream": MATCH_STREAM, "event": event}, exc_info=True)


def inc_interest_sent(result: str) -> None:
	obs_metrics.inc_interest_sent(result)


def inc_interest_resolved(status: str) -> None:
	obs_metrics.inc_interest_resolved(status)


def inc_match_created() -> None:
	obs_metrics.inc_match_created()


def inc_chat_provision_failure() -> None:
	obs_metrics.inc_match_chat_provision_failure()


def inc_repair(result: str) -> None:
	obs_metrics.inc_match_repair(result)
