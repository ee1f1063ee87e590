"""Repair pass for matches that were created without a chat.

Acceptance commits the match before the chat is provisioned. When the second
step fails the match is left with a null chat_id; this job retries
provisioning and cancels matches that can no longer get a chat.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.domain.matches import audit, policy
from app.domain.matches.models import Match
from app.domain.matches.service import MatchService, default_service
from app.domain.profiles import repo as profiles
from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)

JOB_NAME = "match_repair"


@dataclass(slots=True)
class RepairReport:
	scanned: int = 0
	repaired: int = 0
	cancelled: int = 0
	failed: int = 0


async def _cancel(service: MatchService, match: Match, reason: str, report: RepairReport) -> None:
	cancelled = await service.repository.cancel_unlinked(match.id)
	if cancelled is None:
		# Linked or resolved by a concurrent path since it was listed
		return
	report.cancelled += 1
	audit.inc_repair("cancelled")
	logger.warning("match_repair_cancelled", extra={"match_id": match.id, "reason": reason})
	await audit.log_match_event("match.cancelled", {"match_id": match.id, "reason": reason})


async def _repair_one(service: MatchService, match: Match, report: RepairReport) -> None:
	pet1 = await profiles.get_pet(match.pet1_id)
	pet2 = await profiles.get_pet(match.pet2_id)
	if policy.chat_participants(pet1, pet2) is None:
		await _cancel(service, match, "participants_unresolvable", report)
		return
	attempts = await service.repository.record_repair_attempt(match.id)
	linked = await service.link_chat(match, pets={p.id: p for p in (pet1, pet2) if p is not None})
	if linked.chat_id is not None:
		report.repaired += 1
		audit.inc_repair("repaired")
		logger.info("match_repaired", extra={"match_id": match.id, "chat_id": linked.chat_id, "attempts": attempts})
		return
	if attempts >= settings.match_repair_max_attempts:
		await _cancel(service, match, "attempts_exhausted", report)
		return
	report.failed += 1
	audit.inc_repair("failed")


async def repair_unlinked_matches(
	*,
	now: Optional[datetime] = None,
	service: MatchService | None = None,
) -> RepairReport:
	"""Run a single repair pass over matches older than the configured threshold."""
	svc = service or default_service()
	current = now or datetime.now(timezone.utc)
	cutoff = current - timedelta(seconds=settings.match_repair_threshold_seconds)
	matches = await svc.repository.list_unlinked(cutoff, limit=settings.match_repair_batch_size)
	report = RepairReport(scanned=len(matches))
	for match in matches:
		await _repair_one(svc, match, report)
	if matches:
		logger.info(
			"match_repair_pass",
			extra={
				"scanned": report.scanned,
				"repaired": report.repaired,
				"cancelled": report.cancelled,
				"failed": report.failed,
			},
		)
	return report


async def run_repair_loop(interval_s: float | None = None) -> None:
	"""Periodically run repair passes until cancelled."""
	interval = max(1.0, float(interval_s or settings.match_repair_interval_seconds))
	while True:
		await asyncio.sleep(interval)
		start = time.perf_counter()
		try:
			await repair_unlinked_matches()
		except asyncio.CancelledError:
			raise
		except Exception:
			obs_metrics.record_job_run(JOB_NAME, result="error")
			logger.exception("match repair iteration failed")
			continue
		obs_metrics.record_job_run(JOB_NAME, result="ok", duration_seconds=time.perf_counter() - start)
