"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"petmatch_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"petmatch_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"petmatch_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"petmatch_socketio_events_total",
	"Socket.IO events handled or emitted per namespace",
	["namespace", "event"],
)

SOCKET_DROPS = Counter(
	"petmatch_socketio_drops_total",
	"Socket.IO events dropped without relay",
	["event", "reason"],
)

INTERESTS_SENT = Counter(
	"petmatch_interests_sent_total",
	"Interest send attempts",
	["result"],
)

INTERESTS_RESOLVED = Counter(
	"petmatch_interests_resolved_total",
	"Interests resolved by the target owner",
	["status"],
)

MATCHES_CREATED = Counter(
	"petmatch_matches_created_total",
	"Matches created from accepted interests",
)

MATCH_CHAT_PROVISION_FAILURES = Counter(
	"petmatch_match_chat_provision_failures_total",
	"Matches left without a chat after acceptance",
)

MATCH_REPAIRS = Counter(
	"petmatch_match_repairs_total",
	"Repair outcomes for matches missing a chat",
	["result"],
)

CHAT_SEND = Counter(
	"petmatch_chat_send_total",
	"Chat messages sent",
	["kind"],
)

CHAT_SEND_REJECTS = Counter(
	"petmatch_chat_send_rejects_total",
	"Chat messages rejected before persisting",
	["reason"],
)

CHAT_RELAY = Counter(
	"petmatch_chat_relay_total",
	"Chat messages relayed to joined sockets",
	["origin"],
)

BLOCKS_TOTAL = Counter(
	"petmatch_blocks_total",
	"Block operations",
	["action"],
)

IDEMPOTENCY = Counter(
	"petmatch_idempotency_total",
	"Idempotency key lookups",
	["result"],
)

REDIS_UP = Gauge("petmatch_redis_up", "Redis availability (1=up,0=down)")
REDIS_LATENCY = Summary("petmatch_redis_latency_seconds", "Redis ping latency (seconds)")

POSTGRES_UP = Gauge("petmatch_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("petmatch_postgres_latency_seconds", "Postgres ping latency (seconds)")

BACKGROUND_RUNS = Counter(
	"petmatch_jobs_runs_total",
	"Background job executions",
	["name", "result"],
)

BACKGROUND_DURATION = Histogram(
	"petmatch_jobs_duration_seconds",
	"Background job duration",
	["name"],
	buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 15.0, 30.0, 60.0),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def socket_drop(event: str, reason: str) -> None:
	SOCKET_DROPS.labels(event=event, reason=reason).inc()


def inc_interest_sent(result: str) -> None:
	INTERESTS_SENT.labels(result=result).inc()


def inc_interest_resolved(status: str) -> None:
	INTERESTS_RESOLVED.labels(status=status).inc()


def inc_match_created() -> None:
	MATCHES_CREATED.inc()


def inc_match_chat_provision_failure() -> None:
	MATCH_CHAT_PROVISION_FAILURES.inc()


def inc_match_repair(result: str) -> None:
	MATCH_REPAIRS.labels(result=result).inc()


def inc_chat_send(kind: str = "text") -> None:
	CHAT_SEND.labels(kind=kind).inc()


def inc_chat_send_reject(reason: str) -> None:
	CHAT_SEND_REJECTS.labels(reason=reason).inc()


def inc_chat_relay(origin: str) -> None:
	CHAT_RELAY.labels(origin=origin).inc()


def inc_block(action: str) -> None:
	BLOCKS_TOTAL.labels(action=action).inc()


def inc_idem(result: str) -> None:
	IDEMPOTENCY.labels(result=result).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)


def record_job_run(name: str, *, result: str, duration_seconds: float | None = None) -> None:
	BACKGROUND_RUNS.labels(name=name, result=result).inc()
	if duration_seconds is not None:
		BACKGROUND_DURATION.labels(name=name).observe(duration_seconds)
