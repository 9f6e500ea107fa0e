"""Prometheus metrics for HTTP traffic, sockets and feed activity."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"parish_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"parish_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"parish_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"parish_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

SOCKET_REJECTS = Counter(
	"parish_socketio_rejects_total",
	"Socket.IO handshakes refused",
	["reason"],
)

FEED_MUTATIONS = Counter(
	"parish_feed_mutations_total",
	"Committed feed mutations",
	["kind"],
)

FEED_REJECTIONS = Counter(
	"parish_feed_rejections_total",
	"Feed operations rejected by validation or authorization",
	["reason"],
)

BROADCAST_FAILURES = Counter(
	"parish_broadcast_failures_total",
	"Real-time broadcasts that raised and were dropped",
	["event"],
)

NOTIFICATIONS = Counter(
	"parish_notifications_total",
	"Notification outcomes",
	["type", "result"],
)

REDIS_UP = Gauge("parish_redis_up", "Redis reachability (1 up, 0 down)")
POSTGRES_UP = Gauge("parish_postgres_up", "Postgres reachability (1 up, 0 down)")
DEPENDENCY_LATENCY = Histogram(
	"parish_dependency_ping_seconds",
	"Latency of readiness pings",
	["dependency"],
	buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5),
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


def socket_rejected(reason: str) -> None:
	SOCKET_REJECTS.labels(reason=reason).inc()


def inc_feed_mutation(kind: str) -> None:
	FEED_MUTATIONS.labels(kind=kind).inc()


def inc_feed_rejection(reason: str) -> None:
	FEED_REJECTIONS.labels(reason=reason).inc()


def inc_broadcast_failure(event: str) -> None:
	BROADCAST_FAILURES.labels(event=event).inc()


def notification_outcome(kind: str, result: str) -> None:
	NOTIFICATIONS.labels(type=kind, result=result).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		DEPENDENCY_LATENCY.labels(dependency="redis").observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		DEPENDENCY_LATENCY.labels(dependency="postgres").observe(latency_seconds)
