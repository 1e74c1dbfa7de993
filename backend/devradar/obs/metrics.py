"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"devradar_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"devradar_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"devradar_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"devradar_socketio_events_total",
	"Socket.IO events handled per namespace",
	["namespace", "event"],
)

REGISTRY_WRITES = Counter(
	"devradar_registry_writes_total",
	"Developer registry writes",
	["op"],
)

REGISTRY_REJECTS = Counter(
	"devradar_registry_rejects_total",
	"Developer registrations rejected at validation",
	["reason"],
)

INDEXED_DEVELOPERS = Gauge(
	"devradar_indexed_developers",
	"Developers currently held in the spatial index",
)

OPEN_SUBSCRIPTIONS = Gauge(
	"devradar_open_subscriptions",
	"Open realtime subscriptions",
)

MATCH_EVENTS = Counter(
	"devradar_match_events_total",
	"Match events emitted by the match engine",
	["kind"],
)

DELIVERY_FAILURES = Counter(
	"devradar_delivery_failures_total",
	"Match events that could not be handed to a connection",
	["stage"],
)

OUTBOX_DROPS = Counter(
	"devradar_outbox_drops_total",
	"Outbound events dropped because a connection queue was full",
)

PROTOCOL_ERRORS = Counter(
	"devradar_protocol_errors_total",
	"Malformed realtime handshakes or messages",
	["stage"],
)

RATE_LIMITED_EVENTS = Counter(
	"devradar_rate_limited_events_total",
	"Socket events rejected by the rate limiter",
	["kind"],
)

SEARCH_QUERIES = Counter(
	"devradar_search_queries_total",
	"Radius/tag searches served",
	["tagged"],
)

SEARCH_RESULTS = Summary(
	"devradar_search_results",
	"Search result sizes",
)

REDIS_UP = Gauge(
	"devradar_redis_up",
	"Redis reachability as seen by readiness checks",
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


def inc_registry_write(op: str) -> None:
	REGISTRY_WRITES.labels(op=op).inc()


def inc_registry_reject(reason: str) -> None:
	REGISTRY_REJECTS.labels(reason=reason).inc()


def set_indexed_developers(count: int) -> None:
	INDEXED_DEVELOPERS.set(float(count))


def set_open_subscriptions(count: int) -> None:
	OPEN_SUBSCRIPTIONS.set(float(count))


def inc_match_event(kind: str) -> None:
	MATCH_EVENTS.labels(kind=kind).inc()


def inc_delivery_failure(stage: str) -> None:
	DELIVERY_FAILURES.labels(stage=stage).inc()


def inc_outbox_drop(count: int = 1) -> None:
	OUTBOX_DROPS.inc(count)


def inc_protocol_error(stage: str) -> None:
	PROTOCOL_ERRORS.labels(stage=stage).inc()


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED_EVENTS.labels(kind=kind).inc()


def inc_search_query(tagged: bool, result_count: int) -> None:
	SEARCH_QUERIES.labels(tagged="yes" if tagged else "no").inc()
	SEARCH_RESULTS.observe(result_count)


def mark_redis(ok: bool) -> None:
	REDIS_UP.set(1.0 if ok else 0.0)
