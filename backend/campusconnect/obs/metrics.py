"""Central registry for Prometheus metrics used by the search service."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"campusconnect_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"campusconnect_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SEARCH_QUERIES = Counter(
	"campusconnect_search_queries_total",
	"Search queries executed",
	["scope", "mode"],
)

SEARCH_LATENCY = Histogram(
	"campusconnect_search_latency_seconds",
	"Search latency in seconds",
	["scope"],
	buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SEARCH_FALLBACKS = Counter(
	"campusconnect_search_fallbacks_total",
	"Search calls demoted to the fallback engine after a backend failure",
)

SEARCH_STALE_HITS = Counter(
	"campusconnect_search_stale_hits_total",
	"Index hits dropped because the primary entity no longer exists",
	["category"],
)

INDEX_WRITES = Counter(
	"campusconnect_search_index_writes_total",
	"Index mirror writes by operation and outcome",
	["category", "op", "outcome"],
)

SEARCH_MODE = Gauge(
	"campusconnect_search_backend_mode",
	"1 when the dedicated search backend serves queries, 0 for fallback",
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_search_query(scope: str, mode: str) -> None:
	SEARCH_QUERIES.labels(scope=scope, mode=mode).inc()


def observe_search_latency(scope: str, latency_seconds: float) -> None:
	SEARCH_LATENCY.labels(scope=scope).observe(latency_seconds)


def inc_search_fallback() -> None:
	SEARCH_FALLBACKS.inc()


def inc_stale_hits(category: str, count: int = 1) -> None:
	if count > 0:
		SEARCH_STALE_HITS.labels(category=category).inc(count)


def inc_index_write(category: str, op: str, outcome: str) -> None:
	INDEX_WRITES.labels(category=category, op=op, outcome=outcome).inc()


def set_search_mode(using_backend: bool) -> None:
	SEARCH_MODE.set(1 if using_backend else 0)
