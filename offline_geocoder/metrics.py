"""Prometheus metrics for the geocoder"""
from prometheus_client import Counter, Histogram

# Counters
lookups_total = Counter(
    "geocoder_lookups_total",
    "Total location lookups answered, by source",
    ["source"],
)

unresolved_total = Counter(
    "geocoder_unresolved_total",
    "Total lookups for which the resolver found no place",
)

cache_store_errors = Counter(
    "geocoder_cache_store_errors_total",
    "Total cache store failures seen by the resolution layer",
    ["operation"],
)

evicted_entries = Counter(
    "geocoder_cache_evicted_entries_total",
    "Total cache entries removed by eviction or clear",
)

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Histograms
resolver_duration = Histogram(
    "geocoder_resolver_duration_seconds",
    "Time spent in the place resolver",
)

http_request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)
