"""Prometheus metrics definitions for dinner-groups-server.

Exposes metrics for:
1. HTTP API metrics (requests, latency, errors)
2. Google Places API client metrics (calls, latency, errors)
3. Cache metrics (hits, misses, population time)
4. Store metrics (restaurant upserts, membership transitions)
"""
from prometheus_client import Counter, Histogram, Gauge

# =============================================================================
# HTTP API METRICS
# =============================================================================

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"],
)

# =============================================================================
# GOOGLE PLACES API METRICS
# =============================================================================

GOOGLE_PLACES_API_CALLS_TOTAL = Counter(
    "google_places_api_calls_total",
    "Total number of Google Places API calls",
    ["endpoint", "status"],  # status: success, error
)

GOOGLE_PLACES_API_CALL_DURATION_SECONDS = Histogram(
    "google_places_api_call_duration_seconds",
    "Google Places API call latency in seconds",
    ["endpoint"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

GOOGLE_PLACES_API_ERRORS_TOTAL = Counter(
    "google_places_api_errors_total",
    "Total number of Google Places API errors",
    ["endpoint", "error_type"],  # error_type: http_error, timeout, connection_error, api_status
)

PLACE_DETAILS_DEGRADED_TOTAL = Counter(
    "place_details_degraded_total",
    "Restaurants returned with base fields only because details lookup failed",
)

# =============================================================================
# CACHE METRICS
# =============================================================================

CACHE_REQUESTS_TOTAL = Counter(
    "cache_requests_total",
    "Cache lookups by cache name and result",
    ["cache", "result"],  # result: hit, miss, shared
)

CACHE_POPULATE_DURATION_SECONDS = Histogram(
    "cache_populate_duration_seconds",
    "Time spent computing a fresh cache value",
    ["cache"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

CACHE_INVALIDATIONS_TOTAL = Counter(
    "cache_invalidations_total",
    "Explicit cache invalidations",
    ["cache"],
)

CACHE_EVICTIONS_TOTAL = Counter(
    "cache_evictions_total",
    "Entries evicted to keep the cache within its size bound",
    ["cache"],
)

# =============================================================================
# STORE METRICS
# =============================================================================

RESTAURANT_UPSERTS_TOTAL = Counter(
    "restaurant_upserts_total",
    "Restaurant upserts after a Places fetch",
    ["status"],  # status: success, error
)

MEMBERSHIP_TRANSITIONS_TOTAL = Counter(
    "membership_transitions_total",
    "Dinner group join/leave operations",
    ["operation", "result"],  # result: changed, unchanged, error
)

MEMBERSHIP_CONFLICTS_TOTAL = Counter(
    "membership_conflicts_total",
    "Membership transactions aborted by a concurrent change and retried",
    ["operation"],
)
