"""Prometheus metrics for bank API calls, pagination and balance extraction"""

from prometheus_client import Counter, Histogram

# Bank API metrics
bank_request_latency_histogram = Histogram(
    "bb_request_latency_seconds",
    "Banco do Brasil API response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

bank_pages_fetched_counter = Counter(
    "bb_statement_pages_fetched_total",
    "Statement pages fetched from the bank",
)

bank_fetch_failures_counter = Counter(
    "bb_fetch_failures_total",
    "Failed bank API calls",
    ["error_type"],  # CertificatesNotFound | TransportError | HttpStatusError | ...
)

statement_items_counter = Counter(
    "bb_statement_items_total",
    "Normalized statement items by direction",
    ["direction"],  # D | C
)

balance_not_found_counter = Counter(
    "bb_balance_not_found_total",
    "Statements without any balance marker line",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_bank_failure(error: Exception) -> None:
    """Count a failed bank call by exception class"""
    bank_fetch_failures_counter.labels(error_type=type(error).__name__).inc()


def record_statement(items, balance_found: bool) -> None:
    """Record direction distribution and balance availability of a fetched statement"""
    for txn in items:
        statement_items_counter.labels(direction=txn.direction.value).inc()
    if not balance_found:
        balance_not_found_counter.inc()
