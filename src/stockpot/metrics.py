"""Prometheus metrics definitions for Stockpot."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "stockpot_http_requests_total",
    "Total number of HTTP requests processed by the Stockpot API",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "stockpot_http_request_duration_seconds",
    "Latency of HTTP requests processed by the Stockpot API",
    ["method", "path"],
)

FULFILLMENT_RUNS = Counter(
    "stockpot_fulfillment_runs_total",
    "Number of recipe fulfillment runs by outcome",
    ["outcome"],
)

STOCK_ADJUSTMENTS = Counter(
    "stockpot_stock_adjustments_total",
    "Number of stock adjustments by result",
    ["result"],
)

BULK_UPLOAD_ROWS = Counter(
    "stockpot_bulk_upload_rows_total",
    "Number of inventory CSV rows processed by result",
    ["result"],
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "FULFILLMENT_RUNS",
    "STOCK_ADJUSTMENTS",
    "BULK_UPLOAD_ROWS",
]
