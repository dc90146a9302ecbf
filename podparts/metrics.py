"""Shared Prometheus metrics used across the application."""

from prometheus_client import Counter, Gauge


STOCK_TAKE_SCANS_TOTAL = Counter(
    "podparts_stock_take_scans_total",
    "Total number of barcode scans grouped by outcome.",
    ["result"],
)
STOCK_TAKES_STARTED_TOTAL = Counter(
    "podparts_stock_takes_started_total",
    "Total number of stock takes started.",
)
STOCK_TAKES_COMPLETED_TOTAL = Counter(
    "podparts_stock_takes_completed_total",
    "Total number of stock takes completed with a report.",
)
STOCK_TAKE_DISCREPANCIES_TOTAL = Counter(
    "podparts_stock_take_discrepancies_total",
    "Total number of discrepancies found by completed stock takes.",
    ["type"],
)
STOCK_TAKE_LAST_ACCURACY = Gauge(
    "podparts_stock_take_last_accuracy_percent",
    "Accuracy percentage of the most recently completed stock take.",
)
PRODUCT_STATUS_UPDATES_TOTAL = Counter(
    "podparts_product_status_updates_total",
    "Total number of unit status changes grouped by result.",
    ["result"],
)
