"""Domain layer modules for stock take reconciliation."""

__all__ = [
    "products",
    "reconciliation",
    "report_text",
    "stocktake",
]
