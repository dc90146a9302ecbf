# Stock take lifecycle
STOCK_TAKE_IN_PROGRESS = "in_progress"
STOCK_TAKE_COMPLETED = "completed"
STOCK_TAKE_CANCELLED = "cancelled"

# Unit statuses that mean the unit should be physically on the shelf.  The
# list is a business policy; new unit statuses are not in stock unless added here.
IN_STOCK_STATUSES = frozenset({"in_stock", "active"})

# Discrepancy kinds found by reconciliation
DISCREPANCY_MISSING = "missing"
DISCREPANCY_UNKNOWN = "unknown"
DISCREPANCY_WRONG_STATUS = "wrong_status"
DISCREPANCY_TYPES = (
    DISCREPANCY_MISSING,
    DISCREPANCY_UNKNOWN,
    DISCREPANCY_WRONG_STATUS,
)

# Operator investigation outcomes, no ordering between them
RESOLUTION_STATUSES = ("pending", "investigated", "resolved", "written-off")


def is_in_stock(status) -> bool:
    """Return True when a unit with ``status`` is expected on the shelf."""
    return status in IN_STOCK_STATUSES
