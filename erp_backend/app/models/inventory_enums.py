"""
Inventory enumerations.
"""

import enum


class MovementType(str, enum.Enum):
    """Stock movement direction."""
    IN = "IN"
    OUT = "OUT"


class AlertType(str, enum.Enum):
    """Threshold conditions raised after a movement."""
    LOW_STOCK = "LOW_STOCK"  # Stock at or below min_stock
    OVER_STOCK = "OVER_STOCK"  # Stock above max_stock


class StockStatus(str, enum.Enum):
    """Stock level classification used by the stock reports."""
    LOW = "LOW"
    NORMAL = "NORMAL"
    OVER = "OVER"
