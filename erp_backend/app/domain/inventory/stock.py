"""
Stock projection.

current stock = sum(IN quantities) - sum(OUT quantities)

Recomputed from the movement log on every read, in any order.
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Tuple

from erp_backend.app.models.inventory_enums import AlertType, MovementType, StockStatus


def signed_quantity(movement_type: MovementType, quantity: int) -> int:
    if MovementType(movement_type) == MovementType.IN:
        return quantity
    return -quantity


def current_stock(movements: Iterable[Any]) -> int:
    """Stock of one product from objects exposing ``type`` and ``quantity``."""
    return sum(signed_quantity(m.type, m.quantity) for m in movements)


def fold_stock(rows: Iterable[Tuple[int, MovementType, int]]) -> Dict[int, int]:
    """Stock per product from ``(product_id, type, quantity)`` tuples."""
    stock: Dict[int, int] = defaultdict(int)
    for product_id, movement_type, quantity in rows:
        stock[product_id] += signed_quantity(movement_type, quantity)
    return dict(stock)


def classify_stock(stock: int, min_stock: int, max_stock: Optional[int]) -> StockStatus:
    if stock <= min_stock:
        return StockStatus.LOW
    if max_stock is not None and stock > max_stock:
        return StockStatus.OVER
    return StockStatus.NORMAL


def alerts_due(stock: int, min_stock: int, max_stock: Optional[int]) -> List[AlertType]:
    """
    Threshold conditions currently met by a stock level.

    Both can hold at once when max_stock < min_stock; each is reported.
    """
    due = []
    if stock <= min_stock:
        due.append(AlertType.LOW_STOCK)
    if max_stock is not None and stock > max_stock:
        due.append(AlertType.OVER_STOCK)
    return due


def alert_message(alert_type: AlertType, product_name: str, stock: int,
                  min_stock: int, max_stock: Optional[int]) -> str:
    if alert_type == AlertType.LOW_STOCK:
        return f"Low stock for {product_name}. Current stock: {stock}, minimum: {min_stock}"
    return f"Over stock for {product_name}. Current stock: {stock}, maximum: {max_stock}"
