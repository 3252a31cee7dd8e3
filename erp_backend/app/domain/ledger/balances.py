"""
Ledger folds.

Account balances are never stored; every balance shown by the API is
computed here from the transaction log:

    balance = sum(DEBIT amounts) - sum(CREDIT amounts)

The fold is a plain sum, so the order of the log does not matter.
"""

from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Tuple

from erp_backend.app.models.accounting_enums import TransactionType

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Coerce a number (int, float, str or Decimal) to a 2-place fixed-point Decimal."""
    if not isinstance(value, Decimal):
        # str() keeps floats like 0.1 from dragging binary noise into the ledger
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def signed_amount(entry_type: TransactionType, amount: Any) -> Decimal:
    """Contribution of one entry to its account balance."""
    amount = to_money(amount)
    if TransactionType(entry_type) == TransactionType.DEBIT:
        return amount
    return -amount


def account_balance(entries: Iterable[Any]) -> Decimal:
    """
    Balance of one account.

    Args:
        entries: objects exposing ``type`` and ``amount`` (ORM transactions or
            any lightweight record with the same attributes)
    """
    return sum((signed_amount(e.type, e.amount) for e in entries), ZERO)


def fold_balances(rows: Iterable[Tuple[int, TransactionType, Any]]) -> Dict[int, Decimal]:
    """
    Balances for many accounts at once.

    Args:
        rows: ``(account_id, type, amount)`` tuples

    Returns:
        account_id -> balance, only for accounts that appear in ``rows``
    """
    balances: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for account_id, entry_type, amount in rows:
        balances[account_id] += signed_amount(entry_type, amount)
    return dict(balances)
