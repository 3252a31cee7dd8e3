"""
Accounting enumerations.
"""

import enum


class AccountType(str, enum.Enum):
    """Chart-of-accounts partitions used by the financial reports."""
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionType(str, enum.Enum):
    """Ledger entry direction."""
    DEBIT = "DEBIT"  # Adds to the account balance
    CREDIT = "CREDIT"  # Subtracts from the account balance


class InvoiceType(str, enum.Enum):
    """Invoice direction."""
    SALE = "SALE"  # Issued to a client
    PURCHASE = "PURCHASE"  # Received from a supplier


class InvoiceStatus(str, enum.Enum):
    """
    Invoice status enumeration.

    Any status may overwrite any other; no transition rules are enforced.
    """
    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
