"""
Transaction database model (the ledger).

Immutable: rows are only ever inserted.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Enum, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp_backend.app.db.session import Base
from erp_backend.app.models.accounting_enums import TransactionType


class Transaction(Base):
    """
    Ledger transaction.

    Each row moves one account: DEBIT adds to its balance, CREDIT subtracts.
    NO updates or deletions allowed.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    date = Column(Date, nullable=False, index=True)
    description = Column(String(500), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    type = Column(Enum(TransactionType), nullable=False)
    reference = Column(String(100), nullable=True)

    # Linkage
    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)
    invoice_id = Column(Integer, ForeignKey('invoices.id'), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey('users.id'), nullable=False)

    account = relationship("Account", back_populates="transactions")
    invoice = relationship("Invoice", back_populates="transactions")

    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Transaction(id={self.id}, type='{self.type.value}', amount={self.amount})>"
