"""
Account database model (chart of accounts).

Balances are never stored here: they are folded from the transaction log.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp_backend.app.db.session import Base
from erp_backend.app.models.accounting_enums import AccountType


class Account(Base):
    """
    Ledger account.

    Accounts are deactivated (is_active=False) instead of deleted so that
    historical transactions always reference an existing row.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(20), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    type = Column(Enum(AccountType), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Status (soft delete)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    transactions = relationship("Transaction", back_populates="account")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Account(id={self.id}, code='{self.code}', type='{self.type.value}')>"
