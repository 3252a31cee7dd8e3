"""
Invoice database model.

An invoice is written together with its ledger transactions in one
database transaction.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Enum, ForeignKey, Numeric, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp_backend.app.db.session import Base
from erp_backend.app.models.accounting_enums import InvoiceType, InvoiceStatus


class Invoice(Base):
    """Invoice header; its lines are the linked transactions."""
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    number = Column(String(50), unique=True, index=True, nullable=False)
    type = Column(Enum(InvoiceType), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    due_date = Column(Date, nullable=True)

    # Client
    client_name = Column(String(200), nullable=False)
    client_email = Column(String(255), nullable=True)
    client_tax_id = Column(String(50), nullable=True)

    # Financials
    subtotal = Column(Numeric(14, 2), nullable=False)
    tax = Column(Numeric(14, 2), nullable=False)
    total = Column(Numeric(14, 2), nullable=False)

    status = Column(Enum(InvoiceStatus), default=InvoiceStatus.DRAFT, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    created_by = Column(Integer, ForeignKey('users.id'), nullable=False)

    transactions = relationship("Transaction", back_populates="invoice", order_by="Transaction.id")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.number}', status='{self.status.value}')>"
