"""
Inventory alert database model.

Alerts are raised after a movement crosses a product threshold and stay
open until someone resolves them explicitly.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp_backend.app.db.session import Base
from erp_backend.app.models.inventory_enums import AlertType


class InventoryAlert(Base):
    """At most one unresolved alert per (product, type) is created by the projector."""
    __tablename__ = "inventory_alerts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)
    type = Column(Enum(AlertType), nullable=False)
    message = Column(String(500), nullable=False)

    is_resolved = Column(Boolean, default=False, nullable=False, index=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    product = relationship("Product")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<InventoryAlert(id={self.id}, type='{self.type.value}', resolved={self.is_resolved})>"
