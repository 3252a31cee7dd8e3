"""
Stock movement database model.

Immutable: the movement log is append-only.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp_backend.app.db.session import Base
from erp_backend.app.models.inventory_enums import MovementType


class Movement(Base):
    __tablename__ = "movements"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movements_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    type = Column(Enum(MovementType), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=False)
    reference = Column(String(100), nullable=True)

    product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey('users.id'), nullable=False)

    product = relationship("Product", back_populates="movements")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<Movement(id={self.id}, type='{self.type.value}', quantity={self.quantity})>"
