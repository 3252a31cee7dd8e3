"""
Product database model.

Current stock is not stored: it is folded from the product's movements.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp_backend.app.db.session import Base


class Product(Base):
    """
    Product model.

    min_stock / max_stock are the thresholds used to raise inventory alerts.
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    sku = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Financials
    price = Column(Numeric(14, 2), nullable=False)
    cost = Column(Numeric(14, 2), nullable=False)

    # Thresholds
    min_stock = Column(Integer, default=0, nullable=False)
    max_stock = Column(Integer, nullable=True)

    # Classification
    category_id = Column(Integer, ForeignKey('categories.id'), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id'), nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    category = relationship("Category", back_populates="products")
    supplier = relationship("Supplier", back_populates="products")
    movements = relationship("Movement", back_populates="product")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Product(id={self.id}, sku='{self.sku}')>"
