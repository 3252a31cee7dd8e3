"""
Inventory schemas: catalog, stock movements, alerts and stock reports.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from erp_backend.app.models.inventory_enums import MovementType, AlertType, StockStatus
from erp_backend.app.schemas.common import Money


# ============================================================================
# Catalog
# ============================================================================

class NamedRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime
    products_count: int = 0

    class Config:
        from_attributes = True


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    tax_id: Optional[str] = Field(None, max_length=50)


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    tax_id: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None


class SupplierResponse(BaseModel):
    id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    address: Optional[str]
    tax_id: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime
    products_count: int = 0

    class Config:
        from_attributes = True


class ProductCreate(BaseModel):
    """Schema for POST /inventory/products."""
    sku: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    cost: Decimal = Field(..., ge=0)
    category_id: int
    supplier_id: Optional[int] = None
    min_stock: int = Field(default=0, ge=0)
    max_stock: Optional[int] = Field(default=None, ge=0)


class ProductUpdate(BaseModel):
    """Partial update. An explicit null clears description, supplier_id or max_stock."""
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    cost: Optional[Decimal] = Field(None, ge=0)
    category_id: Optional[int] = None
    supplier_id: Optional[int] = None
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class ProductResponse(BaseModel):
    """Product with its stock folded from the movement log."""
    id: int
    sku: str
    name: str
    description: Optional[str]
    price: Money
    cost: Money
    min_stock: int
    max_stock: Optional[int]
    category_id: int
    supplier_id: Optional[int]
    is_active: bool
    created_at: datetime
    updated_at: datetime
    category: Optional[NamedRef] = None
    supplier: Optional[NamedRef] = None
    current_stock: int = 0

    class Config:
        from_attributes = True


class CategoryDetailResponse(CategoryResponse):
    products: List[ProductResponse] = []


class SupplierDetailResponse(SupplierResponse):
    products: List[ProductResponse] = []


# ============================================================================
# Movements and alerts
# ============================================================================

class ProductRef(BaseModel):
    id: int
    sku: str
    name: str

    class Config:
        from_attributes = True


class MovementCreate(BaseModel):
    """Schema for POST /inventory/movements; quantity must be positive."""
    type: MovementType
    quantity: int
    reason: str = Field(..., min_length=1, max_length=255)
    reference: Optional[str] = Field(None, max_length=100)
    product_id: int


class MovementResponse(BaseModel):
    id: int
    type: MovementType
    quantity: int
    reason: str
    reference: Optional[str]
    product_id: int
    created_by: int
    created_at: datetime
    product: Optional[ProductRef] = None

    class Config:
        from_attributes = True


class MovementCreateResponse(BaseModel):
    """Response after recording a movement."""
    movement: MovementResponse
    alerts_raised: List[AlertType] = []


class ProductDetailResponse(ProductResponse):
    recent_movements: List[MovementResponse] = []


class AlertResponse(BaseModel):
    id: int
    product_id: int
    type: AlertType
    message: str
    is_resolved: bool
    resolved_at: Optional[datetime]
    created_at: datetime
    product: Optional[ProductRef] = None

    class Config:
        from_attributes = True


# ============================================================================
# Reports
# ============================================================================

class StockLevelItem(BaseModel):
    product_id: int
    sku: str
    product_name: str
    category_name: Optional[str]
    current_stock: int
    min_stock: int
    max_stock: Optional[int]
    status: StockStatus


class StockLevelsResponse(BaseModel):
    products: List[StockLevelItem]
    total: int


class CategorySummary(BaseModel):
    category_id: int
    category_name: str
    product_count: int
    total_value: Money


class InventoryDashboardResponse(BaseModel):
    total_products: int
    low_stock_items: int
    total_inventory_value: Money
    active_alerts: int
    recent_movements: List[MovementResponse]
    category_summary: List[CategorySummary]
