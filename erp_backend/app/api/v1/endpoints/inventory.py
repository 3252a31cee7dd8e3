"""
Inventory API endpoints.

Catalog (categories, suppliers, products), stock movements, alerts and
stock reports. Reads need almacen:read, writes need almacen:write.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp_backend.app.core.guards import require_permission
from erp_backend.app.core.permissions import Permission
from erp_backend.app.db.session import get_db
from erp_backend.app.domain.inventory.catalog_service import CatalogService, stock_levels
from erp_backend.app.domain.inventory.movement_service import MovementService
from erp_backend.app.domain.inventory.report_service import InventoryReportService
from erp_backend.app.models.inventory_enums import MovementType
from erp_backend.app.models.product import Product
from erp_backend.app.schemas.common import Page, build_pagination
from erp_backend.app.schemas.inventory import (
    CategoryCreate, CategoryUpdate, CategoryResponse, CategoryDetailResponse,
    SupplierCreate, SupplierUpdate, SupplierResponse, SupplierDetailResponse,
    ProductCreate, ProductUpdate, ProductResponse, ProductDetailResponse,
    MovementCreate, MovementResponse, MovementCreateResponse, AlertResponse,
    StockLevelsResponse, InventoryDashboardResponse,
)
from erp_backend.app.services.audit import log_event, AuditAction, client_ip

router = APIRouter(prefix="/inventory", tags=["Inventory"])

can_read = require_permission(Permission.INVENTORY_READ)
can_write = require_permission(Permission.INVENTORY_WRITE)


def _product_response(product: Product, stock: int) -> ProductResponse:
    return ProductResponse.model_validate(product).model_copy(update={"current_stock": stock})


def _product_list(products: List[Product], stock: Dict[int, int]) -> List[ProductResponse]:
    return [_product_response(p, stock.get(p.id, 0)) for p in products]


@router.get("/dashboard", response_model=InventoryDashboardResponse)
async def get_dashboard(
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    return await InventoryReportService.dashboard(db)


# ============================================================================
# Categories
# ============================================================================

@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    """Active categories with their active product counts."""
    rows = await CatalogService.list_categories(db)
    return [
        CategoryResponse.model_validate(c).model_copy(update={"products_count": count})
        for c, count in rows
    ]


@router.get("/categories/{category_id}", response_model=CategoryDetailResponse)
async def get_category(
    category_id: int,
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    category, products, stock = await CatalogService.get_category(db, category_id)
    return CategoryDetailResponse(
        **CategoryResponse.model_validate(category).model_dump(exclude={"products_count"}),
        products_count=len(products),
        products=_product_list(products, stock),
    )


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    category = await CatalogService.create_category(db, data)
    return CategoryResponse.model_validate(category)


@router.put("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    category = await CatalogService.update_category(db, category_id, data)
    return CategoryResponse.model_validate(category)


# ============================================================================
# Suppliers
# ============================================================================

@router.get("/suppliers", response_model=List[SupplierResponse])
async def list_suppliers(
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    rows = await CatalogService.list_suppliers(db)
    return [
        SupplierResponse.model_validate(s).model_copy(update={"products_count": count})
        for s, count in rows
    ]


@router.get("/suppliers/{supplier_id}", response_model=SupplierDetailResponse)
async def get_supplier(
    supplier_id: int,
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    supplier, products, stock = await CatalogService.get_supplier(db, supplier_id)
    return SupplierDetailResponse(
        **SupplierResponse.model_validate(supplier).model_dump(exclude={"products_count"}),
        products_count=len(products),
        products=_product_list(products, stock),
    )


@router.post("/suppliers", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    data: SupplierCreate,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    supplier = await CatalogService.create_supplier(db, data)
    return SupplierResponse.model_validate(supplier)


@router.put("/suppliers/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: int,
    data: SupplierUpdate,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    supplier = await CatalogService.update_supplier(db, supplier_id, data)
    return SupplierResponse.model_validate(supplier)


# ============================================================================
# Products
# ============================================================================

@router.get("/products", response_model=Page[ProductResponse])
async def list_products(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    category_id: Optional[int] = Query(None),
    supplier_id: Optional[int] = Query(None),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    products, stock, total = await CatalogService.list_products(db, page, limit, category_id, supplier_id)
    return Page[ProductResponse](
        items=_product_list(products, stock),
        pagination=build_pagination(page, limit, total),
    )


@router.get("/products/{product_id}", response_model=ProductDetailResponse)
async def get_product(
    product_id: int,
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    product, stock, recent = await CatalogService.get_product(db, product_id)
    return ProductDetailResponse.model_validate(product).model_copy(update={
        "current_stock": stock,
        "recent_movements": [MovementResponse.model_validate(m) for m in recent],
    })


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    request: Request,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    product = await CatalogService.create_product(db, data)
    response = _product_response(product, 0)

    await log_event(
        db=db,
        action=AuditAction.PRODUCT_CREATED,
        actor=current_user,
        entity_type="product",
        entity_id=product.id,
        metadata={"sku": product.sku},
        ip_address=client_ip(request)
    )

    return response


@router.put("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    product = await CatalogService.update_product(db, product_id, data)
    stock = (await stock_levels(db, [product_id])).get(product_id, 0)
    return _product_response(product, stock)


# ============================================================================
# Movements and alerts
# ============================================================================

@router.get("/movements", response_model=Page[MovementResponse])
async def list_movements(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    product_id: Optional[int] = Query(None),
    movement_type: Optional[MovementType] = Query(None, alias="type"),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    movements, total = await MovementService.list_movements(db, page, limit, product_id, movement_type)
    return Page[MovementResponse](
        items=[MovementResponse.model_validate(m) for m in movements],
        pagination=build_pagination(page, limit, total),
    )


@router.post("/movements", response_model=MovementCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_movement(
    data: MovementCreate,
    request: Request,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    """
    Record an IN or OUT movement.

    The product's alerts are re-evaluated afterwards; alerts raised by this
    movement are listed in ``alerts_raised``.
    """
    movement, alerts = await MovementService.create_movement(db, data, current_user)
    response = MovementCreateResponse(
        movement=MovementResponse.model_validate(movement),
        alerts_raised=[a.type for a in alerts],
    )

    await log_event(
        db=db,
        action=AuditAction.MOVEMENT_RECORDED,
        actor=current_user,
        entity_type="movement",
        entity_id=movement.id,
        metadata={"product_id": movement.product_id, "type": movement.type.value, "quantity": movement.quantity},
        ip_address=client_ip(request)
    )

    return response


@router.get("/alerts", response_model=List[AlertResponse])
async def list_alerts(
    resolved: Optional[bool] = Query(None, description="Filter by resolution state"),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    alerts = await MovementService.list_alerts(db, resolved)
    return [AlertResponse.model_validate(a) for a in alerts]


@router.patch("/alerts/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(
    alert_id: int,
    request: Request,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    alert = await MovementService.resolve_alert(db, alert_id)
    response = AlertResponse.model_validate(alert)

    await log_event(
        db=db,
        action=AuditAction.ALERT_RESOLVED,
        actor=current_user,
        entity_type="inventory_alert",
        entity_id=alert.id,
        metadata={"type": alert.type.value, "product_id": alert.product_id},
        ip_address=client_ip(request)
    )

    return response


# ============================================================================
# Reports
# ============================================================================

@router.get("/reports/stock-levels", response_model=StockLevelsResponse)
async def stock_levels_report(
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    items = await InventoryReportService.stock_levels(db)
    return StockLevelsResponse(products=items, total=len(items))


@router.get("/reports/low-stock", response_model=StockLevelsResponse)
async def low_stock_report(
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    items = await InventoryReportService.low_stock(db)
    return StockLevelsResponse(products=items, total=len(items))
