"""
Inventory reports and dashboard, derived from the movement log on read.
"""

from decimal import Decimal
from typing import List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from erp_backend.app.domain.inventory.catalog_service import product_query, stock_levels
from erp_backend.app.domain.inventory.movement_service import MovementService
from erp_backend.app.domain.inventory.stock import classify_stock
from erp_backend.app.domain.ledger.balances import ZERO, to_money
from erp_backend.app.models.category import Category
from erp_backend.app.models.inventory_alert import InventoryAlert
from erp_backend.app.models.inventory_enums import StockStatus
from erp_backend.app.models.product import Product
from erp_backend.app.schemas.inventory import (
    CategorySummary, InventoryDashboardResponse, MovementResponse, StockLevelItem,
)

DASHBOARD_RECENT_LIMIT = 10


class InventoryReportService:

    @staticmethod
    async def stock_levels(db: AsyncSession) -> List[StockLevelItem]:
        """Every active product with its stock and LOW / NORMAL / OVER status."""
        result = await db.execute(
            product_query().where(Product.is_active.is_(True)).order_by(Product.name, Product.id)
        )
        products = list(result.scalars().all())
        stock = await stock_levels(db, [p.id for p in products])

        items = []
        for product in products:
            current = stock.get(product.id, 0)
            items.append(StockLevelItem(
                product_id=product.id,
                sku=product.sku,
                product_name=product.name,
                category_name=product.category.name if product.category else None,
                current_stock=current,
                min_stock=product.min_stock,
                max_stock=product.max_stock,
                status=classify_stock(current, product.min_stock, product.max_stock),
            ))
        return items

    @staticmethod
    async def low_stock(db: AsyncSession) -> List[StockLevelItem]:
        """Active products at or below their minimum stock."""
        return [item for item in await InventoryReportService.stock_levels(db) if item.status == StockStatus.LOW]

    @staticmethod
    async def dashboard(db: AsyncSession) -> InventoryDashboardResponse:
        """
        Inventory overview.

        Inventory value is sum(cost * current stock) over active products.
        """
        result = await db.execute(
            select(Product).where(Product.is_active.is_(True))
        )
        products = list(result.scalars().all())
        stock = await stock_levels(db, [p.id for p in products])

        total_value = ZERO
        low_count = 0
        per_category = {}
        for product in products:
            current = stock.get(product.id, 0)
            value = to_money(Decimal(product.cost) * current)
            total_value += value
            if classify_stock(current, product.min_stock, product.max_stock) == StockStatus.LOW:
                low_count += 1
            count, category_value = per_category.get(product.category_id, (0, ZERO))
            per_category[product.category_id] = (count + 1, category_value + value)

        categories = await db.execute(
            select(Category).where(Category.is_active.is_(True)).order_by(Category.name)
        )
        category_summary = [
            CategorySummary(
                category_id=c.id,
                category_name=c.name,
                product_count=per_category.get(c.id, (0, ZERO))[0],
                total_value=per_category.get(c.id, (0, ZERO))[1],
            )
            for c in categories.scalars().all()
        ]

        recent = await db.execute(MovementService.movement_query().limit(DASHBOARD_RECENT_LIMIT))

        active_alerts = (await db.execute(
            select(func.count(InventoryAlert.id)).where(InventoryAlert.is_resolved.is_(False))
        )).scalar() or 0

        return InventoryDashboardResponse(
            total_products=len(products),
            low_stock_items=low_count,
            total_inventory_value=total_value,
            active_alerts=active_alerts,
            recent_movements=[MovementResponse.model_validate(m) for m in recent.scalars().all()],
            category_summary=category_summary,
        )
