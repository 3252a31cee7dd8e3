"""
Movement Service (Domain Logic).

Appends stock movements and re-evaluates inventory alerts for the
affected product.

Known gaps:
- The movement insert and the alert evaluation are two commits; a crash in
  between leaves the movement without its alert.
- No locking: two concurrent movements may evaluate thresholds against the
  same stale stock.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erp_backend.app.core.exceptions import ResourceNotFoundError, ValidationError
from erp_backend.app.domain.inventory.catalog_service import stock_levels
from erp_backend.app.domain.inventory.stock import alert_message, alerts_due
from erp_backend.app.models.inventory_alert import InventoryAlert
from erp_backend.app.models.inventory_enums import MovementType
from erp_backend.app.models.movement import Movement
from erp_backend.app.models.product import Product
from erp_backend.app.schemas.inventory import MovementCreate

logger = logging.getLogger(__name__)


class MovementService:

    @staticmethod
    def movement_query():
        return (
            select(Movement)
            .options(selectinload(Movement.product))
            .order_by(Movement.created_at.desc(), Movement.id.desc())
        )

    @staticmethod
    async def create_movement(
        db: AsyncSession, data: MovementCreate, actor: Dict[str, Any]
    ) -> Tuple[Movement, List[InventoryAlert]]:
        """
        Record a stock movement, then raise any threshold alerts it causes.

        Raises:
            ValidationError: quantity is not positive
            ResourceNotFoundError: product does not exist

        Returns:
            (movement, alerts created by this movement)
        """
        if data.quantity <= 0:
            raise ValidationError("Quantity must be greater than 0", details={"quantity": data.quantity})

        product = await db.get(Product, data.product_id)
        if not product:
            raise ResourceNotFoundError("Product", data.product_id)

        movement = Movement(
            type=data.type,
            quantity=data.quantity,
            reason=data.reason,
            reference=data.reference,
            product_id=data.product_id,
            created_by=actor["user_id"],
        )
        db.add(movement)
        await db.commit()

        logger.info(
            "Movement %s recorded for product %s: %s %d",
            movement.id, product.sku, movement.type.value, movement.quantity,
        )

        alerts = await MovementService.evaluate_alerts(db, product)

        result = await db.execute(
            MovementService.movement_query()
            .where(Movement.id == movement.id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one(), alerts

    @staticmethod
    async def evaluate_alerts(db: AsyncSession, product: Product) -> List[InventoryAlert]:
        """
        Open LOW_STOCK / OVER_STOCK alerts for the product's current stock.

        An alert type that already has an unresolved alert for this product
        is not raised again. Existing alerts are never closed here.
        """
        stock = (await stock_levels(db, [product.id])).get(product.id, 0)

        created = []
        for alert_type in alerts_due(stock, product.min_stock, product.max_stock):
            open_alert = await db.execute(
                select(InventoryAlert.id).where(
                    InventoryAlert.product_id == product.id,
                    InventoryAlert.type == alert_type,
                    InventoryAlert.is_resolved.is_(False),
                ).limit(1)
            )
            if open_alert.scalar_one_or_none() is not None:
                continue

            alert = InventoryAlert(
                product_id=product.id,
                type=alert_type,
                message=alert_message(alert_type, product.name, stock, product.min_stock, product.max_stock),
            )
            db.add(alert)
            created.append(alert)

        if created:
            await db.commit()
            for alert in created:
                logger.warning("Inventory alert %s for product %s (stock %d)", alert.type.value, product.sku, stock)

        return created

    @staticmethod
    async def list_movements(
        db: AsyncSession,
        page: int,
        limit: int,
        product_id: Optional[int] = None,
        movement_type: Optional[MovementType] = None,
    ) -> Tuple[List[Movement], int]:
        """Paginated movement log, newest first."""
        filters = []
        if product_id is not None:
            filters.append(Movement.product_id == product_id)
        if movement_type is not None:
            filters.append(Movement.type == movement_type)

        total = (await db.execute(select(func.count(Movement.id)).where(*filters))).scalar() or 0
        result = await db.execute(
            MovementService.movement_query().where(*filters)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def list_alerts(db: AsyncSession, resolved: Optional[bool] = None) -> List[InventoryAlert]:
        query = (
            select(InventoryAlert)
            .options(selectinload(InventoryAlert.product))
            .order_by(InventoryAlert.created_at.desc(), InventoryAlert.id.desc())
        )
        if resolved is not None:
            query = query.where(InventoryAlert.is_resolved.is_(resolved))

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def resolve_alert(db: AsyncSession, alert_id: int) -> InventoryAlert:
        """
        Mark an alert resolved.

        Resolving an already resolved alert keeps its original resolved_at.
        """
        alert = await db.get(InventoryAlert, alert_id)
        if not alert:
            raise ResourceNotFoundError("Alert", alert_id)

        if not alert.is_resolved:
            alert.is_resolved = True
            alert.resolved_at = datetime.now(timezone.utc)
            await db.commit()

        result = await db.execute(
            select(InventoryAlert)
            .options(selectinload(InventoryAlert.product))
            .where(InventoryAlert.id == alert_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()
