"""
Catalog Service (Domain Logic).

Categories, suppliers and products. Product stock is never stored; it is
folded from the movement log with ``stock.fold_stock``.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erp_backend.app.core.exceptions import ConflictError, ResourceNotFoundError
from erp_backend.app.domain.inventory.stock import fold_stock
from erp_backend.app.domain.ledger.balances import to_money
from erp_backend.app.models.category import Category
from erp_backend.app.models.movement import Movement
from erp_backend.app.models.product import Product
from erp_backend.app.models.supplier import Supplier
from erp_backend.app.schemas.inventory import (
    CategoryCreate, CategoryUpdate, SupplierCreate, SupplierUpdate, ProductCreate, ProductUpdate,
)

logger = logging.getLogger(__name__)

RECENT_MOVEMENTS_LIMIT = 50

# Nullable product columns an update may set back to NULL
CLEARABLE_PRODUCT_FIELDS = ("description", "supplier_id", "max_stock")


async def stock_levels(db: AsyncSession, product_ids: Optional[Iterable[int]] = None) -> Dict[int, int]:
    """Current stock per product; products without movements are absent."""
    query = select(Movement.product_id, Movement.type, Movement.quantity)
    if product_ids is not None:
        query = query.where(Movement.product_id.in_(list(product_ids)))
    result = await db.execute(query)
    return fold_stock(result.all())


def product_query():
    return select(Product).options(selectinload(Product.category), selectinload(Product.supplier))


class CatalogService:

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    @staticmethod
    async def _active_product_counts(db: AsyncSession, column) -> Dict[int, int]:
        result = await db.execute(
            select(column, func.count(Product.id))
            .where(Product.is_active.is_(True))
            .group_by(column)
        )
        return {key: count for key, count in result.all() if key is not None}

    @staticmethod
    async def _ensure_category_name_free(db: AsyncSession, name: str) -> None:
        result = await db.execute(select(Category.id).where(Category.name == name))
        if result.scalar_one_or_none() is not None:
            raise ConflictError("Category name already exists", field="name", value=name)

    @staticmethod
    async def get_category_or_404(db: AsyncSession, category_id: int) -> Category:
        category = await db.get(Category, category_id)
        if not category:
            raise ResourceNotFoundError("Category", category_id)
        return category

    @staticmethod
    async def list_categories(db: AsyncSession) -> List[Tuple[Category, int]]:
        """Active categories by name, each with its active product count."""
        result = await db.execute(
            select(Category).where(Category.is_active.is_(True)).order_by(Category.name)
        )
        counts = await CatalogService._active_product_counts(db, Product.category_id)
        return [(c, counts.get(c.id, 0)) for c in result.scalars().all()]

    @staticmethod
    async def get_category(db: AsyncSession, category_id: int) -> Tuple[Category, List[Product], Dict[int, int]]:
        category = await CatalogService.get_category_or_404(db, category_id)
        result = await db.execute(
            product_query()
            .where(Product.category_id == category_id, Product.is_active.is_(True))
            .order_by(Product.name)
        )
        products = list(result.scalars().all())
        return category, products, await stock_levels(db, [p.id for p in products])

    @staticmethod
    async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
        await CatalogService._ensure_category_name_free(db, data.name)

        category = Category(name=data.name, description=data.description)
        db.add(category)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("Category name already exists", field="name", value=data.name)

        await db.refresh(category)
        return category

    @staticmethod
    async def update_category(db: AsyncSession, category_id: int, data: CategoryUpdate) -> Category:
        category = await CatalogService.get_category_or_404(db, category_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if changes.get("name") and changes["name"] != category.name:
            await CatalogService._ensure_category_name_free(db, changes["name"])

        for field, value in changes.items():
            setattr(category, field, value)

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("Category name already exists", field="name", value=changes.get("name"))

        await db.refresh(category)
        return category

    # ------------------------------------------------------------------
    # Suppliers
    # ------------------------------------------------------------------

    @staticmethod
    async def get_supplier_or_404(db: AsyncSession, supplier_id: int) -> Supplier:
        supplier = await db.get(Supplier, supplier_id)
        if not supplier:
            raise ResourceNotFoundError("Supplier", supplier_id)
        return supplier

    @staticmethod
    async def list_suppliers(db: AsyncSession) -> List[Tuple[Supplier, int]]:
        result = await db.execute(
            select(Supplier).where(Supplier.is_active.is_(True)).order_by(Supplier.name)
        )
        counts = await CatalogService._active_product_counts(db, Product.supplier_id)
        return [(s, counts.get(s.id, 0)) for s in result.scalars().all()]

    @staticmethod
    async def get_supplier(db: AsyncSession, supplier_id: int) -> Tuple[Supplier, List[Product], Dict[int, int]]:
        supplier = await CatalogService.get_supplier_or_404(db, supplier_id)
        result = await db.execute(
            product_query()
            .where(Product.supplier_id == supplier_id, Product.is_active.is_(True))
            .order_by(Product.name)
        )
        products = list(result.scalars().all())
        return supplier, products, await stock_levels(db, [p.id for p in products])

    @staticmethod
    async def create_supplier(db: AsyncSession, data: SupplierCreate) -> Supplier:
        supplier = Supplier(**data.model_dump())
        db.add(supplier)
        await db.commit()
        await db.refresh(supplier)
        return supplier

    @staticmethod
    async def update_supplier(db: AsyncSession, supplier_id: int, data: SupplierUpdate) -> Supplier:
        supplier = await CatalogService.get_supplier_or_404(db, supplier_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(supplier, field, value)
        await db.commit()
        await db.refresh(supplier)
        return supplier

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    @staticmethod
    async def load_product(db: AsyncSession, product_id: int) -> Product:
        result = await db.execute(
            product_query()
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        product = result.scalar_one_or_none()
        if not product:
            raise ResourceNotFoundError("Product", product_id)
        return product

    @staticmethod
    async def _ensure_sku_free(db: AsyncSession, sku: str) -> None:
        result = await db.execute(select(Product.id).where(Product.sku == sku))
        if result.scalar_one_or_none() is not None:
            raise ConflictError("SKU already exists", field="sku", value=sku)

    @staticmethod
    async def _check_references(db: AsyncSession, category_id: Optional[int], supplier_id: Optional[int]) -> None:
        if category_id is not None:
            await CatalogService.get_category_or_404(db, category_id)
        if supplier_id is not None:
            await CatalogService.get_supplier_or_404(db, supplier_id)

    @staticmethod
    async def list_products(
        db: AsyncSession,
        page: int,
        limit: int,
        category_id: Optional[int] = None,
        supplier_id: Optional[int] = None,
    ) -> Tuple[List[Product], Dict[int, int], int]:
        """Active products by name, paginated, with their stock."""
        filters = [Product.is_active.is_(True)]
        if category_id is not None:
            filters.append(Product.category_id == category_id)
        if supplier_id is not None:
            filters.append(Product.supplier_id == supplier_id)

        total = (await db.execute(select(func.count(Product.id)).where(*filters))).scalar() or 0
        result = await db.execute(
            product_query().where(*filters).order_by(Product.name, Product.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        products = list(result.scalars().all())
        return products, await stock_levels(db, [p.id for p in products]), total

    @staticmethod
    async def get_product(db: AsyncSession, product_id: int) -> Tuple[Product, int, List[Movement]]:
        """Product, its stock over ALL movements, and the 50 most recent ones."""
        product = await CatalogService.load_product(db, product_id)

        result = await db.execute(
            select(Movement)
            .options(selectinload(Movement.product))
            .where(Movement.product_id == product_id)
            .order_by(Movement.created_at.desc(), Movement.id.desc())
            .limit(RECENT_MOVEMENTS_LIMIT)
        )
        recent = list(result.scalars().all())

        stock = (await stock_levels(db, [product_id])).get(product_id, 0)
        return product, stock, recent

    @staticmethod
    async def create_product(db: AsyncSession, data: ProductCreate) -> Product:
        """
        Raises:
            ConflictError: SKU already exists
            ResourceNotFoundError: unknown category or supplier
        """
        await CatalogService._ensure_sku_free(db, data.sku)
        await CatalogService._check_references(db, data.category_id, data.supplier_id)

        product = Product(
            sku=data.sku,
            name=data.name,
            description=data.description,
            price=to_money(data.price),
            cost=to_money(data.cost),
            min_stock=data.min_stock,
            max_stock=data.max_stock,
            category_id=data.category_id,
            supplier_id=data.supplier_id,
        )
        db.add(product)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("SKU already exists", field="sku", value=data.sku)

        logger.info("Product %s created", product.sku)
        return await CatalogService.load_product(db, product.id)

    @staticmethod
    async def update_product(db: AsyncSession, product_id: int, data: ProductUpdate) -> Product:
        """
        Partial update with the same checks as creation.

        Raises:
            ConflictError: new SKU already exists
            ResourceNotFoundError: unknown category or supplier
        """
        product = await CatalogService.load_product(db, product_id)
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in CLEARABLE_PRODUCT_FIELDS
        }

        if changes.get("sku") and changes["sku"] != product.sku:
            await CatalogService._ensure_sku_free(db, changes["sku"])

        await CatalogService._check_references(db, changes.get("category_id"), changes.get("supplier_id"))

        for field, value in changes.items():
            if field in ("price", "cost"):
                value = to_money(value)
            setattr(product, field, value)

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("SKU already exists", field="sku", value=changes.get("sku"))

        logger.info("Product %s updated: %s", product.sku, sorted(changes))
        return await CatalogService.load_product(db, product_id)
