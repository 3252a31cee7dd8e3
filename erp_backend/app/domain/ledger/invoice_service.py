"""
Invoice Service (Domain Logic).

An invoice and its ledger lines are written in a single database
transaction: either the invoice and every line commit, or nothing does.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erp_backend.app.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from erp_backend.app.domain.ledger.balances import to_money
from erp_backend.app.models.account import Account
from erp_backend.app.models.accounting_enums import InvoiceStatus, InvoiceType
from erp_backend.app.models.invoice import Invoice
from erp_backend.app.models.transaction import Transaction
from erp_backend.app.schemas.accounting import InvoiceCreate, InvoiceLineCreate

logger = logging.getLogger(__name__)


class InvoiceService:

    @staticmethod
    async def create_invoice(db: AsyncSession, data: InvoiceCreate, actor: Dict[str, Any]) -> Invoice:
        """
        Create an invoice together with its transactions.

        Flow:
        1. Reject a duplicate invoice number
        2. Check every referenced account exists
        3. Insert the invoice, flush for its id
        4. Insert one transaction per line, linked to the invoice
        5. Commit once; any failure rolls back everything

        Raises:
            ConflictError: number already used
            ValidationError: the database rejected a line
            ResourceNotFoundError: a line references a missing account
        """
        # 1-2. All checks run before the first write
        existing = await db.execute(select(Invoice.id).where(Invoice.number == data.number))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Invoice number already exists", field="number", value=data.number)

        account_ids = {line.account_id for line in data.transactions}
        if account_ids:
            result = await db.execute(select(Account.id).where(Account.id.in_(account_ids)))
            missing = sorted(account_ids - set(result.scalars().all()))
            if missing:
                raise ResourceNotFoundError("Account", missing[0])

        invoice = Invoice(
            number=data.number,
            type=data.type,
            date=data.date,
            due_date=data.due_date,
            client_name=data.client_name,
            client_email=data.client_email,
            client_tax_id=data.client_tax_id,
            subtotal=to_money(data.subtotal),
            tax=to_money(data.tax),
            total=to_money(data.total),
            status=InvoiceStatus.DRAFT,
            notes=data.notes,
            created_by=actor["user_id"],
        )

        # 3-5. Single unit of work
        try:
            db.add(invoice)
            await db.flush()

            for line in data.transactions:
                await InvoiceService._add_line(db, invoice, line, actor["user_id"])

            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("Invoice %s rejected by the database", data.number, exc_info=True)
            # Only a concurrent insert of the same number is a conflict
            taken = await db.execute(select(Invoice.id).where(Invoice.number == data.number))
            if taken.scalar_one_or_none() is not None:
                raise ConflictError("Invoice number already exists", field="number", value=data.number)
            raise ValidationError("Invoice transactions were rejected by the database", details={"number": data.number})
        except Exception:
            await db.rollback()
            logger.error("Invoice %s rolled back after a failed line", data.number)
            raise

        logger.info("Invoice %s created with %d transactions", invoice.number, len(data.transactions))
        return await InvoiceService.get_invoice(db, invoice.id)

    @staticmethod
    async def _add_line(db: AsyncSession, invoice: Invoice, line: InvoiceLineCreate, user_id: int) -> Transaction:
        transaction = Transaction(
            date=line.date or invoice.date,
            description=line.description,
            amount=to_money(line.amount),
            type=line.type,
            reference=line.reference,
            account_id=line.account_id,
            invoice_id=invoice.id,
            created_by=user_id,
        )
        db.add(transaction)
        await db.flush()
        return transaction

    @staticmethod
    async def get_invoice(db: AsyncSession, invoice_id: int) -> Invoice:
        """Invoice with its transactions (and their accounts) loaded."""
        result = await db.execute(
            select(Invoice)
            .options(
                selectinload(Invoice.transactions).selectinload(Transaction.account),
            )
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise ResourceNotFoundError("Invoice", invoice_id)
        return invoice

    @staticmethod
    async def list_invoices(
        db: AsyncSession,
        page: int,
        limit: int,
        invoice_type: Optional[InvoiceType] = None,
        status: Optional[InvoiceStatus] = None,
    ) -> Tuple[List[Invoice], int]:
        query = select(Invoice)
        count_query = select(func.count(Invoice.id))
        if invoice_type is not None:
            query = query.where(Invoice.type == invoice_type)
            count_query = count_query.where(Invoice.type == invoice_type)
        if status is not None:
            query = query.where(Invoice.status == status)
            count_query = count_query.where(Invoice.status == status)

        total = (await db.execute(count_query)).scalar() or 0
        result = await db.execute(
            query.order_by(Invoice.date.desc(), Invoice.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def update_status(db: AsyncSession, invoice_id: int, status: InvoiceStatus) -> Tuple[Invoice, InvoiceStatus]:
        """
        Overwrite the invoice status.

        No transition rules: any status may replace any other.

        Returns:
            (invoice, previous status)
        """
        invoice = await db.get(Invoice, invoice_id)
        if not invoice:
            raise ResourceNotFoundError("Invoice", invoice_id)

        previous = invoice.status
        invoice.status = status
        await db.commit()
        await db.refresh(invoice)
        return invoice, previous
