"""
Ledger Service (Domain Logic).

Chart of accounts and the append-only transaction log. Balances are
folded from the log on every read (see ``balances.py``).
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erp_backend.app.core.exceptions import ConflictError, ResourceNotFoundError
from erp_backend.app.domain.ledger.balances import ZERO, fold_balances, to_money
from erp_backend.app.models.account import Account
from erp_backend.app.models.accounting_enums import AccountType
from erp_backend.app.models.transaction import Transaction
from erp_backend.app.schemas.accounting import AccountCreate, AccountUpdate, TransactionCreate

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS_LIMIT = 50


class LedgerService:

    @staticmethod
    async def get_account_or_404(db: AsyncSession, account_id: int) -> Account:
        account = await db.get(Account, account_id)
        if not account:
            raise ResourceNotFoundError("Account", account_id)
        return account

    @staticmethod
    async def _ensure_code_free(db: AsyncSession, code: str) -> None:
        result = await db.execute(select(Account.id).where(Account.code == code))
        if result.scalar_one_or_none() is not None:
            raise ConflictError("Account code already exists", field="code", value=code)

    @staticmethod
    async def account_balances(
        db: AsyncSession,
        account_ids: Optional[Iterable[int]] = None,
        since: Optional[date] = None,
        until: Optional[date] = None,
    ) -> Dict[int, Decimal]:
        """
        Fold balances for the given accounts (all accounts when None).

        ``since`` / ``until`` bound the transaction dates, both inclusive.
        Accounts without transactions are absent from the result.
        """
        query = select(Transaction.account_id, Transaction.type, Transaction.amount)
        if account_ids is not None:
            query = query.where(Transaction.account_id.in_(list(account_ids)))
        if since is not None:
            query = query.where(Transaction.date >= since)
        if until is not None:
            query = query.where(Transaction.date <= until)

        result = await db.execute(query)
        return fold_balances(result.all())

    @staticmethod
    async def create_account(db: AsyncSession, data: AccountCreate) -> Account:
        """
        Open a new ledger account.

        Raises:
            ConflictError: ``code`` is already used by another account
        """
        await LedgerService._ensure_code_free(db, data.code)

        account = Account(
            code=data.code,
            name=data.name,
            type=data.type,
            description=data.description,
        )
        db.add(account)
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race against a concurrent insert of the same code
            await db.rollback()
            raise ConflictError("Account code already exists", field="code", value=data.code)

        await db.refresh(account)
        logger.info("Account %s created (%s)", account.code, account.type.value)
        return account

    @staticmethod
    async def update_account(db: AsyncSession, account_id: int, data: AccountUpdate) -> Account:
        """Partial update; ``is_active=False`` is how accounts are retired."""
        account = await LedgerService.get_account_or_404(db, account_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if changes.get("code") and changes["code"] != account.code:
            await LedgerService._ensure_code_free(db, changes["code"])

        for field, value in changes.items():
            setattr(account, field, value)

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("Account code already exists", field="code", value=changes.get("code"))

        await db.refresh(account)
        return account

    @staticmethod
    async def list_accounts(
        db: AsyncSession,
        account_type: Optional[AccountType] = None,
        is_active: bool = True,
    ) -> List[Tuple[Account, Decimal]]:
        """Accounts ordered by type then code, each paired with its balance."""
        query = select(Account).where(Account.is_active == is_active)
        if account_type is not None:
            query = query.where(Account.type == account_type)
        query = query.order_by(Account.type, Account.code)

        result = await db.execute(query)
        accounts = list(result.scalars().all())

        balances = await LedgerService.account_balances(db, [a.id for a in accounts])
        return [(account, balances.get(account.id, ZERO)) for account in accounts]

    @staticmethod
    async def get_account(db: AsyncSession, account_id: int) -> Tuple[Account, Decimal, List[Transaction]]:
        """
        Account, its balance over ALL transactions, and the 50 most recent ones.
        """
        account = await LedgerService.get_account_or_404(db, account_id)

        result = await db.execute(
            LedgerService.transaction_query()
            .where(Transaction.account_id == account_id)
            .limit(RECENT_TRANSACTIONS_LIMIT)
        )
        recent = list(result.scalars().all())

        balances = await LedgerService.account_balances(db, [account_id])
        return account, balances.get(account_id, ZERO), recent

    @staticmethod
    def transaction_query():
        # Newest first; id breaks ties between entries on the same date
        return (
            select(Transaction)
            .options(selectinload(Transaction.account), selectinload(Transaction.invoice))
            .order_by(Transaction.date.desc(), Transaction.id.desc())
        )

    @staticmethod
    async def list_transactions(
        db: AsyncSession,
        page: int,
        limit: int,
        account_id: Optional[int] = None,
    ) -> Tuple[List[Transaction], int]:
        """Paginated transaction log, newest first."""
        query = LedgerService.transaction_query()
        count_query = select(func.count(Transaction.id))
        if account_id is not None:
            query = query.where(Transaction.account_id == account_id)
            count_query = count_query.where(Transaction.account_id == account_id)

        total = (await db.execute(count_query)).scalar() or 0
        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        return list(result.scalars().all()), total

    @staticmethod
    async def load_transaction(db: AsyncSession, transaction_id: int) -> Transaction:
        result = await db.execute(
            LedgerService.transaction_query()
            .where(Transaction.id == transaction_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    @staticmethod
    async def create_transaction(db: AsyncSession, data: TransactionCreate, actor: Dict[str, Any]) -> Transaction:
        """
        Append one entry to the ledger.

        Raises:
            ResourceNotFoundError: the target account does not exist
        """
        await LedgerService.get_account_or_404(db, data.account_id)

        transaction = Transaction(
            date=data.date,
            description=data.description,
            amount=to_money(data.amount),
            type=data.type,
            reference=data.reference,
            account_id=data.account_id,
            created_by=actor["user_id"],
        )
        db.add(transaction)
        await db.commit()

        logger.info(
            "Transaction %s recorded on account %s: %s %s",
            transaction.id, transaction.account_id, transaction.type.value, transaction.amount,
        )
        return await LedgerService.load_transaction(db, transaction.id)
