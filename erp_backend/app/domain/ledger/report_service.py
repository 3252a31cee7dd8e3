"""
Financial reports.

Everything here is derived on read from the transaction log; nothing is
cached or stored.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from erp_backend.app.core.exceptions import ValidationError
from erp_backend.app.domain.ledger.balances import ZERO, to_money
from erp_backend.app.domain.ledger.ledger_service import LedgerService
from erp_backend.app.models.account import Account
from erp_backend.app.models.accounting_enums import AccountType, InvoiceStatus
from erp_backend.app.models.invoice import Invoice
from erp_backend.app.models.transaction import Transaction
from erp_backend.app.schemas.accounting import (
    AccountResponse, AccountSummary, AccountingDashboardResponse,
    BalanceSheetResponse, BalanceSheetSection, IncomeStatementResponse,
    ReportPeriod, TransactionResponse,
)

DASHBOARD_RECENT_LIMIT = 10


class ReportService:

    @staticmethod
    async def _totals_by_type(db: AsyncSession, since: date, until: Optional[date] = None) -> dict:
        """
        Raw amount totals of INCOME and EXPENSE accounts.

        Amounts are summed regardless of DEBIT/CREDIT direction.
        """
        query = (
            select(Account.type, func.coalesce(func.sum(Transaction.amount), 0))
            .join(Account, Transaction.account_id == Account.id)
            .where(Account.type.in_([AccountType.INCOME, AccountType.EXPENSE]))
            .where(Transaction.date >= since)
        )
        if until is not None:
            query = query.where(Transaction.date <= until)

        result = await db.execute(query.group_by(Account.type))
        totals = {AccountType.INCOME: ZERO, AccountType.EXPENSE: ZERO}
        for account_type, total in result.all():
            totals[AccountType(account_type)] = to_money(total)
        return totals

    @staticmethod
    async def income_statement(db: AsyncSession, start_date: date, end_date: date) -> IncomeStatementResponse:
        """Income, expenses and net income over ``[start_date, end_date]``."""
        if start_date > end_date:
            raise ValidationError(
                "start_date must not be after end_date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        totals = await ReportService._totals_by_type(db, start_date, end_date)
        income = totals[AccountType.INCOME]
        expenses = totals[AccountType.EXPENSE]

        return IncomeStatementResponse(
            period=ReportPeriod(start_date=start_date, end_date=end_date),
            income=income,
            expenses=expenses,
            net_income=income - expenses,
        )

    @staticmethod
    async def balance_sheet(db: AsyncSession, as_of: date) -> BalanceSheetResponse:
        """
        Active ASSET, LIABILITY and EQUITY accounts with balances over
        transactions dated on or before ``as_of``.
        """
        result = await db.execute(
            select(Account)
            .where(Account.is_active.is_(True))
            .where(Account.type.in_([AccountType.ASSET, AccountType.LIABILITY, AccountType.EQUITY]))
            .order_by(Account.code)
            .execution_options(populate_existing=True)
        )
        accounts = list(result.scalars().all())
        balances = await LedgerService.account_balances(db, [a.id for a in accounts], until=as_of)

        def section(account_type: AccountType) -> BalanceSheetSection:
            rows: List[AccountResponse] = [
                AccountResponse.model_validate(a).model_copy(update={"balance": balances.get(a.id, ZERO)})
                for a in accounts
                if a.type == account_type
            ]
            return BalanceSheetSection(accounts=rows, total=sum((r.balance for r in rows), ZERO))

        assets = section(AccountType.ASSET)
        liabilities = section(AccountType.LIABILITY)
        equity = section(AccountType.EQUITY)

        return BalanceSheetResponse(
            as_of_date=as_of,
            assets=assets,
            liabilities=liabilities,
            equity=equity,
            balance=assets.total - (liabilities.total + equity.total),
        )

    @staticmethod
    async def dashboard(db: AsyncSession, today: Optional[date] = None) -> AccountingDashboardResponse:
        """
        Accounting overview.

        - income / expenses since the first day of the current month
        - active account balances since January 1st of the current year
        - the 10 most recent transactions
        - number of ISSUED invoices
        """
        today = today or date.today()
        month_start = today.replace(day=1)
        year_start = today.replace(month=1, day=1)

        totals = await ReportService._totals_by_type(db, month_start)
        income = totals[AccountType.INCOME]
        expenses = totals[AccountType.EXPENSE]

        result = await db.execute(
            select(Account).where(Account.is_active.is_(True)).order_by(Account.type, Account.code)
            .execution_options(populate_existing=True)
        )
        accounts = list(result.scalars().all())
        balances = await LedgerService.account_balances(db, [a.id for a in accounts], since=year_start)

        recent_result = await db.execute(LedgerService.transaction_query().limit(DASHBOARD_RECENT_LIMIT))
        recent = recent_result.scalars().all()

        pending = (await db.execute(
            select(func.count(Invoice.id)).where(Invoice.status == InvoiceStatus.ISSUED)
        )).scalar() or 0

        return AccountingDashboardResponse(
            total_income=income,
            total_expenses=expenses,
            net_profit=income - expenses,
            accounts_summary=[
                AccountSummary(
                    account_id=a.id,
                    account_code=a.code,
                    account_name=a.name,
                    type=a.type,
                    balance=balances.get(a.id, ZERO),
                )
                for a in accounts
            ],
            recent_transactions=[TransactionResponse.model_validate(t) for t in recent],
            pending_invoices=pending,
        )
