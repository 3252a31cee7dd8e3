"""
Tests for the invoice/transaction bind.

An invoice with N lines yields exactly 1 invoice and N transactions, or
nothing at all when any line fails.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from erp_backend.app.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from erp_backend.app.domain.ledger.invoice_service import InvoiceService
from erp_backend.app.models.account import Account
from erp_backend.app.models.accounting_enums import AccountType, InvoiceType, TransactionType
from erp_backend.app.models.invoice import Invoice
from erp_backend.app.models.transaction import Transaction
from erp_backend.app.schemas.accounting import InvoiceCreate, InvoiceLineCreate


async def counts(session):
    invoices = (await session.execute(select(func.count(Invoice.id)))).scalar()
    transactions = (await session.execute(select(func.count(Transaction.id)))).scalar()
    return invoices, transactions


@pytest.fixture
async def chart(db_session):
    """Receivables, sales income and tax payable accounts."""
    accounts = {
        "receivable": Account(code="1300", name="Clientes", type=AccountType.ASSET),
        "sales": Account(code="4001", name="Ventas", type=AccountType.INCOME),
        "tax": Account(code="2100", name="IVA por pagar", type=AccountType.LIABILITY),
    }
    db_session.add_all(accounts.values())
    await db_session.commit()
    return accounts


def sale(chart, number="F-001", lines=None):
    return InvoiceCreate(
        number=number,
        type=InvoiceType.SALE,
        date=date(2024, 3, 15),
        client_name="ACME S.A.",
        subtotal=Decimal("100.00"),
        tax=Decimal("21.00"),
        total=Decimal("121.00"),
        transactions=lines if lines is not None else [
            InvoiceLineCreate(description="Cobro", amount=Decimal("121"), type=TransactionType.DEBIT,
                              account_id=chart["receivable"].id),
            InvoiceLineCreate(description="Venta", amount=Decimal("100"), type=TransactionType.CREDIT,
                              account_id=chart["sales"].id),
            InvoiceLineCreate(description="IVA", amount=Decimal("21"), type=TransactionType.CREDIT,
                              account_id=chart["tax"].id, date=date(2024, 3, 31)),
        ],
    )


async def test_invoice_with_n_lines_commits_together(db_session, chart, accountant):
    invoice = await InvoiceService.create_invoice(db_session, sale(chart), accountant)

    assert invoice.status.value == "DRAFT"
    assert len(invoice.transactions) == 3
    assert {t.invoice_id for t in invoice.transactions} == {invoice.id}
    assert [t.date for t in invoice.transactions] == [date(2024, 3, 15), date(2024, 3, 15), date(2024, 3, 31)]
    assert await counts(db_session) == (1, 3)


@pytest.mark.parametrize("failing_line", [1, 2, 3])
async def test_failure_on_line_n_leaves_nothing(db_session, chart, accountant, mocker, failing_line):
    original = InvoiceService._add_line
    calls = {"n": 0}

    async def flaky(db, invoice, line, user_id):
        calls["n"] += 1
        if calls["n"] == failing_line:
            raise RuntimeError("connection lost")
        return await original(db, invoice, line, user_id)

    mocker.patch.object(InvoiceService, "_add_line", side_effect=flaky)

    with pytest.raises(RuntimeError):
        await InvoiceService.create_invoice(db_session, sale(chart), accountant)

    assert await counts(db_session) == (0, 0)


async def test_reloaded_invoice_keeps_lines_loaded(db_session, chart, accountant):
    created = await InvoiceService.create_invoice(db_session, sale(chart), accountant)

    invoice = await InvoiceService.get_invoice(db_session, created.id)

    assert [t.account.code for t in invoice.transactions] == ["1300", "4001", "2100"]
    assert {t.invoice.number for t in invoice.transactions} == {"F-001"}


async def test_rejected_line_is_not_reported_as_number_conflict(db_session, chart, accountant, mocker):
    mocker.patch.object(
        InvoiceService, "_add_line",
        side_effect=IntegrityError("INSERT INTO transactions", {}, Exception("FOREIGN KEY constraint failed")),
    )

    with pytest.raises(ValidationError):
        await InvoiceService.create_invoice(db_session, sale(chart), accountant)

    assert await counts(db_session) == (0, 0)


async def test_duplicate_number_conflicts_without_mutation(db_session, chart, accountant):
    await InvoiceService.create_invoice(db_session, sale(chart), accountant)

    with pytest.raises(ConflictError):
        await InvoiceService.create_invoice(db_session, sale(chart), accountant)

    assert await counts(db_session) == (1, 3)


async def test_unknown_account_is_rejected_before_any_write(db_session, chart, accountant):
    lines = [
        InvoiceLineCreate(description="ok", amount=Decimal("1"), type=TransactionType.DEBIT,
                          account_id=chart["receivable"].id),
        InvoiceLineCreate(description="bad", amount=Decimal("1"), type=TransactionType.CREDIT, account_id=999),
    ]

    with pytest.raises(ResourceNotFoundError):
        await InvoiceService.create_invoice(db_session, sale(chart, lines=lines), accountant)

    assert await counts(db_session) == (0, 0)


async def test_invoice_without_lines(db_session, chart, accountant):
    invoice = await InvoiceService.create_invoice(db_session, sale(chart, lines=[]), accountant)
    assert invoice.transactions == []
    assert await counts(db_session) == (1, 0)


# ============================================================================
# HTTP surface
# ============================================================================

def payload(chart, number="F-100"):
    return {
        "number": number,
        "type": "SALE",
        "date": "2024-03-15",
        "client_name": "ACME S.A.",
        "subtotal": 100,
        "tax": 21,
        "total": 121,
        "transactions": [
            {"description": "Cobro", "amount": 121, "type": "DEBIT", "account_id": chart["receivable"].id},
            {"description": "Venta", "amount": 100, "type": "CREDIT", "account_id": chart["sales"].id},
        ],
    }


async def test_create_invoice_endpoint(client, accountant_headers, chart):
    response = await client.post("/api/accounting/invoices", headers=accountant_headers, json=payload(chart))

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "DRAFT"
    assert data["total"] == 121
    assert [t["amount"] for t in data["transactions"]] == [121, 100]
    assert all(t["invoice"]["number"] == "F-100" for t in data["transactions"])


async def test_duplicate_invoice_number_endpoint(client, accountant_headers, chart):
    await client.post("/api/accounting/invoices", headers=accountant_headers, json=payload(chart))
    response = await client.post("/api/accounting/invoices", headers=accountant_headers, json=payload(chart))

    assert response.status_code == 400
    assert response.json()["details"] == {"field": "number", "value": "F-100"}


async def test_invoice_missing_client_name_is_400(client, accountant_headers, chart):
    body = payload(chart)
    del body["client_name"]
    response = await client.post("/api/accounting/invoices", headers=accountant_headers, json=body)
    assert response.status_code == 400


async def test_list_get_and_update_status(client, accountant_headers, chart):
    created = (await client.post("/api/accounting/invoices", headers=accountant_headers, json=payload(chart))).json()
    await client.post("/api/accounting/invoices", headers=accountant_headers, json=payload(chart, "F-101"))

    issued = await client.patch(
        f"/api/accounting/invoices/{created['id']}/status", headers=accountant_headers, json={"status": "ISSUED"}
    )
    assert issued.status_code == 200
    assert issued.json()["status"] == "ISSUED"

    # No transition rules: ISSUED may go straight back to DRAFT
    back = await client.patch(
        f"/api/accounting/invoices/{created['id']}/status", headers=accountant_headers, json={"status": "DRAFT"}
    )
    assert back.json()["status"] == "DRAFT"

    listing = await client.get("/api/accounting/invoices", params={"status": "DRAFT"}, headers=accountant_headers)
    assert listing.json()["pagination"]["total"] == 2

    detail = await client.get(f"/api/accounting/invoices/{created['id']}", headers=accountant_headers)
    assert detail.status_code == 200
    assert [t["account"]["code"] for t in detail.json()["transactions"]] == ["1300", "4001"]

    missing = await client.get("/api/accounting/invoices/999", headers=accountant_headers)
    assert missing.status_code == 404


async def test_invoice_lines_move_balances(client, accountant_headers, chart):
    await client.post("/api/accounting/invoices", headers=accountant_headers, json=payload(chart))

    response = await client.get(
        f"/api/accounting/accounts/{chart['receivable'].id}", headers=accountant_headers
    )
    assert response.json()["balance"] == 121
