"""
Integration tests for the account ledger: accounts, transactions and the
derived balances.
"""

from sqlalchemy import select, func

from erp_backend.app.models.account import Account
from erp_backend.app.models.audit_log import AuditLog


async def create_account(client, headers, code, account_type, name=None):
    response = await client.post("/api/accounting/accounts", headers=headers, json={
        "code": code, "name": name or f"Account {code}", "type": account_type,
    })
    assert response.status_code == 201, response.text
    return response.json()


async def post_transaction(client, headers, account_id, entry_type, amount, day="2024-03-10", **extra):
    response = await client.post("/api/accounting/transactions", headers=headers, json={
        "date": day,
        "description": f"{entry_type} {amount}",
        "amount": amount,
        "type": entry_type,
        "account_id": account_id,
        **extra,
    })
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_account(client, accountant_headers):
    data = await create_account(client, accountant_headers, "1001", "ASSET", name="Caja")

    assert data["code"] == "1001"
    assert data["type"] == "ASSET"
    assert data["is_active"] is True
    assert data["balance"] == 0


async def test_duplicate_account_code_conflicts_without_mutation(client, accountant_headers, db_session):
    await create_account(client, accountant_headers, "1001", "ASSET")

    response = await client.post("/api/accounting/accounts", headers=accountant_headers, json={
        "code": "1001", "name": "Other", "type": "LIABILITY",
    })

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_CONFLICT"
    assert body["details"] == {"field": "code", "value": "1001"}
    assert (await db_session.execute(select(func.count(Account.id)))).scalar() == 1


async def test_missing_required_field_is_validation_error(client, accountant_headers):
    response = await client.post("/api/accounting/accounts", headers=accountant_headers, json={
        "code": "1001", "type": "ASSET",
    })
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION"


async def test_read_only_role_cannot_write(client, create_user, headers_for, db_session, roles):
    from erp_backend.app.models.role import Role

    reader = Role(name="auditor", permissions=["contabilidad:read"])
    db_session.add(reader)
    await db_session.commit()
    user = await create_user("usuario", email="auditor@erp.com")
    user.role_id = reader.id
    await db_session.commit()
    headers = headers_for(user, "auditor")

    assert (await client.get("/api/accounting/accounts", headers=headers)).status_code == 200
    response = await client.post("/api/accounting/accounts", headers=headers, json={
        "code": "1001", "name": "Caja", "type": "ASSET",
    })
    assert response.status_code == 403


async def test_balance_is_debits_minus_credits(client, accountant_headers):
    account = await create_account(client, accountant_headers, "1001", "ASSET")
    await post_transaction(client, accountant_headers, account["id"], "DEBIT", 100)
    await post_transaction(client, accountant_headers, account["id"], "CREDIT", 30)

    response = await client.get(f"/api/accounting/accounts/{account['id']}", headers=accountant_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["balance"] == 70
    assert len(data["recent_transactions"]) == 2


async def test_account_detail_caps_recent_but_not_balance(client, accountant_headers):
    account = await create_account(client, accountant_headers, "1001", "ASSET")
    for i in range(55):
        await post_transaction(client, accountant_headers, account["id"], "DEBIT", 1, day=f"2024-01-{(i % 28) + 1:02d}")

    response = await client.get(f"/api/accounting/accounts/{account['id']}", headers=accountant_headers)

    data = response.json()
    assert len(data["recent_transactions"]) == 50
    assert data["balance"] == 55


async def test_list_accounts_ordered_with_balances(client, accountant_headers):
    cash = await create_account(client, accountant_headers, "1001", "ASSET")
    await create_account(client, accountant_headers, "4001", "INCOME")
    await create_account(client, accountant_headers, "1000", "ASSET")
    await post_transaction(client, accountant_headers, cash["id"], "DEBIT", 12.5)

    response = await client.get("/api/accounting/accounts", headers=accountant_headers)

    data = response.json()
    assert [(a["type"], a["code"]) for a in data] == [("ASSET", "1000"), ("ASSET", "1001"), ("INCOME", "4001")]
    assert {a["code"]: a["balance"] for a in data} == {"1000": 0, "1001": 12.5, "4001": 0}

    filtered = await client.get("/api/accounting/accounts", params={"type": "INCOME"}, headers=accountant_headers)
    assert [a["code"] for a in filtered.json()] == ["4001"]


async def test_update_account_and_soft_delete(client, accountant_headers):
    account = await create_account(client, accountant_headers, "1001", "ASSET")
    await create_account(client, accountant_headers, "1002", "ASSET")

    renamed = await client.put(
        f"/api/accounting/accounts/{account['id']}", headers=accountant_headers, json={"name": "Bancos"}
    )
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Bancos"

    clash = await client.put(
        f"/api/accounting/accounts/{account['id']}", headers=accountant_headers, json={"code": "1002"}
    )
    assert clash.status_code == 400

    retired = await client.put(
        f"/api/accounting/accounts/{account['id']}", headers=accountant_headers, json={"is_active": False}
    )
    assert retired.json()["is_active"] is False

    active = await client.get("/api/accounting/accounts", headers=accountant_headers)
    assert [a["code"] for a in active.json()] == ["1002"]
    inactive = await client.get("/api/accounting/accounts", params={"is_active": False}, headers=accountant_headers)
    assert [a["code"] for a in inactive.json()] == ["1001"]


async def test_missing_account_is_404(client, accountant_headers):
    response = await client.get("/api/accounting/accounts/999", headers=accountant_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Account with ID 999 not found"


async def test_transaction_on_missing_account_is_404(client, accountant_headers):
    response = await client.post("/api/accounting/transactions", headers=accountant_headers, json={
        "date": "2024-03-10", "description": "x", "amount": 10, "type": "DEBIT", "account_id": 999,
    })
    assert response.status_code == 404


async def test_transaction_amount_is_rounded_and_stamped(client, accountant_headers, accountant_user):
    account = await create_account(client, accountant_headers, "1001", "ASSET")

    data = await post_transaction(client, accountant_headers, account["id"], "DEBIT", "10.005", reference="R-1")

    assert data["amount"] == 10.01
    assert data["created_by"] == accountant_user.id
    assert data["created_at"]
    assert data["account"]["code"] == "1001"
    assert data["invoice"] is None


async def test_negative_amount_rejected(client, accountant_headers):
    account = await create_account(client, accountant_headers, "1001", "ASSET")
    response = await client.post("/api/accounting/transactions", headers=accountant_headers, json={
        "date": "2024-03-10", "description": "x", "amount": -5, "type": "DEBIT", "account_id": account["id"],
    })
    assert response.status_code == 400


async def test_list_transactions_newest_first_and_filtered(client, accountant_headers):
    first = await create_account(client, accountant_headers, "1001", "ASSET")
    second = await create_account(client, accountant_headers, "2001", "LIABILITY")
    await post_transaction(client, accountant_headers, first["id"], "DEBIT", 1, day="2024-01-01")
    await post_transaction(client, accountant_headers, first["id"], "DEBIT", 2, day="2024-02-01")
    await post_transaction(client, accountant_headers, second["id"], "CREDIT", 3, day="2024-03-01")

    response = await client.get("/api/accounting/transactions", params={"limit": 2}, headers=accountant_headers)
    data = response.json()
    assert [t["amount"] for t in data["items"]] == [3, 2]
    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    filtered = await client.get(
        "/api/accounting/transactions", params={"account_id": first["id"]}, headers=accountant_headers
    )
    assert filtered.json()["pagination"]["total"] == 2


async def test_writes_are_audited(client, accountant_headers, db_session):
    account = await create_account(client, accountant_headers, "1001", "ASSET")
    await post_transaction(client, accountant_headers, account["id"], "DEBIT", 100)

    result = await db_session.execute(select(AuditLog.action).order_by(AuditLog.id))
    assert list(result.scalars().all()) == ["ACCOUNT_CREATED", "TRANSACTION_RECORDED"]


async def test_dashboard(client, accountant_headers):
    from datetime import date

    today = date.today().isoformat()
    income = await create_account(client, accountant_headers, "4001", "INCOME")
    expense = await create_account(client, accountant_headers, "5001", "EXPENSE")
    await post_transaction(client, accountant_headers, income["id"], "CREDIT", 500, day=today)
    await post_transaction(client, accountant_headers, expense["id"], "DEBIT", 300, day=today)

    response = await client.get("/api/accounting/dashboard", headers=accountant_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total_income"] == 500
    assert data["total_expenses"] == 300
    assert data["net_profit"] == 200
    assert {a["account_code"]: a["balance"] for a in data["accounts_summary"]} == {"4001": -500, "5001": 300}
    assert len(data["recent_transactions"]) == 2
    assert data["pending_invoices"] == 0
