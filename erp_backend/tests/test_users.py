"""
Integration tests for user management, roles and the audit trail endpoint.
"""

from sqlalchemy import select

from erp_backend.app.models.user import User


async def test_list_users_paginates_and_searches(client, admin_headers, create_user):
    await create_user("contabilidad", email="ana@erp.com", name="Ana Contable")
    await create_user("almacen", email="luis@erp.com", name="Luis Almacen")
    await create_user("usuario", email="gone@erp.com", name="Ana Gone", is_active=False)

    response = await client.get("/api/users", params={"search": "ANA"}, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert [u["email"] for u in data["items"]] == ["ana@erp.com"]
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}


async def test_list_users_pages(client, admin_headers, create_user):
    for i in range(3):
        await create_user("usuario", email=f"user{i}@erp.com")

    response = await client.get("/api/users", params={"page": 2, "limit": 2}, headers=admin_headers)

    data = response.json()
    # admin + 3 users
    assert data["pagination"] == {"page": 2, "limit": 2, "total": 4, "pages": 2}
    assert len(data["items"]) == 2


async def test_users_endpoints_require_capability(client, basic_headers):
    response = await client.get("/api/users", headers=basic_headers)
    assert response.status_code == 403


async def test_create_user(client, admin_headers, roles):
    response = await client.post("/api/users", headers=admin_headers, json={
        "email": "marta@erp.com",
        "password": "secret123",
        "name": "Marta",
        "role_id": roles["almacen"].id,
    })

    assert response.status_code == 201
    data = response.json()
    assert data["role"]["name"] == "almacen"
    assert "almacen:write" in data["permissions"]


async def test_create_user_duplicate_email(client, admin_headers, basic_user, roles):
    response = await client.post("/api/users", headers=admin_headers, json={
        "email": basic_user.email, "password": "secret123", "name": "Dup", "role_id": roles["usuario"].id,
    })
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_CONFLICT"


async def test_create_user_unknown_role(client, admin_headers):
    response = await client.post("/api/users", headers=admin_headers, json={
        "email": "x@erp.com", "password": "secret123", "name": "X", "role_id": 999,
    })
    assert response.status_code == 404


async def test_get_user_includes_permissions(client, admin_headers, accountant_user):
    response = await client.get(f"/api/users/{accountant_user.id}", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["role"]["id"] == accountant_user.role_id
    assert data["permissions"] == ["dashboard:read", "contabilidad:read", "contabilidad:write"]


async def test_get_missing_user_is_404(client, admin_headers):
    response = await client.get("/api/users/999", headers=admin_headers)
    assert response.status_code == 404


async def test_role_change_applies_on_next_request(client, admin_headers, basic_user, basic_headers, roles):
    denied = await client.get("/api/accounting/accounts", headers=basic_headers)
    assert denied.status_code == 403

    response = await client.put(
        f"/api/users/{basic_user.id}", headers=admin_headers, json={"role_id": roles["contabilidad"].id}
    )
    assert response.status_code == 200
    assert response.json()["role"]["name"] == "contabilidad"

    # Same token: permissions come from the database, not the JWT
    allowed = await client.get("/api/accounting/accounts", headers=basic_headers)
    assert allowed.status_code == 200


async def test_deactivate_user_revokes_sessions(client, admin_headers, basic_user, basic_headers, session_factory):
    assert (await client.get("/api/auth/profile", headers=basic_headers)).status_code == 200

    response = await client.delete(f"/api/users/{basic_user.id}", headers=admin_headers)
    assert response.status_code == 200

    async with session_factory() as session:
        user = (await session.execute(select(User).where(User.id == basic_user.id))).scalar_one()
        assert user.is_active is False

    rejected = await client.get("/api/auth/profile", headers=basic_headers)
    assert rejected.status_code == 401


async def test_reactivation_clears_revocation(client, admin_headers, basic_user, basic_headers, mock_redis):
    await client.delete(f"/api/users/{basic_user.id}", headers=admin_headers)
    assert f"user:tokens:{basic_user.id}:revoked" in mock_redis.store

    response = await client.put(f"/api/users/{basic_user.id}", headers=admin_headers, json={"is_active": True})
    assert response.status_code == 200
    assert f"user:tokens:{basic_user.id}:revoked" not in mock_redis.store

    assert (await client.get("/api/auth/profile", headers=basic_headers)).status_code == 200


async def test_cannot_deactivate_self(client, admin_headers, admin_user):
    response = await client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION"


async def test_update_own_profile(client, basic_headers, accountant_user):
    response = await client.put("/api/users/profile", headers=basic_headers, json={"name": "Eva Renamed"})
    assert response.status_code == 200
    assert response.json()["name"] == "Eva Renamed"

    taken = await client.put("/api/users/profile", headers=basic_headers, json={"email": accountant_user.email})
    assert taken.status_code == 400


async def test_profile_route_is_not_a_user_id(client, basic_headers):
    response = await client.get("/api/users/profile", headers=basic_headers)
    assert response.status_code == 200
    assert response.json()["email"] == "eva@erp.com"


async def test_roles_hide_admin(client, admin_headers):
    response = await client.get("/api/roles", headers=admin_headers)

    assert response.status_code == 200
    assert [r["name"] for r in response.json()] == ["almacen", "contabilidad", "usuario"]


async def test_get_role(client, admin_headers, roles):
    response = await client.get(f"/api/roles/{roles['almacen'].id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["permissions"] == ["dashboard:read", "almacen:read", "almacen:write"]

    missing = await client.get("/api/roles/999", headers=admin_headers)
    assert missing.status_code == 404


async def test_audit_trail_lists_user_events(client, admin_headers, roles):
    await client.post("/api/users", headers=admin_headers, json={
        "email": "marta@erp.com", "password": "secret123", "name": "Marta", "role_id": roles["usuario"].id,
    })

    response = await client.get("/api/audit-logs", params={"action": "USER_CREATED"}, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["logs"][0]["actor_email"] == "admin@erp.com"
    assert data["logs"][0]["meta_data"]["email"] == "marta@erp.com"
