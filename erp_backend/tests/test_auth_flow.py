"""
Integration tests for the authentication flow.

Register -> Login -> Profile -> Logout, plus token revocation and the
error envelope.
"""

from sqlalchemy import select

from erp_backend.app.models.audit_log import AuditLog


async def test_register_defaults_to_basic_role(client, roles):
    response = await client.post("/api/auth/register", json={
        "email": "nuevo@erp.com",
        "password": "secret123",
        "name": "Nuevo Usuario",
    })

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "nuevo@erp.com"
    assert data["role"]["name"] == "usuario"
    assert data["permissions"] == ["dashboard:read", "profile:read"]
    assert "hashed_password" not in data


async def test_register_duplicate_email_conflicts(client, basic_user):
    response = await client.post("/api/auth/register", json={
        "email": basic_user.email,
        "password": "secret123",
        "name": "Copy",
    })

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_CONFLICT"
    assert body["details"]["field"] == "email"


async def test_register_unknown_role_is_not_found(client, roles):
    response = await client.post("/api/auth/register", json={
        "email": "x@erp.com", "password": "secret123", "name": "X", "role_id": 999,
    })
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


async def test_register_cannot_pick_admin_role(client, roles):
    response = await client.post("/api/auth/register", json={
        "email": "x@erp.com", "password": "secret123", "name": "X", "role_id": roles["admin"].id,
    })
    assert response.status_code == 403


async def test_register_missing_fields_is_validation_error(client, roles):
    response = await client.post("/api/auth/register", json={"email": "x@erp.com"})
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION"


async def test_login_returns_token_and_profile(client, accountant_user):
    response = await client.post("/api/auth/login", json={"email": "ana@erp.com", "password": "secret123"})

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["role"]["name"] == "contabilidad"
    assert "contabilidad:write" in data["user"]["permissions"]

    profile = await client.get(
        "/api/auth/profile", headers={"Authorization": f"Bearer {data['access_token']}"}
    )
    assert profile.status_code == 200
    assert profile.json()["email"] == "ana@erp.com"


async def test_login_wrong_password_is_401_and_audited(client, db_session, accountant_user):
    response = await client.post("/api/auth/login", json={"email": "ana@erp.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"

    result = await db_session.execute(select(AuditLog).where(AuditLog.action == "LOGIN_FAILED"))
    log = result.scalar_one()
    assert log.actor_id == accountant_user.id
    assert log.meta_data == {"reason": "Invalid password"}


async def test_login_unknown_email_is_401(client, roles):
    response = await client.post("/api/auth/login", json={"email": "ghost@erp.com", "password": "secret123"})
    assert response.status_code == 401


async def test_login_inactive_user_is_401(client, create_user):
    await create_user("usuario", email="old@erp.com", is_active=False)
    response = await client.post("/api/auth/login", json={"email": "old@erp.com", "password": "secret123"})
    assert response.status_code == 401


async def test_missing_token_is_401(client):
    response = await client.get("/api/auth/profile")
    assert response.status_code == 401
    assert response.json()["message"] == "Access token required"


async def test_garbage_token_is_401(client):
    response = await client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_logout_revokes_token(client, basic_headers, mock_redis):
    response = await client.post("/api/auth/logout", headers=basic_headers)
    assert response.status_code == 200
    assert any(key.startswith("blacklist:token:") for key in mock_redis.store)

    again = await client.get("/api/auth/profile", headers=basic_headers)
    assert again.status_code == 401
    assert again.json()["message"] == "Token has been revoked"


async def test_token_of_deleted_user_is_rejected(client, headers_for):
    from erp_backend.app.models.user import User

    ghost = User(id=4242, email="ghost@erp.com")
    response = await client.get("/api/auth/profile", headers=headers_for(ghost, "usuario"))
    assert response.status_code == 401


async def test_forbidden_capability_is_403(client, basic_headers):
    response = await client.get("/api/accounting/accounts", headers=basic_headers)

    assert response.status_code == 403
    body = response.json()
    assert body["error_code"] == "ERR_PERM_001"
    assert body["details"]["required"] == "contabilidad:read"


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["redis"] == "up"
