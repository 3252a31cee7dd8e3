"""
Authentication API endpoints.

Provides login, register, logout and profile endpoints.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from erp_backend.app.db.session import get_db
from erp_backend.app.models.role import Role
from erp_backend.app.models.user import User
from erp_backend.app.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserProfileResponse
from erp_backend.app.schemas.common import MessageResponse
from erp_backend.app.core.exceptions import (
    AuthenticationError, ConflictError, InsufficientPermissionsError, ResourceNotFoundError,
)
from erp_backend.app.core.permissions import ADMIN_ROLE
from erp_backend.app.core.security import get_password_hash, verify_password
from erp_backend.app.core.jwt import create_access_token
from erp_backend.app.core.dependencies import get_bearer_token, get_current_user
from erp_backend.app.core.token_revocation import revoke_token
from erp_backend.app.services.audit import log_auth_event, log_event, AuditAction, client_ip
from erp_backend.app.services.users import load_user, profile_response

router = APIRouter(prefix="/auth", tags=["Authentication"])

DEFAULT_ROLE = "usuario"


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.

    Logs successful and failed login attempts for security monitoring.
    Unknown email, wrong password and inactive account all answer 401.
    """
    result = await db.execute(
        select(User).options(selectinload(User.role)).where(User.email == credentials.email)
    )
    user = result.scalar_one_or_none()

    reason = None
    if not user:
        reason = "User not found"
    elif not verify_password(credentials.password, user.hashed_password):
        reason = "Invalid password"
    elif not user.is_active:
        reason = "Account is inactive"

    if reason:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id if user else None,
            email=credentials.email,
            ip_address=client_ip(request),
            metadata={"reason": reason}
        )
        raise AuthenticationError("Invalid credentials")

    jwt_payload = {
        "sub": user.email,
        "user_id": user.id,
        "role": user.role.name,
    }
    access_token = create_access_token(data=jwt_payload)
    response = TokenResponse(access_token=access_token, token_type="bearer", user=profile_response(user))

    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        email=user.email,
        ip_address=client_ip(request)
    )

    return response


@router.post("/register", response_model=UserProfileResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user.

    - The admin role cannot be assigned through registration.
    - Without role_id the user gets the "usuario" role.
    """
    existing = await db.execute(select(User.id).where(User.email == user_data.email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Email already registered", field="email", value=user_data.email)

    if user_data.role_id is not None:
        role = await db.get(Role, user_data.role_id)
        if not role:
            raise ResourceNotFoundError("Role", user_data.role_id)
    else:
        role_result = await db.execute(select(Role).where(Role.name == DEFAULT_ROLE))
        role = role_result.scalar_one_or_none()
        if not role:
            raise ResourceNotFoundError("Role", DEFAULT_ROLE)

    if role.name == ADMIN_ROLE:
        raise InsufficientPermissionsError("Admin users cannot be registered via API")

    new_user = User(
        email=user_data.email,
        name=user_data.name,
        hashed_password=get_password_hash(user_data.password),
        role_id=role.id,
        is_active=True,
    )
    db.add(new_user)
    await db.commit()

    user = await load_user(db, new_user.id)
    response = profile_response(user)

    await log_event(
        db=db,
        action=AuditAction.USER_CREATED,
        actor={"user_id": user.id, "sub": user.email},
        entity_type="user",
        entity_id=user.id,
        metadata={"role": role.name, "source": "register"},
        ip_address=client_ip(request)
    )

    return response


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    token: str = Depends(get_bearer_token),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented token; it is rejected from now on."""
    await revoke_token(token, current_user["user_id"])

    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=current_user["user_id"],
        email=current_user["sub"],
        ip_address=client_ip(request)
    )

    return MessageResponse(message="Logged out successfully")


@router.get("/profile", response_model=UserProfileResponse)
async def get_profile(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Current user's information with role and permissions."""
    user = await load_user(db, current_user["user_id"])
    return profile_response(user)
