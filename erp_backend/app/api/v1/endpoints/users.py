"""
User management API endpoints.

Self-service profile plus administrative user CRUD. Users are never
deleted: DELETE deactivates the account and revokes its tokens.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from sqlalchemy.orm import selectinload
from erp_backend.app.db.session import get_db
from erp_backend.app.models.role import Role
from erp_backend.app.models.user import User
from erp_backend.app.schemas.auth import UserCreate, UserUpdate, ProfileUpdate, UserProfileResponse
from erp_backend.app.schemas.common import MessageResponse, Page, build_pagination
from erp_backend.app.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from erp_backend.app.core.dependencies import get_current_user
from erp_backend.app.core.guards import require_permission
from erp_backend.app.core.permissions import Permission
from erp_backend.app.core.security import get_password_hash
from erp_backend.app.core.token_revocation import revoke_all_user_tokens, clear_user_token_revocation
from erp_backend.app.services.users import load_user, profile_response
from erp_backend.app.services.audit import log_event, AuditAction, client_ip

router = APIRouter(prefix="/users", tags=["Users"])


async def _ensure_email_free(db: AsyncSession, email: str, user_id: Optional[int] = None) -> None:
    query = select(User.id).where(User.email == email)
    if user_id is not None:
        query = query.where(User.id != user_id)
    result = await db.execute(query)
    if result.scalar_one_or_none() is not None:
        raise ConflictError("Email already registered", field="email", value=email)


async def _ensure_role_exists(db: AsyncSession, role_id: int) -> Role:
    role = await db.get(Role, role_id)
    if not role:
        raise ResourceNotFoundError("Role", role_id)
    return role


# Literal paths first: "/profile" must not be captured by "/{user_id}"

@router.get("/profile", response_model=UserProfileResponse)
async def get_my_profile(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await load_user(db, current_user["user_id"])
    return profile_response(user)


@router.put("/profile", response_model=UserProfileResponse)
async def update_my_profile(
    data: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update own name, email or password."""
    user = await load_user(db, current_user["user_id"])

    if data.email and data.email != user.email:
        await _ensure_email_free(db, data.email, user.id)
        user.email = data.email
    if data.name:
        user.name = data.name
    if data.password:
        user.hashed_password = get_password_hash(data.password)

    await db.commit()
    return profile_response(await load_user(db, user.id))


@router.get("", response_model=Page[UserProfileResponse])
async def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    search: str = Query("", description="Case-insensitive match on name or email"),
    current_user: dict = Depends(require_permission(Permission.USERS_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Active users, newest first."""
    filters = [User.is_active.is_(True)]
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))

    total = (await db.execute(select(func.count(User.id)).where(*filters))).scalar() or 0

    result = await db.execute(
        select(User)
        .options(selectinload(User.role))
        .where(*filters)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    users = result.scalars().all()

    return Page[UserProfileResponse](
        items=[profile_response(u) for u in users],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/{user_id}", response_model=UserProfileResponse)
async def get_user(
    user_id: int,
    current_user: dict = Depends(require_permission(Permission.USERS_READ)),
    db: AsyncSession = Depends(get_db)
):
    return profile_response(await load_user(db, user_id))


@router.post("", response_model=UserProfileResponse, status_code=201)
async def create_user(
    data: UserCreate,
    request: Request,
    current_user: dict = Depends(require_permission(Permission.USERS_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    await _ensure_email_free(db, data.email)
    role = await _ensure_role_exists(db, data.role_id)

    new_user = User(
        email=data.email,
        name=data.name,
        hashed_password=get_password_hash(data.password),
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
        actor=current_user,
        entity_type="user",
        entity_id=user.id,
        metadata={"email": user.email, "role": role.name},
        ip_address=client_ip(request)
    )

    return response


@router.put("/{user_id}", response_model=UserProfileResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    request: Request,
    current_user: dict = Depends(require_permission(Permission.USERS_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Partial update of another user.

    Deactivation revokes every token of the user; reactivation lifts it.
    """
    user = await load_user(db, user_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    was_active = user.is_active

    if "email" in changes and changes["email"] != user.email:
        await _ensure_email_free(db, changes["email"], user.id)
    if "role_id" in changes:
        await _ensure_role_exists(db, changes["role_id"])
    if changes.get("is_active") is False and user.id == current_user["user_id"]:
        raise ValidationError("You cannot deactivate your own account")

    password = changes.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)
    for field, value in changes.items():
        setattr(user, field, value)

    await db.commit()

    if was_active and not user.is_active:
        await revoke_all_user_tokens(user.id)
    elif not was_active and user.is_active:
        await clear_user_token_revocation(user.id)

    user = await load_user(db, user_id)
    response = profile_response(user)

    await log_event(
        db=db,
        action=AuditAction.USER_UPDATED,
        actor=current_user,
        entity_type="user",
        entity_id=user.id,
        metadata={"fields": sorted(data.model_dump(exclude_unset=True, exclude_none=True))},
        ip_address=client_ip(request)
    )

    return response


@router.delete("/{user_id}", response_model=MessageResponse)
async def deactivate_user(
    user_id: int,
    request: Request,
    current_user: dict = Depends(require_permission(Permission.USERS_DELETE)),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete: deactivate the user and terminate all of their sessions."""
    if user_id == current_user["user_id"]:
        raise ValidationError("You cannot deactivate your own account")

    user = await load_user(db, user_id)
    user.is_active = False
    await db.commit()

    await revoke_all_user_tokens(user_id)

    await log_event(
        db=db,
        action=AuditAction.USER_DEACTIVATED,
        actor=current_user,
        entity_type="user",
        entity_id=user_id,
        ip_address=client_ip(request)
    )

    return MessageResponse(message="User deactivated")
