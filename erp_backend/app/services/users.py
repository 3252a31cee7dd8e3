"""
User lookups shared by the auth and user endpoints.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erp_backend.app.core.exceptions import ResourceNotFoundError
from erp_backend.app.models.user import User
from erp_backend.app.schemas.auth import UserProfileResponse


def profile_response(user: User) -> UserProfileResponse:
    """User with role name and permission tags; ``user.role`` must be loaded."""
    return UserProfileResponse.model_validate(user).model_copy(
        update={"permissions": list(user.role.permissions or [])}
    )


async def load_user(db: AsyncSession, user_id: int) -> User:
    """User with its role, re-read from the database."""
    result = await db.execute(
        select(User)
        .options(selectinload(User.role))
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise ResourceNotFoundError("User", user_id)
    return user
