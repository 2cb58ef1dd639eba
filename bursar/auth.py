"""Authentication helpers for request-scoped user context."""

from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.database import get_db
from bursar.models import User
from bursar.security import decode_access_token
from bursar.utils import raise_unauthorized

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_current_user_id(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> UUID:
    """Resolve the current user ID from the bearer token."""
    payload = decode_access_token(token)
    if not payload:
        raise_unauthorized("Could not validate credentials")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise_unauthorized("Token missing subject")

    try:
        user_uuid = UUID(user_id_str)
    except ValueError as exc:
        raise_unauthorized("Invalid user ID format in token", cause=exc)

    result = await db.execute(select(User.id).where(User.id == user_uuid))
    if result.scalar_one_or_none() is None:
        raise_unauthorized("User not found")

    return user_uuid
