# app/utils/get_user.py
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.db import get_db
from app.core.exceptions import UnauthorizedError
from app.core.security import decode_token
from app.models.user_models import User


async def get_current_user(
    request: Request,
    token: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    # Support either header
    raw_token = token
    if not raw_token and authorization and authorization.startswith("Bearer "):
        raw_token = authorization.split("Bearer ", 1)[1].strip()

    if not raw_token:
        raise UnauthorizedError("Missing access token", status_code=401)

    try:
        payload = decode_token(raw_token, expected_type="access")
    except ValueError:
        raise UnauthorizedError("Invalid or expired token", status_code=401)

    username = payload.get("sub")
    token_version = payload.get("token_version")
    if not username or token_version is None:
        raise UnauthorizedError("Invalid token payload", status_code=401)

    result = await db.execute(select(User).where(User.username == username))
    user = result.scalars().first()
    if not user:
        raise UnauthorizedError("User not found", status_code=401)
    if user.token_version != token_version:
        raise UnauthorizedError("Token invalidated. Please log in again.", status_code=401)
    if not user.is_active:
        raise UnauthorizedError("User account is inactive.", status_code=401)

    request.state.user = user
    return user
