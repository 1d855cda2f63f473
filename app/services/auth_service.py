# app/services/auth_service.py
from typing import Dict, Tuple

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.exceptions import UnauthorizedError, ValidationFailedError, DuplicateKeyError
from app.core.security import (
    verify_password,
    hash_password,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from app.models.user_models import User, RefreshToken
from app.utils.time_utils import local_now


async def authenticate_user(db: AsyncSession, username: str, password: str) -> User:
    """Accepts either the username or the email address."""
    login = (username or "").strip().lower()
    result = await db.execute(
        select(User).where(or_(User.username == login, User.email == login))
    )
    user = result.scalars().first()
    if not user or not verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid credentials", status_code=401)
    if not user.is_active:
        raise UnauthorizedError("Account deactivated. Contact an administrator.", status_code=401)
    return user


async def create_tokens(db: AsyncSession, user: User) -> Tuple[str, str]:
    """
    Issue an access/refresh pair and persist the refresh token.
    The access token embeds token_version so logout invalidates it at once.
    """
    access_token = create_access_token(user.id, user.username, user.role, user.token_version)
    refresh_token = create_refresh_token(user.id, user.username)

    db.add(RefreshToken(user_id=user.id, token=refresh_token))
    user.last_login = local_now()
    await db.commit()
    await db.refresh(user)

    return access_token, refresh_token


async def refresh_access_token(db: AsyncSession, old_refresh_token: str) -> Dict:
    """
    Rotate refresh token: must find the DB record and ensure it is not revoked.
    Marks old token revoked and issues a new refresh token record.
    """
    try:
        decode_token(old_refresh_token, expected_type="refresh")
    except ValueError:
        raise UnauthorizedError("Invalid or expired refresh token", status_code=401)

    result = await db.execute(
        select(RefreshToken).where(RefreshToken.token == old_refresh_token)
    )
    db_token = result.scalars().first()

    if not db_token or db_token.revoked:
        raise UnauthorizedError("Invalid or reused refresh token", status_code=401)

    user = db_token.user
    if not user or not user.is_active:
        raise UnauthorizedError("User account is inactive.", status_code=401)

    db_token.revoked = True

    new_access_token = create_access_token(user.id, user.username, user.role, user.token_version)
    new_refresh_token = create_refresh_token(user.id, user.username)
    db.add(RefreshToken(user_id=user.id, token=new_refresh_token))
    await db.commit()

    return {
        "access_token": new_access_token,
        "refresh_token": new_refresh_token,
        "token_type": "bearer",
    }


async def logout_user(db: AsyncSession, user: User) -> Dict:
    user.token_version += 1

    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user.id)
        .values(revoked=True)
    )
    await db.commit()

    return {"msg": "Logged out successfully"}


async def update_details(db: AsyncSession, user: User, data: dict) -> User:
    email = data.get("email")
    if email and email.lower() != user.email:
        taken = await db.execute(select(User.id).where(User.email == email.lower(), User.id != user.id))
        if taken.first():
            raise DuplicateKeyError("Email already in use")
        user.email = email.lower()
    for key in ("first_name", "last_name"):
        if data.get(key):
            setattr(user, key, data[key].strip())
    await db.commit()
    await db.refresh(user)
    return user


async def update_password(db: AsyncSession, user: User, current_password: str, new_password: str) -> Tuple[str, str]:
    """Change the password and hand back a fresh token pair; older tokens stop working."""
    if not verify_password(current_password, user.password_hash):
        raise UnauthorizedError("Current password is incorrect", status_code=401)
    if len(new_password) < 6:
        raise ValidationFailedError("Password must be at least 6 characters")

    user.password_hash = hash_password(new_password)
    user.token_version += 1
    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user.id)
        .values(revoked=True)
    )
    return await create_tokens(db, user)
