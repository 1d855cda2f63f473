# app/services/user_service.py
import logging

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import ALLOWED_ROLES
from app.core.exceptions import DuplicateKeyError, NotFoundError, ValidationFailedError
from app.core.security import hash_password
from app.models.user_models import User
from app.schemas.user_schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


def _check_role(role: str) -> str:
    role = (role or "").lower()
    if role not in ALLOWED_ROLES:
        raise ValidationFailedError(f"Role must be one of {sorted(ALLOWED_ROLES)}")
    return role


# ---------------------------
# CREATE USER
# ---------------------------
async def create_user(db: AsyncSession, user_data: UserCreate, current_user=None) -> User:
    username = user_data.username.strip().lower()
    email = user_data.email.lower()

    existing = await db.execute(
        select(User).where(or_(User.username == username, User.email == email))
    )
    if existing.scalars().first():
        raise DuplicateKeyError("User with this email or username already exists")

    new_user = User(
        username=username,
        email=email,
        first_name=user_data.first_name.strip(),
        last_name=user_data.last_name.strip(),
        password_hash=hash_password(user_data.password),
        role=_check_role(user_data.role),
        created_by=current_user.id if current_user else None,
    )
    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)
    logger.info(f"Created {new_user.role} '{new_user.username}'")
    return new_user


# ---------------------------
# LIST ALL USERS
# ---------------------------
async def list_users(db: AsyncSession, role: str = None):
    stmt = select(User).order_by(User.id)
    if role:
        stmt = stmt.where(User.role == role.lower(), User.is_active == True)
    result = await db.execute(stmt)
    return result.scalars().all()


# ---------------------------
# GET USER BY ID
# ---------------------------
async def get_user_by_id(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


# ---------------------------
# UPDATE USER
# ---------------------------
async def update_user(db: AsyncSession, user_id: int, user_data: UserUpdate) -> User:
    target_user = await get_user_by_id(db, user_id)

    if user_data.username:
        username = user_data.username.strip().lower()
        clash = await db.execute(select(User.id).where(User.username == username, User.id != user_id))
        if clash.first():
            raise DuplicateKeyError("Username already exists")
        target_user.username = username

    if user_data.email:
        email = user_data.email.lower()
        clash = await db.execute(select(User.id).where(User.email == email, User.id != user_id))
        if clash.first():
            raise DuplicateKeyError("Email already in use")
        target_user.email = email

    if user_data.first_name:
        target_user.first_name = user_data.first_name.strip()
    if user_data.last_name:
        target_user.last_name = user_data.last_name.strip()

    if user_data.password:
        target_user.password_hash = hash_password(user_data.password)
        target_user.token_version += 1

    if user_data.role:
        target_user.role = _check_role(user_data.role)
        target_user.token_version += 1

    if user_data.is_active is not None:
        target_user.is_active = user_data.is_active

    await db.commit()
    await db.refresh(target_user)
    return target_user


# ---------------------------
# DELETE USER
# ---------------------------
async def deactivate_user(db: AsyncSession, user_id: int) -> User:
    """Soft-delete: the user keeps referencing the transactions they recorded."""
    target_user = await get_user_by_id(db, user_id)
    target_user.is_active = False
    target_user.token_version += 1
    await db.commit()
    await db.refresh(target_user)
    logger.info(f"Deactivated user '{target_user.username}'")
    return target_user
