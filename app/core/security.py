# app/core/security.py
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from app.core.config import (
    JWT_SECRET,
    JWT_ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES,
    REFRESH_TOKEN_EXPIRE_DAYS,
    ROLE_ADMIN,
)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def _encode(claims: Dict[str, Any], token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload.update({"iat": now, "exp": now + lifetime, "type": token_type})
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def access_token_lifetime(role: str) -> timedelta:
    minutes = ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES if role == ROLE_ADMIN else ACCESS_TOKEN_EXPIRE_MINUTES
    return timedelta(minutes=minutes)


def create_access_token(
    user_id: int,
    username: str,
    role: str,
    token_version: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Short lived token identifying the acting user.
    `token_version` lets logout invalidate every token issued before it.
    """
    claims = {
        "sub": username,
        "user_id": user_id,
        "role": role,
        "token_version": token_version,
    }
    return _encode(claims, "access", expires_delta or access_token_lifetime(role))


def create_refresh_token(user_id: int, username: str, expires_delta: Optional[timedelta] = None) -> str:
    # jti keeps tokens issued within the same second distinct
    claims = {"sub": username, "user_id": user_id, "jti": uuid.uuid4().hex}
    return _encode(claims, "refresh", expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str, expected_type: Optional[str] = None) -> Dict:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise ValueError("Invalid or expired token")
    if expected_type and payload.get("type") != expected_type:
        raise ValueError("Invalid token type")
    return payload
