# app/utils/check_roles.py
from typing import Callable
from functools import wraps

from app.core.exceptions import UnauthorizedError


def has_role(user, roles: list[str]) -> bool:
    return user is not None and (user.role or "").lower() in [r.lower() for r in roles]


def require_role(roles: list[str]):
    """Decorator to validate user role; expects user to be passed by route."""
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, _user, **kwargs):
            if _user is None:
                raise UnauthorizedError("User not authenticated", status_code=401)
            if not has_role(_user, roles):
                raise UnauthorizedError("Permission denied")
            return await func(*args, _user=_user, **kwargs)
        return wrapper
    return decorator
