# app/middleware/activity_logger.py
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.db import get_db
from app.utils.activity_helpers import log_user_activity

logger = logging.getLogger(__name__)

MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class ActivityLoggerMiddleware(BaseHTTPMiddleware):
    """Record every successful mutating request made by an authenticated user."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        # set by get_current_user during the request
        user = getattr(request.state, "user", None)
        if user is None or request.method not in MUTATING_METHODS or response.status_code >= 400:
            return response

        session_provider = request.app.dependency_overrides.get(get_db, get_db)
        try:
            message = f"{user.role.capitalize()} {user.username} performed {request.method} on {request.url.path}"
            async for db in session_provider():
                await log_user_activity(
                    db,
                    user_id=user.id,
                    username=user.username,
                    message=message,
                    method=request.method,
                    path=request.url.path,
                    commit=True,
                )
        except Exception:
            logger.exception(f"Failed to log activity for {request.method} {request.url.path}")

        return response
