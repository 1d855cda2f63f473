# app/utils/request_context.py
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from app.models.user_models import User
from app.services.ledger_service import Provenance
from app.utils.get_user import get_current_user


@dataclass
class RequestContext:
    """Who is acting and where the request came from, passed explicitly to services."""

    user: User
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None

    @property
    def provenance(self) -> Provenance:
        return Provenance(user_agent=self.user_agent, ip_address=self.ip_address)


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_request_context(
    request: Request,
    user: User = Depends(get_current_user),
) -> RequestContext:
    return RequestContext(
        user=user,
        user_agent=request.headers.get("user-agent"),
        ip_address=client_ip(request),
    )
