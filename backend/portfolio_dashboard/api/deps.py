"""FastAPI dependencies."""

from fastapi import Depends, Header

from portfolio_dashboard.errors import AuthenticationError
from portfolio_dashboard.models.user import AuthUser
from portfolio_dashboard.services.auth import AuthService
from portfolio_dashboard.services.container import (
    get_auth_service,
    get_dashboard_service,
    get_portfolio_service,
)

__all__ = [
    "get_auth_service",
    "get_current_user",
    "get_dashboard_service",
    "get_portfolio_service",
]


async def get_current_user(
    authorization: str | None = Header(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> AuthUser:
    """Resolve the `Authorization: Bearer <token>` header to the calling user."""
    if not authorization:
        raise AuthenticationError("Not authenticated")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Not authenticated")
    return await auth.authenticate(token.strip())
