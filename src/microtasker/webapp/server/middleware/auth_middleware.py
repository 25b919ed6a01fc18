"""Authentication middleware and dependencies for FastAPI."""

from typing import Optional, Callable
from fastapi import Request, HTTPException, status
import logging

from ..auth import AuthService, get_auth_service
from ..models import User


logger = logging.getLogger(__name__)


def get_bearer_token(request: Request) -> Optional[str]:
    """Extract the bearer token from the Authorization header."""
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


async def get_current_user(
    request: Request,
    auth_service: Optional[AuthService] = None
) -> Optional[User]:
    """Get current authenticated user from request.

    Args:
        request: FastAPI request
        auth_service: Auth service instance (optional)

    Returns:
        User instance or None if not authenticated
    """
    if auth_service is None:
        auth_service = get_auth_service()

    access_token = get_bearer_token(request)
    if access_token is None:
        return None

    return auth_service.get_current_user(access_token)


async def require_auth(request: Request) -> User:
    """Require authentication for a route.

    Raises:
        HTTPException: If not authenticated
    """
    user = getattr(request.state, "user", None)
    if user is None:
        user = await get_current_user(request)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled"
        )

    return user


async def optional_auth(request: Request) -> Optional[User]:
    """Optional authentication for a route."""
    return getattr(request.state, "user", None) or await get_current_user(request)


class AuthMiddleware:
    """Middleware to inject user into request state."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, request: Request, call_next: Callable):
        """Resolve the bearer token once per request."""
        request.state.user = await get_current_user(request)
        return await call_next(request)
