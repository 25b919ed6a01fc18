"""Middleware package."""

from .auth_middleware import (
    AuthMiddleware,
    get_bearer_token,
    get_current_user,
    require_auth,
    optional_auth,
)

__all__ = [
    'AuthMiddleware',
    'get_bearer_token',
    'get_current_user',
    'require_auth',
    'optional_auth',
]
