"""API routers."""

from .auth import router as auth_router
from .tasks import router as tasks_router
from .capture import router as capture_router
from .views import router as views_router, progress_router

__all__ = ['auth_router', 'tasks_router', 'capture_router', 'views_router', 'progress_router']
