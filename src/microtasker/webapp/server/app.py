"""FastAPI application for the MicroTasker web API."""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ... import __version__
from ...config import ConfigModel, get_config
from .routes import auth_router, tasks_router, capture_router, views_router, progress_router
from .middleware import AuthMiddleware, optional_auth
from .models import User
from .database import get_db
from .auth import get_auth_service


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown tasks.
    """
    logger.info("Starting MicroTasker API")

    db = get_db()
    logger.info(f"Database initialized at {db.db_path}")

    auth_service = get_auth_service()
    cleaned = auth_service.cleanup_expired_sessions()
    if cleaned > 0:
        logger.info(f"Cleaned up {cleaned} expired sessions")

    yield

    logger.info("Shutting down MicroTasker API")


def create_app(config: Optional[ConfigModel] = None) -> FastAPI:
    """Build the application with CORS origins and log level from config."""
    config = config or get_config()
    logging.getLogger("microtasker").setLevel(config.log_level.upper())

    app = FastAPI(
        title="MicroTasker",
        description="Quick-capture micro tasks with recurring routines",
        version=__version__,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Resolve the bearer token once per request
    app.middleware("http")(AuthMiddleware(app))

    app.include_router(auth_router)
    app.include_router(tasks_router)
    app.include_router(capture_router)
    app.include_router(views_router)
    app.include_router(progress_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": "microtasker",
            "version": __version__
        }

    @app.get("/")
    async def root(user: Optional[User] = Depends(optional_auth)):
        """API information; includes the caller's email when signed in."""
        return {
            "service": "MicroTasker",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "user": user.email if user else None,
            "api": {
                "auth": "/api/auth",
                "tasks": "/api/tasks",
                "capture": "/api/capture",
                "views": "/api/views",
                "progress": "/api/progress"
            }
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """Turn unexpected exceptions into a 500 JSON response."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "type": "internal_error"
            }
        )

    return app


app = create_app()


def start_server(host: Optional[str] = None, port: Optional[int] = None, reload: bool = False):
    """Run the API with uvicorn."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "microtasker.webapp.server.app:app",
        host=host or config.host,
        port=port or config.port,
        reload=reload,
        log_level=config.log_level.lower()
    )


if __name__ == "__main__":
    start_server(reload=True)
