"""FastAPI application factory and entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from schoolpay.config import settings
from schoolpay.database import close_db
from schoolpay.exceptions import create_exception_handlers
from schoolpay.middleware.auth import AuthMiddleware

log_level = logging.DEBUG if settings.is_development else getattr(logging, settings.app_log_level)
logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    force=True,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} ({settings.app_env}, log level {logging.getLevelName(log_level)})")
    yield
    logger.info(f"Shutting down {settings.app_name}")
    await close_db()


def create_app() -> FastAPI:
    """Build the application: middleware, error handlers and routes."""
    docs_enabled = settings.app_debug
    app = FastAPI(
        title=settings.app_name,
        description="Fee configuration versioning and teacher payroll for schools",
        version="1.0.0",
        docs_url="/api/docs" if docs_enabled else None,
        redoc_url="/api/redoc" if docs_enabled else None,
        openapi_url="/api/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [settings.app_base_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(AuthMiddleware)

    for exc_class, handler in create_exception_handlers().items():
        app.add_exception_handler(exc_class, handler)

    register_routers(app)
    return app


def register_routers(app: FastAPI) -> None:
    """Mount the versioned API and the liveness probe."""
    from schoolpay.api.v1 import api_router

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness probe; needs no token."""
        return {"status": "healthy", "app": settings.app_name, "env": settings.app_env}


app = create_app()


def main():
    """Run the service under uvicorn."""
    import uvicorn

    uvicorn.run(
        "schoolpay.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.app_log_level.lower(),
    )


if __name__ == "__main__":
    main()
