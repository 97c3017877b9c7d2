"""
FoodDiscover API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import Settings, get_settings
from .database import Base, make_engine, make_session_factory
from .limiter import configure_limiter
from .logging_config import api_logger
from .middleware import SecurityHeadersMiddleware, RequestLoggingMiddleware
from .responses import register_exception_handlers
from .routes import auth_router, users_router, foods_router, health_router
from . import models  # noqa: F401  registers tables on Base


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup (use migrations in production)."""
    Base.metadata.create_all(bind=app.state.engine)
    api_logger.info(
        "FoodDiscover API started",
        environment=app.state.settings.environment,
        upload_dir=app.state.settings.upload_dir,
    )
    yield
    app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around one immutable settings object."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Food discovery backend: accounts, profiles and food listings",
        version="1.0.0",
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    # Every Depends(get_settings) in this app resolves to the same object
    app.dependency_overrides[get_settings] = lambda: settings

    app.state.engine = make_engine(settings.database_url)
    app.state.session_factory = make_session_factory(app.state.engine)
    app.state.limiter = configure_limiter(settings)
    register_exception_handlers(app)

    app.add_middleware(SecurityHeadersMiddleware)
    if settings.debug:
        app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "Accept",
            "Origin",
            "X-Requested-With",
        ],
        max_age=3600,
    )

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(foods_router)
    app.include_router(health_router)

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.uploads_url_prefix,
        StaticFiles(directory=settings.upload_dir),
        name="uploads",
    )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("fooddiscover.main:app", host=settings.host, port=settings.port, reload=settings.debug)
