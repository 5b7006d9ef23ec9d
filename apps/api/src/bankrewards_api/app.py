from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from loguru import logger

from bankrewards_api.core.settings import settings
from bankrewards_api.db.session import async_session, init_models
from .api.errors import loyalty_request_validation_handler
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing
from .services.loyalty import (
    CustomerLockRegistry,
    InMemoryLoyaltyRepository,
    SqlAlchemyLoyaltyRepository,
    seed_defaults,
)


APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    backend = app.state.repository_backend

    if backend == "sql":
        if settings.database_auto_create:
            await init_models()
            logger.info("Database schema ensured", database_url=settings.database_url.split("@")[-1])
        if settings.seed_demo_data:
            async with async_session() as session:
                await seed_defaults(SqlAlchemyLoyaltyRepository(session, locks=app.state.customer_locks))
    elif settings.seed_demo_data:
        await seed_defaults(app.state.loyalty_repository)

    logger.info(
        "Loyalty engine ready",
        repository_backend=backend,
        tier_auto_promotion=settings.tier_auto_promotion_enabled,
        seed_demo_data=settings.seed_demo_data,
    )
    yield


def create_app() -> FastAPI:
    """Application factory for the bank rewards API service."""
    configure_logging(
        service_name="bankrewards-api",
        environment=settings.environment,
        version=APP_VERSION,
        level=settings.log_level,
    )

    app = FastAPI(
        title="Bank Rewards API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.repository_backend = settings.repository_backend
    app.state.customer_locks = CustomerLockRegistry()
    app.state.loyalty_repository = InMemoryLoyaltyRepository(locks=app.state.customer_locks)

    configure_tracing(
        app,
        service_name="bankrewards-api",
        service_version=APP_VERSION,
        environment=settings.environment,
    )

    app.add_exception_handler(RequestValidationError, loyalty_request_validation_handler)
    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
