"""Main application module for the roster verification service."""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roster_verify.api import router as api_v1_router
from roster_verify.core.config import settings
from roster_verify.core.container import container
from roster_verify.core.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[Any, None]:
    """Load the embedding provider and database engine once per process.

    Args:
        app: FastAPI application instance
    """
    logger.info(
        "Starting up roster verification service",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        embedding_dimension=settings.EMBEDDING_DIMENSION,
        threshold=settings.VERIFICATION_THRESHOLD,
    )

    await container.initialize()
    logger.info("Initialized application services")

    yield

    logger.info("Shutting down roster verification service")
    await container.cleanup()
    logger.info("Cleaned up application resources")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint.

    Returns:
        dict: Health status
    """
    return {"status": "healthy", "version": settings.VERSION}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("roster_verify.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
