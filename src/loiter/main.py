"""Loiter application entrypoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from loiter import database
from loiter.config import settings

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup/shutdown lifecycle."""
    # Import models to register them with SQLModel before init_db()
    import loiter.analysis.models  # noqa: F401
    import loiter.registry.models  # noqa: F401

    database.init_db()
    logger.info("Database initialized")
    yield


app = FastAPI(
    title="Loiter",
    description="Device persistence analysis over GPS sightings",
    version="0.1.0",
    lifespan=lifespan,
)


# Register routers
from loiter.api.routes import router as api_router  # noqa: E402

app.include_router(api_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def main() -> None:
    import uvicorn

    logger.info("Starting Loiter on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
