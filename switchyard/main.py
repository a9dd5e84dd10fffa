"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from switchyard.api.v1 import router as v1_router
from switchyard.api.v1.auth import get_token_service
from switchyard.core.config import settings
from switchyard.services.openid_provider import OpenIDConfig, OpenIDProvider

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Fail fast on a bad JWT secret or an unreachable OpenID provider."""
    get_token_service()
    app.state.openid_provider = None
    if settings.OPENID_ENABLED:
        app.state.openid_provider = await OpenIDProvider.discover(
            OpenIDConfig.from_settings(settings)
        )
    logger.info(
        "Switchyard API started",
        extra={"env": settings.APP_ENV, "openid": settings.OPENID_ENABLED},
    )
    yield


app = FastAPI(
    title="Switchyard API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Switchyard API"}
