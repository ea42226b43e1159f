"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.adapters.gateway import OpenAICompatibleGateway
from app.adapters.supabase import SupabaseIdentityProvider
from app.config import settings
from app.database import init_db
from app.errors import MisconfiguredError, RelayError
from app.routers import chat

# ── Logging setup ────────────────────────────────────────────────────
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup — missing credentials fail here, not on the first request
    if settings.env == "development":
        await init_db()

    gateway = OpenAICompatibleGateway.from_settings(settings)
    try:
        identity_provider = SupabaseIdentityProvider.from_settings(settings)
    except MisconfiguredError:
        await gateway.aclose()
        raise
    app.state.gateway = gateway
    app.state.identity_provider = identity_provider
    logger.info(
        "Chat relay ready (model %s via %s)", app.state.gateway.model, app.state.gateway.url
    )

    yield

    # Shutdown
    await app.state.gateway.aclose()
    await app.state.identity_provider.aclose()


app = FastAPI(
    title="TaskHive",
    description="Project management assistant relay",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.kind, request.url.path, exc.detail or exc.message)
    else:
        logger.info("%s on %s: %s", exc.kind, request.url.path, exc.detail or exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Invalid request on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=422, content={"error": "Invalid request body"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Mount routers
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])


@app.get("/health")
async def health(request: Request):
    gateway = getattr(request.app.state, "gateway", None)
    return {
        "status": "ok",
        "service": "taskhive",
        "gateway": {
            "configured": gateway is not None,
            "model": settings.ai_model,
        },
    }
