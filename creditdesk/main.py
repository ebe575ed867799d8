"""CreditDesk FastAPI application."""

# NOTE: dotenv loading is handled in config.py before Config is defined

import os
import time

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import BaseModel

from . import __version__
from .billing.router import router as billing_router
from .billing.router import stripe_router
from .billing.stripe_client import get_accessor
from .config import config
from .errors import ConfigurationError, CreditDeskError
from .logging_config import setup_logging, get_logger
from .monitoring.metrics import metrics as billing_metrics
from .routes.auth import router as auth_router


# Setup logging
setup_logging()
logger = get_logger(__name__)

# Validate configuration
warnings = config.validate()
if warnings:
    for warning in warnings:
        logger.warning(f"Configuration warning: {warning}")


app = FastAPI(
    title="CreditDesk",
    version=__version__,
    description="Prepaid credit billing backed by Stripe Checkout",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)
app.state.start_time = time.time()


@app.middleware("http")
async def request_id_and_security_headers(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or os.urandom(8).hex()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


@app.exception_handler(CreditDeskError)
async def creditdesk_error_handler(request: Request, exc: CreditDeskError):
    if isinstance(exc, ConfigurationError):
        # Never echo which secret is missing to the client
        logger.error(f"Configuration error on {request.url.path}: {exc.message}")
        return JSONResponse({"error": "Service unavailable"}, status_code=exc.http_status)
    if exc.http_status >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse({"error": exc.message}, status_code=exc.http_status)


app.include_router(billing_router)
app.include_router(stripe_router)
app.include_router(auth_router)

cors_origins = config.CORS_ORIGINS
if "*" in cors_origins:
    if config.is_production():
        raise RuntimeError(
            "CREDITDESK_CORS_ORIGINS cannot include '*' in production. "
            "Set explicit origins for the web app."
        )
    cors_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    logger.warning("CORS wildcard detected - using localhost origins. Set CREDITDESK_CORS_ORIGINS for production.")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class HealthResponse(BaseModel):
    ok: bool = True
    status: str
    version: str
    uptime_seconds: int
    stripe_client_initialized: bool


@app.on_event("startup")
async def startup_event():
    logger.info("Starting CreditDesk %s (environment=%s)", app.version, config.ENVIRONMENT)


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(
        status="healthy",
        version=app.version,
        uptime_seconds=int(time.time() - app.state.start_time),
        stripe_client_initialized=get_accessor().is_initialized,
    )


@app.get("/metrics")
def metrics():
    if not config.METRICS_ENABLED:
        raise HTTPException(
            status_code=503,
            detail="Metrics collection is disabled",
        )
    return Response(billing_metrics.render(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("creditdesk.main:app", host=config.HOST, port=config.PORT)
