import logging
from contextlib import asynccontextmanager

import stripe
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401
from .config import FRONTEND_ORIGINS
from .database import Base, engine
from .domain.bookings.router import router as bookings_router
from .domain.catalog.router import router as catalog_router
from .domain.discounts.router import router as discounts_router
from .domain.payments.router import router as payments_router
from .rate_limiter import get_redis_client
from .routes.admin import router as admin_router
from .routes.admin_hapio import router as admin_hapio_router
from .routes.cal import router as cal_router
from .routes.services import router as services_router
from .routes.subscribe import router as subscribe_router
from .routes.webhooks import router as webhooks_router
from .security_headers import SecurityHeadersMiddleware
from .services.stripe_service import StripeNotConfiguredError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("stripe").setLevel(logging.WARNING)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("Database tables created successfully")

    if get_redis_client():
        logger.info("Redis connection established")
    else:
        logger.warning("Redis unavailable - rate limits and caches are per-process")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Aura Studio API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Every error body carries an `error` message; dict details pass through"""
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning(f"Validation error for {request.url.path}: {errors}")

    message = "Invalid request"
    if errors:
        message = str(errors[0].get("msg", message)).removeprefix("Value error, ")

    details = [
        {"field": ".".join(str(p) for p in e.get("loc", ())[1:]), "message": e.get("msg")}
        for e in errors
    ]
    return JSONResponse(status_code=422, content={"error": message, "details": details})


@app.exception_handler(StripeNotConfiguredError)
async def stripe_not_configured_handler(request: Request, exc: StripeNotConfiguredError):
    logger.error(f"❌ {exc} ({request.url.path})")
    return JSONResponse(status_code=500, content={"error": "Server configuration error"})


@app.exception_handler(stripe.StripeError)
async def stripe_error_handler(request: Request, exc: stripe.StripeError):
    logger.error(f"❌ Stripe error on {request.url.path}: {exc.user_message or exc}")
    status_code = exc.http_status if exc.http_status and exc.http_status < 500 else 502
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.user_message or "Payment provider error", "details": getattr(exc, "code", None)},
    )


app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])

logger.info(f"CORS allowed origins: {FRONTEND_ORIGINS}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=FRONTEND_ORIGINS,
    allow_credentials=True,  # admin session cookie
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Routes
app.include_router(services_router, prefix=API_PREFIX)
app.include_router(cal_router, prefix=API_PREFIX)
app.include_router(payments_router, prefix=API_PREFIX)
app.include_router(bookings_router, prefix=API_PREFIX)
app.include_router(subscribe_router, prefix=API_PREFIX)
app.include_router(admin_router, prefix=API_PREFIX)
app.include_router(admin_hapio_router, prefix=API_PREFIX)
app.include_router(catalog_router, prefix=API_PREFIX)
app.include_router(discounts_router, prefix=API_PREFIX)
app.include_router(webhooks_router, prefix=API_PREFIX)


@app.get("/")
def root():
    return {"message": "Aura Studio API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
