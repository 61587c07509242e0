# dnsportal/main.py

"""
main.py: dnsportal backend

Purpose:
    FastAPI entrypoint for the subdomain portal: users sign in with OAuth,
    claim subdomains on admin-managed parent domains (records live on
    Cloudflare) and buy extra slots through Razorpay.

What It Does:
    - Initializes logging, the FastAPI app, CORS and rate limiting.
    - Maps validation errors to 400 and unexpected errors to 500.
    - Registers auth, dashboard, payment, transaction, admin and health routers.

Used By:
    - uvicorn dnsportal.main:app --reload (development)
--------------------------------------------------------------------
"""

from dnsportal.core.logging import init_logging
init_logging()

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from dnsportal.core.config import settings
from dnsportal.core.limiter import limiter

# === Routers ===
from dnsportal.api.auth.oauth import router as oauth_router
from dnsportal.routes.dashboard import router as dashboard_router
from dnsportal.routes.payment import router as payment_router
from dnsportal.routes.transactions import router as transactions_router
from dnsportal.routes.admin.users import router as admin_users_router
from dnsportal.routes.admin.domains import router as admin_domains_router
from dnsportal.routes.admin.subdomains import router as admin_subdomains_router
from dnsportal.routes.admin.overview import router as admin_overview_router
from dnsportal.routes.health import router as health_router

logger = logging.getLogger(__name__)

# === FastAPI App Initialization ===
app = FastAPI(
    title="dnsportal",
    description="Free subdomains on shared parent domains, backed by Cloudflare DNS.",
    version="1.0.0",
)

# === Rate Limiting Middleware ===
app.state.limiter = limiter

@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handles requests exceeding rate limits."""
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests. Please slow down."},
    )

app.add_middleware(SlowAPIMiddleware)

# === Error Handlers ===
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Bad or missing fields are a client error (400), with the first reason as detail."""
    errors = exc.errors()
    message = "Missing required fields"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        reason = str(first.get("msg", "")).removeprefix("Value error, ")
        message = f"{field}: {reason}" if field else reason
    return JSONResponse(status_code=400, content={"detail": message})

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Include Routers (Prefix & Tag for Each) ===
app.include_router(oauth_router,            prefix="/api/auth",         tags=["auth"])
app.include_router(dashboard_router,        prefix="/api/dashboard",    tags=["dashboard"])
app.include_router(payment_router,          prefix="/api/payment",      tags=["payment"])
app.include_router(transactions_router,     prefix="/api/transactions", tags=["transactions"])
app.include_router(admin_overview_router,   prefix="/api/admin",        tags=["admin"])
app.include_router(admin_users_router,      prefix="/api/admin",        tags=["admin"])
app.include_router(admin_domains_router,    prefix="/api/admin",        tags=["admin"])
app.include_router(admin_subdomains_router, prefix="/api/admin",        tags=["admin"])
app.include_router(health_router,           prefix="/api",              tags=["health"])

# === Root Endpoint ===
@app.get("/")
def read_root():
    """Basic health/status endpoint."""
    return {"status": "dnsportal backend running."}
