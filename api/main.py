#!/usr/bin/env python3
"""
Cargo Billing API - rate calculation, invoices, payments and balances.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from core.config import settings
from api.middleware.auth import AuthMiddleware
from api.middleware.logging import LoggingMiddleware
from api.routers import clients, health, invoices, parcels, payments, rates

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.project_name,
    version=settings.version,
    description="Cargo billing API with derived invoice balances and deterministic rate quotes"
)

# Middleware order: the last added runs first
app.add_middleware(AuthMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=settings.allowed_methods,
    allow_headers=settings.allowed_headers,
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Answer malformed requests with the standard 400 envelope."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = loc[-1] if loc else "request body"
    if first.get("type") == "missing":
        message = f"Missing required field: {field}"
    else:
        message = f"Invalid value for field: {field}"
    logger.info(f"Rejected request to {request.url.path}: {message}")
    return JSONResponse(
        status_code=400,
        content={"status": "error", "code": 400, "message": message, "error": "validation_error"},
    )


# Expose health checks both at root and versioned paths
app.include_router(health.router)
app.include_router(health.router, prefix=settings.api_v1_prefix)

for router in (rates.router, invoices.router, payments.router, parcels.router, clients.router):
    app.include_router(router, prefix=settings.api_v1_prefix)
logger.info("Billing routers included")


@app.get("/")
async def root():
    return {"name": settings.project_name, "version": settings.version, "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
