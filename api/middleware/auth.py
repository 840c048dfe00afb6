# WORKFLOW: Authentication middleware for JWT and API key validation.
# Used by: All protected API endpoints (invoices, payments, parcels, clients)
# Functions:
# 1. _extract_token() - Extract bearer token or API key from request headers
# 2. _validate_token() - Validate JWT token and extract payload
# 3. _is_public_endpoint() - Check if endpoint requires authentication
#
# Auth flow: Request -> Extract token -> Validate token -> Set user context -> Continue
# Public endpoints (health, docs, rate lookups and calculation) bypass authentication.

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import jwt
import logging
from typing import Optional
from core.config import settings
from core.security import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

PUBLIC_PATHS = (
    "/healthz",
    "/readyz",
    "/livez",
    "/docs",
    "/redoc",
    "/openapi.json",
)


class AuthMiddleware(BaseHTTPMiddleware):
    """Authentication middleware for JWT and API key validation."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.public_prefixes = PUBLIC_PATHS + tuple(
            f"{settings.api_v1_prefix}{path}" for path in ("/healthz", "/readyz", "/livez", "/rates")
        )

    async def dispatch(self, request: Request, call_next):
        """Process request with authentication."""
        if request.method == "OPTIONS" or self._is_public_endpoint(request.url.path):
            return await call_next(request)

        token = await self._extract_token(request)
        if not token:
            return self._unauthorized("Authorization header is required")

        try:
            request.state.user = self._validate_token(token)
        except jwt.ExpiredSignatureError:
            return self._unauthorized("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Token validation failed: {e}")
            return self._unauthorized("Invalid or expired token")

        return await call_next(request)

    def _is_public_endpoint(self, path: str) -> bool:
        """Check if endpoint is public (no auth required)."""
        if path == "/":
            return True
        # Whole path segments only: /api/v1/rates-export is not under /api/v1/rates
        return any(
            path == public_path or path.startswith(f"{public_path}/")
            for public_path in self.public_prefixes
        )

    async def _extract_token(self, request: Request) -> Optional[str]:
        """Extract token from request headers."""
        credentials: Optional[HTTPAuthorizationCredentials] = await security(request)
        if credentials:
            return credentials.credentials

        return request.headers.get("X-API-Key")

    def _validate_token(self, token: str) -> dict:
        """Validate JWT token."""
        return decode_access_token(token)

    def _unauthorized(self, message: str) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"status": "error", "code": status.HTTP_401_UNAUTHORIZED, "message": message},
            headers={"WWW-Authenticate": "Bearer"},
        )
