# WORKFLOW: JWT token helpers shared by the auth middleware and tooling.
# Used by: api/middleware/auth.py, tests, operator scripts
# Functions:
# 1. create_access_token() - Sign a payload with expiry claims
# 2. decode_access_token() - Verify signature and expiry, return claims
#
# Token flow: Claims -> iat/exp stamped -> HS256 signature -> Bearer header

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from core.config import settings


def create_access_token(
    subject: str,
    extra_claims: Optional[Dict[str, Any]] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token.

    Args:
        subject: Token subject (user or client identifier)
        extra_claims: Additional claims merged into the payload
        expires_delta: Lifetime override, defaults to settings

    Returns:
        Encoded JWT string
    """
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    payload: Dict[str, Any] = dict(extra_claims or {})
    payload["sub"] = subject
    payload["iat"] = issued_at
    payload["exp"] = issued_at + expires_delta

    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify an access token.

    Raises:
        jwt.ExpiredSignatureError: Token lifetime elapsed
        jwt.InvalidTokenError: Signature or format is invalid
    """
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
