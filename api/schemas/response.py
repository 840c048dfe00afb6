# WORKFLOW: Response envelope shared by every API endpoint.
# Used by: All routers
# Contents:
# 1. ApiResponse - {status, code, message, data | error} envelope for OpenAPI docs
# 2. to_response() - ServiceResult -> JSONResponse with matching HTTP status
#
# Response flow: Services -> Presenters -> JSON Schema gate -> to_response() -> Client
# Money is emitted as JSON numbers already rounded to cents. Contract payloads
# are checked against schema/*.schema.json, see api/schemas/validation.py.

from typing import Any, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    status: str = Field(..., description="success or error")
    code: int = Field(..., description="Mirrors the HTTP status code")
    message: Optional[str] = None
    data: Optional[Any] = None
    error: Optional[str] = Field(None, description="validation_error, not_found, conflict or internal_error")


def to_response(result) -> JSONResponse:
    """Map a ServiceResult onto an HTTP response with the same status code."""
    return JSONResponse(status_code=result.code, content=result.to_payload())
