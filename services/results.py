# WORKFLOW: Structured service results and the error taxonomy.
# Used by: Rate resolver, ledgers, parcel intake, every API router
# Contents:
# 1. ErrorKind - validation / not_found / conflict / internal with HTTP codes
# 2. ServiceResult - {status, code, message, data} envelope returned by services
# 3. ok() / validation_error() / not_found() / conflict() / internal_error() constructors
#
# Services never raise across their boundary: failures come back as results and
# routers map result.code onto the HTTP status.

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal_error"

    @property
    def http_code(self) -> int:
        return _HTTP_CODES[self]


_HTTP_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class ServiceResult:
    status: str
    code: int
    message: Optional[str] = None
    data: Any = None
    error: Optional[ErrorKind] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    def to_payload(self) -> Dict[str, Any]:
        """Render the response body shared by every endpoint."""
        payload: Dict[str, Any] = {
            "status": self.status,
            "code": self.code,
            "message": self.message,
        }
        if self.error is not None:
            payload["error"] = self.error.value
        else:
            payload["data"] = self.data
        return payload


def ok(data: Any = None, message: Optional[str] = None, code: int = 200) -> ServiceResult:
    return ServiceResult(status="success", code=code, message=message, data=data)


def failure(kind: ErrorKind, message: str) -> ServiceResult:
    return ServiceResult(status="error", code=kind.http_code, message=message, error=kind)


def validation_error(message: str) -> ServiceResult:
    return failure(ErrorKind.VALIDATION, message)


def not_found(message: str) -> ServiceResult:
    return failure(ErrorKind.NOT_FOUND, message)


def internal_error(message: str) -> ServiceResult:
    return failure(ErrorKind.INTERNAL, message)


def conflict(message: str) -> ServiceResult:
    return failure(ErrorKind.CONFLICT, message)
