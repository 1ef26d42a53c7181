"""
Provider error mapping.

Store, identity-provider and driver failures are reduced to a short code
string ("not-found", "unavailable", "auth/email-already-in-use", ...) and
then looked up in a fixed table to get an HTTP status and a message that
is safe to show to the caller.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse
from pymongo import errors as mongo_errors

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A document-store failure tagged with a provider error code."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code


ERROR_MAP: Dict[str, Dict[str, Any]] = {
    "auth/user-not-found": {"status": 404, "message": "User not found"},
    "auth/wrong-password": {"status": 401, "message": "Invalid password"},
    "auth/email-already-in-use": {"status": 409, "message": "Email already registered"},
    "auth/weak-password": {"status": 400, "message": "Password is too weak"},
    "auth/invalid-email": {"status": 400, "message": "Invalid email format"},
    "permission-denied": {"status": 403, "message": "Access denied"},
    "not-found": {"status": 404, "message": "Document not found"},
    "already-exists": {"status": 409, "message": "Document already exists"},
    "failed-precondition": {"status": 400, "message": "Operation failed due to invalid state"},
    "out-of-range": {"status": 400, "message": "Invalid range or limit"},
    "unauthenticated": {"status": 401, "message": "Authentication required"},
    "unavailable": {"status": 503, "message": "Service temporarily unavailable"},
    "deadline-exceeded": {"status": 504, "message": "Request timeout"},
}

# MongoDB server error codes
_UNAUTHORIZED = 13
_AUTHENTICATION_FAILED = 18


def error_code(exc: BaseException) -> str:
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code:
        return code

    # order matters: DuplicateKeyError is an OperationFailure,
    # NetworkTimeout and ServerSelectionTimeoutError are AutoReconnect
    if isinstance(exc, mongo_errors.DuplicateKeyError):
        return "already-exists"
    if isinstance(exc, (mongo_errors.ExecutionTimeout, mongo_errors.WTimeoutError,
                        mongo_errors.NetworkTimeout)):
        return "deadline-exceeded"
    if isinstance(exc, mongo_errors.ConnectionFailure):
        return "unavailable"
    if isinstance(exc, mongo_errors.OperationFailure):
        if exc.code == _UNAUTHORIZED:
            return "permission-denied"
        if exc.code == _AUTHENTICATION_FAILED:
            return "unauthenticated"
    return "unknown"


def map_error(exc: BaseException) -> Dict[str, Any]:
    """Translate any provider failure into ``{success, status, message, code}``."""
    code = error_code(exc)
    mapped = ERROR_MAP.get(code)
    if mapped is None:
        return {"success": False, "status": 500, "message": "Internal server error", "code": code}
    return {"success": False, "status": mapped["status"], "message": mapped["message"], "code": code}


def error_response(status_code: int, message: str, errors: Optional[List[str]] = None,
                   **extra: Any) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def provider_error_response(exc: BaseException) -> JSONResponse:
    mapped = map_error(exc)
    logger.error("Provider error (%s): %s", mapped["code"], exc)
    return JSONResponse(status_code=mapped["status"], content=mapped)
