import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .observability.logging import request_id_ctx


logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


class NotedlyError(Exception):
    """Base class for every error the service maps to an HTTP problem."""

    code = "error"
    status_code = 500
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class AuthenticationError(NotedlyError):
    status_code = 401


class MissingCredential(AuthenticationError):
    code = "missing_credential"
    default_message = "No applicable bearer token was provided"


class UnknownUser(AuthenticationError):
    code = "unknown_user"
    default_message = "The provided bearer token does not match a known user"


class NotFound(NotedlyError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class AuthorizationDenied(NotedlyError):
    code = "forbidden"
    status_code = 403
    default_message = "Forbidden"


class NotInvited(AuthorizationDenied):
    code = "not_invited"
    default_message = "The caller has not been invited to this board"


class OwnerRequired(AuthorizationDenied):
    code = "owner_required"
    default_message = "Only the board owner may perform this operation"


class ReadDenied(AuthorizationDenied):
    code = "read_denied"
    default_message = "The caller lacks read access to this board"


class WriteDenied(AuthorizationDenied):
    code = "write_denied"
    default_message = "The caller lacks write access to this board"


class NotAccountHolder(AuthorizationDenied):
    code = "not_account_holder"
    default_message = "The caller may only access their own account"


class Conflict(NotedlyError):
    code = "conflict"
    status_code = 409
    default_message = "Conflict"


class StoreUnavailable(NotedlyError):
    code = "store_unavailable"
    status_code = 503
    default_message = "The data store is unavailable"


class OAuthError(NotedlyError):
    code = "oauth_error"
    status_code = 502
    default_message = "The identity provider request failed"


class UnsupportedProvider(NotedlyError):
    code = "unsupported_provider"
    status_code = 400
    default_message = "The requested identity provider is not available"


class InvalidOAuthState(NotedlyError):
    code = "invalid_state"
    status_code = 409
    default_message = "The login state is missing, expired or already used"


def _trace_id() -> str:
    # Reuse the request id so a problem body can be matched to its log lines.
    return request_id_ctx.get() or uuid.uuid4().hex


def problem_response(
    code: str,
    message: str,
    status: int,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    trace_id = _trace_id()
    body: Dict[str, Any] = {
        "type": f"about:blank#{code}",
        "title": message,
        "status": status,
        "code": code,
        "message": message,
        "trace_id": trace_id,
    }
    if details:
        body["details"] = details
    return JSONResponse(
        body,
        status_code=status,
        headers={"X-Trace-Id": trace_id},
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def _notedly_error(request: Request, exc: NotedlyError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return problem_response(exc.code, exc.message, exc.status_code, exc.details)


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, str):
        return problem_response("http_error", exc.detail, exc.status_code)
    return problem_response("http_error", "HTTP error", exc.status_code, {"detail": exc.detail})


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return problem_response(
        "validation_error",
        "Request validation failed",
        422,
        {"errors": jsonable_encoder(exc.errors())},
    )


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return problem_response("internal_error", "An unexpected error occurred", 500)


def register_error_handlers(app: FastAPI) -> None:
    """Render every failure as ``application/problem+json``."""
    app.add_exception_handler(NotedlyError, _notedly_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _unhandled_error)
