from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from complaintdesk.apps.api.response import error_response, is_versioned_request
from complaintdesk.apps.api.routes.analyze import ANALYZE_PATH, MISSING_TEXT_ERROR
from complaintdesk.core.errors import (
    AuthorizationError,
    ComplaintDeskError,
    ConflictError,
    DuplicateDomainError,
    InvalidTransitionError,
    NotFoundError,
    OrganizationLookupError,
    StoreError,
    UserExistsError,
    ValidationError,
)


logger = logging.getLogger(__name__)

_STATUS_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "AUTH_UNAUTHORIZED",
    403: "AUTH_FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    503: "STORE_UNAVAILABLE",
}

# Most specific class first; the first isinstance match decides status and code.
_DOMAIN_ERROR_MAP: tuple[tuple[type[ComplaintDeskError], int, str], ...] = (
    (ValidationError, 422, "VALIDATION_ERROR"),
    (NotFoundError, 404, "NOT_FOUND"),
    (AuthorizationError, 403, "AUTH_FORBIDDEN"),
    (InvalidTransitionError, 409, "INVALID_TRANSITION"),
    (DuplicateDomainError, 409, "DUPLICATE_DOMAIN"),
    (UserExistsError, 409, "USER_EXISTS"),
    (ConflictError, 409, "CONFLICT"),
    (StoreError, 503, "STORE_UNAVAILABLE"),
)

_LOOKUP_STATUS: dict[str, int] = {
    OrganizationLookupError.NO_DOMAIN: 422,
    OrganizationLookupError.NO_ORGANIZATIONS: 404,
    OrganizationLookupError.NO_MATCH: 404,
}


def _render(
    request: Request,
    status_code: int,
    *,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    plain_detail: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    # Unversioned routes get FastAPI's default {"detail": ...} body.
    if not is_versioned_request(request):
        detail = message if plain_detail is None else plain_detail
        return JSONResponse(content={"detail": detail}, status_code=status_code, headers=headers)
    payload = error_response(request=request, code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=status_code, headers=headers)


def classify_domain_error(exc: ComplaintDeskError) -> tuple[int, str, dict[str, Any] | None]:
    if isinstance(exc, OrganizationLookupError):
        return _LOOKUP_STATUS.get(exc.reason, 404), "ORG_LOOKUP_FAILED", {"reason": exc.reason}
    for error_type, status_code, code in _DOMAIN_ERROR_MAP:
        if isinstance(exc, error_type):
            return status_code, code, None
    return 500, "INTERNAL_ERROR", None


async def domain_exception_handler(request: Request, exc: ComplaintDeskError) -> JSONResponse:
    status_code, code, details = classify_domain_error(exc)
    if status_code >= 500:
        logger.warning("domain_error path=%s code=%s", request.url.path, code, exc_info=exc)
    return _render(request, status_code, code=code, message=str(exc), details=details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Dependencies raise HTTPException with either a message or a {code, message, ...} mapping.
    detail = exc.detail
    code = _STATUS_CODES.get(exc.status_code, "UNKNOWN_ERROR")
    message = "Request failed"
    details: dict[str, Any] | None = None
    if isinstance(detail, dict):
        code = str(detail.get("code") or code)
        message = str(detail.get("message") or message)
        details = {key: value for key, value in detail.items() if key not in ("code", "message")} or None
    elif isinstance(detail, str):
        message = detail
    return _render(
        request,
        exc.status_code,
        code=code,
        message=message,
        details=details,
        plain_detail=detail,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # The classification endpoint keeps its flat contract for any unusable body.
    if request.url.path == ANALYZE_PATH:
        return JSONResponse(status_code=400, content={"success": False, "error": MISSING_TEXT_ERROR})
    errors = jsonable_encoder(exc.errors())
    return _render(
        request,
        422,
        code="REQUEST_VALIDATION_ERROR",
        message="Validation error",
        details={"errors": errors},
        plain_detail=errors,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception path=%s", request.url.path, exc_info=exc)
    return _render(
        request,
        500,
        code="INTERNAL_ERROR",
        message="Internal server error",
        plain_detail="Internal Server Error",
    )
