from __future__ import annotations

from typing import Any

from complaintdesk.apps.api.response import ErrorEnvelope


def _error_example(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": {"code": code, "message": message},
        "meta": {"request_id": "req_example", "api_version": "v1"},
    }
    if details:
        payload["error"]["details"] = details
    return payload


def _error_response(description: str, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "model": ErrorEnvelope,
        "description": description,
        "content": {"application/json": {"example": _error_example(code=code, message=message, details=details)}},
    }


DEFAULT_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: _error_response("Unauthorized", "AUTH_UNAUTHORIZED", "Missing X-User-Id header"),
    403: _error_response("Forbidden", "AUTH_FORBIDDEN", "Manager role required"),
    404: _error_response("Not found", "NOT_FOUND", "Complaint not found"),
    409: _error_response(
        "Conflict",
        "INVALID_TRANSITION",
        "Cannot move complaint from assigned to resolved",
    ),
    422: _error_response("Validation error", "VALIDATION_ERROR", "Complaint title and description are required"),
    503: _error_response("Store unavailable", "STORE_UNAVAILABLE", "Failed to load complaints; please retry"),
}
