from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from complaintdesk.apps.api.errors import (
    domain_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from complaintdesk.apps.api.response import API_VERSION
from complaintdesk.apps.api.routes.analyze import router as analyze_router
from complaintdesk.apps.api.routes.audit import router as audit_router
from complaintdesk.apps.api.routes.complaints import router as complaints_router
from complaintdesk.apps.api.routes.dashboard import router as dashboard_router
from complaintdesk.apps.api.routes.health import router as health_router
from complaintdesk.apps.api.routes.organizations import router as organizations_router
from complaintdesk.apps.api.routes.users import router as users_router
from complaintdesk.core.config import get_settings
from complaintdesk.core.errors import ComplaintDeskError
from complaintdesk.core.logging import configure_logging


logger = logging.getLogger(__name__)

_VERSIONED_ROUTERS = (
    health_router,
    users_router,
    organizations_router,
    complaints_router,
    dashboard_router,
    audit_router,
)


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(title=f"{settings.app_name} API", version=API_VERSION)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        start = time.monotonic()
        response = await call_next(request)
        logger.info(
            "request_completed method=%s path=%s status=%s latency_ms=%.1f request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            (time.monotonic() - start) * 1000.0,
            request_id,
        )
        response.headers.setdefault("X-Request-Id", request_id)
        return response

    # FastAPI's HTTPException subclasses Starlette's, so one handler covers both.
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ComplaintDeskError, domain_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Classification endpoint keeps its unversioned path and flat response contract.
    app.include_router(analyze_router)
    for router in _VERSIONED_ROUTERS:
        app.include_router(router, prefix=f"/{API_VERSION}")

    logger.info("app_created app_name=%s routes=%s", settings.app_name, len(app.routes))
    return app


app = create_app()
