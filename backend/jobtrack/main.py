import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobtrack.core.config import settings, require_jwt_secret
from jobtrack.core.errors import DomainError
from jobtrack.routes.applications import router as applications_router
from jobtrack.routes.auth import router as auth_router
from jobtrack.routes.users import router as users_router

logger = logging.getLogger(__name__)

# Error code used for plain HTTPExceptions, by status.
HTTP_ERROR_CODES: dict[int, str] = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    423: "LOCKED",
    500: "INTERNAL_ERROR",
}


def error_body(code: str, message: str, details: Optional[dict] = None) -> dict[str, Any]:
    """Shape shared by every error response: {"error", "message", "details"?}."""
    body: dict[str, Any] = {"error": code, "message": message}
    if details:
        body["details"] = details
    return body


def _split_http_detail(detail: Any) -> tuple[str, Optional[dict]]:
    # Routes may raise HTTPException(detail={"message": ..., "details": {...}}).
    if isinstance(detail, dict):
        message = detail.get("message")
        details = detail.get("details")
        return (
            message if isinstance(message, str) and message else "Request failed",
            details if isinstance(details, dict) else None,
        )
    if detail is None:
        return "Request failed", None
    return str(detail), None


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: ARG001
    message, details = _split_http_detail(exc.detail)
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message, details),
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(
        status_code=422,
        content=error_body(
            "VALIDATION_ERROR",
            "Invalid request payload",
            {"errors": jsonable_encoder(exc.errors())},
        ),
    )


async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    logger.info("Request rejected: %s %s code=%s", request.method, request.url.path, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.details),
    )


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(status_code=400, content=error_body("VALIDATION_ERROR", str(exc) or "Invalid value"))


require_jwt_secret()

app = FastAPI(title="Job Application Tracker")
logger.info(
    "Startup config: ENV=%s EMAIL_ENABLED=%s provider=%s",
    settings.ENV,
    settings.EMAIL_ENABLED,
    settings.EMAIL_PROVIDER or "resend",
)

app.add_exception_handler(HTTPException, handle_http_exception)
app.add_exception_handler(RequestValidationError, handle_validation_error)
app.add_exception_handler(DomainError, handle_domain_error)
app.add_exception_handler(ValueError, handle_value_error)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (auth_router, users_router, applications_router):
    app.include_router(router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
