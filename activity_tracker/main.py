import logging
import time
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from activity_tracker import models  # noqa: F401  (registers tables on Base.metadata)
from activity_tracker.db import Base, engine
from activity_tracker.errors import ActivityRuleError, ApiError, error_response
from activity_tracker.logging_utils import setup_json_logging
from activity_tracker.routers import activities, admin
from activity_tracker.settings import get_cors_origins, get_settings, validate_settings

settings = get_settings()
setup_json_logging(settings.log_level)
logger = logging.getLogger("activity_tracker.request")
startup_logger = logging.getLogger("activity_tracker.startup")

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid4())
    request.state.request_id = request_id
    request.state.actor = "anonymous"
    request.state.actor_id = None

    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-Id"] = request_id
        return response
    finally:
        logger.info(
            "request_complete",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": status_code,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                "actor": request.state.actor,
                "actor_id": request.state.actor_id,
            },
        )


@app.exception_handler(ActivityRuleError)
async def handle_activity_rule_error(request: Request, exc: ActivityRuleError) -> JSONResponse:
    logger.info(
        "activity_rule_violation",
        extra={
            "request_id": getattr(request.state, "request_id", "unknown"),
            "kind": exc.kind.value,
            "path": request.url.path,
        },
    )
    api_error = exc.to_api_error()
    return error_response(
        request,
        status_code=api_error.status_code,
        code=api_error.code,
        message=api_error.message,
        details=api_error.details,
    )


@app.exception_handler(ApiError)
async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(
        request,
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


@app.exception_handler(HTTPException)
async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    code_map = {401: "INVALID_TOKEN", 403: "FORBIDDEN"}
    return error_response(
        request,
        status_code=exc.status_code,
        code=code_map.get(exc.status_code, "HTTP_ERROR"),
        message=str(exc.detail) if exc.detail else "Request failed.",
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        request,
        status_code=422,
        code="VALIDATION_ERROR",
        message="Request validation failed.",
        details={"errors": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()]},
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled_error",
        extra={
            "request_id": getattr(request.state, "request_id", "unknown"),
            "path": request.url.path,
            "method": request.method,
        },
    )
    return error_response(
        request,
        status_code=500,
        code="INTERNAL_ERROR",
        message="Unexpected server error.",
    )


app.include_router(activities.router)
app.include_router(admin.router)


@app.on_event("startup")
def prepare_database() -> None:
    problems = validate_settings()
    for problem in problems:
        startup_logger.warning("settings_problem", extra={"problem": problem})
    Base.metadata.create_all(bind=engine)
    startup_logger.info(
        "startup_complete",
        extra={"environment": settings.environment, "required_minutes": settings.activity_required_minutes},
    )


@app.get("/health")
def health() -> dict[str, Any]:
    return {"status": "ok", "app": settings.app_name, "environment": settings.environment}
