from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time
from loguru import logger
import uuid
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import auth, workspaces, projects
from app.core.config import settings
from app.core.exceptions import (
    AppError,
    handle_app_error,
    handle_http_exception,
    handle_request_validation_error,
)
from app.db.redis import connect_redis
from app.db.session import dispose_engine, get_engine

REQUEST_COUNT = Counter(
    "app_request_count",
    "Application Request Count",
    ["app_name", "method", "endpoint", "http_status"]
)
REQUEST_LATENCY = Histogram(
    "app_request_latency_seconds",
    "Application Request Latency",
    ["app_name", "method", "endpoint"]
)

APP_NAME = "munjiz"

app = FastAPI(
    title="Munjiz API",
    description="Accounts, workspaces and task tracking for Munjiz",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.APP_BASE_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, handle_app_error)
app.add_exception_handler(StarletteHTTPException, handle_http_exception)
app.add_exception_handler(RequestValidationError, handle_request_validation_error)


def _endpoint_label(request: Request) -> str:
    # route template keeps sids out of the metric labels
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = str(uuid.uuid4())
    logger.info(f"[{request_id}] {request.method} {request.url.path}")

    start_time = time.time()

    try:
        response = await call_next(request)
        process_time = time.time() - start_time
        endpoint = _endpoint_label(request)

        REQUEST_LATENCY.labels(
            APP_NAME,
            request.method,
            endpoint
        ).observe(process_time)

        REQUEST_COUNT.labels(
            APP_NAME,
            request.method,
            endpoint,
            response.status_code
        ).inc()

        logger.info(f"[{request_id}] Completed {response.status_code} in {process_time:.4f}s")

        response.headers["X-Request-ID"] = request_id
        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception(f"[{request_id}] Failed in {process_time:.4f}s: {str(e)}")

        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error"}
        )


app.include_router(
    auth.register_router,
    prefix=settings.API_STR,
    tags=["registration"]
)

app.include_router(
    auth.router,
    prefix=f"{settings.API_STR}/auth",
    tags=["authentication"]
)

app.include_router(
    workspaces.router,
    prefix=f"{settings.API_STR}/workspaces",
    tags=["workspaces"]
)

app.include_router(
    projects.router,
    prefix=settings.API_STR,
    tags=["projects"]
)


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@app.on_event("startup")
async def startup():
    logger.info(f"Environment: {settings.ENVIRONMENT}, registration variant: {settings.REGISTRATION_VARIANT}")
    if not settings.email_verification_enabled:
        logger.warning("Legacy registration is active: email verification and domain checks are disabled")

    get_engine()

    try:
        app.state.redis = await connect_redis()
    except ConnectionError as e:
        logger.error(f"Failed to connect to Redis: {str(e)}")
        logger.error(f"- Host: {settings.REDIS_HOST}")
        logger.error(f"- Port: {settings.REDIS_PORT}")

        if settings.is_production:
            raise
        logger.warning("Continuing startup without Redis outside production")
        app.state.redis = None


@app.on_event("shutdown")
async def shutdown():
    redis = getattr(app.state, "redis", None)
    if redis is not None:
        logger.info("Closing Redis connection...")
        await redis.close()
        logger.info("Redis connection closed")

    await dispose_engine()
