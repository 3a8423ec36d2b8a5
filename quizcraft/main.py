"""
Quizcraft HTTP application

Wires the quiz, attempt and progress routers behind one request pipeline
(rate limiting, then timing/logging) and renders every failure in the
same JSON envelope: {"error", "message", "status_code"}.
"""
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from quizcraft.api import attempts, progress, quizzes
from quizcraft.config import settings
from quizcraft.database import SessionLocal, init_db
from quizcraft.exceptions import QuizcraftError
from quizcraft.utils.cache import cache_service
from quizcraft.utils.rate_limiter import rate_limiter

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def error_response(status_code: int, code: str, message, **extra) -> JSONResponse:
    body = {"error": code, "message": message, "status_code": status_code}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    try:
        init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    cache_state = "redis" if cache_service.redis_client else "local locks only"
    logger.info(f"Schema ready, cache backend: {cache_state}")

    yield

    logger.info(f"Stopping {settings.APP_NAME}")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Adaptive quizzes generated from lecture material, with mastery tracking and rewards",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_pipeline(request: Request, call_next):
    """Throttle, then run the request and log it with a correlation id"""
    request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex[:12]

    if not rate_limiter.is_exempt(request):
        try:
            await rate_limiter.check_rate_limit(request)
        except HTTPException as e:
            response = JSONResponse(status_code=e.status_code, content=e.detail)
            response.headers["Retry-After"] = str(e.detail["retry_after"])
            response.headers["X-Request-Id"] = request_id
            return response

    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000

    principal = request.headers.get("X-User-Id", "anonymous")
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} "
        f"by {principal} -> {response.status_code} ({elapsed_ms:.1f}ms)"
    )
    response.headers["X-Request-Id"] = request_id
    return response


@app.exception_handler(QuizcraftError)
async def quizcraft_error_handler(request: Request, exc: QuizcraftError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc.code} - {exc.message}")
    return error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies, queries or path values"""
    return error_response(422, "invalid_request", "Request payload failed validation", detail=exc.errors())


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return error_response(exc.status_code, "http_error", exc.detail)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {str(exc)}", exc_info=True)
    return error_response(
        500,
        "internal_server_error",
        "An unexpected error occurred. Please try again later.",
        detail=str(exc) if settings.DEBUG else None
    )


@app.get("/health")
def health_check():
    """
    Liveness plus dependency status

    The database is probed with a trivial query; Redis is reported as
    degraded when the cache runs without it.
    """
    database = "ok"
    try:
        with SessionLocal() as session:
            session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Health check database probe failed: {str(e)}")
        database = "unavailable"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "database": database,
        "cache": "ok" if cache_service.redis_client else "disabled",
        "timestamp": time.time()
    }


@app.get("/")
def root():
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "endpoints": ["/api/quizzes", "/api/attempts", "/api/progress"],
        "docs": "/docs"
    }


app.include_router(quizzes.router)
app.include_router(attempts.router)
app.include_router(progress.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("quizcraft.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
