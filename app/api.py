"""
FastAPI application: routers, middleware and error mapping.
Clean API layer following separation of concerns principle.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from app import routes_auth, routes_budgets, routes_categories, routes_transactions
from core.config import get_settings
from core.db import get_db
from core.exceptions import FinanceTrackerException
from core.logger import quiet_third_party, setup_logger
from services.auth_service import AuthService

logger = setup_logger(__name__)
settings = get_settings()

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    quiet_third_party()
    get_settings().ensure_directories()
    get_db()
    AuthService().purge_expired_tokens()
    logger.info(f"{settings.app_name} ready")
    yield


app = FastAPI(
    title=settings.app_name,
    description="Personal finance tracking with document-based transaction extraction",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FinanceTrackerException)
async def finance_tracker_exception_handler(request: Request, exc: FinanceTrackerException):
    """Report domain errors with their status code and details."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and query strings are client errors (400)."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": {"errors": errors}},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "details": {}},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "finance_tracker",
        "version": APP_VERSION
    }


@app.get("/favicon.ico")
async def favicon():
    """Return empty response for favicon to avoid 404 errors."""
    return Response(status_code=204)


app.include_router(routes_auth.router, prefix=settings.api_prefix)
app.include_router(routes_categories.router, prefix=settings.api_prefix)
app.include_router(routes_transactions.router, prefix=settings.api_prefix)
app.include_router(routes_budgets.router, prefix=settings.api_prefix)
