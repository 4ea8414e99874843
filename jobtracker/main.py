import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from jobtracker.config import settings
from jobtracker.core.errors import AppError
from jobtracker.core.rate_limiter import limit_for, rate_limiter
from jobtracker.database import init_db, engine
from jobtracker.logging_config import setup_logging
from jobtracker.routers import analytics, auth, jobs, reminders, resumes, users

setup_logging()
logger = logging.getLogger(__name__)

PLACEHOLDER_SECRET_KEY = "replace-with-a-long-random-secret-key"

app = FastAPI(
    title="Job Tracker API",
    description="Job applications, reminders, resumes and analytics.",
    version="1.0.0",
)

cors_origins = [o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(jobs.router)
app.include_router(resumes.router)
app.include_router(reminders.router)
app.include_router(analytics.router)


def _envelope(status_code: int, message: str, errors=None, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": None, "errors": errors},
        headers=headers,
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return _envelope(exc.status_code, exc.message, exc.errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _envelope(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return _envelope(400, "Validation failed", errors)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error on %s %s: %s", request.method, request.url.path, exc)
    return _envelope(500, "Internal server error")


@app.middleware("http")
async def apply_rate_limits(request: Request, call_next):
    rule = limit_for(request.method, request.url.path)
    if rule is not None:
        bucket, limit = rule
        if limit > 0:
            client_ip = request.client.host if request.client else "unknown"
            allowed, retry_after = rate_limiter.allow(f"{client_ip}:{bucket}", limit=limit, window_seconds=60)
            if not allowed:
                logger.info("Rate limit hit: %s %s from %s", request.method, request.url.path, client_ip)
                return _envelope(
                    429,
                    "Too many requests. Please retry shortly.",
                    headers={"Retry-After": str(retry_after)},
                )
    return await call_next(request)


@app.get("/health/live")
def health_live():
    return {"status": "ok"}


@app.get("/health/ready")
def health_ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception:
        logger.exception("Readiness check failed")
        return JSONResponse(status_code=503, content={"status": "not_ready"})


@app.on_event("startup")
def on_startup():
    logger.info("Starting Job Tracker API")
    env = (settings.app_env or "development").lower()
    if env in {"production", "prod"}:
        if settings.secret_key == PLACEHOLDER_SECRET_KEY:
            raise RuntimeError("SECRET_KEY placeholder is not allowed in production")
        if "username:password@" in settings.database_url:
            raise RuntimeError("DATABASE_URL placeholder credentials are not allowed in production")
    else:
        if settings.secret_key == PLACEHOLDER_SECRET_KEY:
            logger.warning("SECRET_KEY is using placeholder default. Set SECRET_KEY in .env for secure deployments.")
        if "username:password@" in settings.database_url:
            logger.warning("DATABASE_URL appears to use placeholder credentials. Set DATABASE_URL in .env.")
    init_db()


@app.get("/")
def root():
    return {"message": "Job Tracker API. See /docs for the available endpoints."}
