import logging
import os
import subprocess
import sys
import time
import uuid
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

import click
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.database import Base, SessionLocal, engine
from app.core.enforcement import enforce_account_standing
from app.core.errors import ModerationError
from app.core.init import initialize_application
from app.core.limiter import limiter, rate_limit_exceeded_handler
from app.models import *
from app.routers import routes
from app.schemas.common import ActionResult
from app.services.events import dispatcher
from app.services.notification import register_handlers

# ============================================================================
# Directory Setup
# ============================================================================
BASE_DIR = Path(__file__).parent
LOG_FILE = Path(settings.log_file)
if not LOG_FILE.is_absolute():
    LOG_FILE = BASE_DIR / LOG_FILE
LOGS_DIR = LOG_FILE.parent
STORAGE_DIR = Path(settings.upload_dir)

for directory in [LOGS_DIR, STORAGE_DIR]:
    directory.mkdir(parents=True, exist_ok=True)
    os.chmod(directory, 0o755)


# ============================================================================
# Logging Configuration
# ============================================================================
NOISY_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "httpx", "telegram")


def setup_logging():
    """Log to stdout and a size-rotated file under the logs directory."""
    file_handler = RotatingFileHandler(
        LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout), file_handler],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logging.getLogger(__name__)


logger = setup_logging()

# Post-commit side effects: inbox notifications, admin chat alert, file cleanup
register_handlers(dispatcher)


def init_database():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        initialize_application(db)
    finally:
        db.close()


# ============================================================================
# Application Lifespan
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    logger.info("=" * 80)
    logger.info("Starting application...")
    logger.info("=" * 80)

    try:
        logger.info("Initializing database...")
        init_database()
        logger.info("✓ Database ready and protected president seeded")

        logger.info(f"Storage directory: {STORAGE_DIR.absolute()}")
        logger.info(f"  - Writable: {os.access(STORAGE_DIR, os.W_OK)}")
        logger.info(f"Report threshold: {settings.report_threshold}")

        logger.info("✓ Application startup completed successfully")

    except Exception as e:
        logger.error(f"✗ Failed during startup: {e}", exc_info=True)
        raise

    yield  # Application is running

    logger.info("=" * 80)
    logger.info("Shutting down application...")
    logger.info("=" * 80)
    engine.dispose()
    logger.info("✓ Application shutdown completed")


# ============================================================================
# FastAPI Application
# ============================================================================
app = FastAPI(
    title=settings.app_name,
    description=settings.app_description,
    version=settings.app_version,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    debug=settings.debug,
    lifespan=lifespan,
)

# ============================================================================
# Middleware Configuration
# ============================================================================
app.state.limiter = limiter

# Blocked accounts are redirected to the block notice on every request
app.middleware("http")(enforce_account_standing)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Timing and request id headers for tracing
@app.middleware("http")
async def add_trace_headers(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    started = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Process-Time"] = f"{time.perf_counter() - started:.4f}"
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Exception Handlers
# ============================================================================
@app.exception_handler(ModerationError)
async def moderation_error_handler(request: Request, exc: ModerationError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=ActionResult.failed(exc).model_dump(mode="json"),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in e.get("loc", ())), "msg": e.get("msg", "")}
        for e in exc.errors()
    ]
    logger.warning(f"{request.method} {request.url.path} rejected: {errors}")
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Some fields are missing or invalid.",
            "error": "validation_error",
            "data": {"errors": errors},
        },
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"SQLAlchemy error: {type(exc).__name__}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "dependency_failure",
            "message": "Something went wrong. Please try again later.",
        },
    )


app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


# ============================================================================
# Health Check Endpoints
# ============================================================================
@app.get("/")
async def root():
    """Root endpoint with basic application info."""
    return {
        "app_name": settings.app_name,
        "version": settings.app_version,
        "status": "healthy",
        "environment": "production" if settings.production else "development",
    }


@app.get("/health")
@limiter.limit("10/minute")
async def health_check(request: Request):
    """Database and storage readiness."""
    checks = {"database": "healthy", "storage": "healthy"}
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        checks["database"] = "unhealthy"
    finally:
        db.close()
    if not os.access(STORAGE_DIR, os.W_OK):
        checks["storage"] = "unhealthy"

    healthy = all(value == "healthy" for value in checks.values())
    return {"status": "healthy" if healthy else "degraded", "timestamp": time.time(), **checks}


# ============================================================================
# Static Files & Routes
# ============================================================================
app.mount(
    "/storage",
    StaticFiles(directory=str(STORAGE_DIR.absolute())),
    name="storage",
)
logger.info(f"✓ Static files mounted: /storage -> {STORAGE_DIR.absolute()}")

for router in routes:
    app.include_router(router)

logger.info(f"✓ Registered {len(routes)} routers")


# ============================================================================
# CLI Commands
# ============================================================================
@click.group()
def cli():
    """Society Voices management CLI."""
    pass


@cli.command("init-db")
def init_db():
    """Create tables and seed the protected president."""
    init_database()
    click.echo("Database initialized")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to run the server on")
@click.option("--reload", is_flag=True, help="Enable auto-reload (development only)")
def dev(host: str, port: int, reload: bool):
    """Run development server with Uvicorn."""
    logger.info("Starting development server...")
    logger.info(f"  - Host: {host}")
    logger.info(f"  - Port: {port}")
    logger.info(f"  - Reload: {reload}")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="debug",
        access_log=True,
    )


GUNICORN_OPTIONS = {
    "--worker-class": "uvicorn.workers.UvicornWorker",
    "--access-logfile": "-",
    "--error-logfile": "-",
    "--log-level": "info",
    "--timeout": "120",
    "--graceful-timeout": "30",
    "--keep-alive": "5",
}


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to run the server on")
@click.option("--workers", default=4, help="Number of worker processes")
def prod(host: str, port: int, workers: int):
    """Run production server with Gunicorn."""
    logger.info("Preparing database...")
    init_database()

    logger.info("Starting production server with Gunicorn...")
    logger.info(f"  - Host: {host}")
    logger.info(f"  - Port: {port}")
    logger.info(f"  - Workers: {workers}")

    if workers > 1 and (
        not settings.redis_enabled
        or settings.rate_limit_storage.startswith("memory")
    ):
        logger.warning(
            "⚠️  Multiple workers with in-memory token blacklist or rate limits: "
            "set REDIS_ENABLED and RATE_LIMIT_STORAGE to share them"
        )

    cmd = ["gunicorn", "main:app", "--workers", str(workers), "--bind", f"{host}:{port}"]
    for flag, value in GUNICORN_OPTIONS.items():
        cmd.extend([flag, value])

    try:
        subprocess.run(cmd, check=True)
    except subprocess.CalledProcessError as e:
        logger.error(f"Gunicorn failed to start: {e}")
        raise click.ClickException(str(e))
    except FileNotFoundError:
        logger.error("Gunicorn not found. Install it with: pip install gunicorn")
        raise click.ClickException("Gunicorn not installed")


@cli.command()
def info():
    """Display application information."""
    click.echo(f"Application: {settings.app_name}")
    click.echo(f"Version: {settings.app_version}")
    click.echo(f"Debug Mode: {settings.debug}")
    click.echo(f"Database: {engine.url.render_as_string(hide_password=True)}")
    click.echo(f"Report Threshold: {settings.report_threshold}")
    click.echo(f"Protected President: {settings.protected_president_email}")
    click.echo(f"Storage Directory: {STORAGE_DIR.absolute()}")
    click.echo(f"Logs Directory: {LOGS_DIR.absolute()}")


if __name__ == "__main__":
    cli()
