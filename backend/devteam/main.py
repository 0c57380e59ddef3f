import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from devteam.auth import AuthMiddleware
from devteam.config import settings
from devteam.routers import attachments_router, system_router
from devteam.routers.system import API_VERSION


def configure_logging():
    """Configure application-wide logging with proper formatting."""
    log_level = logging.DEBUG if settings.environment == "development" else logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    # Set specific log levels for noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {logging.getLevelName(log_level)} level")
    return logger


logger = configure_logging()


def run_migrations() -> None:
    """Run database migrations using Alembic."""
    backend_dir = Path(__file__).parent.parent
    alembic_ini_path = backend_dir / "alembic.ini"

    if not alembic_ini_path.exists():
        logger.warning(f"alembic.ini not found at {alembic_ini_path}, skipping migrations")
        return

    alembic_cfg = Config(str(alembic_ini_path))
    alembic_cfg.attributes["configure_logger"] = False
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed successfully")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup/shutdown events."""
    if settings.run_migrations_on_startup:
        run_migrations()

    settings.uploads_base_path.mkdir(parents=True, exist_ok=True)
    logger.info(f"Storing attachments in {settings.uploads_base_path}")
    yield


app = FastAPI(
    title="DevTeam API",
    description="Project management API: task attachments",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to catch and log all unhandled exceptions."""
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {exc!r}",
        exc_info=True,
        extra={
            "method": request.method,
            "url": str(request.url),
            "client": request.client.host if request.client else None,
            "exception_type": type(exc).__name__,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc) if settings.environment == "development" else "An unexpected error occurred",
            "type": type(exc).__name__,
        },
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests and responses."""
    logger.info(f"→ {request.method} {request.url.path}")

    try:
        response = await call_next(request)
        log_level = logging.ERROR if response.status_code >= 400 else logging.INFO
        logger.log(log_level, f"← {request.method} {request.url.path} → {response.status_code}")
        return response
    except Exception as e:
        logger.error(
            f"← {request.method} {request.url.path} → EXCEPTION: {e!r}",
            exc_info=True,
        )
        raise


app.add_middleware(AuthMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:4173"],
    allow_origin_regex=r"https://.*\.vercel\.app",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ROUTERS = [
    (attachments_router, "Attachments"),
    (system_router, "System"),
]

for router, tag in ROUTERS:
    app.include_router(router, prefix="/api", tags=[tag])

if settings.serve_uploads:
    app.mount(
        settings.uploads_url_prefix.rstrip("/"),
        StaticFiles(directory=settings.uploads_base_path, check_dir=False),
        name="uploads",
    )


@app.get("/health", tags=["Health"], include_in_schema=True)
async def health_check():
    return {"status": "healthy", "version": app.version}


@app.get("/", include_in_schema=False)
async def root():
    return {"message": "Welcome to DevTeam API", "docs": "/docs", "redoc": "/redoc"}
