from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, FileResponse
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from pathlib import Path
from songrank.core.config import settings, validate_settings
from songrank.core.exceptions import InternalError, SongRankError, ValidationError
from songrank.db.session import create_db_and_tables, SessionLocal
from songrank.api import auth, songs
from songrank.services.auth_service import AuthService
from songrank.repositories.users import UsersRepository
from songrank.models import User, UserRole
from songrank.core.security import hash_password
from datetime import datetime, timezone
import logging
import time

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def seed_admin() -> None:
    """Creates the development admin account if missing."""
    if not settings.ADMIN_PASSWORD:
        logger.info("ℹ️  ADMIN_PASSWORD not set, skipping admin seed")
        return

    with SessionLocal() as session:
        users_repo = UsersRepository(session)
        if users_repo.get_by_email(settings.ADMIN_EMAIL):
            logger.info("ℹ️  Admin user already exists")
            return

        try:
            users_repo.create(User(
                name=settings.ADMIN_NAME,
                email=settings.ADMIN_EMAIL.lower(),
                password_hash=hash_password(settings.ADMIN_PASSWORD),
                role=UserRole.ADMIN.value,
                is_active=True,
            ))
            session.commit()
            logger.info(f"✅ Admin user created ({settings.ADMIN_EMAIL})")
        except Exception as e:
            logger.error(f"❌ Error creating admin: {e}")
            session.rollback()


def purge_revoked_tokens(stage: str) -> None:
    with SessionLocal() as session:
        try:
            deleted = AuthService(session).purge_revoked()
            logger.info(f"🧹 {stage}: purged {deleted} expired revoked tokens")
        except Exception as e:
            logger.warning(f"⚠️  {stage}: revoked token purge failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup/shutdown.
    """
    # =========================================================================
    # STARTUP
    # =========================================================================
    logger.info("=" * 60)
    logger.info("🚀 Starting SongRank Backend")
    logger.info("=" * 60)

    try:
        validate_settings()
        logger.info("✅ Settings validated")
    except ValueError as e:
        logger.error(f"❌ Settings validation failed: {e}")
        raise

    logger.info(f"📍 Environment: {settings.ENVIRONMENT}")
    logger.info(f"🔧 Debug mode: {settings.DEBUG}")
    logger.info(f"🌐 CORS origins: {settings.cors_origins_list}")
    logger.debug(f"⚙️  Config: {settings.model_dump_safe()}")

    # Tables and admin seed (development only)
    if settings.is_development:
        try:
            create_db_and_tables()
            logger.info("✅ Database tables created/verified")
        except Exception as e:
            logger.error(f"❌ Error creating tables: {e}")
            raise
        seed_admin()

    purge_revoked_tokens("Startup")

    logger.info("=" * 60)
    logger.info("✅ Server ready!")
    logger.info("📚 API Docs: http://localhost:8000/docs")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down SongRank Backend...")
    purge_revoked_tokens("Shutdown")
    logger.info("👋 Goodbye!")


app = FastAPI(
    title="SongRank API",
    description="""
    Community-curated song ranking.

    ## Features

    * **Top 5**: Approved songs ranked by YouTube views
    * **Suggestions**: Anyone can suggest a song by YouTube URL
    * **Moderation**: Admins approve, reject, edit and delete songs
    * **JWT auth**: Register, login, refresh and logout

    ## Auth

    Use `/api/auth/login` to obtain tokens, then send
    `Authorization: Bearer <token>`.
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)


# MIDDLEWARE

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """One log line per request; the Authorization header is never logged."""
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - start) * 1000, 2)

    ctx = getattr(request.state, "ctx", None)
    caller = ctx.describe() if ctx else "guest"
    client = request.client.host if request.client else "-"
    message = (
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"in {duration_ms}ms (ip={client}, user={caller})"
    )

    if response.status_code >= 500:
        logger.error(message)
    elif response.status_code >= 400:
        logger.warning(message)
    else:
        logger.info(message)
    return response


# ROUTERS

app.include_router(auth.router, prefix="/api")
app.include_router(songs.router, prefix="/api")


# GLOBAL ENDPOINTS

@app.get("/health")
@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.SERVICE_NAME,
    }


@app.exception_handler(SongRankError)
async def songrank_exception_handler(request: Request, exc: SongRankError):
    """Domain errors -> structured JSON with their own status code."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Pydantic validation errors -> field-level error map."""
    errors = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = loc[-1] if loc else "body"
        msg = error.get("msg", "Invalid value").removeprefix("Value error, ")
        errors.setdefault(field, []).append(msg)

    invalid = ValidationError(errors=errors)
    return JSONResponse(status_code=invalid.status_code, content=invalid.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Unhandled errors: logged with traceback, never exposed to the client."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    error = InternalError(str(exc) if settings.DEBUG else None)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# SPA

class SPAStatic(StaticFiles):
    """Serves the built frontend, falling back to index.html for client-side routes."""

    def __init__(self, directory: Path, html: bool = True, check_dir: bool = True, index_html: Path = Path("index.html")):
        super().__init__(directory=directory, html=html, check_dir=check_dir)
        self.index_html = index_html

    async def __call__(self, scope, receive, send):
        assert scope["type"] == "http"

        request = Request(scope, receive)
        root = Path(self.directory).resolve()
        path = request.url.path.lstrip("/")

        # /api routes never fall back to the SPA
        if request.url.path.startswith("/api"):
            await super().__call__(scope, receive, send)
            return

        full_path = (root / path).resolve()
        if path and full_path.is_file() and full_path.is_relative_to(root):
            await super().__call__(scope, receive, send)
            return

        response = FileResponse(root / self.index_html)
        await response(scope, receive, send)


def mount_frontend(target: FastAPI, directory: Path) -> bool:
    """Mounts the SPA at / if it has been built; returns whether it was mounted."""
    if not (directory / "index.html").exists():
        return False
    target.mount("/", SPAStatic(directory=directory, html=True), name="spa")
    return True


FRONTEND_DIR = Path(settings.FRONTEND_DIR)
if mount_frontend(app, FRONTEND_DIR):
    logger.info(f"✅ SPA mounted from {FRONTEND_DIR}")
else:
    logger.warning("⚠️  Frontend dir not found; API-only mode")

    @app.get("/")
    def root():
        return {
            "message": "Welcome to SongRank API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health"
        }
