import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from urlmonitor.auth import ensure_admin_user
from urlmonitor.config import get_settings
from urlmonitor.database import close_db, get_session_factory, init_db
from urlmonitor.errors import MonitorError
from urlmonitor.routers import archive, auth, cron, pages, sweep, targets

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("urlmonitor")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables and the default admin on startup
    await init_db()
    async with get_session_factory()() as db:
        await ensure_admin_user(db)

    run_scheduler = settings.scheduler_enabled and not getattr(app.state, "_testing", False)
    if run_scheduler:
        from urlmonitor.scheduler import start_scheduler
        start_scheduler()

    yield

    # Shutdown
    if run_scheduler:
        from urlmonitor.scheduler import stop_scheduler
        stop_scheduler()
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MonitorError)
async def monitor_error_handler(request: Request, exc: MonitorError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


# Static files
app.mount(
    "/static",
    StaticFiles(directory=str(Path(__file__).resolve().parent / "static")),
    name="static",
)

# Routers
app.include_router(pages.router)
app.include_router(auth.router)
app.include_router(targets.router)
app.include_router(sweep.router)
app.include_router(archive.router)
app.include_router(cron.router)


@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
    }
