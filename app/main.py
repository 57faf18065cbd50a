"""Volunteer Hub Web Application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from app.core.config import settings
from app.core.database import create_db_and_tables
from app.routes import occurrences, registrations

# Configure logging
settings.log_dir.mkdir(parents=True, exist_ok=True)
log_file = settings.log_dir / "latest.log"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=str(log_file),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    logger.info("Starting Volunteer Hub application")
    create_db_and_tables()
    yield
    logger.info("Volunteer Hub application shut down")


app = FastAPI(
    title=settings.app_name,
    description="Volunteer and participant management: event registration and attendance",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for external access
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount static files
app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")

# Include routers
app.include_router(registrations.router)
app.include_router(occurrences.router)


@app.get("/")
async def root(request: Request):
    """Redirect root to upcoming occurrences."""
    rp = request.scope.get("root_path", "")
    return RedirectResponse(f"{rp}/occurrences/upcoming")


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}


@app.get("/teapot")
async def teapot():
    return PlainTextResponse("I'm a teapot", status_code=418)


def run():
    """Serve the application with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port)
