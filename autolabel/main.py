"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from autolabel import __version__
from autolabel.config import get_settings
from autolabel.db.database import init_db
from autolabel.dependencies import get_print_manager

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events.

    Args:
        app: FastAPI application instance.
    """
    # Startup
    init_db()
    get_print_manager().recover_interrupted()
    yield


app = FastAPI(
    title=settings.app_name,
    description="Normalize shipping labels to 100x150mm and print them",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

# Import and include routers
from autolabel.labels.router import router as labels_router  # noqa: E402
from autolabel.printing.router import router as printing_router  # noqa: E402

# API routes
app.include_router(labels_router, prefix="/api/labels", tags=["labels"])
app.include_router(printing_router, prefix="/api/print", tags=["printing"])


@app.get("/health")
async def health_check():
    """Health check endpoint.

    Returns:
        dict: Health status.
    """
    return {"status": "healthy", "version": __version__}
