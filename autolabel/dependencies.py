"""Dependency injection for FastAPI."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from autolabel.config import get_settings
from autolabel.db.database import SessionLocal, get_db
from autolabel.labels.profiles import ProfileRegistry, build_default_registry
from autolabel.labels.rendering import RenderChain, get_render_chain
from autolabel.printing import get_printer
from autolabel.printing.manager import PrintJobManager
from autolabel.printing.quota import get_quota_gate


@lru_cache
def get_shared_render_chain() -> RenderChain:
    """Render chain built once from settings."""
    return get_render_chain(get_settings())


@lru_cache
def get_registry() -> ProfileRegistry:
    """Profile registry built once at first use."""
    return build_default_registry(get_shared_render_chain())


@lru_cache
def get_print_manager() -> PrintJobManager:
    """Process-wide print job manager.

    One instance owns the background print threads, so it must be shared
    across requests.
    """
    settings = get_settings()
    return PrintJobManager(
        session_factory=SessionLocal,
        printer=get_printer(settings),
        quota_gate=get_quota_gate(settings),
        settings=settings,
    )


DbSession = Annotated[Session, Depends(get_db)]
Registry = Annotated[ProfileRegistry, Depends(get_registry)]
Renderer = Annotated[RenderChain, Depends(get_shared_render_chain)]
Manager = Annotated[PrintJobManager, Depends(get_print_manager)]
