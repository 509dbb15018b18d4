"""Pytest configuration and fixtures."""

import os
import tempfile
import threading
import time
from collections.abc import Generator
from datetime import datetime
from pathlib import Path

# Set test environment before importing autolabel
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="autolabel-test-")
os.environ["AUTOLABEL_DATA_DIR"] = _TEST_DATA_DIR
os.environ["AUTOLABEL_DATABASE_URL"] = f"sqlite:///{_TEST_DATA_DIR}/app.db"
os.environ["AUTOLABEL_RENDER_BACKENDS"] = '["pymupdf"]'
os.environ["AUTOLABEL_QUOTA_URL"] = ""

import pytest
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from autolabel.config import Settings
from autolabel.db.models import (
    Attachment,
    AttachmentType,
    Base,
    PreparedLabel,
    Sale,
)
from autolabel.exceptions import SubmissionFailure
from autolabel.labels.profiles import build_default_registry
from autolabel.labels.rendering import RenderChain
from autolabel.printing.quota import QuotaDecision

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a per-test data directory."""
    return Settings(
        data_dir=tmp_path / "data",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        render_backends=["pymupdf"],
        printer_name=None,
    )


@pytest.fixture
def session_factory(settings: Settings) -> Generator[sessionmaker, None, None]:
    """Session factory over a fresh SQLite file.

    A file database (not :memory:) so print threads see committed rows.
    """
    engine = create_engine(
        settings.get_database_url(),
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Database session for one test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# Files
# ============================================================================


@pytest.fixture
def make_pdf(tmp_path: Path):
    """Factory writing a one-page PDF with optional text lines."""

    def _make(
        name: str = "label.pdf",
        lines: list[str] | None = None,
        pagesize: tuple[float, float] = A4,
        pages: int = 1,
    ) -> Path:
        path = tmp_path / name
        c = canvas.Canvas(str(path), pagesize=pagesize)
        for _ in range(pages):
            c.setFont("Helvetica", 14)
            y = pagesize[1] - 60
            for line in lines or []:
                c.drawString(40, y, line)
                y -= 20
            c.rect(20, 20, pagesize[0] - 40, pagesize[1] - 40)
            c.showPage()
        c.save()
        return path

    return _make


@pytest.fixture
def make_png(tmp_path: Path):
    """Factory writing a solid-color PNG."""

    def _make(
        name: str = "label.png",
        size: tuple[int, int] = (800, 1200),
        color: tuple[int, int, int] = BLUE,
        mode: str = "RGB",
    ) -> Path:
        path = tmp_path / name
        if mode == "RGBA":
            Image.new("RGBA", size, (*color, 128)).save(path, format="PNG")
        else:
            Image.new(mode, size, color).save(path, format="PNG")
        return path

    return _make


def quadrant_sheet(width: int = 620, height: int = 877) -> Image.Image:
    """A4-proportioned sheet: upper-left red, upper-right green, bottom blue."""
    sheet = Image.new("RGB", (width, height), BLUE)
    sheet.paste(Image.new("RGB", (width // 2, height // 2), RED), (0, 0))
    sheet.paste(Image.new("RGB", (width - width // 2, height // 2), GREEN), (width // 2, 0))
    return sheet


# ============================================================================
# Fakes
# ============================================================================


class FakeRenderBackend:
    """Renderer that returns a synthetic quadrant sheet for any PDF."""

    def __init__(self, name: str = "fake", available: bool = True, error: Exception | None = None):
        self.name = name
        self._available = available
        self.error = error
        self.calls: list[tuple[Path, int]] = []

    @property
    def is_available(self) -> bool:
        return self._available

    def rasterize_first_page(self, document: Path, dpi: int = 300) -> Image.Image:
        self.calls.append((Path(document), dpi))
        if self.error is not None:
            raise self.error
        return quadrant_sheet()


class FakePrinter:
    """In-memory printer backend recording submissions."""

    def __init__(
        self,
        printers: list[str] | None = None,
        default: str | None = "Label Printer",
        fail_on_calls: set[int] | None = None,
        purge_error: Exception | None = None,
        delay: float = 0,
    ):
        self.printers = printers if printers is not None else ["Label Printer", "Office"]
        self.default = default
        self.fail_on_calls = fail_on_calls or set()
        self.purge_error = purge_error
        self.delay = delay
        self.submitted: list[tuple[Path, str]] = []
        self.purged: list[str] = []
        self.release = threading.Event()
        self.release.set()
        self._calls = 0

    @property
    def is_available(self) -> bool:
        return True

    def get_printers(self) -> list[dict]:
        return [
            {"name": name, "state": 3, "state_message": "", "is_default": name == self.default}
            for name in self.printers
        ]

    def get_default_printer(self) -> str | None:
        return self.default

    def get_printer_status(self, printer_name: str | None = None) -> str:
        return "ready" if (printer_name or self.default) in self.printers else "offline"

    def print_file(self, path: Path, printer_name: str, title: str = "AutoLabel", copies: int = 1) -> str:
        self.release.wait(5)
        if self.delay:
            time.sleep(self.delay)
        self._calls += 1
        if self._calls in self.fail_on_calls:
            raise SubmissionFailure("Printer rejected the file")
        self.submitted.append((Path(path), printer_name))
        return f"job-{self._calls}"

    def purge_jobs(self, printer_name: str) -> None:
        self.purged.append(printer_name)
        if self.purge_error is not None:
            raise self.purge_error


class FakeQuota:
    """Quota gate with a fixed answer, recording requested counts."""

    def __init__(self, allowed: bool = True, remaining: int = 100, limit: int = 100, reason=None):
        self.decision = QuotaDecision(allowed=allowed, reason=reason, remaining=remaining, limit=limit)
        self.requests: list[int] = []

    def validate(self, count: int) -> QuotaDecision:
        self.requests.append(count)
        return self.decision


@pytest.fixture
def fake_backend() -> FakeRenderBackend:
    return FakeRenderBackend()


@pytest.fixture
def render_chain(fake_backend: FakeRenderBackend) -> RenderChain:
    return RenderChain([fake_backend])


@pytest.fixture
def registry(render_chain: RenderChain):
    return build_default_registry(render_chain)


@pytest.fixture
def fake_printer() -> FakePrinter:
    return FakePrinter()


@pytest.fixture
def fake_quota() -> FakeQuota:
    return FakeQuota()


# ============================================================================
# Records
# ============================================================================


@pytest.fixture
def make_sale(db: Session):
    """Factory creating a sale with an optional attachment."""

    def _make(
        attachment: Path | None = None,
        platform: str | None = None,
        shipping_company: str | None = None,
        product_number: str | None = "A-1001",
        item_title: str | None = "Blue denim jacket",
        date: datetime = datetime(2024, 3, 5, 14, 30),
    ) -> Sale:
        sale = Sale(
            date=date,
            platform=platform,
            shipping_company=shipping_company,
            product_number=product_number,
            item_title=item_title,
        )
        db.add(sale)
        db.flush()
        if attachment is not None:
            db.add(
                Attachment(
                    sale_id=sale.id,
                    type=AttachmentType.PDF if attachment.suffix == ".pdf" else AttachmentType.IMAGE,
                    local_path=str(attachment),
                    original_filename=attachment.name,
                )
            )
        db.commit()
        db.refresh(sale)
        return sale

    return _make


@pytest.fixture
def make_label(db: Session, make_sale, make_png):
    """Factory creating a prepared label backed by a real file."""
    counter = {"n": 0}

    def _make(path: Path | None = None) -> PreparedLabel:
        counter["n"] += 1
        if path is None:
            path = make_png(f"prepared_{counter['n']}.png", size=(1181, 1772))
        sale = make_sale()
        label = PreparedLabel(
            sale_id=sale.id,
            profile_id="generic",
            output_path=str(path),
            width_mm=100.0,
            height_mm=150.0,
            dpi=300,
            footer_applied=False,
        )
        db.add(label)
        db.commit()
        db.refresh(label)
        return label

    return _make


@pytest.fixture
def backend_factory():
    """The fake render backend class, for chains with several backends."""
    return FakeRenderBackend


@pytest.fixture
def make_sheet_png(tmp_path: Path):
    """Factory writing the quadrant sheet as a PNG (a scanned marketplace label)."""

    def _make(name: str = "sheet.png") -> Path:
        path = tmp_path / name
        quadrant_sheet().save(path)
        return path

    return _make


# ============================================================================
# Printing and API
# ============================================================================


@pytest.fixture
def manager(session_factory, fake_printer, fake_quota, settings):
    """Print job manager over the test database and fake printer."""
    from autolabel.printing.manager import PrintJobManager

    return PrintJobManager(
        session_factory=session_factory,
        printer=fake_printer,
        quota_gate=fake_quota,
        settings=settings,
    )


@pytest.fixture
def client(session_factory, registry, render_chain, manager):
    """Test client with database, profiles, renderer and printing overridden."""
    from fastapi.testclient import TestClient

    from autolabel.db.database import get_db
    from autolabel.dependencies import get_print_manager, get_registry, get_shared_render_chain
    from autolabel.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_shared_render_chain] = lambda: render_chain
    app.dependency_overrides[get_print_manager] = lambda: manager
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
