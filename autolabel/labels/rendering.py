"""Rasterize the first page of a PDF through an ordered chain of backends.

Backends:
    magick   - ImageMagick (external, preferred for fidelity)
    pdftoppm - Poppler (external)
    pymupdf  - PyMuPDF (in-process fallback)

Only the first page is ever rendered.
"""

import io
import logging
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from PIL import Image, UnidentifiedImageError

from autolabel.chain import run_chain
from autolabel.config import Settings, get_settings
from autolabel.exceptions import BackendUnavailable, RenderingUnavailable
from autolabel.labels.geometry import POINTS_PER_INCH, TARGET_DPI

logger = logging.getLogger(__name__)

# Try to import PyMuPDF, but make it optional
try:
    import pymupdf

    PYMUPDF_AVAILABLE = True
except ImportError:
    PYMUPDF_AVAILABLE = False
    logger.debug("PyMuPDF not available - in-process rendering disabled")


class RenderError(Exception):
    """A backend is installed but failed to render a document."""

    pass


@runtime_checkable
class RenderBackend(Protocol):
    """Protocol for a first-page rasterizer."""

    name: str

    @property
    def is_available(self) -> bool:
        """Check if the backend can run on this machine."""
        ...

    def rasterize_first_page(self, document: Path, dpi: int = TARGET_DPI) -> Image.Image:
        """Render page 1 of a PDF to an RGB image.

        Raises:
            BackendUnavailable: If the backend is not installed.
            RenderError: If rendering failed.
        """
        ...


def _decode_png(data: bytes, backend: str) -> Image.Image:
    """Decode PNG bytes from a rasterizer into an RGB image."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise RenderError(f"{backend} produced unreadable output: {e}") from e
    return image.convert("RGB")


class MagickBackend:
    """ImageMagick rasterizer (``magick -density 300 file.pdf[0] png:-``)."""

    name = "magick"

    def __init__(self, command: str = "magick", timeout: int = 60):
        self.command = command
        self.timeout = timeout

    @property
    def is_available(self) -> bool:
        return shutil.which(self.command) is not None

    def rasterize_first_page(self, document: Path, dpi: int = TARGET_DPI) -> Image.Image:
        if not self.is_available:
            raise BackendUnavailable(f"{self.command} not found")

        cmd = [
            self.command,
            "-density",
            str(dpi),
            f"{document}[0]",
            "-background",
            "white",
            "-alpha",
            "remove",
            "-alpha",
            "off",
            "png:-",
        ]
        logger.debug(f"Render command: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as err:
            raise RenderError(f"{self.command} timed out after {self.timeout}s") from err
        except FileNotFoundError as err:
            raise BackendUnavailable(f"{self.command} not found") from err

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise RenderError(f"{self.command} failed: {stderr}")
        return _decode_png(result.stdout, self.name)


class PdftoppmBackend:
    """Poppler rasterizer (``pdftoppm -r 300 -f 1 -l 1 -png -singlefile``)."""

    name = "pdftoppm"

    def __init__(self, command: str = "pdftoppm", timeout: int = 60):
        self.command = command
        self.timeout = timeout

    @property
    def is_available(self) -> bool:
        return shutil.which(self.command) is not None

    def rasterize_first_page(self, document: Path, dpi: int = TARGET_DPI) -> Image.Image:
        if not self.is_available:
            raise BackendUnavailable(f"{self.command} not found")

        with tempfile.TemporaryDirectory(prefix="autolabel_ppm_") as tmp:
            out_root = Path(tmp) / "page"
            cmd = [
                self.command,
                "-r",
                str(dpi),
                "-f",
                "1",
                "-l",
                "1",
                "-png",
                "-singlefile",
                str(document),
                str(out_root),
            ]
            logger.debug(f"Render command: {' '.join(cmd)}")
            try:
                result = subprocess.run(cmd, capture_output=True, timeout=self.timeout)
            except subprocess.TimeoutExpired as err:
                raise RenderError(f"{self.command} timed out after {self.timeout}s") from err
            except FileNotFoundError as err:
                raise BackendUnavailable(f"{self.command} not found") from err

            if result.returncode != 0:
                stderr = result.stderr.decode(errors="replace").strip()
                raise RenderError(f"{self.command} failed: {stderr}")

            output = out_root.with_suffix(".png")
            if not output.exists():
                raise RenderError(f"{self.command} wrote no output")
            return _decode_png(output.read_bytes(), self.name)


class PyMuPDFBackend:
    """In-process rasterizer using PyMuPDF."""

    name = "pymupdf"

    @property
    def is_available(self) -> bool:
        return PYMUPDF_AVAILABLE

    def rasterize_first_page(self, document: Path, dpi: int = TARGET_DPI) -> Image.Image:
        if not PYMUPDF_AVAILABLE:
            raise BackendUnavailable("PyMuPDF is not installed")

        try:
            doc = pymupdf.open(str(document))
        except Exception as e:
            raise RenderError(f"PyMuPDF cannot open document: {e}") from e
        try:
            if doc.page_count == 0:
                raise RenderError("Document has no pages")
            scale = dpi / POINTS_PER_INCH
            pixmap = doc[0].get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
            return Image.frombytes("RGB", [pixmap.width, pixmap.height], pixmap.samples)
        finally:
            doc.close()


class RenderChain:
    """Ordered set of render backends tried until one succeeds."""

    def __init__(self, backends: list[RenderBackend]):
        """Initialize the chain.

        Args:
            backends: Backends in priority order.
        """
        self.backends = list(backends)

    @property
    def available_backends(self) -> list[str]:
        """Names of backends that can run on this machine."""
        return [b.name for b in self.backends if b.is_available]

    def rasterize_first_page(self, document: Path, dpi: int = TARGET_DPI) -> Image.Image:
        """Render page 1 of a PDF with the first backend that works.

        A backend that is missing or fails is logged and skipped.

        Args:
            document: PDF path.
            dpi: Output resolution.

        Returns:
            Image.Image: RGB bitmap of the first page.

        Raises:
            RenderingUnavailable: If every backend failed.
        """

        def render(backend: RenderBackend) -> Image.Image:
            image = backend.rasterize_first_page(document, dpi)
            logger.info(
                f"Rendered {Path(document).name} with {backend.name} "
                f"({image.width}x{image.height}px @ {dpi} DPI)"
            )
            return image

        try:
            # Reason: a crashing backend must not hide a working one further down
            return run_chain(self.backends, render, fall_through=(Exception,), what="Renderer")
        except BackendUnavailable as e:
            failures = getattr(e, "failures", [str(e)])
            raise RenderingUnavailable(
                f"No renderer could rasterize {Path(document).name}: {e}", failures
            ) from e


BACKEND_FACTORIES = {
    "magick": lambda s: MagickBackend(s.magick_command, s.render_timeout),
    "pdftoppm": lambda s: PdftoppmBackend(s.pdftoppm_command, s.render_timeout),
    "pymupdf": lambda s: PyMuPDFBackend(),
}


def get_render_chain(settings: Settings | None = None) -> RenderChain:
    """Factory function that builds the chain from configured backend names.

    Args:
        settings: Settings (defaults to cached settings).

    Returns:
        RenderChain: Chain in configured order.

    Raises:
        ValueError: If a configured backend name is unknown.
    """
    settings = settings or get_settings()
    backends = []
    for name in settings.render_backends:
        factory = BACKEND_FACTORIES.get(name.lower())
        if factory is None:
            raise ValueError(f"Unknown render backend: {name}")
        backends.append(factory(settings))
    return RenderChain(backends)
