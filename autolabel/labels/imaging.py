"""Pillow, pypdf and reportlab helpers shared by profiles and the footer.

All pixel/point math goes through ``geometry``.
"""

import io
from pathlib import Path

import pypdf
from PIL import Image, ImageOps, UnidentifiedImageError
from pypdf.errors import PdfReadError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from autolabel.exceptions import TransformFailure
from autolabel.labels.geometry import (
    TARGET_DPI,
    center_offset,
    fit_scale,
    pixels_to_mm,
    points_to_mm,
)

PDF_MAGIC = b"%PDF"
WHITE = (255, 255, 255)


def is_pdf(path: Path) -> bool:
    """Check whether a file is a PDF.

    Magic bytes win over the extension, so a mislabelled PNG named
    ``label.pdf`` is treated as an image.

    Args:
        path: File path.

    Returns:
        bool: True if the file starts with ``%PDF``.
    """
    try:
        with open(path, "rb") as f:
            return f.read(4) == PDF_MAGIC
    except OSError:
        return Path(path).suffix.lower() == ".pdf"


def open_first_frame(path: Path) -> Image.Image:
    """Load the first frame of an image as opaque RGB.

    EXIF orientation is applied and transparency is flattened onto white.

    Raises:
        TransformFailure: If the file is not a readable image.
    """
    try:
        with Image.open(path) as img:
            img.seek(0)
            frame = ImageOps.exif_transpose(img)
            frame.load()
    except (UnidentifiedImageError, OSError, EOFError) as e:
        raise TransformFailure(f"Cannot read image {Path(path).name}: {e}") from e

    if frame.mode in ("RGBA", "LA") or (frame.mode == "P" and "transparency" in frame.info):
        rgba = frame.convert("RGBA")
        flattened = Image.new("RGB", rgba.size, WHITE)
        flattened.paste(rgba, mask=rgba.split()[-1])
        return flattened
    return frame.convert("RGB")


def read_first_page(path: Path) -> pypdf.PageObject:
    """Read the first page of a PDF with its /Rotate baked into the content.

    Raises:
        TransformFailure: If the PDF is unreadable or has no pages.
    """
    try:
        reader = pypdf.PdfReader(str(path))
        if len(reader.pages) == 0:
            raise TransformFailure(f"PDF has no pages: {Path(path).name}")
        page = reader.pages[0]
        if page.rotation:
            page.transfer_rotation_to_content()
    except (PdfReadError, OSError, ValueError) as e:
        raise TransformFailure(f"Cannot read PDF {Path(path).name}: {e}") from e
    return page


def page_size_points(page: pypdf.PageObject) -> tuple[float, float]:
    """Width and height of a page's media box in points."""
    return (float(page.mediabox.width), float(page.mediabox.height))


def fit_contain(
    image: Image.Image,
    width: int,
    height: int,
    background: tuple[int, int, int] = WHITE,
) -> Image.Image:
    """Scale an image to fit a canvas and center it (letterboxed).

    Args:
        image: Source image.
        width: Canvas width in pixels.
        height: Canvas height in pixels.
        background: Letterbox fill color.

    Returns:
        Image.Image: New image exactly ``width`` x ``height``.
    """
    scale = fit_scale(image.width, image.height, width, height)
    scaled_w = max(1, round(image.width * scale))
    scaled_h = max(1, round(image.height * scale))
    resized = image.resize((scaled_w, scaled_h), Image.Resampling.LANCZOS)

    x, y = center_offset(scaled_w, scaled_h, width, height)
    result = Image.new("RGB", (width, height), background)
    result.paste(resized, (int(x), int(y)))
    return result


def crop_upper_left_quadrant(image: Image.Image) -> Image.Image:
    """Crop to the top-left quarter of the image."""
    return image.crop((0, 0, image.width // 2, image.height // 2))


def crop_upper_half(image: Image.Image) -> Image.Image:
    """Crop to the top half of the image."""
    return image.crop((0, 0, image.width, image.height // 2))


def rotate_counter_clockwise(image: Image.Image) -> Image.Image:
    """Rotate 90 degrees counter-clockwise, swapping width and height."""
    # Reason: PIL angles are counter-clockwise, expand keeps the whole strip
    return image.rotate(90, expand=True)


def save_png(image: Image.Image, path: Path, dpi: int = TARGET_DPI) -> Path:
    """Save an image as PNG tagged with its print resolution."""
    image.save(path, format="PNG", dpi=(dpi, dpi))
    return path


def image_to_pdf(image: Image.Image, path: Path, page_size: tuple[float, float]) -> Path:
    """Write an image as a single PDF page filling the given size in points."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    buffer.seek(0)

    c = canvas.Canvas(str(path), pagesize=page_size)
    c.drawImage(ImageReader(buffer), 0, 0, width=page_size[0], height=page_size[1])
    c.showPage()
    c.save()
    return path


def artifact_size_mm(path: Path, dpi: int = TARGET_DPI) -> tuple[float, float]:
    """Measure the physical size of a PDF page or an image at ``dpi``.

    Returns:
        tuple[float, float]: (width_mm, height_mm).

    Raises:
        TransformFailure: If the file cannot be read.
    """
    if is_pdf(path):
        width_pt, height_pt = page_size_points(read_first_page(path))
        return (points_to_mm(width_pt), points_to_mm(height_pt))

    try:
        with Image.open(path) as img:
            width_px, height_px = img.size
    except (UnidentifiedImageError, OSError) as e:
        raise TransformFailure(f"Cannot read image {Path(path).name}: {e}") from e
    return (pixels_to_mm(width_px, dpi), pixels_to_mm(height_px, dpi))


def parse_hex_color(value: str) -> tuple[int, int, int]:
    """Parse a ``#RRGGBB`` color into an RGB tuple."""
    text = value.strip().lstrip("#")
    if len(text) != 6:
        raise ValueError(f"Expected #RRGGBB color, got {value!r}")
    return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
