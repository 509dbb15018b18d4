"""Metadata footer compositor.

Takes a content-area artifact (100x140mm) and produces the full 100x150mm
label: content on top, a solid 10mm band at the bottom with one line of
centered text.
"""

import io
import logging
import os
from datetime import date, datetime
from pathlib import Path

import pypdf
import reportlab
from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.colors import HexColor
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from autolabel.config import Settings, get_settings
from autolabel.labels.geometry import (
    FOOTER_HEIGHT_MM,
    POINTS_PER_INCH,
    TARGET_DPI,
    center_offset,
    content_pixel_size,
    content_size_points,
    fit_scale,
    footer_height_pixels,
    mm_to_points,
    target_pixel_size,
    target_size_points,
)
from autolabel.labels.imaging import (
    fit_contain,
    is_pdf,
    open_first_frame,
    page_size_points,
    parse_hex_color,
    read_first_page,
    save_png,
)

logger = logging.getLogger(__name__)

SEPARATOR = " | "
TITLE_MAX_CHARS = 40

FONT_NAME = "Helvetica"
FONT_SIZE_PT = 8.0
MIN_FONT_SIZE_PT = 5.0
FONT_STEP_PT = 0.5
SIDE_MARGIN_MM = 2.0

# Pillow needs a TrueType file; reportlab ships Vera
FONT_PATHS = [
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    os.path.join(os.path.dirname(reportlab.__file__), "fonts", "Vera.ttf"),
    "C:\\Windows\\Fonts\\arial.ttf",
]


def format_date(value: date | datetime | str | None) -> str | None:
    """Format a sale date the German way (``d.m.yyyy``, no zero padding)."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    return f"{value.day}.{value.month}.{value.year}"


def build_footer_text(sale, config) -> str:
    """Build the footer line for a sale.

    Fields appear in a fixed order: product number, item title, date.

    Args:
        sale: Object with ``product_number``, ``item_title`` and ``date``.
        config: Object with ``include_product_number``, ``include_item_title``
            and ``include_date`` flags.

    Returns:
        str: Selected fields joined by " | " (empty if none selected).
    """
    parts = []

    if config.include_product_number:
        parts.append(f"#{sale.product_number}" if sale.product_number else "No Product Number")

    if config.include_item_title:
        parts.append(sale.item_title[:TITLE_MAX_CHARS] if sale.item_title else "No Item Title")

    if config.include_date:
        formatted = format_date(sale.date)
        if formatted:
            parts.append(formatted)

    return SEPARATOR.join(parts)


def fit_font_size(text: str, max_width_pt: float) -> float:
    """Largest font size (8pt down to 5pt) at which text fits a width."""
    size = FONT_SIZE_PT
    while size > MIN_FONT_SIZE_PT and stringWidth(text, FONT_NAME, size) > max_width_pt:
        size -= FONT_STEP_PT
    return max(size, MIN_FONT_SIZE_PT)


def truncate_to_width(text: str, size: float, max_width_pt: float) -> str:
    """Cut text with an ellipsis until it fits at the given size."""
    if stringWidth(text, FONT_NAME, size) <= max_width_pt:
        return text
    while text and stringWidth(text + "...", FONT_NAME, size) > max_width_pt:
        text = text[:-1]
    return text.rstrip() + "..."


def _layout_text(text: str) -> tuple[str, float]:
    """Pick font size and (possibly truncated) text for the footer band."""
    width_pt, _ = target_size_points()
    max_width = width_pt - 2 * mm_to_points(SIDE_MARGIN_MM)
    size = fit_font_size(text, max_width)
    return truncate_to_width(text, size, max_width), size


def apply_footer(
    source: Path,
    destination: Path,
    text: str,
    settings: Settings | None = None,
) -> Path:
    """Compose a content artifact and a footer band into the full label.

    PDF input stays vector (content page merged with a reportlab overlay);
    image input is composited with Pillow.

    Args:
        source: Content-area PDF or image.
        destination: Output path (extension should match the input type).
        text: Footer text.
        settings: Settings for footer colors.

    Returns:
        Path: The destination path.

    Raises:
        TransformFailure: If the source cannot be read.
    """
    settings = settings or get_settings()
    source = Path(source)
    destination = Path(destination)
    line, size = _layout_text(text)
    logger.info(f"Adding footer to {source.name}: '{line}' at {size}pt")

    if is_pdf(source):
        _apply_pdf_footer(source, destination, line, size, settings)
    else:
        _apply_image_footer(source, destination, line, size, settings)
    return destination


def _footer_overlay(line: str, size: float, settings: Settings) -> pypdf.PageObject:
    """Draw the footer band and text as a full-size PDF page."""
    width_pt, height_pt = target_size_points()
    band_pt = mm_to_points(FOOTER_HEIGHT_MM)

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(width_pt, height_pt))
    c.setFillColor(HexColor(settings.footer_background))
    c.rect(0, 0, width_pt, band_pt, stroke=0, fill=1)

    c.setFillColor(HexColor(settings.footer_text_color))
    c.setFont(FONT_NAME, size)
    # Baseline sits a bit below the middle so the glyphs look centered
    c.drawCentredString(width_pt / 2, band_pt / 2 - size * 0.35, line)
    c.showPage()
    c.save()

    buffer.seek(0)
    return pypdf.PdfReader(buffer).pages[0]


def _apply_pdf_footer(
    source: Path, destination: Path, line: str, size: float, settings: Settings
) -> None:
    page = read_first_page(source)
    src_w, src_h = page_size_points(page)
    content_w, content_h = content_size_points()
    width_pt, height_pt = target_size_points()
    band_pt = mm_to_points(FOOTER_HEIGHT_MM)

    scale = fit_scale(src_w, src_h, content_w, content_h)
    x, y = center_offset(src_w * scale, src_h * scale, content_w, content_h)
    transform = (
        pypdf.Transformation()
        .translate(-float(page.mediabox.left), -float(page.mediabox.bottom))
        .scale(scale, scale)
        .translate(x, y + band_pt)
    )

    writer = pypdf.PdfWriter()
    writer.add_page(pypdf.PageObject.create_blank_page(width=width_pt, height=height_pt))
    target = writer.pages[-1]
    target.merge_transformed_page(page, transform)
    target.merge_page(_footer_overlay(line, size, settings))

    with open(destination, "wb") as f:
        writer.write(f)


def _load_font(size_px: int):
    for path in FONT_PATHS:
        try:
            return ImageFont.truetype(path, size_px)
        except OSError:
            continue
    logger.warning("No TrueType font found, using Pillow default font")
    return ImageFont.load_default()


def _apply_image_footer(
    source: Path, destination: Path, line: str, size: float, settings: Settings
) -> None:
    width, height = target_pixel_size()
    content_w, content_h = content_pixel_size()
    band = footer_height_pixels()

    content = open_first_frame(source)
    if content.size != (content_w, content_h):
        content = fit_contain(content, content_w, content_h)

    label = Image.new("RGB", (width, height), (255, 255, 255))
    label.paste(content, (0, 0))

    draw = ImageDraw.Draw(label)
    draw.rectangle([(0, height - band), (width, height)], fill=parse_hex_color(settings.footer_background))

    font = _load_font(round(size * TARGET_DPI / POINTS_PER_INCH))
    bbox = draw.textbbox((0, 0), line, font=font)
    text_w = bbox[2] - bbox[0]
    text_h = bbox[3] - bbox[1]
    x = (width - text_w) / 2 - bbox[0]
    y = height - band + (band - text_h) / 2 - bbox[1]
    draw.text((x, y), line, font=font, fill=parse_hex_color(settings.footer_text_color))

    save_png(label, destination, TARGET_DPI)
