"""Small PNG previews of labels, returned as data URLs."""

import base64
import io
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from PIL import Image, ImageDraw

from autolabel.labels.geometry import POINTS_PER_INCH
from autolabel.labels.imaging import is_pdf, open_first_frame, page_size_points, read_first_page
from autolabel.labels.rendering import RenderChain, get_render_chain

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 200
MAX_WORKERS = 5


def _to_data_url(image: Image.Image) -> str:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()


def placeholder_thumbnail(width: int, message: str) -> str:
    """Grey 2:3 placeholder with a short message."""
    height = int(width * 1.5)
    image = Image.new("RGB", (width, height), (240, 240, 240))
    draw = ImageDraw.Draw(image)
    draw.rectangle([(0, 0), (width - 1, height - 1)], outline=(221, 221, 221), width=2)
    bbox = draw.textbbox((0, 0), message)
    x = (width - (bbox[2] - bbox[0])) / 2
    draw.text((x, height * 0.55), message, fill=(153, 153, 153))
    return _to_data_url(image)


def _scale_to_width(image: Image.Image, width: int) -> Image.Image:
    height = max(1, round(image.height * width / image.width))
    return image.resize((width, height), Image.Resampling.LANCZOS)


def generate_thumbnail(
    path: Path,
    width: int = DEFAULT_WIDTH,
    render_chain: RenderChain | None = None,
) -> str:
    """Render the first page or frame of a label as a thumbnail.

    Never raises: unreadable or missing files give a placeholder.

    Args:
        path: PDF or image file.
        width: Thumbnail width in pixels.
        render_chain: Rasterizer for PDFs (defaults to the configured chain).

    Returns:
        str: ``data:image/png;base64,...`` URL.
    """
    path = Path(path)
    if not path.exists():
        return placeholder_thumbnail(width, "File Not Found")

    try:
        if is_pdf(path):
            page_width_pt, _ = page_size_points(read_first_page(path))
            # Render slightly above the final size so the downscale stays sharp
            dpi = max(36, round(width * 2 * POINTS_PER_INCH / page_width_pt))
            chain = render_chain or get_render_chain()
            image = chain.rasterize_first_page(path, dpi)
        else:
            image = open_first_frame(path)
        return _to_data_url(_scale_to_width(image, width))
    except Exception as e:
        logger.warning(f"Thumbnail failed for {path.name}: {e}")
        return placeholder_thumbnail(width, "Error Loading Label")


def generate_batch_thumbnails(
    paths: list[Path],
    width: int = DEFAULT_WIDTH,
    max_workers: int = MAX_WORKERS,
    render_chain: RenderChain | None = None,
) -> dict[str, str]:
    """Generate thumbnails for many labels with a bounded worker pool.

    Args:
        paths: Label files.
        width: Thumbnail width in pixels.
        max_workers: Concurrent renders (at most 5).
        render_chain: Rasterizer for PDFs.

    Returns:
        dict[str, str]: Path string to data URL.
    """
    if not paths:
        return {}

    chain = render_chain or get_render_chain()
    thumbnails: dict[str, str] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, MAX_WORKERS))) as executor:
        futures = {executor.submit(generate_thumbnail, path, width, chain): str(path) for path in paths}
        for future in as_completed(futures):
            thumbnails[futures[future]] = future.result()

    logger.debug(f"Generated {len(thumbnails)} thumbnail(s)")
    return thumbnails
