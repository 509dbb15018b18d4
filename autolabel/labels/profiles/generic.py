"""Universal fit-and-center profile.

Scales the whole first page or frame into the content area, keeping the
aspect ratio and centering it. Nothing is cropped, so every label keeps all
of its content, possibly with white margins.
"""

import logging
import time
from pathlib import Path

import pypdf

from autolabel.labels.carriers import detect_carrier, extract_text
from autolabel.labels.geometry import (
    TARGET_DPI,
    TARGET_HEIGHT_MM,
    TARGET_WIDTH_MM,
    center_offset,
    content_pixel_size,
    content_size_points,
    fit_scale,
)
from autolabel.labels.imaging import (
    fit_contain,
    is_pdf,
    open_first_frame,
    page_size_points,
    read_first_page,
    save_png,
)
from autolabel.labels.profiles.base import NormalizedArtifact, ProcessingContext

logger = logging.getLogger(__name__)


class GenericProfile:
    """Fallback profile that matches every file."""

    id = "generic"
    name = "Generic Label"

    def detect(self, source: Path, context: ProcessingContext) -> bool:
        return True

    def process(
        self, source: Path, context: ProcessingContext, work_dir: Path
    ) -> NormalizedArtifact:
        stamp = int(time.time() * 1000)
        detected_carrier = None

        if is_pdf(source):
            output = work_dir / f"generic_{stamp}.pdf"
            self._process_pdf(source, output)
            detected_carrier = detect_carrier(extract_text(source))
        else:
            output = work_dir / f"generic_{stamp}.png"
            self._process_image(source, output)

        return NormalizedArtifact(
            output_path=output,
            width_mm=TARGET_WIDTH_MM,
            height_mm=TARGET_HEIGHT_MM,
            profile_id=self.id,
            detected_carrier=detected_carrier,
        )

    def _process_pdf(self, source: Path, output: Path) -> None:
        """Place page 1 onto a content-area page as vectors."""
        page = read_first_page(source)
        src_w, src_h = page_size_points(page)
        dst_w, dst_h = content_size_points()

        scale = fit_scale(src_w, src_h, dst_w, dst_h)
        x, y = center_offset(src_w * scale, src_h * scale, dst_w, dst_h)
        logger.info(
            f"Fitting PDF {source.name} ({src_w:.0f}x{src_h:.0f}pt) at scale {scale:.3f}"
        )

        left = float(page.mediabox.left)
        bottom = float(page.mediabox.bottom)
        transform = (
            pypdf.Transformation().translate(-left, -bottom).scale(scale, scale).translate(x, y)
        )

        writer = pypdf.PdfWriter()
        writer.add_page(pypdf.PageObject.create_blank_page(width=dst_w, height=dst_h))
        writer.pages[-1].merge_transformed_page(page, transform)

        with open(output, "wb") as f:
            writer.write(f)

    def _process_image(self, source: Path, output: Path) -> None:
        """Fit the first frame into the content-area bitmap."""
        image = open_first_frame(source)
        width, height = content_pixel_size()
        logger.info(f"Fitting image {source.name} ({image.width}x{image.height}px)")
        save_png(fit_contain(image, width, height), output, TARGET_DPI)
