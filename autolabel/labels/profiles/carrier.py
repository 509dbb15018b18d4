"""Marketplace carrier crop profiles.

Vinted labels arrive as an A4/Letter sheet with the actual label printed in one
region. DPD puts it in the upper-left quadrant already upright; DHL, Hermes, GLS
and the others put it across the upper half sideways, so that half is rotated
counter-clockwise to stand it up.
"""

import logging
import time
from pathlib import Path

from PIL import Image

from autolabel.labels.carriers import canonical_carrier, detect_carrier, extract_text, mentions
from autolabel.labels.geometry import (
    TARGET_DPI,
    TARGET_HEIGHT_MM,
    TARGET_WIDTH_MM,
    content_pixel_size,
    content_size_points,
)
from autolabel.labels.imaging import (
    crop_upper_half,
    crop_upper_left_quadrant,
    fit_contain,
    image_to_pdf,
    is_pdf,
    open_first_frame,
    rotate_counter_clockwise,
    save_png,
)
from autolabel.labels.profiles.base import NormalizedArtifact, ProcessingContext
from autolabel.labels.rendering import RenderChain

logger = logging.getLogger(__name__)


class CarrierCropProfile:
    """Base class for profiles that crop a carrier's label out of a sheet.

    Subclasses set ``carriers`` (the closed set they handle) and implement
    ``transform``. A ``catch_all`` profile also takes any other carrier of the
    same marketplace.
    """

    id: str = ""
    name: str = ""
    platform: str = "vinted"
    carriers: frozenset[str] = frozenset()
    catch_all: bool = False

    def __init__(self, render_chain: RenderChain):
        """Initialize the profile.

        Args:
            render_chain: Rasterizer used for PDF input.
        """
        self.render_chain = render_chain

    def transform(self, image: Image.Image) -> Image.Image:
        """Crop (and rotate) a full-sheet raster down to the label region."""
        raise NotImplementedError

    def _accepts(self, carrier: str | None) -> bool:
        if carrier in self.carriers:
            return True
        return self.catch_all

    def detect(self, source: Path, context: ProcessingContext) -> bool:
        carrier = canonical_carrier(context.carrier)
        on_platform = bool(context.platform) and context.platform.strip().lower() == self.platform

        if carrier:
            if carrier in self.carriers:
                logger.debug(f"{self.id}: matched carrier {carrier} from context")
                return True
            return self.catch_all and on_platform

        # Carrier unknown: read it from the document
        text = extract_text(source)
        if not on_platform and not mentions(text, self.platform):
            return False

        text_carrier = detect_carrier(text)
        if text_carrier is None:
            return self.catch_all
        return self._accepts(text_carrier)

    def process(
        self, source: Path, context: ProcessingContext, work_dir: Path
    ) -> NormalizedArtifact:
        stamp = int(time.time() * 1000)
        content_w, content_h = content_pixel_size()
        detected_carrier = None

        if is_pdf(source):
            logger.info(f"{self.id}: rasterizing {source.name} at {TARGET_DPI} DPI")
            sheet = self.render_chain.rasterize_first_page(source, TARGET_DPI)
            label = fit_contain(self.transform(sheet), content_w, content_h)
            output = image_to_pdf(label, work_dir / f"{self.id}_{stamp}.pdf", content_size_points())
            detected_carrier = detect_carrier(extract_text(source))
        else:
            sheet = open_first_frame(source)
            label = fit_contain(self.transform(sheet), content_w, content_h)
            output = save_png(label, work_dir / f"{self.id}_{stamp}.png", TARGET_DPI)

        logger.info(f"{self.id}: cropped {sheet.width}x{sheet.height}px sheet into {output.name}")
        return NormalizedArtifact(
            output_path=output,
            width_mm=TARGET_WIDTH_MM,
            height_mm=TARGET_HEIGHT_MM,
            profile_id=self.id,
            detected_carrier=detected_carrier,
        )


class VintedDpdProfile(CarrierCropProfile):
    """DPD labels from Vinted: upper-left quadrant, no rotation."""

    id = "vinted_dpd"
    name = "Vinted DPD Label"
    carriers = frozenset({"DPD"})

    def transform(self, image: Image.Image) -> Image.Image:
        return crop_upper_left_quadrant(image)


class VintedSidewaysProfile(CarrierCropProfile):
    """DHL, Hermes, GLS and other Vinted labels: upper half, rotated CCW."""

    id = "vinted"
    name = "Vinted Shipping Label"
    carriers = frozenset({"DHL", "Hermes", "GLS"})
    catch_all = True

    def transform(self, image: Image.Image) -> Image.Image:
        return rotate_counter_clockwise(crop_upper_half(image))
