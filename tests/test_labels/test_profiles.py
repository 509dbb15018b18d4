"""Tests for transform profiles and the profile registry."""

from unittest.mock import MagicMock

import pytest
from PIL import Image
import pypdf

from autolabel.labels.geometry import content_pixel_size, content_size_points
from autolabel.labels.profiles import (
    GenericProfile,
    ProcessingContext,
    ProfileRegistry,
    VintedDpdProfile,
    VintedSidewaysProfile,
)

RED = (255, 0, 0)
GREEN = (0, 255, 0)


def is_close(pixel, color, tolerance=10):
    return all(abs(a - b) <= tolerance for a, b in zip(pixel, color))


class TestProfileRegistry:
    """Tests for registration and classification."""

    def test_fallback_is_last(self, registry):
        """Should list specific profiles before the fallback."""
        assert registry.ids() == ["vinted_dpd", "vinted", "generic"]
        assert registry.fallback.id == "generic"

    def test_duplicate_rejected(self, render_chain):
        """Should refuse a second profile with the same ID."""
        registry = ProfileRegistry(GenericProfile())
        registry.register(VintedDpdProfile(render_chain))

        with pytest.raises(ValueError, match="vinted_dpd"):
            registry.register(VintedDpdProfile(render_chain))

    def test_duplicate_of_fallback_rejected(self):
        """Should refuse a profile that reuses the fallback ID."""
        registry = ProfileRegistry(GenericProfile())

        with pytest.raises(ValueError):
            registry.register(GenericProfile())

    def test_get(self, registry):
        assert registry.get("vinted").id == "vinted"
        assert registry.get("unknown") is None

    def test_detect_error_counts_as_no_match(self, make_png):
        """Should log a crashing detect and keep going."""
        broken = MagicMock()
        broken.id = "broken"
        broken.detect.side_effect = RuntimeError("boom")
        registry = ProfileRegistry(GenericProfile())
        registry.register(broken)

        assert registry.detect_profile(make_png()) == "generic"
        broken.detect.assert_called_once()

    def test_detect_without_context(self, registry, make_png):
        """Should accept a missing context."""
        assert registry.detect_profile(make_png()) == "generic"


class TestClassification:
    """Tests for choosing a profile from context and content."""

    @pytest.mark.parametrize(
        "context,expected",
        [
            (ProcessingContext(carrier="DPD"), "vinted_dpd"),
            (ProcessingContext(carrier="dpd", platform="Vinted"), "vinted_dpd"),
            (ProcessingContext(carrier="DHL"), "vinted"),
            (ProcessingContext(carrier="Hermes"), "vinted"),
            (ProcessingContext(carrier="GLS"), "vinted"),
            (ProcessingContext(carrier="UPS", platform="Vinted"), "vinted"),
            (ProcessingContext(platform="vinted"), "vinted"),
            (ProcessingContext(carrier="UPS"), "generic"),
            (ProcessingContext(carrier="UPS", platform="eBay"), "generic"),
            (ProcessingContext(), "generic"),
        ],
    )
    def test_from_context(self, registry, make_png, context, expected):
        """Should classify from caller hints before reading the file."""
        assert registry.detect_profile(make_png(), context) == expected

    def test_vinted_dpd_pdf_text(self, registry, make_pdf):
        """Should read marketplace and carrier from the text layer."""
        pdf = make_pdf(lines=["Vinted Versandetikett", "DPD Classic"])

        assert registry.detect_profile(pdf, ProcessingContext()) == "vinted_dpd"

    def test_vinted_hermes_pdf_text(self, registry, make_pdf):
        pdf = make_pdf(lines=["Vinted", "Hermes Paket"])

        assert registry.detect_profile(pdf, ProcessingContext()) == "vinted"

    def test_vinted_platform_with_dpd_text(self, registry, make_pdf):
        """Should find the carrier in the text when only the platform is known."""
        pdf = make_pdf(lines=["DPD Classic"])

        assert registry.detect_profile(pdf, ProcessingContext(platform="Vinted")) == "vinted_dpd"

    def test_carrier_label_without_marketplace(self, registry, make_pdf):
        """Should use the generic profile for a plain carrier label."""
        pdf = make_pdf(lines=["DHL Paket"])

        assert registry.detect_profile(pdf, ProcessingContext()) == "generic"


class TestGenericProfile:
    """Tests for fit-and-center."""

    def test_always_detects(self, make_png):
        assert GenericProfile().detect(make_png(), ProcessingContext()) is True

    def test_image_fits_content_area(self, make_png, tmp_path):
        """Should letterbox an image into the content bitmap."""
        source = make_png(size=(400, 400), color=RED)

        artifact = GenericProfile().process(source, ProcessingContext(), tmp_path)

        assert artifact.output_path.suffix == ".png"
        assert artifact.profile_id == "generic"
        assert (artifact.width_mm, artifact.height_mm) == (100.0, 150.0)
        with Image.open(artifact.output_path) as image:
            assert image.size == content_pixel_size()
            assert image.getpixel((590, 10)) == (255, 255, 255)
            assert is_close(image.getpixel((590, 827)), RED)

    def test_pdf_stays_vector(self, make_pdf, tmp_path):
        """Should place the PDF page onto a content-area page."""
        source = make_pdf(lines=["DHL Paket"])

        artifact = GenericProfile().process(source, ProcessingContext(), tmp_path)

        assert artifact.output_path.suffix == ".pdf"
        assert artifact.detected_carrier == "DHL"
        page = pypdf.PdfReader(str(artifact.output_path)).pages[0]
        width, height = content_size_points()
        assert float(page.mediabox.width) == pytest.approx(width, abs=0.5)
        assert float(page.mediabox.height) == pytest.approx(height, abs=0.5)
        assert "DHL Paket" in page.extract_text()


class TestCarrierCropProfiles:
    """Tests for marketplace crop profiles."""

    def test_dpd_crops_upper_left_quadrant(self, render_chain, make_sheet_png, tmp_path):
        """Should keep only the upper-left quarter, unrotated."""
        profile = VintedDpdProfile(render_chain)

        artifact = profile.process(make_sheet_png(), ProcessingContext(carrier="DPD"), tmp_path)

        with Image.open(artifact.output_path) as image:
            assert image.size == content_pixel_size()
            assert is_close(image.getpixel((590, 200)), RED)
            assert is_close(image.getpixel((590, 1450)), RED)

    def test_sideways_crops_and_rotates(self, render_chain, make_sheet_png, tmp_path):
        """Should rotate the upper half counter-clockwise."""
        profile = VintedSidewaysProfile(render_chain)

        artifact = profile.process(make_sheet_png(), ProcessingContext(carrier="DHL"), tmp_path)

        with Image.open(artifact.output_path) as image:
            assert image.size == content_pixel_size()
            # Right half of the sheet ends up on top, left half at the bottom
            assert is_close(image.getpixel((590, 400)), GREEN)
            assert is_close(image.getpixel((590, 1250)), RED)

    def test_pdf_is_rasterized_at_300_dpi(self, fake_backend, render_chain, make_pdf, tmp_path):
        """Should rasterize PDFs through the chain and return a PDF."""
        profile = VintedDpdProfile(render_chain)
        source = make_pdf(lines=["Vinted", "DPD"])

        artifact = profile.process(source, ProcessingContext(), tmp_path)

        assert fake_backend.calls == [(source, 300)]
        assert artifact.output_path.suffix == ".pdf"
        assert artifact.detected_carrier == "DPD"
        page = pypdf.PdfReader(str(artifact.output_path)).pages[0]
        assert float(page.mediabox.width) == pytest.approx(content_size_points()[0], abs=0.5)
