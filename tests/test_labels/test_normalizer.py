"""Tests for label normalization and the content-size check."""

from unittest.mock import MagicMock

import pytest
from PIL import Image

from autolabel.exceptions import TransformFailure
from autolabel.labels.geometry import content_pixel_size
from autolabel.labels.normalizer import check_content_size, normalize_label
from autolabel.labels.profiles import (
    GenericProfile,
    NormalizedArtifact,
    ProcessingContext,
    ProfileRegistry,
)


class TestCheckContentSize:
    """Tests for the output size check."""

    def test_exact_png_passes(self, make_png):
        check_content_size(make_png(size=content_pixel_size()))

    def test_one_pixel_off_passes(self, make_png):
        """Should allow rounding by a single pixel."""
        width, height = content_pixel_size()
        check_content_size(make_png(size=(width + 1, height - 1)))

    def test_wrong_png_fails(self, make_png):
        with pytest.raises(TransformFailure, match="expected 1181x1654px"):
            check_content_size(make_png(size=(1181, 1772)))

    def test_wrong_pdf_fails(self, make_pdf):
        """Should reject a PDF that is still A4."""
        with pytest.raises(TransformFailure, match="pt"):
            check_content_size(make_pdf())


class TestNormalizeLabel:
    """Tests for normalize_label."""

    def test_missing_source(self, registry, tmp_path):
        with pytest.raises(TransformFailure, match="not found"):
            normalize_label(registry, tmp_path / "missing.pdf")

    def test_reports_target_size(self, registry, make_png, tmp_path):
        """Should report the 100x150mm target, not the content area."""
        work_dir = tmp_path / "work"

        artifact = normalize_label(registry, make_png(), ProcessingContext(), work_dir)

        assert artifact.profile_id == "generic"
        assert (artifact.width_mm, artifact.height_mm) == (100.0, 150.0)
        assert artifact.output_path.parent == work_dir
        with Image.open(artifact.output_path) as image:
            assert image.size == content_pixel_size()

    def test_work_dir_defaults_to_source_dir(self, registry, make_png):
        source = make_png()

        artifact = normalize_label(registry, source)

        assert artifact.output_path.parent == source.parent

    def test_uses_detected_profile(self, registry, make_pdf, tmp_path):
        """Should route a Vinted DPD PDF through the DPD profile."""
        source = make_pdf(lines=["Vinted", "DPD Classic"])

        artifact = normalize_label(registry, source, ProcessingContext(), tmp_path / "work")

        assert artifact.profile_id == "vinted_dpd"
        assert artifact.detected_carrier == "DPD"

    def test_wrong_size_output_rejected(self, make_png, tmp_path):
        """Should fail when a profile ignores the content area."""
        oversized = make_png("oversized.png", size=(1181, 1772))
        profile = MagicMock()
        profile.id = "sloppy"
        profile.detect.return_value = True
        profile.process.return_value = NormalizedArtifact(
            output_path=oversized, width_mm=100.0, height_mm=150.0, profile_id="sloppy"
        )
        registry = ProfileRegistry(GenericProfile())
        registry.register(profile)

        with pytest.raises(TransformFailure):
            normalize_label(registry, make_png())
