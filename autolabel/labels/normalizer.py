"""Run the selected profile and check its output against the content area."""

import logging
from pathlib import Path

from autolabel.exceptions import TransformFailure
from autolabel.labels.geometry import (
    TARGET_DPI,
    TARGET_HEIGHT_MM,
    TARGET_WIDTH_MM,
    content_pixel_size,
    content_size_points,
    mm_to_pixels,
    mm_to_points,
)
from autolabel.labels.imaging import artifact_size_mm, is_pdf
from autolabel.labels.profiles.base import (
    NormalizedArtifact,
    ProcessingContext,
    ProfileRegistry,
)

logger = logging.getLogger(__name__)

# Allowed deviation from the content area
PIXEL_TOLERANCE = 1
POINT_TOLERANCE = 1.0


def check_content_size(path: Path) -> None:
    """Verify that an artifact measures exactly the content area.

    Args:
        path: PDF or PNG produced by a profile.

    Raises:
        TransformFailure: If the file is off by more than 1px / 1pt.
    """
    width_mm, height_mm = artifact_size_mm(path, TARGET_DPI)

    if is_pdf(path):
        expected = content_size_points()
        actual = (mm_to_points(width_mm), mm_to_points(height_mm))
        tolerance = POINT_TOLERANCE
        unit = "pt"
    else:
        expected = content_pixel_size(TARGET_DPI)
        actual = (mm_to_pixels(width_mm, TARGET_DPI), mm_to_pixels(height_mm, TARGET_DPI))
        tolerance = PIXEL_TOLERANCE
        unit = "px"

    if abs(actual[0] - expected[0]) > tolerance or abs(actual[1] - expected[1]) > tolerance:
        raise TransformFailure(
            f"{path.name} is {actual[0]:.0f}x{actual[1]:.0f}{unit}, "
            f"expected {expected[0]:.0f}x{expected[1]:.0f}{unit}"
        )


def normalize_label(
    registry: ProfileRegistry,
    source: Path,
    context: ProcessingContext | None = None,
    work_dir: Path | None = None,
) -> NormalizedArtifact:
    """Classify a source label and transform it into the content area.

    Args:
        registry: Profiles to choose from.
        source: Label file (PDF or image).
        context: Caller-supplied hints.
        work_dir: Directory for the output (defaults to the source's directory).

    Returns:
        NormalizedArtifact: Checked artifact reporting the 100x150mm target.

    Raises:
        TransformFailure: If the profile fails or produces a wrongly sized file.
        RenderingUnavailable: If a PDF could not be rasterized.
    """
    source = Path(source)
    if not source.exists():
        raise TransformFailure(f"Source file not found: {source}")

    context = context or ProcessingContext()
    work_dir = Path(work_dir) if work_dir else source.parent
    work_dir.mkdir(parents=True, exist_ok=True)

    profile_id = registry.detect_profile(source, context)
    profile = registry.get(profile_id)
    logger.info(f"Normalizing {source.name} with profile {profile_id}")

    artifact = profile.process(source, context, work_dir)
    check_content_size(artifact.output_path)

    artifact.width_mm = TARGET_WIDTH_MM
    artifact.height_mm = TARGET_HEIGHT_MM
    artifact.profile_id = profile_id
    return artifact
