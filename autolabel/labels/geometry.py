"""Unit conversion and fit/center math for the 100x150mm label.

Every component converts between millimeters, pixels and PDF points through
these functions.
"""

MM_PER_INCH = 25.4
POINTS_PER_INCH = 72.0

# Target physical label (4x6" shipping label)
TARGET_WIDTH_MM = 100.0
TARGET_HEIGHT_MM = 150.0
TARGET_DPI = 300

# Band reserved at the bottom for footer text
FOOTER_HEIGHT_MM = 10.0


def mm_to_pixels(mm: float, dpi: int = TARGET_DPI) -> int:
    """Convert millimeters to whole pixels at the given DPI.

    Args:
        mm: Length in millimeters.
        dpi: Resolution in dots per inch.

    Returns:
        int: Rounded pixel count.
    """
    return round(mm / MM_PER_INCH * dpi)


def pixels_to_mm(pixels: float, dpi: int = TARGET_DPI) -> float:
    """Convert pixels at the given DPI to millimeters."""
    return pixels * MM_PER_INCH / dpi


def mm_to_points(mm: float) -> float:
    """Convert millimeters to PDF points (1/72 inch)."""
    return mm / MM_PER_INCH * POINTS_PER_INCH


def points_to_mm(points: float) -> float:
    """Convert PDF points to millimeters."""
    return points * MM_PER_INCH / POINTS_PER_INCH


def points_to_pixels(points: float, dpi: int = TARGET_DPI) -> int:
    """Convert PDF points to whole pixels at the given DPI."""
    return round(points / POINTS_PER_INCH * dpi)


def fit_scale(
    source_width: float,
    source_height: float,
    target_width: float,
    target_height: float,
) -> float:
    """Calculate the scale that fits a source rectangle inside a target.

    Aspect ratio is preserved and nothing is cropped, so one dimension may
    end up smaller than the target.

    Args:
        source_width: Source width.
        source_height: Source height.
        target_width: Target width (same unit as the result will be in).
        target_height: Target height.

    Returns:
        float: Scale factor.

    Raises:
        ValueError: If the source has no area.
    """
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Source size must be positive, got {source_width}x{source_height}")
    return min(target_width / source_width, target_height / source_height)


def center_offset(
    scaled_width: float,
    scaled_height: float,
    target_width: float,
    target_height: float,
) -> tuple[float, float]:
    """Calculate the offset that centers scaled content in a target.

    Returns:
        tuple[float, float]: (x, y) offset.
    """
    return ((target_width - scaled_width) / 2, (target_height - scaled_height) / 2)


def target_pixel_size(dpi: int = TARGET_DPI) -> tuple[int, int]:
    """Full label size in pixels (1181x1772 at 300 DPI)."""
    return (mm_to_pixels(TARGET_WIDTH_MM, dpi), mm_to_pixels(TARGET_HEIGHT_MM, dpi))


def footer_height_pixels(dpi: int = TARGET_DPI) -> int:
    """Footer band height in pixels (118 at 300 DPI)."""
    return mm_to_pixels(FOOTER_HEIGHT_MM, dpi)


def content_pixel_size(dpi: int = TARGET_DPI) -> tuple[int, int]:
    """Content area in pixels: the label minus the footer band (1181x1654)."""
    width, height = target_pixel_size(dpi)
    return (width, height - footer_height_pixels(dpi))


def content_size_mm() -> tuple[float, float]:
    """Content area in millimeters (100x140)."""
    return (TARGET_WIDTH_MM, TARGET_HEIGHT_MM - FOOTER_HEIGHT_MM)


def content_size_points() -> tuple[float, float]:
    """Content area in PDF points."""
    width_mm, height_mm = content_size_mm()
    return (mm_to_points(width_mm), mm_to_points(height_mm))


def target_size_points() -> tuple[float, float]:
    """Full label size in PDF points."""
    return (mm_to_points(TARGET_WIDTH_MM), mm_to_points(TARGET_HEIGHT_MM))
