"""Carrier and marketplace hints read from a PDF's text layer.

Scanned labels have no text layer; detection then returns None and
classification relies on the caller's context.
"""

import logging
import re
from pathlib import Path

import pypdf
from pypdf.errors import PdfReadError

from autolabel.labels.imaging import is_pdf

logger = logging.getLogger(__name__)

# Checked in order; the first carrier with a matching indicator wins
CARRIER_INDICATORS: dict[str, list[str]] = {
    "Hermes": [
        "myhermes",
        "hermesworld",
        "hermes logistik",
        "hermes-europe",
        "hermes paket",
        "hermes",
    ],
    "DHL": [
        "dhl paket",
        "dhl express",
        "dhl.de",
        "dhl.com",
        "deutsche post dhl",
        "dhl",
    ],
    "DPD": [
        "dpd.com",
        "dpd.de",
        "dynamic parcel distribution",
        "dpd",
    ],
    "GLS": [
        "gls-group",
        "gls.de",
        "general logistics systems",
        "gls parcel service",
        "gls",
    ],
    "UPS": [
        "ups.com",
        "united parcel service",
        "ups",
    ],
    "FedEx": [
        "federal express",
        "fedex.com",
        "fedex",
    ],
}


def canonical_carrier(name: str | None) -> str | None:
    """Normalize a carrier name to the spelling used in CARRIER_INDICATORS.

    Args:
        name: Carrier name in any case (e.g. "dhl", "HERMES").

    Returns:
        str | None: Canonical name, the stripped input if unknown, or None.
    """
    if not name or not name.strip():
        return None
    cleaned = name.strip()
    for carrier in CARRIER_INDICATORS:
        if carrier.lower() == cleaned.lower():
            return carrier
    return cleaned


def extract_text(path: Path, max_pages: int = 1) -> str:
    """Extract text from the first pages of a PDF.

    Args:
        path: PDF path.
        max_pages: Number of pages to read.

    Returns:
        str: Extracted text, empty if the file is not a readable PDF.
    """
    if not is_pdf(path):
        return ""
    try:
        reader = pypdf.PdfReader(str(path))
        parts = [page.extract_text() or "" for page in reader.pages[:max_pages]]
    except (PdfReadError, OSError, ValueError) as e:
        logger.warning(f"Could not extract text from {Path(path).name}: {e}")
        return ""

    text = "\n".join(parts)
    if not text.strip():
        logger.debug(f"No text layer in {Path(path).name} (scanned or image-only PDF)")
    return text


def _contains(text: str, indicator: str) -> bool:
    # Whole-word match so "ups" does not fire on "groups"
    return re.search(rf"(?<![a-z0-9]){re.escape(indicator)}(?![a-z0-9])", text) is not None


def detect_carrier(text: str) -> str | None:
    """Detect the shipping carrier from label text.

    Args:
        text: Text extracted from the label.

    Returns:
        str | None: Canonical carrier name or None.
    """
    lowered = text.lower()
    for carrier, indicators in CARRIER_INDICATORS.items():
        for indicator in indicators:
            if _contains(lowered, indicator):
                logger.debug(f"Detected {carrier} from indicator '{indicator}'")
                return carrier
    return None


def mentions(text: str, word: str) -> bool:
    """Check whether text mentions a word (case-insensitive, whole word)."""
    return _contains(text.lower(), word.lower())
