"""Cross-platform printing.

Provides a unified printer interface across Linux/macOS (CUPS) and Windows
(SumatraPDF / win32print). Use get_printer() to get the backend for the
current platform.
"""

import logging
import platform

from autolabel.config import Settings, get_settings
from autolabel.printing.base import PrinterBackend

logger = logging.getLogger(__name__)


def get_printer(settings: Settings | None = None) -> PrinterBackend:
    """Factory function that returns the appropriate printer backend.

    Args:
        settings: Settings (defaults to cached settings).

    Returns:
        PrinterBackend: Platform-specific printer instance.
    """
    settings = settings or get_settings()
    system = platform.system()

    if system == "Windows":
        from autolabel.printing.win32_printer import Win32Printer

        return Win32Printer(settings)

    # Linux and macOS both use CUPS
    from autolabel.printing.cups_printer import CupsPrinter

    return CupsPrinter(settings)


__all__ = [
    "PrinterBackend",
    "get_printer",
]
