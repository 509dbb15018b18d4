"""Windows printing backend using SumatraPDF, ShellExecute and win32print."""

import logging
import os
import shutil
import subprocess
from pathlib import Path

from autolabel.chain import run_chain
from autolabel.config import Settings, get_settings
from autolabel.exceptions import (
    BackendUnavailable,
    PrinterError,
    SubmissionFailure,
    SubmissionToolUnavailable,
)

logger = logging.getLogger(__name__)

# Try to import win32 modules
try:
    import win32api
    import win32print

    WIN32_AVAILABLE = True
except ImportError:
    WIN32_AVAILABLE = False
    logger.debug("pywin32 not available - Windows printing disabled")

SUMATRA_LOCATIONS = [
    os.path.join(os.environ.get("ProgramFiles", "C:\\Program Files"), "SumatraPDF", "SumatraPDF.exe"),
    os.path.join(
        os.environ.get("ProgramFiles(x86)", "C:\\Program Files (x86)"), "SumatraPDF", "SumatraPDF.exe"
    ),
    os.path.join(os.environ.get("LOCALAPPDATA", ""), "SumatraPDF", "SumatraPDF.exe"),
]


def find_sumatra(configured: str | None = None) -> str | None:
    """Locate SumatraPDF.exe (configured path, PATH, then install dirs)."""
    if configured:
        return configured if Path(configured).exists() else None
    found = shutil.which("SumatraPDF") or shutil.which("SumatraPDF.exe")
    if found:
        return found
    for candidate in SUMATRA_LOCATIONS:
        if Path(candidate).exists():
            return candidate
    return None


class SumatraSubmitter:
    """Silent printing through SumatraPDF (no dialog, exact printer)."""

    name = "sumatra"

    def __init__(self, settings: Settings):
        self.settings = settings

    def submit(self, path: Path, printer_name: str, title: str, copies: int) -> str:
        exe = find_sumatra(self.settings.sumatra_path)
        if not exe:
            raise SubmissionToolUnavailable("SumatraPDF not found")

        cmd = [
            exe,
            "-print-to",
            printer_name,
            "-print-settings",
            f"noscale,{copies}x",
            "-silent",
            str(path),
        ]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.settings.print_timeout
            )
        except FileNotFoundError as err:
            raise SubmissionToolUnavailable(f"SumatraPDF not runnable: {exe}") from err
        except subprocess.TimeoutExpired as err:
            raise SubmissionFailure("SumatraPDF timed out") from err

        if result.returncode != 0:
            raise SubmissionFailure(f"SumatraPDF failed with exit code {result.returncode}")
        logger.info(f"Print job submitted to {printer_name} via SumatraPDF")
        return f"sumatra:{path.name}"


class ShellExecuteSubmitter:
    """Hand the file to its registered application with the ``printto`` verb."""

    name = "shellexecute"

    def submit(self, path: Path, printer_name: str, title: str, copies: int) -> str:
        if not WIN32_AVAILABLE:
            raise SubmissionToolUnavailable("pywin32 is not installed")
        try:
            for _ in range(copies):
                win32api.ShellExecute(
                    0,
                    "printto",
                    str(path),
                    f'"{printer_name}"',
                    ".",
                    0,  # SW_HIDE
                )
        except Exception as e:
            raise SubmissionFailure(f"Windows print failed: {e}") from e
        logger.info(f"Print job submitted to {printer_name} via ShellExecute ({copies} copies)")
        return f"shell:{path.name}"


class Win32Printer:
    """Windows printing backend using win32print API."""

    def __init__(self, settings: Settings | None = None):
        """Initialize Windows printer.

        Args:
            settings: Settings (defaults to cached settings).
        """
        self.settings = settings or get_settings()
        self.submitters = [SumatraSubmitter(self.settings), ShellExecuteSubmitter()]

    @property
    def is_available(self) -> bool:
        """Check if Windows printing is available.

        Returns:
            bool: True if win32print is importable.
        """
        return WIN32_AVAILABLE

    def get_printers(self) -> list[dict]:
        """Get list of available printers.

        Returns:
            list[dict]: List of printer info dicts.
        """
        if not WIN32_AVAILABLE:
            return []

        try:
            default = self.get_default_printer()
            printers = win32print.EnumPrinters(
                win32print.PRINTER_ENUM_LOCAL | win32print.PRINTER_ENUM_CONNECTIONS
            )
            return [
                {
                    "name": name,
                    "state": 3,  # Map to CUPS-like idle state
                    "state_message": comment or "",
                    "is_default": name == default,
                }
                for _flags, _description, name, comment in printers
            ]
        except Exception as e:
            logger.error(f"Error enumerating printers: {e}")
            return []

    def get_default_printer(self) -> str | None:
        """Get the default printer name.

        Returns:
            str | None: Default printer name or None.
        """
        if not WIN32_AVAILABLE:
            return None

        try:
            return win32print.GetDefaultPrinter()
        except Exception as e:
            logger.error(f"Error getting default printer: {e}")
            return None

    def get_printer_status(self, printer_name: str | None = None) -> str:
        """Get status of a specific printer.

        Args:
            printer_name: Printer name (None = default).

        Returns:
            str: Status string ('ready', 'offline', 'busy', 'unknown').
        """
        if not WIN32_AVAILABLE:
            return "unknown"

        name = printer_name or self.get_default_printer()
        if not name:
            return "unknown"

        try:
            handle = win32print.OpenPrinter(name)
            try:
                status = win32print.GetPrinter(handle, 2)["Status"]
            finally:
                win32print.ClosePrinter(handle)
        except Exception as e:
            logger.error(f"Error getting printer status: {e}")
            return "unknown"

        if status == 0:
            return "ready"
        if status & 0x00000400:  # PRINTER_STATUS_OFFLINE
            return "offline"
        if status & 0x00000004:  # PRINTER_STATUS_PRINTING
            return "busy"
        return "unknown"

    def print_file(
        self,
        path: Path,
        printer_name: str,
        title: str = "AutoLabel",
        copies: int = 1,
    ) -> str:
        """Submit a label file, preferring SumatraPDF over ShellExecute.

        Raises:
            SubmissionFailure: If the submission tool reported an error.
            SubmissionToolUnavailable: If no submission tool is installed.
        """
        path = Path(path)
        try:
            return run_chain(
                self.submitters,
                lambda s: s.submit(path, printer_name, title, copies),
                fall_through=(SubmissionToolUnavailable,),
                what="Print tool",
            )
        except SubmissionToolUnavailable:
            raise
        except BackendUnavailable as e:
            raise SubmissionToolUnavailable(str(e)) from e

    def purge_jobs(self, printer_name: str) -> None:
        """Purge the spooler queue of a printer.

        Raises:
            PrinterError: If pywin32 is missing or the spooler refused.
        """
        if not WIN32_AVAILABLE:
            raise PrinterError("pywin32 is not installed")

        try:
            handle = win32print.OpenPrinter(
                printer_name, {"DesiredAccess": win32print.PRINTER_ALL_ACCESS}
            )
            try:
                win32print.SetPrinter(handle, 0, None, win32print.PRINTER_CONTROL_PURGE)
            finally:
                win32print.ClosePrinter(handle)
        except Exception as e:
            raise PrinterError(f"Could not purge {printer_name}: {e}") from e
        logger.info(f"Purged spooler queue of {printer_name}")
