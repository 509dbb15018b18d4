"""CUPS printing backend for Linux and macOS."""

import logging
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

# Try to import cups, but make it optional
try:
    import cups

    CUPS_AVAILABLE = True
    CUPS_ERRORS = (cups.IPPError, RuntimeError)
except ImportError:
    CUPS_AVAILABLE = False
    CUPS_ERRORS = (RuntimeError,)
    logger.debug("pycups not available - using lp command fallback")


def _print_options(settings: Settings, copies: int) -> dict[str, str]:
    # Labels are already exactly 100x150mm; the driver must not rescale them
    return {
        "copies": str(copies),
        "PageSize": settings.cups_page_size,
        "scaling": "100",
        "fit-to-page": "false",
    }


class IppSubmitter:
    """Submit through the CUPS server with pycups."""

    name = "pycups"

    def __init__(self, connection, settings: Settings):
        self._connection = connection
        self.settings = settings

    def submit(self, path: Path, printer_name: str, title: str, copies: int) -> str:
        if self._connection is None:
            raise SubmissionToolUnavailable("pycups is not installed or CUPS is not reachable")
        try:
            job_id = self._connection.printFile(
                printer_name, str(path), title, _print_options(self.settings, copies)
            )
        except CUPS_ERRORS as e:
            raise SubmissionFailure(f"CUPS rejected {path.name}: {e}") from e
        logger.info(f"Print job {job_id} submitted to {printer_name}")
        return str(job_id)


class LpSubmitter:
    """Submit with the ``lp`` command."""

    name = "lp"

    def __init__(self, settings: Settings):
        self.settings = settings

    def submit(self, path: Path, printer_name: str, title: str, copies: int) -> str:
        cmd = ["lp", "-d", printer_name, "-t", title, "-n", str(copies)]
        for key, value in _print_options(self.settings, copies).items():
            if key != "copies":
                cmd.extend(["-o", f"{key}={value}"])
        cmd.append(str(path))

        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.settings.print_timeout
            )
        except FileNotFoundError as err:
            raise SubmissionToolUnavailable("lp command not found - is CUPS installed?") from err
        except subprocess.TimeoutExpired as err:
            raise SubmissionFailure("Print command timed out") from err

        if result.returncode != 0:
            raise SubmissionFailure(f"lp command failed: {result.stderr.strip()}")

        logger.info(f"Print job submitted via lp: {result.stdout.strip()}")
        return result.stdout.strip()


class CupsPrinter:
    """Wrapper for CUPS printing operations."""

    def __init__(self, settings: Settings | None = None, connection=None):
        """Initialize CUPS printer connection.

        Args:
            settings: Settings (defaults to cached settings).
            connection: Existing ``cups.Connection`` (created if None).
        """
        self.settings = settings or get_settings()
        self._connection = connection

        if self._connection is None and CUPS_AVAILABLE:
            try:
                self._connection = cups.Connection()
            except RuntimeError as e:
                logger.error(f"Could not connect to CUPS: {e}")

        self.submitters = [IppSubmitter(self._connection, self.settings), LpSubmitter(self.settings)]

    @property
    def is_available(self) -> bool:
        """Check if CUPS is available and connected.

        Returns:
            bool: True if CUPS is available.
        """
        return self._connection is not None or shutil.which("lp") is not None

    def get_printers(self) -> list[dict]:
        """Get list of available printers.

        Returns:
            list[dict]: List of printer info dicts with 'name' and 'state'.
        """
        if self._connection:
            try:
                default = self._connection.getDefault()
                printers = self._connection.getPrinters()
                return [
                    {
                        "name": name,
                        "state": info.get("printer-state", 0),
                        "state_message": info.get("printer-state-message", ""),
                        "is_default": name == default,
                    }
                    for name, info in printers.items()
                ]
            except Exception as e:
                logger.error(f"Error getting printers: {e}")
                return []

        # Fallback: use lpstat
        try:
            result = subprocess.run(["lpstat", "-p"], capture_output=True, text=True, timeout=10)
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return []

        default = self.get_default_printer()
        printers = []
        for line in result.stdout.strip().split("\n"):
            if line.startswith("printer "):
                parts = line.split()
                if len(parts) >= 2:
                    printers.append(
                        {
                            "name": parts[1],
                            "state": 5 if "disabled" in line else 3,
                            "state_message": "",
                            "is_default": parts[1] == default,
                        }
                    )
        return printers

    def get_default_printer(self) -> str | None:
        """Get the default printer name.

        Returns:
            str | None: Default printer name or None.
        """
        if self._connection:
            try:
                return self._connection.getDefault()
            except Exception as e:
                logger.error(f"Error getting default printer: {e}")
                return None

        # Fallback: use lpstat -d
        try:
            result = subprocess.run(["lpstat", "-d"], capture_output=True, text=True, timeout=5)
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return None
        if "system default destination:" in result.stdout:
            return result.stdout.split(":")[-1].strip()
        return None

    def get_printer_status(self, printer_name: str | None = None) -> str:
        """Get status of a specific printer.

        Args:
            printer_name: Printer name (None = default).

        Returns:
            str: Status string ('ready', 'offline', 'busy', 'unknown').
        """
        name = printer_name or self.get_default_printer()
        if not name:
            return "unknown"

        for printer in self.get_printers():
            if printer["name"] == name:
                # CUPS states: 3=idle, 4=processing, 5=stopped
                return {3: "ready", 4: "busy", 5: "offline"}.get(printer["state"], "unknown")
        return "offline"

    def print_file(
        self,
        path: Path,
        printer_name: str,
        title: str = "AutoLabel",
        copies: int = 1,
    ) -> str:
        """Submit a label file, preferring pycups over ``lp``.

        Raises:
            SubmissionFailure: If CUPS rejected the file.
            SubmissionToolUnavailable: If neither pycups nor lp is usable.
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
        """Cancel all jobs queued on a printer.

        Raises:
            PrinterError: If the queue could not be purged.
        """
        if self._connection:
            try:
                self._connection.cancelAllJobs(name=printer_name, purge_jobs=True)
                logger.info(f"Purged CUPS queue of {printer_name}")
                return
            except CUPS_ERRORS as e:
                raise PrinterError(f"Could not purge {printer_name}: {e}") from e

        try:
            result = subprocess.run(
                ["cancel", "-a", printer_name], capture_output=True, text=True, timeout=10
            )
        except (subprocess.TimeoutExpired, FileNotFoundError) as err:
            raise PrinterError(f"Could not purge {printer_name}: {err}") from err
        if result.returncode != 0:
            raise PrinterError(f"cancel command failed: {result.stderr.strip()}")
        logger.info(f"Purged queue of {printer_name} via cancel")
