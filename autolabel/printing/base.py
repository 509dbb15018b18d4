"""Printer backend interface."""

from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class PrinterBackend(Protocol):
    """Protocol defining the printer backend interface.

    All platform-specific printer implementations must satisfy this protocol.
    """

    @property
    def is_available(self) -> bool:
        """Check if the printing system is available.

        Returns:
            bool: True if printing is available.
        """
        ...

    def get_printers(self) -> list[dict]:
        """Get list of available printers.

        Returns:
            list[dict]: List of printer info dicts with 'name', 'state',
                        'state_message', and 'is_default' keys.
        """
        ...

    def get_default_printer(self) -> str | None:
        """Get the default printer name.

        Returns:
            str | None: Default printer name or None.
        """
        ...

    def get_printer_status(self, printer_name: str | None = None) -> str:
        """Get status of a specific printer.

        The result is advisory only; it is never used to decide whether a
        label was printed.

        Args:
            printer_name: Printer name (None = default).

        Returns:
            str: Status string ('ready', 'offline', 'busy', 'unknown').
        """
        ...

    def print_file(
        self,
        path: Path,
        printer_name: str,
        title: str = "AutoLabel",
        copies: int = 1,
    ) -> str:
        """Submit a PDF or PNG label file to a printer.

        Submission tools are tried in order; the next one is used only when
        the previous one is not installed.

        Args:
            path: Label file.
            printer_name: Target printer.
            title: Print job title.
            copies: Number of copies.

        Returns:
            str: Reference of the submitted job (tool-specific).

        Raises:
            SubmissionFailure: If the print system rejected the file.
            SubmissionToolUnavailable: If no submission tool is installed.
        """
        ...

    def purge_jobs(self, printer_name: str) -> None:
        """Cancel every queued job on a printer.

        Raises:
            PrinterError: If the queue could not be purged.
        """
        ...
