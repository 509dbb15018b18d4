"""Exception hierarchy for label preparation and printing."""


class AutoLabelError(Exception):
    """Base class for all AutoLabel errors."""

    pass


class BackendUnavailable(AutoLabelError):
    """A strategy in a fallback chain is not installed or not reachable.

    Raising this lets the chain move on to the next strategy. Any other
    error stops the chain.
    """

    pass


# ============================================================================
# Label preparation
# ============================================================================


class RenderingUnavailable(AutoLabelError):
    """Every rendering backend failed for a document."""

    def __init__(self, message: str, failures: list[str] | None = None):
        super().__init__(message)
        self.failures = failures or []


class TransformFailure(AutoLabelError):
    """A profile could not crop, rotate or scale the source artifact."""

    pass


class LabelSourceError(AutoLabelError):
    """The sale or its attachment needed for a label is missing."""

    pass


# ============================================================================
# Printing
# ============================================================================


class PrinterError(AutoLabelError):
    """Error during printing operation."""

    pass


class PrinterUnavailable(PrinterError):
    """The resolved printer is not currently known to the print system."""

    pass


class SubmissionFailure(PrinterError):
    """Submitting one file to the print system failed."""

    pass


class SubmissionToolUnavailable(BackendUnavailable, PrinterError):
    """A print submission tool is not installed on this machine."""

    pass


class QuotaDenied(AutoLabelError):
    """The usage quota gate refused a print submission."""

    def __init__(self, reason: str, remaining: int | None = None, limit: int | None = None):
        super().__init__(reason)
        self.reason = reason
        self.remaining = remaining
        self.limit = limit


class PrintJobNotFound(AutoLabelError):
    """No print job with the given ID."""

    pass


class PrintJobStateError(AutoLabelError):
    """The operation is not allowed in the job's current status."""

    pass


class LabelNotFound(AutoLabelError):
    """A requested prepared label does not exist."""

    pass


class LabelFileMissing(AutoLabelError):
    """A prepared label's output file no longer exists on disk."""

    pass
