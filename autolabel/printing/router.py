"""Printing API routes."""

from fastapi import APIRouter, HTTPException, Query, status

from autolabel.dependencies import Manager
from autolabel.exceptions import (
    AutoLabelError,
    LabelNotFound,
    PrintJobNotFound,
    PrintJobStateError,
    QuotaDenied,
)
from autolabel.printing.schemas import PrinterInfo, PrintJobCreate, PrintJobResponse

router = APIRouter()


def _to_http(error: Exception) -> HTTPException:
    """Translate a domain error into an HTTP error."""
    if isinstance(error, (PrintJobNotFound, LabelNotFound)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, PrintJobStateError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, QuotaDenied):
        code = status.HTTP_402_PAYMENT_REQUIRED
    else:
        # PrinterUnavailable, LabelFileMissing and invalid input
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


@router.get("/printers", response_model=list[PrinterInfo])
def list_printers(manager: Manager):
    """List printers known to the OS."""
    return manager.list_printers()


@router.get("/jobs", response_model=list[PrintJobResponse])
def list_jobs(manager: Manager, limit: int = Query(50, ge=1, le=500)):
    """List print jobs, newest first."""
    return manager.list_jobs(limit)


@router.post("/jobs", response_model=PrintJobResponse, status_code=status.HTTP_201_CREATED)
def start_print_job(data: PrintJobCreate, manager: Manager):
    """Create and start a print job.

    Args:
        data: Labels and optional printer.
        manager: Print job manager.

    Returns:
        PrintJobResponse: Job (already printing in the background).

    Raises:
        HTTPException: 402 if the quota denies, 400/404 on invalid input.
    """
    try:
        return manager.start_job(data.label_ids, data.printer_name)
    except (AutoLabelError, ValueError) as e:
        raise _to_http(e) from e


@router.post("/queue", response_model=PrintJobResponse, status_code=status.HTTP_201_CREATED)
def queue_print_job(data: PrintJobCreate, manager: Manager):
    """Create a print job without starting it."""
    try:
        return manager.add_to_queue(data.label_ids, data.printer_name)
    except (AutoLabelError, ValueError) as e:
        raise _to_http(e) from e


@router.get("/jobs/{job_id}", response_model=PrintJobResponse)
def get_print_job(job_id: str, manager: Manager):
    """Get a print job with its items.

    Raises:
        HTTPException: If job not found.
    """
    job = manager.status(job_id)
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Print job not found",
        )
    return job


@router.post("/jobs/{job_id}/start", response_model=PrintJobResponse)
def start_queued_job(job_id: str, manager: Manager):
    """Start a queued print job."""
    try:
        return manager.start_queued(job_id)
    except (AutoLabelError, ValueError) as e:
        raise _to_http(e) from e


@router.post("/jobs/{job_id}/retry", response_model=PrintJobResponse)
def retry_print_job(job_id: str, manager: Manager):
    """Reprint every label of a finished job."""
    try:
        return manager.retry(job_id)
    except (AutoLabelError, ValueError) as e:
        raise _to_http(e) from e


@router.delete("/jobs/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_print_job(job_id: str, manager: Manager):
    """Delete a print job that is not printing."""
    try:
        manager.delete(job_id)
    except (AutoLabelError, ValueError) as e:
        raise _to_http(e) from e
