"""Print job lifecycle.

A job moves ``pending -> printing -> completed | failed`` and only goes back
to ``pending`` through ``retry``. Items are submitted one at a time on a
background thread owned by the manager. Submission success only means the
print system accepted the file; nothing confirms paper came out.
"""

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from sqlalchemy.orm import Session, selectinload

from autolabel.config import Settings, get_settings
from autolabel.db.models import (
    PreparedLabel,
    PrintJob,
    PrintJobItem,
    PrintJobItemStatus,
    PrintJobStatus,
)
from autolabel.exceptions import (
    LabelFileMissing,
    LabelNotFound,
    PrinterUnavailable,
    PrintJobNotFound,
    PrintJobStateError,
    QuotaDenied,
)
from autolabel.labels.service import LabelService
from autolabel.printing.base import PrinterBackend
from autolabel.printing.quota import QuotaGate, UnlimitedQuota
from autolabel.printing.schemas import PrinterInfo

logger = logging.getLogger(__name__)


class PrintJobManager:
    """Creates print jobs and drives them to a terminal state."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        printer: PrinterBackend,
        quota_gate: QuotaGate | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the manager.

        Args:
            session_factory: Creates database sessions (one per call/thread).
            printer: Platform printer backend.
            quota_gate: Usage quota gate (unlimited if None).
            settings: Settings (defaults to cached settings).
        """
        self.session_factory = session_factory
        self.printer = printer
        self.quota_gate = quota_gate or UnlimitedQuota()
        self.settings = settings or get_settings()
        self._tasks: dict[str, threading.Thread | None] = {}
        self._lock = threading.Lock()

    # ========================================================================
    # Validation
    # ========================================================================

    def resolve_printer(self, printer_name: str | None = None) -> str:
        """Resolve and validate the target printer.

        Uses the given name, else the configured printer, else the system
        default. The printer must currently be listed by the print system.

        Raises:
            PrinterUnavailable: If no printer resolves or it is not listed.
        """
        name = printer_name or self.settings.printer_name or self.printer.get_default_printer()
        if not name:
            raise PrinterUnavailable("No printer specified and no default printer configured")

        known = [p["name"] for p in self.printer.get_printers()]
        if name not in known:
            raise PrinterUnavailable(f"Printer not found: {name}")
        return name

    def _validate_labels(self, db: Session, label_ids: list[str]) -> None:
        if not label_ids:
            raise ValueError("No labels to print")

        labels = {label.id: label for label in LabelService(db).get_labels_by_ids(label_ids)}
        for label_id in label_ids:
            label = labels.get(label_id)
            if label is None:
                raise LabelNotFound(f"Label not found: {label_id}")
            if not Path(label.output_path).exists():
                raise LabelFileMissing(f"Label file missing for {label_id}: {label.output_path}")

    def _check_quota(self, count: int) -> None:
        decision = self.quota_gate.validate(count)
        if not decision.allowed:
            logger.warning(f"Quota denied {count} label(s): {decision.reason}")
            raise QuotaDenied(
                decision.reason or "Print quota exceeded",
                remaining=decision.remaining,
                limit=decision.limit,
            )

    # ========================================================================
    # Queries
    # ========================================================================

    def _load_job(self, db: Session, job_id: str) -> PrintJob | None:
        return (
            db.query(PrintJob)
            .options(selectinload(PrintJob.items))
            .filter(PrintJob.id == job_id)
            .first()
        )

    def _get_job(self, db: Session, job_id: str) -> PrintJob:
        job = self._load_job(db, job_id)
        if job is None:
            raise PrintJobNotFound(f"Print job not found: {job_id}")
        return job

    def _reserve(self, job_id: str) -> None:
        # A None entry claims the job until its thread is launched.
        with self._lock:
            if job_id in self._tasks:
                raise PrintJobStateError(f"Print job {job_id} is currently printing")
            self._tasks[job_id] = None

    def _release(self, job_id: str) -> None:
        with self._lock:
            self._tasks.pop(job_id, None)

    def status(self, job_id: str) -> PrintJob | None:
        """Get a print job with its items.

        Returns:
            PrintJob | None: Detached job snapshot, or None if not found.
        """
        db = self.session_factory()
        try:
            return self._load_job(db, job_id)
        finally:
            db.close()

    def list_jobs(self, limit: int = 50) -> list[PrintJob]:
        """List print jobs, newest first."""
        db = self.session_factory()
        try:
            return (
                db.query(PrintJob)
                .options(selectinload(PrintJob.items))
                .order_by(PrintJob.created_at.desc())
                .limit(limit)
                .all()
            )
        finally:
            db.close()

    def list_printers(self) -> list[PrinterInfo]:
        """List printers known to the OS with advisory status."""
        return [
            PrinterInfo(
                name=p["name"],
                is_default=bool(p.get("is_default", False)),
                status=self.printer.get_printer_status(p["name"]),
            )
            for p in self.printer.get_printers()
        ]

    def is_running(self, job_id: str) -> bool:
        """Whether a background thread currently owns the job."""
        with self._lock:
            return job_id in self._tasks

    def wait(self, job_id: str, timeout: float | None = None) -> PrintJob | None:
        """Block until a job's background thread has finished.

        Returns:
            PrintJob | None: Job snapshot after the wait.
        """
        with self._lock:
            thread = self._tasks.get(job_id)
        if thread is not None:
            thread.join(timeout)
        return self.status(job_id)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def create(
        self,
        label_ids: list[str],
        printer_name: str | None = None,
        quota_consumed: bool = False,
    ) -> PrintJob:
        """Create a pending job with one item per label.

        Nothing is written unless every check passes.

        Args:
            label_ids: Labels in print order.
            printer_name: Printer (None = configured or default).
            quota_consumed: Whether the quota was already checked for this job.

        Returns:
            PrintJob: Created job with its items.

        Raises:
            ValueError: If label_ids is empty.
            PrinterUnavailable: If the printer cannot be resolved.
            LabelNotFound: If a label does not exist.
            LabelFileMissing: If a label's file is gone.
        """
        printer = self.resolve_printer(printer_name)

        db = self.session_factory()
        try:
            self._validate_labels(db, label_ids)

            job = PrintJob(
                printer_name=printer,
                status=PrintJobStatus.PENDING,
                printed_count=0,
                total_count=len(label_ids),
                quota_consumed=quota_consumed,
            )
            job.items = [
                PrintJobItem(label_id=label_id, position=position, status=PrintJobItemStatus.PENDING)
                for position, label_id in enumerate(label_ids)
            ]
            db.add(job)
            db.commit()

            logger.info(f"Created print job {job.id} for {len(label_ids)} label(s) on {printer}")
            return self._load_job(db, job.id)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _begin(
        self,
        job_id: str,
        prepare: Callable[[Session, PrintJob], None] | None = None,
    ) -> PrintJob:
        """Claim a job, mark it printing and hand it to a background thread.

        ``prepare`` runs inside the same session before the status change.
        If it raises, nothing is committed and the claim is released.
        """
        self._reserve(job_id)
        try:
            db = self.session_factory()
            try:
                job = self._get_job(db, job_id)
                if prepare is not None:
                    prepare(db, job)
                job.status = PrintJobStatus.PRINTING
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()
        except Exception:
            self._release(job_id)
            raise

        self._launch(job_id)
        return self.status(job_id)

    def start(self, job_id: str) -> PrintJob:
        """Mark a job printing and process it on a background thread.

        Raises:
            PrintJobNotFound: If the job does not exist.
            PrintJobStateError: If the job is already printing.
        """
        return self._begin(job_id)

    def start_job(self, label_ids: list[str], printer_name: str | None = None) -> PrintJob:
        """Validate, check quota, create and start a job in one step.

        Raises:
            QuotaDenied: If the quota gate refuses (no job is created).
            PrinterUnavailable: If the printer cannot be resolved.
            LabelNotFound: If a label does not exist.
            LabelFileMissing: If a label's file is gone.
        """
        printer = self.resolve_printer(printer_name)
        db = self.session_factory()
        try:
            self._validate_labels(db, label_ids)
        finally:
            db.close()

        self._check_quota(len(label_ids))
        job = self.create(label_ids, printer, quota_consumed=True)
        return self.start(job.id)

    def add_to_queue(self, label_ids: list[str], printer_name: str | None = None) -> PrintJob:
        """Create a pending job without printing it yet."""
        return self.create(label_ids, printer_name)

    def start_queued(self, job_id: str) -> PrintJob:
        """Start a queued job, checking the quota if not done yet.

        Raises:
            PrintJobNotFound: If the job does not exist.
            PrintJobStateError: If the job is not pending.
            QuotaDenied: If the quota gate refuses (job stays pending).
        """

        def prepare(db: Session, job: PrintJob) -> None:
            if job.status != PrintJobStatus.PENDING:
                raise PrintJobStateError(f"Print job {job_id} is {job.status.value}, not queued")
            if not job.quota_consumed:
                self._check_quota(job.total_count)
                job.quota_consumed = True

        return self._begin(job_id, prepare)

    def retry(self, job_id: str) -> PrintJob:
        """Reprint every item of a finished job.

        The quota is not checked again.

        Raises:
            PrintJobNotFound: If the job does not exist.
            PrintJobStateError: If the job is printing or was never started.
            PrinterUnavailable: If the job's printer is no longer listed.
        """

        def prepare(db: Session, job: PrintJob) -> None:
            if job.status == PrintJobStatus.PENDING:
                raise PrintJobStateError(f"Print job {job_id} has not been started")

            job.printer_name = self.resolve_printer(job.printer_name)
            job.printed_count = 0
            job.errors = None
            for item in job.items:
                item.status = PrintJobItemStatus.PENDING
                item.error = None
            logger.info(f"Retrying print job {job_id}")

        return self._begin(job_id, prepare)

    def delete(self, job_id: str) -> None:
        """Delete a job and its items, purging the printer queue first.

        Raises:
            PrintJobNotFound: If the job does not exist.
            PrintJobStateError: If the job is printing.
        """
        self._reserve(job_id)
        db = self.session_factory()
        try:
            job = self._get_job(db, job_id)
            try:
                self.printer.purge_jobs(job.printer_name)
            except Exception as e:
                logger.warning(f"Could not purge queue of {job.printer_name}: {e}")

            db.delete(job)
            db.commit()
            logger.info(f"Deleted print job {job_id}")
        finally:
            db.close()
            self._release(job_id)

    def recover_interrupted(self) -> int:
        """Fail jobs left printing by a process that stopped mid-run.

        A job counts as interrupted when its stored status is printing but no
        thread of this manager owns it. Items never submitted are failed so
        the job can be retried or deleted.

        Returns:
            int: Number of jobs recovered.
        """
        db = self.session_factory()
        try:
            jobs = (
                db.query(PrintJob)
                .options(selectinload(PrintJob.items))
                .filter(PrintJob.status == PrintJobStatus.PRINTING)
                .all()
            )
            recovered = 0
            for job in jobs:
                if self.is_running(job.id):
                    continue
                for item in job.items:
                    if item.status == PrintJobItemStatus.PENDING:
                        item.status = PrintJobItemStatus.FAILED
                        item.error = "Interrupted before submission"
                job.status = PrintJobStatus.FAILED
                job.errors = [
                    *(job.errors or []),
                    "Interrupted: print process stopped before the job finished",
                ]
                recovered += 1
                logger.warning(
                    f"Print job {job.id} was interrupted after "
                    f"{job.printed_count}/{job.total_count} label(s); marked failed"
                )
            db.commit()
            return recovered
        finally:
            db.close()

    # ========================================================================
    # Background processing
    # ========================================================================

    def _launch(self, job_id: str) -> None:
        # Non-daemon so an exiting process still finishes submitting the job.
        thread = threading.Thread(
            target=self._run_job,
            args=(job_id,),
            name=f"print-job-{job_id[:8]}",
        )
        with self._lock:
            self._tasks[job_id] = thread
        thread.start()

    def _run_job(self, job_id: str) -> None:
        try:
            self._process_job(job_id)
        except Exception as e:
            logger.exception(f"Print job {job_id} crashed: {e}")
            self._mark_failed(job_id, f"Job crashed: {e}")
        finally:
            with self._lock:
                self._tasks.pop(job_id, None)

    def _submit_item(self, db: Session, job: PrintJob, item: PrintJobItem) -> None:
        label = db.get(PreparedLabel, item.label_id)
        if label is None:
            raise LabelNotFound(f"Label not found: {item.label_id}")
        path = Path(label.output_path)
        if not path.exists():
            raise LabelFileMissing(f"Label file missing: {path}")
        ref = self.printer.print_file(path, job.printer_name, title=f"AutoLabel {label.id[:8]}")
        logger.debug(f"Label {label.id} accepted by print system ({ref})")

    def _process_job(self, job_id: str) -> None:
        db = self.session_factory()
        try:
            job = self._load_job(db, job_id)
            if job is None:
                logger.warning(f"Print job {job_id} vanished before processing")
                return

            logger.info(f"Printing job {job_id}: {job.total_count} label(s) on {job.printer_name}")
            errors: list[str] = []
            for item in job.items:
                try:
                    self._submit_item(db, job, item)
                except Exception as e:
                    logger.error(f"Label {item.label_id} failed: {e}")
                    item.status = PrintJobItemStatus.FAILED
                    item.error = str(e)
                    errors.append(f"Label {item.label_id}: {e}")
                    job.errors = list(errors)
                else:
                    item.status = PrintJobItemStatus.PRINTED
                    job.printed_count += 1
                db.commit()

            job.status = (
                PrintJobStatus.COMPLETED
                if job.printed_count == job.total_count
                else PrintJobStatus.FAILED
            )
            job.errors = errors or None
            db.commit()
            logger.info(
                f"Print job {job_id} {job.status.value}: "
                f"{job.printed_count}/{job.total_count} printed"
            )
        finally:
            db.close()

    def _mark_failed(self, job_id: str, message: str) -> None:
        db = self.session_factory()
        try:
            job = db.get(PrintJob, job_id)
            if job is None:
                return
            job.status = PrintJobStatus.FAILED
            job.errors = [*(job.errors or []), message]
            db.commit()
        except Exception as e:
            logger.error(f"Could not mark print job {job_id} failed: {e}")
        finally:
            db.close()
