"""SQLAlchemy database models."""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys.

    Returns:
        str: UUID as 36-character string.
    """
    return str(uuid4())


class AttachmentType(str, enum.Enum):
    """Kind of label file attached to a sale."""

    PDF = "pdf"
    IMAGE = "image"


class PrintJobStatus(str, enum.Enum):
    """Print job status enumeration."""

    PENDING = "pending"  # Created or reset by retry, not yet submitted
    PRINTING = "printing"  # Items are being submitted
    COMPLETED = "completed"  # Every item was submitted
    FAILED = "failed"  # At least one item failed


class PrintJobItemStatus(str, enum.Enum):
    """Status of one label within a print job."""

    PENDING = "pending"
    PRINTED = "printed"  # Accepted by the print system
    FAILED = "failed"


class Sale(Base):
    """Sale record that owns shipping label attachments.

    Sales are created by the mail/folder scanners; this package only reads
    them, except for backfilling a carrier detected from the label itself.

    Attributes:
        id: Primary key UUID.
        date: Date of the sale.
        platform: Marketplace the sale came from (e.g. "Vinted", "eBay").
        shipping_company: Carrier name (e.g. "DHL", "Hermes", "DPD").
        product_number: Seller's product/article number.
        item_title: Title of the sold item.
        buyer_ref: Buyer reference.
        created_at: Creation timestamp.
    """

    __tablename__ = "sales"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    platform: Mapped[str | None] = mapped_column(String(50), nullable=True)
    shipping_company: Mapped[str | None] = mapped_column(String(50), nullable=True)
    product_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    item_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    buyer_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relationships
    attachments: Mapped[list["Attachment"]] = relationship(
        "Attachment", back_populates="sale", cascade="all, delete-orphan"
    )
    labels: Mapped[list["PreparedLabel"]] = relationship(
        "PreparedLabel", back_populates="sale", cascade="all, delete-orphan"
    )


class Attachment(Base):
    """Shipping label file attached to a sale.

    Attributes:
        id: Primary key UUID.
        sale_id: FK to the owning sale.
        type: PDF or image.
        local_path: Absolute path of the stored file.
        original_filename: File name as received.
        created_at: Creation timestamp.
    """

    __tablename__ = "attachments"
    __table_args__ = (Index("ix_attachments_sale_id", "sale_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    sale_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[AttachmentType] = mapped_column(
        Enum(AttachmentType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    local_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    original_filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relationships
    sale: Mapped["Sale"] = relationship("Sale", back_populates="attachments")


class PreparedLabel(Base):
    """Normalized label ready for printing.

    Prepared labels are immutable: preparing the same sale again creates
    a new label.

    Attributes:
        id: Primary key UUID.
        sale_id: FK to the sale the label belongs to.
        profile_id: Transform profile used (e.g. "generic", "vinted").
        output_path: Path of the final PDF/PNG artifact.
        width_mm: Physical width (always 100).
        height_mm: Physical height (always 150).
        dpi: Render resolution (always 300).
        footer_applied: Whether a footer band was drawn.
        footer_config: Snapshot of the footer options used.
        created_at: Creation timestamp.
    """

    __tablename__ = "prepared_labels"
    __table_args__ = (Index("ix_prepared_labels_sale_id", "sale_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    sale_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales.id", ondelete="CASCADE"), nullable=False
    )
    profile_id: Mapped[str] = mapped_column(String(50), nullable=False)
    output_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    width_mm: Mapped[float] = mapped_column(Float, nullable=False)
    height_mm: Mapped[float] = mapped_column(Float, nullable=False)
    dpi: Mapped[int] = mapped_column(Integer, nullable=False, default=300)
    footer_applied: Mapped[bool] = mapped_column(Boolean, default=False)
    footer_config: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relationships
    sale: Mapped["Sale"] = relationship("Sale", back_populates="labels")


class PrintJob(Base):
    """Print job for a batch of prepared labels.

    Attributes:
        id: Primary key UUID.
        printer_name: Printer the job was resolved to.
        status: Job status (pending, printing, completed, failed).
        printed_count: Items accepted by the print system.
        total_count: Number of items, fixed at creation.
        errors: Per-item error strings from the last run.
        quota_consumed: Whether the usage quota was charged for this job.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    __tablename__ = "print_jobs"
    __table_args__ = (Index("ix_print_jobs_status", "status"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    printer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[PrintJobStatus] = mapped_column(
        Enum(PrintJobStatus, values_callable=lambda x: [e.value for e in x]),
        default=PrintJobStatus.PENDING,
    )
    printed_count: Mapped[int] = mapped_column(Integer, default=0)
    total_count: Mapped[int] = mapped_column(Integer, nullable=False)
    errors: Mapped[list | None] = mapped_column(JSON, nullable=True)
    quota_consumed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    items: Mapped[list["PrintJobItem"]] = relationship(
        "PrintJobItem",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="PrintJobItem.position",
    )

    @property
    def label_ids(self) -> list[str]:
        """Label IDs in print order."""
        return [item.label_id for item in self.items]


class PrintJobItem(Base):
    """One label's submission within a print job.

    Attributes:
        id: Primary key UUID.
        job_id: FK to the owning job.
        label_id: FK to the prepared label.
        position: Print order within the job.
        status: Item status (pending, printed, failed).
        error: Submission error message if failed.
    """

    __tablename__ = "print_job_items"
    __table_args__ = (Index("ix_print_job_items_job_id", "job_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    job_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("print_jobs.id", ondelete="CASCADE"), nullable=False
    )
    label_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("prepared_labels.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PrintJobItemStatus] = mapped_column(
        Enum(PrintJobItemStatus, values_callable=lambda x: [e.value for e in x]),
        default=PrintJobItemStatus.PENDING,
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    job: Mapped["PrintJob"] = relationship("PrintJob", back_populates="items")
    label: Mapped["PreparedLabel"] = relationship("PreparedLabel")
