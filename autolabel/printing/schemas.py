"""Schemas for print jobs and printers."""

from datetime import datetime

from pydantic import BaseModel, Field

from autolabel.db.models import PrintJobItemStatus, PrintJobStatus


class PrintJobCreate(BaseModel):
    """Schema for submitting labels for printing."""

    label_ids: list[str] = Field(..., min_length=1, description="Labels in print order")
    printer_name: str | None = Field(None, description="Printer (default if omitted)")


class PrintJobItemResponse(BaseModel):
    """Schema for one label within a print job."""

    id: str
    label_id: str
    position: int
    status: PrintJobItemStatus
    error: str | None = None

    model_config = {"from_attributes": True}


class PrintJobResponse(BaseModel):
    """Schema for print job response."""

    id: str
    printer_name: str
    status: PrintJobStatus
    printed_count: int
    total_count: int
    errors: list[str] | None = None
    quota_consumed: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[PrintJobItemResponse] = []

    model_config = {"from_attributes": True}


class PrinterInfo(BaseModel):
    """Schema for a printer known to the OS."""

    name: str
    is_default: bool = False
    status: str = Field("unknown", description="Advisory: ready, busy, offline or unknown")
