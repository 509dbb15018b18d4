"""Schemas for label preparation."""

from datetime import datetime

from pydantic import BaseModel, Field


class FooterConfig(BaseModel):
    """Which sale fields to print in the footer band."""

    include_product_number: bool = False
    include_item_title: bool = False
    include_date: bool = False

    @property
    def has_fields(self) -> bool:
        """Whether any field is selected."""
        return self.include_product_number or self.include_item_title or self.include_date


class PrepareRequest(BaseModel):
    """Schema for preparing labels for a batch of sales."""

    sale_ids: list[str] = Field(..., description="Sales to prepare labels for")
    footer: FooterConfig | None = Field(None, description="Footer options (omit for no footer)")


class PreparedLabelResponse(BaseModel):
    """Schema for prepared label response."""

    id: str
    sale_id: str
    profile_id: str
    output_path: str
    width_mm: float
    height_mm: float
    dpi: int
    footer_applied: bool
    footer_config: dict | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class PrepareResponse(BaseModel):
    """Schema for a preparation batch result."""

    labels: list[PreparedLabelResponse]
    errors: list[str]


class ProfileInfo(BaseModel):
    """Schema for a registered transform profile."""

    id: str
    name: str
    is_fallback: bool = False


class ThumbnailResponse(BaseModel):
    """Schema for a label thumbnail."""

    label_id: str
    data_url: str


class ThumbnailBatchRequest(BaseModel):
    """Schema for thumbnails of several labels."""

    label_ids: list[str] = Field(..., min_length=1)
    width: int = Field(200, ge=50, le=800)
