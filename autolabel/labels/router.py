"""Labels API routes."""

from pathlib import Path

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import FileResponse

from autolabel.config import get_settings
from autolabel.dependencies import DbSession, Registry, Renderer
from autolabel.labels.processor import LabelProcessor
from autolabel.labels.schemas import (
    PreparedLabelResponse,
    PrepareRequest,
    PrepareResponse,
    ProfileInfo,
    ThumbnailBatchRequest,
    ThumbnailResponse,
)
from autolabel.labels.service import LabelService
from autolabel.labels.thumbnails import generate_batch_thumbnails, generate_thumbnail

router = APIRouter()


def _get_label_or_404(db, label_id: str):
    label = LabelService(db).get_label(label_id)
    if not label:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Label not found",
        )
    return label


@router.post("/prepare", response_model=PrepareResponse)
def prepare_labels(data: PrepareRequest, db: DbSession, registry: Registry):
    """Prepare print-ready labels for a batch of sales.

    Args:
        data: Sale IDs and footer options.
        db: Database session.
        registry: Transform profiles.

    Returns:
        PrepareResponse: Created labels and per-sale errors.
    """
    result = LabelProcessor(db, registry).prepare(data.sale_ids, data.footer)
    return PrepareResponse(
        labels=[PreparedLabelResponse.model_validate(label) for label in result.labels],
        errors=result.errors,
    )


@router.get("/profiles", response_model=list[ProfileInfo])
async def list_profiles(registry: Registry):
    """List transform profiles in detection order."""
    return [
        ProfileInfo(id=p.id, name=p.name, is_fallback=p is registry.fallback)
        for p in registry.profiles
    ]


@router.post("/thumbnails", response_model=list[ThumbnailResponse])
def get_batch_thumbnails(data: ThumbnailBatchRequest, db: DbSession, renderer: Renderer):
    """Get previews for several labels, rendered concurrently.

    Unknown label IDs are skipped.
    """
    labels = LabelService(db).get_labels_by_ids(data.label_ids)
    thumbnails = generate_batch_thumbnails(
        [Path(label.output_path) for label in labels],
        data.width,
        max_workers=get_settings().thumbnail_workers,
        render_chain=renderer,
    )
    return [
        ThumbnailResponse(label_id=label.id, data_url=thumbnails[str(Path(label.output_path))])
        for label in labels
    ]


@router.get("", response_model=list[PreparedLabelResponse])
async def list_labels(
    db: DbSession,
    sale_id: str | None = Query(None, description="Only labels of this sale"),
    limit: int = Query(100, ge=1, le=1000),
):
    """List prepared labels, newest first."""
    return LabelService(db).list_labels(sale_id=sale_id, limit=limit)


@router.get("/{label_id}", response_model=PreparedLabelResponse)
async def get_label(label_id: str, db: DbSession):
    """Get a prepared label.

    Raises:
        HTTPException: If label not found.
    """
    return _get_label_or_404(db, label_id)


@router.get("/{label_id}/file")
async def get_label_file(label_id: str, db: DbSession):
    """Download the label artifact.

    Raises:
        HTTPException: If the label or its file is missing.
    """
    label = _get_label_or_404(db, label_id)
    path = Path(label.output_path)
    if not path.exists():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Label file missing",
        )
    media_type = "application/pdf" if path.suffix.lower() == ".pdf" else "image/png"
    return FileResponse(path, media_type=media_type, filename=path.name)


@router.get("/{label_id}/thumbnail", response_model=ThumbnailResponse)
def get_label_thumbnail(
    label_id: str,
    db: DbSession,
    renderer: Renderer,
    width: int = Query(200, ge=50, le=800),
):
    """Get a PNG data URL preview of a label."""
    label = _get_label_or_404(db, label_id)
    return ThumbnailResponse(
        label_id=label.id,
        data_url=generate_thumbnail(Path(label.output_path), width, renderer),
    )
