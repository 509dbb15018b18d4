"""Label store service layer."""

from sqlalchemy.orm import Session, selectinload

from autolabel.db.models import Attachment, AttachmentType, PreparedLabel, Sale


class LabelService:
    """Service class for sale, attachment and prepared label records."""

    def __init__(self, db: Session):
        """Initialize label service.

        Args:
            db: Database session.
        """
        self.db = db

    def get_sale(self, sale_id: str) -> Sale | None:
        """Get a sale by ID.

        Args:
            sale_id: Sale UUID.

        Returns:
            Sale | None: Sale if found.
        """
        return (
            self.db.query(Sale)
            .options(selectinload(Sale.attachments))
            .filter(Sale.id == sale_id)
            .first()
        )

    def get_attachments(self, sale_id: str) -> list[Attachment]:
        """Get a sale's attachments, oldest first."""
        return (
            self.db.query(Attachment)
            .filter(Attachment.sale_id == sale_id)
            .order_by(Attachment.created_at, Attachment.id)
            .all()
        )

    def select_attachment(self, sale_id: str) -> Attachment | None:
        """Pick the attachment to turn into a label.

        A PDF is preferred over images; otherwise the first attachment is used.

        Args:
            sale_id: Sale UUID.

        Returns:
            Attachment | None: Selected attachment, or None if the sale has none.
        """
        attachments = self.get_attachments(sale_id)
        for attachment in attachments:
            if attachment.type == AttachmentType.PDF:
                return attachment
        return attachments[0] if attachments else None

    def backfill_carrier(self, sale: Sale, carrier: str) -> bool:
        """Set a sale's shipping company if it has none.

        Returns:
            bool: True if the sale was updated.
        """
        if sale.shipping_company:
            return False
        sale.shipping_company = carrier
        self.db.commit()
        return True

    def create_prepared_label(
        self,
        sale_id: str,
        profile_id: str,
        output_path: str,
        width_mm: float,
        height_mm: float,
        dpi: int,
        footer_applied: bool,
        footer_config: dict | None = None,
    ) -> PreparedLabel:
        """Persist a prepared label.

        Returns:
            PreparedLabel: Created label.
        """
        label = PreparedLabel(
            sale_id=sale_id,
            profile_id=profile_id,
            output_path=output_path,
            width_mm=width_mm,
            height_mm=height_mm,
            dpi=dpi,
            footer_applied=footer_applied,
            footer_config=footer_config,
        )
        self.db.add(label)
        self.db.commit()
        self.db.refresh(label)
        return label

    def get_label(self, label_id: str) -> PreparedLabel | None:
        """Get a prepared label by ID."""
        return self.db.query(PreparedLabel).filter(PreparedLabel.id == label_id).first()

    def get_labels_by_ids(self, label_ids: list[str]) -> list[PreparedLabel]:
        """Get prepared labels in the order of the given IDs (missing IDs skipped)."""
        if not label_ids:
            return []
        labels = self.db.query(PreparedLabel).filter(PreparedLabel.id.in_(label_ids)).all()
        by_id = {label.id: label for label in labels}
        return [by_id[label_id] for label_id in label_ids if label_id in by_id]

    def list_labels(self, sale_id: str | None = None, limit: int = 100) -> list[PreparedLabel]:
        """List prepared labels, newest first."""
        query = self.db.query(PreparedLabel)
        if sale_id:
            query = query.filter(PreparedLabel.sale_id == sale_id)
        return query.order_by(PreparedLabel.created_at.desc()).limit(limit).all()


def get_label_service(db: Session) -> LabelService:
    """Factory function for LabelService.

    Args:
        db: Database session.

    Returns:
        LabelService: Service instance.
    """
    return LabelService(db)
