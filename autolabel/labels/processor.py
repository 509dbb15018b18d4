"""Label preparation pipeline.

For each sale: pick its label attachment, normalize it through the matching
profile, optionally add the footer band, move the result into the prepared
directory and record a PreparedLabel.
"""

import logging
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy.orm import Session

from autolabel.config import Settings, get_settings
from autolabel.db.models import PreparedLabel, Sale
from autolabel.exceptions import LabelSourceError
from autolabel.labels.footer import apply_footer, build_footer_text
from autolabel.labels.geometry import TARGET_DPI
from autolabel.labels.normalizer import normalize_label
from autolabel.labels.profiles import ProcessingContext, ProfileRegistry, build_default_registry
from autolabel.labels.schemas import FooterConfig
from autolabel.labels.service import LabelService

logger = logging.getLogger(__name__)


@dataclass
class PrepareResult:
    """Outcome of a preparation batch.

    Attributes:
        labels: Labels created, in input order.
        errors: One "<sale id>: <message>" entry per failed sale.
    """

    labels: list[PreparedLabel] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class LabelProcessor:
    """Prepares print-ready labels from sale attachments."""

    def __init__(
        self,
        db: Session,
        registry: ProfileRegistry | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the processor.

        Args:
            db: Database session.
            registry: Transform profiles (defaults to the built-in registry).
            settings: Settings (defaults to cached settings).
        """
        self.db = db
        self.settings = settings or get_settings()
        self.registry = registry or build_default_registry()
        self.service = LabelService(db)

    def prepare(
        self, sale_ids: list[str], footer_config: FooterConfig | None = None
    ) -> PrepareResult:
        """Prepare one label per sale.

        Sales are processed one after another. A failure only affects its own
        sale and is reported in ``errors``.

        Args:
            sale_ids: Sales to prepare.
            footer_config: Footer fields to print (None for no footer).

        Returns:
            PrepareResult: Created labels and per-sale errors.
        """
        result = PrepareResult()
        if not sale_ids:
            return result

        logger.info(f"Preparing labels for {len(sale_ids)} sale(s)")
        for sale_id in sale_ids:
            try:
                result.labels.append(self.prepare_sale(sale_id, footer_config))
            except Exception as e:
                logger.error(f"Failed to prepare label for sale {sale_id}: {e}")
                self.db.rollback()
                result.errors.append(f"{sale_id}: {e}")

        logger.info(f"Prepared {len(result.labels)} label(s), {len(result.errors)} error(s)")
        return result

    def prepare_sale(self, sale_id: str, footer_config: FooterConfig | None = None) -> PreparedLabel:
        """Prepare the label for a single sale.

        Raises:
            LabelSourceError: If the sale, its attachment or the file is missing.
            TransformFailure: If the label could not be normalized.
            RenderingUnavailable: If a PDF could not be rasterized.
        """
        sale = self.service.get_sale(sale_id)
        if sale is None:
            raise LabelSourceError(f"Sale not found: {sale_id}")

        attachment = self.service.select_attachment(sale_id)
        if attachment is None:
            raise LabelSourceError(f"No attachments for sale {sale_id}")

        source = Path(attachment.local_path)
        if not source.exists():
            raise LabelSourceError(f"Attachment file missing: {source}")

        self.settings.temp_dir.mkdir(parents=True, exist_ok=True)
        self.settings.prepared_dir.mkdir(parents=True, exist_ok=True)
        work_dir = Path(tempfile.mkdtemp(prefix=f"{sale_id}_", dir=self.settings.temp_dir))

        try:
            context = ProcessingContext(
                carrier=sale.shipping_company,
                platform=sale.platform,
                sale_id=sale.id,
            )
            artifact = normalize_label(self.registry, source, context, work_dir)

            suffix = artifact.output_path.suffix
            final_path = self.settings.prepared_dir / f"label_{int(time.time() * 1000)}_{sale.id}{suffix}"

            footer_applied = False
            if footer_config is not None and footer_config.has_fields:
                text = build_footer_text(sale, footer_config)
                apply_footer(artifact.output_path, final_path, text, self.settings)
                footer_applied = True
            else:
                shutil.move(str(artifact.output_path), final_path)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

        try:
            if artifact.detected_carrier:
                self._backfill_carrier(sale, artifact.detected_carrier)

            label = self.service.create_prepared_label(
                sale_id=sale.id,
                profile_id=artifact.profile_id,
                output_path=str(final_path),
                width_mm=artifact.width_mm,
                height_mm=artifact.height_mm,
                dpi=TARGET_DPI,
                footer_applied=footer_applied,
                footer_config=footer_config.model_dump() if footer_config else None,
            )
        except Exception:
            # Every file in the prepared directory has a label record.
            final_path.unlink(missing_ok=True)
            raise

        logger.info(f"Prepared label {label.id} for sale {sale.id} ({artifact.profile_id})")
        return label

    def _backfill_carrier(self, sale: Sale, carrier: str) -> None:
        if self.service.backfill_carrier(sale, carrier):
            logger.info(f"Set carrier of sale {sale.id} to {carrier} (read from label)")


def get_label_processor(
    db: Session,
    registry: ProfileRegistry | None = None,
    settings: Settings | None = None,
) -> LabelProcessor:
    """Factory function for LabelProcessor."""
    return LabelProcessor(db, registry, settings)
