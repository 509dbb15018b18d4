"""Tests for the label preparation pipeline."""

from unittest.mock import patch

import pypdf
import pytest
from PIL import Image

from autolabel.db.models import Attachment, AttachmentType, PreparedLabel
from autolabel.labels.geometry import content_pixel_size, target_pixel_size, target_size_points
from autolabel.labels.processor import LabelProcessor
from autolabel.labels.profiles import build_default_registry
from autolabel.labels.rendering import RenderChain
from autolabel.labels.schemas import FooterConfig


@pytest.fixture
def processor(db, registry, settings):
    return LabelProcessor(db, registry=registry, settings=settings)


class TestPrepareSale:
    """Tests for single-sale preparation."""

    def test_image_without_footer(self, processor, make_sale, make_png, settings):
        """Should store a content-area PNG in the prepared directory."""
        sale = make_sale(attachment=make_png())

        label = processor.prepare_sale(sale.id)

        assert label.profile_id == "generic"
        assert label.footer_applied is False
        assert label.footer_config is None
        assert (label.width_mm, label.height_mm, label.dpi) == (100.0, 150.0, 300)
        path = label.output_path
        assert path.startswith(str(settings.prepared_dir))
        assert path.endswith(f"_{sale.id}.png")
        with Image.open(path) as image:
            assert image.size == content_pixel_size()

    def test_image_with_footer(self, processor, make_sale, make_png):
        """Should produce the full 100x150mm label."""
        sale = make_sale(attachment=make_png())
        config = FooterConfig(include_product_number=True, include_date=True)

        label = processor.prepare_sale(sale.id, config)

        assert label.footer_applied is True
        assert label.footer_config == {
            "include_product_number": True,
            "include_item_title": False,
            "include_date": True,
        }
        with Image.open(label.output_path) as image:
            assert image.size == target_pixel_size()

    def test_empty_footer_config_skips_footer(self, processor, make_sale, make_png):
        sale = make_sale(attachment=make_png())

        label = processor.prepare_sale(sale.id, FooterConfig())

        assert label.footer_applied is False
        with Image.open(label.output_path) as image:
            assert image.size == content_pixel_size()

    def test_vinted_pdf_with_footer(self, processor, make_sale, make_pdf, db):
        """Should crop a Vinted DPD sheet and backfill the carrier."""
        sale = make_sale(attachment=make_pdf(lines=["Vinted", "DPD Classic"]))
        config = FooterConfig(include_item_title=True)

        label = processor.prepare_sale(sale.id, config)

        assert label.profile_id == "vinted_dpd"
        assert label.output_path.endswith(".pdf")
        page = pypdf.PdfReader(label.output_path).pages[0]
        assert float(page.mediabox.height) == pytest.approx(target_size_points()[1], abs=0.5)
        db.refresh(sale)
        assert sale.shipping_company == "DPD"

    def test_existing_carrier_kept(self, processor, make_sale, make_pdf, db):
        """Should not overwrite a carrier the sale already has."""
        sale = make_sale(
            attachment=make_pdf(lines=["Vinted", "Hermes Paket"]),
            shipping_company="DPD",
        )

        label = processor.prepare_sale(sale.id)

        assert label.profile_id == "vinted_dpd"
        db.refresh(sale)
        assert sale.shipping_company == "DPD"

    def test_pdf_preferred(self, processor, make_sale, make_png, make_pdf, db):
        """Should pick the PDF when a sale also has images."""
        sale = make_sale(attachment=make_png())
        pdf = make_pdf(lines=["DHL Paket"])
        db.add(Attachment(sale_id=sale.id, type=AttachmentType.PDF, local_path=str(pdf)))
        db.commit()

        label = processor.prepare_sale(sale.id)

        assert label.output_path.endswith(".pdf")

    def test_work_dir_removed(self, processor, make_sale, make_png, settings):
        sale = make_sale(attachment=make_png())

        processor.prepare_sale(sale.id)

        assert list(settings.temp_dir.iterdir()) == []

    def test_record_failure_removes_prepared_file(self, processor, make_sale, make_png, settings):
        """Should not leave an unrecorded file behind when saving the label fails."""
        sale = make_sale(attachment=make_png())

        with patch.object(
            processor.service, "create_prepared_label", side_effect=RuntimeError("disk full")
        ):
            result = processor.prepare([sale.id])

        assert result.labels == []
        assert result.errors == [f"{sale.id}: disk full"]
        assert list(settings.prepared_dir.iterdir()) == []
        assert list(settings.temp_dir.iterdir()) == []


class TestPrepareBatch:
    """Tests for batch preparation and per-sale errors."""

    def test_errors_do_not_stop_batch(self, processor, make_sale, make_png, tmp_path, db):
        """Should report failing sales and keep going."""
        good = make_sale(attachment=make_png())
        no_attachment = make_sale()
        missing_file = make_sale(attachment=tmp_path / "gone.png")

        result = processor.prepare([no_attachment.id, good.id, "unknown", missing_file.id])

        assert [label.sale_id for label in result.labels] == [good.id]
        assert len(result.errors) == 3
        assert result.errors[0].startswith(f"{no_attachment.id}: ")
        assert "No attachments" in result.errors[0]
        assert result.errors[1] == "unknown: Sale not found: unknown"
        assert "missing" in result.errors[2]
        assert db.query(PreparedLabel).count() == 1

    def test_order_preserved(self, processor, make_sale, make_png):
        sales = [make_sale(attachment=make_png(f"label_{i}.png")) for i in range(3)]

        result = processor.prepare([sale.id for sale in sales])

        assert [label.sale_id for label in result.labels] == [sale.id for sale in sales]
        assert result.errors == []

    def test_empty_batch(self, processor):
        result = processor.prepare([])

        assert result.labels == []
        assert result.errors == []

    def test_rendering_unavailable(self, db, settings, make_sale, make_pdf, backend_factory):
        """Should report the sale when every renderer fails."""
        broken = backend_factory(error=RuntimeError("renderer crashed"))
        registry = build_default_registry(RenderChain([broken]))
        processor = LabelProcessor(db, registry=registry, settings=settings)
        sale = make_sale(attachment=make_pdf(lines=["Vinted", "DPD"]))

        result = processor.prepare([sale.id])

        assert result.labels == []
        assert result.errors[0].startswith(f"{sale.id}: ")
        assert list(settings.temp_dir.iterdir()) == []
