"""
Tests for multi-page PDF export

Run with: pytest tests/test_exporter.py -v
"""

import pytest
from datetime import date
from decimal import Decimal

from billing.aggregator import InvoiceAggregator
from export.paginator import stitch_pages
from export.pdf_exporter import PaginationExporter, artifact_filename, page_images
from export.sinks import DirectorySink, MemorySink
from models.invoice import CompanyProfile, Invoice, InvoiceLineItem
from rendering.invoice_renderer import InvoiceRenderer
from rendering.surface import RasterSurface
from utils.config import PipelineConfig
from utils.errors import RenderFailure


def make_invoice(item_count: int, number: str = "INV-E-001") -> Invoice:
    return Invoice(
        invoice_number=number,
        invoice_date=date(2024, 9, 15),
        items=[
            InvoiceLineItem(
                product_name=f"Catalogue item {i} with a fairly long descriptive name",
                hsn_sac="8471",
                quantity=i,
                unit_price=Decimal("1299.00"),
            )
            for i in range(1, item_count + 1)
        ],
        shipping_amount=Decimal("50"),
    )


class TestArtifactFilename:
    """Suggested filenames"""

    def test_invoice_filename(self):
        assert artifact_filename("INV-2024-0001") == "invoice-INV-2024-0001.pdf"

    def test_order_prefix(self):
        assert artifact_filename("ORD-7", prefix="order") == "order-ORD-7.pdf"

    def test_unsafe_characters_replaced(self):
        assert artifact_filename("INV/2024 01") == "invoice-INV-2024-01.pdf"
        assert artifact_filename("../../etc") == "invoice-..-..-etc.pdf"

    def test_empty_number(self):
        assert artifact_filename("///") == "invoice-unnumbered.pdf"


class TestPaginationExporter:
    """Test render -> paginate -> PDF"""

    @pytest.fixture
    def config(self):
        return PipelineConfig(scale=1)

    @pytest.fixture
    def exporter(self, config):
        return PaginationExporter(config)

    @pytest.fixture
    def company(self):
        return CompanyProfile(company_name="Export Test Co")

    def render(self, config, invoice, company):
        normalized = InvoiceAggregator(config).aggregate(invoice)
        return InvoiceRenderer(config).render(normalized, company)

    def test_short_invoice_pdf(self, config, exporter, company):
        with self.render(config, make_invoice(2), company) as surface:
            artifact = exporter.export(surface, "INV-E-001")
            expected_pages = exporter.paginator.page_count(surface.height)

        assert artifact.filename == "invoice-INV-E-001.pdf"
        assert artifact.media_type == "application/pdf"
        assert artifact.content.startswith(b"%PDF")
        assert artifact.page_count == expected_pages
        assert artifact.page_count >= 1
        assert artifact.size_bytes == len(artifact.content)

    def test_long_invoice_spans_pages(self, config, exporter, company):
        with self.render(config, make_invoice(60), company) as surface:
            assert surface.height > exporter.geometry.height_px
            artifact = exporter.export(surface, "INV-E-LONG")

        assert artifact.page_count >= 2

    def test_preview_matches_export_page_count(self, config, exporter, company):
        with self.render(config, make_invoice(60), company) as surface:
            pages = exporter.preview(surface)
            artifact = exporter.export(surface, "INV-E-LONG")

        assert len(pages) == artifact.page_count
        assert all(p.width == exporter.geometry.width_px for p in pages)
        assert all(p.height == exporter.geometry.height_px for p in pages)

    def test_pages_reassemble_long_invoice(self, company):
        """With no trailing threshold, pages carry every rendered row"""
        config = PipelineConfig(scale=1, trailing_remainder_mm=0)
        exporter = PaginationExporter(config)

        with self.render(config, make_invoice(60), company) as surface:
            pages = exporter.preview(surface)
            stitched = stitch_pages(pages)
            try:
                assert len(pages) >= 2
                assert stitched.size == (surface.width, surface.height)
                assert stitched.tobytes() == surface.rasterize().tobytes()
            finally:
                stitched.close()

    def test_export_is_deterministic(self, config, exporter, company):
        with self.render(config, make_invoice(3), company) as surface:
            first = exporter.export(surface, "INV-E-001")
            second = exporter.export(surface, "INV-E-001")

        assert first.content == second.content

    def test_margins(self, company):
        config = PipelineConfig(scale=1, margin_left_mm=10, margin_right_mm=10, margin_top_mm=10, margin_bottom_mm=10)
        exporter = PaginationExporter(config)

        with self.render(config, make_invoice(2), company) as surface:
            assert surface.width == exporter.geometry.width_px
            artifact = exporter.export(surface, "INV-E-001")

        assert artifact.content.startswith(b"%PDF")

    def test_width_mismatch_rejected(self, exporter):
        with RasterSurface(100, 500) as surface:
            with pytest.raises(RenderFailure) as exc_info:
                exporter.export(surface, "INV-E-001")

        assert exc_info.value.stage == "paginate"

    def test_released_surface_rejected(self, exporter):
        surface = RasterSurface(exporter.geometry.width_px, 200)
        surface.close()

        with pytest.raises(RenderFailure):
            exporter.export(surface, "INV-E-001")

    def test_page_images(self, exporter):
        with RasterSurface(exporter.geometry.width_px, 200) as surface:
            pages = exporter.preview(surface)

        images = page_images(pages)
        try:
            assert len(images) == 1
            assert images[0].mode == "RGB"
        finally:
            for img in images:
                img.close()


class TestSinks:
    """Save collaborators"""

    @pytest.fixture
    def artifact(self):
        config = PipelineConfig(scale=1)
        exporter = PaginationExporter(config)
        with RasterSurface(exporter.geometry.width_px, 300) as surface:
            return exporter.export(surface, "INV-S-1")

    def test_directory_sink(self, artifact, tmp_path):
        sink = DirectorySink(str(tmp_path / "out"))
        saved_to = sink.save(artifact)

        saved = tmp_path / "out" / "invoice-INV-S-1.pdf"
        assert saved_to == str(saved)
        assert saved.read_bytes() == artifact.content
        assert list((tmp_path / "out").glob("*.part")) == []

    def test_memory_sink(self, artifact):
        sink = MemorySink()

        assert sink.save(artifact) == "memory://invoice-INV-S-1.pdf"
        assert sink.artifacts["invoice-INV-S-1.pdf"] is artifact


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
