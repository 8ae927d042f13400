"""
Integration tests for the complete export workflow

Run with: pytest tests/test_pipeline.py -v
"""

import json
import threading
import time

import pytest
from datetime import date
from decimal import Decimal

from export.sinks import DirectorySink, MemorySink
from models.document import ExportResult
from models.invoice import CompanyProfile, Invoice, InvoiceLineItem
from models.order import Order, OrderItem
from pipeline.orchestrator import ExportOrchestrator
from pipeline.reporter import ExportReporter
from utils.config import PipelineConfig


def make_invoice(number: str, quantity: int = 1, items: int = 2) -> Invoice:
    return Invoice(
        invoice_number=number,
        invoice_date=date(2024, 9, 15),
        items=[
            InvoiceLineItem(product_name=f"Item {i}", hsn_sac="8471", quantity=quantity, unit_price=Decimal("250"))
            for i in range(1, items + 1)
        ],
        shipping_amount=Decimal("40"),
    )


class TestExportWorkflow:
    """Test complete export workflow"""

    @pytest.fixture
    def sink(self):
        return MemorySink()

    @pytest.fixture
    def orchestrator(self, sink):
        return ExportOrchestrator(PipelineConfig(scale=1, batch_workers=2), sink=sink)

    @pytest.fixture
    def company(self):
        return CompanyProfile(company_name="Pipeline Test Co")

    def test_export_invoice(self, orchestrator, company):
        artifact = orchestrator.export_invoice(make_invoice("INV-P-001"), company)

        assert artifact.filename == "invoice-INV-P-001.pdf"
        assert artifact.document_number == "INV-P-001"
        assert artifact.content.startswith(b"%PDF")

    def test_preview_invoice(self, orchestrator, company):
        pages = orchestrator.preview_invoice(make_invoice("INV-P-001"), company)

        assert [p.page_number for p in pages] == list(range(1, len(pages) + 1))

    def test_process_invoice_saves(self, orchestrator, sink, company):
        result = orchestrator.process_invoice(make_invoice("INV-P-002"), company)

        assert result.status == 'success'
        assert result.saved_to == "memory://invoice-INV-P-002.pdf"
        assert result.page_count >= 1
        assert "invoice-INV-P-002.pdf" in sink.artifacts

    def test_same_number_different_data(self, orchestrator, company):
        """Nothing is cached by invoice number"""
        first = orchestrator.export_invoice(make_invoice("INV-P-SAME", items=1), company)
        second = orchestrator.export_invoice(make_invoice("INV-P-SAME", items=3), company)

        assert first.filename == second.filename
        assert first.content != second.content

    def test_invalid_invoice_emits_nothing(self, orchestrator, sink, company):
        result = orchestrator.process_invoice(make_invoice("INV-P-BAD", quantity=-1), company)

        assert result.status == 'failed'
        assert result.error_code == 'INVALID_LINE_ITEM'
        assert sink.artifacts == {}

    def test_render_failure_emits_nothing(self, tmp_path):
        sink = DirectorySink(str(tmp_path / "exports"))
        orchestrator = ExportOrchestrator(PipelineConfig(scale=1), sink=sink)
        company = CompanyProfile(company_name="Logo Co", company_logo=str(tmp_path / "missing.png"))

        result = orchestrator.process_invoice(make_invoice("INV-P-003"), company)

        assert result.status == 'failed'
        assert result.error_code == 'RENDER_FAILURE'
        assert not (tmp_path / "exports").exists() or list((tmp_path / "exports").iterdir()) == []

    def test_export_order(self, orchestrator, sink):
        order = Order(
            order_number="ORD-P-1",
            items=[OrderItem(product_name="Mouse", quantity=1, unit_price=Decimal("500"), total_price=Decimal("500"))],
            subtotal=Decimal("500"),
            total_amount=Decimal("500"),
        )

        result = orchestrator.process_order(order)

        assert result.status == 'success'
        assert result.filename == "order-ORD-P-1.pdf"
        assert "order-ORD-P-1.pdf" in sink.artifacts

    def test_directory_sink_writes_file(self, company, tmp_path):
        orchestrator = ExportOrchestrator(PipelineConfig(scale=1, output_dir=str(tmp_path / "out")))

        result = orchestrator.process_invoice(make_invoice("INV-P-004"), company)

        saved = tmp_path / "out" / "invoice-INV-P-004.pdf"
        assert result.saved_to == str(saved)
        assert saved.read_bytes().startswith(b"%PDF")


class TestBatchExport:
    """Concurrent export of many invoices"""

    @pytest.fixture
    def company(self):
        return CompanyProfile(company_name="Batch Test Co")

    @pytest.mark.asyncio
    async def test_batch_isolates_failures(self, company):
        sink = MemorySink()
        orchestrator = ExportOrchestrator(PipelineConfig(scale=1, batch_workers=2), sink=sink)
        invoices = [
            make_invoice("INV-B-001"),
            make_invoice("INV-B-002", quantity=-1),
            make_invoice("INV-B-003"),
        ]

        summary = await orchestrator.export_batch(invoices, company)

        assert summary.total_documents == 3
        assert summary.successful == 2
        assert summary.failed == 1
        assert [r.document_number for r in summary.results] == ["INV-B-001", "INV-B-002", "INV-B-003"]
        assert summary.results[1].error_code == 'INVALID_LINE_ITEM'
        assert set(sink.artifacts) == {"invoice-INV-B-001.pdf", "invoice-INV-B-003.pdf"}
        assert summary.total_pages == summary.results[0].page_count + summary.results[2].page_count

    @pytest.mark.asyncio
    async def test_batch_respects_worker_limit(self, company):
        orchestrator = ExportOrchestrator(PipelineConfig(batch_workers=2), sink=MemorySink())
        lock = threading.Lock()
        running = {'now': 0, 'max': 0}

        def tracking(invoice, company):
            with lock:
                running['now'] += 1
                running['max'] = max(running['max'], running['now'])
            time.sleep(0.05)
            with lock:
                running['now'] -= 1
            return ExportResult(document_number=invoice.invoice_number, status='success', page_count=1)

        orchestrator.process_invoice = tracking

        summary = await orchestrator.export_batch([make_invoice(f"INV-W-{i}") for i in range(6)], company)

        assert summary.successful == 6
        assert running['max'] <= 2

    @pytest.mark.asyncio
    async def test_unexpected_error_recorded(self, company):
        orchestrator = ExportOrchestrator(PipelineConfig(), sink=MemorySink())

        def flaky(invoice, company):
            if invoice.invoice_number == "INV-X-2":
                raise RuntimeError("disk on fire")
            return ExportResult(document_number=invoice.invoice_number, status='success', page_count=1)

        orchestrator.process_invoice = flaky

        summary = await orchestrator.export_batch(
            [make_invoice("INV-X-1"), make_invoice("INV-X-2"), make_invoice("INV-X-3")], company
        )

        assert summary.successful == 2
        assert summary.results[1].error_code == 'UNEXPECTED_ERROR'
        assert "disk on fire" in summary.results[1].error

    @pytest.mark.asyncio
    async def test_empty_batch(self, company):
        orchestrator = ExportOrchestrator(PipelineConfig(), sink=MemorySink())

        summary = await orchestrator.export_batch([], company)

        assert summary.total_documents == 0
        assert summary.average_processing_time_ms == 0


class TestExportReporter:
    """Console and JSON reports"""

    def test_summary_report_lists_failures(self):
        orchestrator = ExportOrchestrator(PipelineConfig(), sink=MemorySink())
        summary = orchestrator._summarize([
            ExportResult(document_number="INV-1", status='success', page_count=2),
            ExportResult(document_number="INV-2", status='failed', error_code='RENDER_FAILURE', error="logo missing"),
        ])

        report = ExportReporter().generate_summary_report(summary)

        assert "BATCH EXPORT SUMMARY" in report
        assert "INV-2: RENDER_FAILURE" in report
        assert "logo missing" in report

    def test_invoice_reports(self):
        orchestrator = ExportOrchestrator(PipelineConfig(scale=1), sink=MemorySink())
        invoice = make_invoice("INV-R-1")
        normalized = orchestrator.normalize(invoice)
        artifact = orchestrator.export_invoice(invoice, CompanyProfile(company_name="Report Co"))
        reporter = ExportReporter()

        console = reporter.generate_console_report(normalized, artifact, "memory://x", 12.0)
        assert "INV-R-1" in console
        assert artifact.filename in console

        data = json.loads(reporter.generate_json_report(normalized, artifact, "memory://x"))
        assert data['totals']['subtotal'] == "500.00"
        assert data['export']['pages'] == artifact.page_count

    def test_batch_json(self):
        orchestrator = ExportOrchestrator(PipelineConfig(), sink=MemorySink())
        summary = orchestrator._summarize([ExportResult(document_number="INV-1", status='success', page_count=2)])

        data = ExportReporter().generate_batch_json(summary)

        assert data['summary']['total_pages'] == 2
        assert data['documents'][0]['document_number'] == "INV-1"


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
