"""
Export Orchestrator
Runs aggregate -> render -> paginate -> save for one document or a batch
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from billing.aggregator import InvoiceAggregator
from export.pdf_exporter import PaginationExporter
from export.sinks import ArtifactSink, DirectorySink
from models.document import BatchSummary, ExportArtifact, ExportResult, RenderedPage
from models.invoice import CompanyProfile, Invoice, NormalizedInvoice
from models.order import Order
from rendering.invoice_renderer import InvoiceRenderer
from rendering.order_renderer import OrderRenderer
from utils.config import PipelineConfig
from utils.errors import InvoiceDocumentError

logger = logging.getLogger(__name__)


class ExportOrchestrator:
    """
    Export Orchestrator

    Every screen that prints a document goes through here:
    1. Aggregate invoice totals (invoices only)
    2. Render the document onto a scoped surface
    3. Cut pages and assemble the PDF
    4. Hand the artifact to the sink

    Nothing is shared between documents except read-only configuration,
    so documents can be exported concurrently.
    """

    def __init__(
        self,
        config: PipelineConfig = None,
        rate_schedule=None,
        sink: Optional[ArtifactSink] = None,
    ):
        self.config = config or PipelineConfig()

        self.aggregator = InvoiceAggregator(self.config, rate_schedule)
        self.invoice_renderer = InvoiceRenderer(self.config)
        self.order_renderer = OrderRenderer(self.config)
        self.exporter = PaginationExporter(self.config)
        self.sink = sink or DirectorySink(self.config.output_dir)

    def normalize(self, invoice: Invoice) -> NormalizedInvoice:
        return self.aggregator.aggregate(invoice)

    def preview_invoice(self, invoice: Invoice, company: CompanyProfile) -> List[RenderedPage]:
        """Page images for showing an invoice on screen"""
        normalized = self.aggregator.aggregate(invoice)
        with self.invoice_renderer.render(normalized, company) as surface:
            return self.exporter.preview(surface)

    def export_invoice(self, invoice: Invoice, company: CompanyProfile) -> ExportArtifact:
        """Build invoice-<number>.pdf; raises the pipeline's typed errors"""
        normalized = self.aggregator.aggregate(invoice)
        with self.invoice_renderer.render(normalized, company) as surface:
            return self.exporter.export(surface, invoice.invoice_number, prefix="invoice")

    def export_order(self, order: Order) -> ExportArtifact:
        """Build order-<number>.pdf"""
        with self.order_renderer.render(order) as surface:
            return self.exporter.export(surface, order.order_number, prefix="order")

    def save(self, artifact: ExportArtifact) -> str:
        return self.sink.save(artifact)

    def process_invoice(self, invoice: Invoice, company: CompanyProfile) -> ExportResult:
        """
        Export and save one invoice, reporting failure as a result

        Returns:
            ExportResult with status 'success' or 'failed'
        """
        return self._process(invoice.invoice_number, lambda: self.export_invoice(invoice, company))

    def process_order(self, order: Order) -> ExportResult:
        return self._process(order.order_number, lambda: self.export_order(order))

    def _process(self, document_number: str, build: Callable[[], ExportArtifact]) -> ExportResult:
        start_time = datetime.now()

        try:
            artifact = build()
            saved_to = self.save(artifact)
        except InvoiceDocumentError as e:
            return ExportResult(
                document_number=document_number,
                status='failed',
                error_code=e.code.value,
                error=e.message,
                processing_time_ms=self._elapsed_ms(start_time),
            )

        return ExportResult(
            document_number=document_number,
            status='success',
            filename=artifact.filename,
            saved_to=saved_to,
            page_count=artifact.page_count,
            processing_time_ms=self._elapsed_ms(start_time),
        )

    async def export_batch(self, invoices: List[Invoice], company: CompanyProfile) -> BatchSummary:
        """
        Export many invoices with at most batch_workers rendering at once

        A failing invoice is recorded in its result and never stops the
        others.
        """
        logger.info("Exporting batch of %d invoices with %d workers",
                    len(invoices), self.config.batch_workers)

        semaphore = asyncio.Semaphore(self.config.batch_workers)

        async def run(invoice: Invoice) -> ExportResult:
            async with semaphore:
                return await asyncio.to_thread(self.process_invoice, invoice, company)

        outcomes = await asyncio.gather(
            *(run(invoice) for invoice in invoices),
            return_exceptions=True,
        )

        results = []
        for invoice, outcome in zip(invoices, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Invoice %s export crashed: %s", invoice.invoice_number, outcome,
                             exc_info=outcome)
                outcome = ExportResult(
                    document_number=invoice.invoice_number,
                    status='failed',
                    error_code='UNEXPECTED_ERROR',
                    error=str(outcome),
                )
            elif outcome.status != 'success':
                logger.warning("Invoice %s export failed: %s", outcome.document_number, outcome.error)
            results.append(outcome)

        return self._summarize(results)

    def _summarize(self, results: List[ExportResult]) -> BatchSummary:
        successful = [r for r in results if r.status == 'success']

        avg_time = sum(r.processing_time_ms for r in results) / len(results) if results else 0

        return BatchSummary(
            total_documents=len(results),
            successful=len(successful),
            failed=len(results) - len(successful),
            total_pages=sum(r.page_count for r in successful),
            average_processing_time_ms=avg_time,
            results=results,
        )

    @staticmethod
    def _elapsed_ms(start_time: datetime) -> float:
        return (datetime.now() - start_time).total_seconds() * 1000
