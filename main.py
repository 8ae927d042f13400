"""
Invoice Export
Render stored invoices and orders into paginated PDFs

Usage:
    python main.py [invoice_number]          # Export single invoice
    python main.py --batch                   # Export all stored invoices
    python main.py --status paid             # Export invoices by payment status
    python main.py --preview [invoice_number] # Write page images only
    python main.py --order [order_number]    # Export an order confirmation
"""

import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from pipeline.orchestrator import ExportOrchestrator
from pipeline.reporter import ExportReporter
from utils.config import PipelineConfig, load_pipeline_config
from utils.data_loaders import (
    CompanyProfileLoader, GSTRateSchedule, InvoiceDataLoader, OrderDataLoader,
)
from utils.data_transformer import build_invoice, build_order
from utils.errors import InvoiceDocumentError
from export.pdf_exporter import artifact_filename


class InvoiceExporter:
    """Main invoice export application"""

    def __init__(self, config_path: str = "config.yaml", data_dir: str = "data"):
        self.config = self._load_config(config_path)
        self.data_dir = data_dir

        rate_schedule = None
        if self.config.rate_schedule_path and Path(self.config.rate_schedule_path).exists():
            rate_schedule = GSTRateSchedule(self.config.rate_schedule_path)

        self.orchestrator = ExportOrchestrator(self.config, rate_schedule=rate_schedule)
        self.reporter = ExportReporter(self.config.currency_code, self.config.locale)

        self.invoice_loader = InvoiceDataLoader(data_dir)
        self.company = CompanyProfileLoader(data_dir).load()

    def _load_config(self, config_path: str) -> PipelineConfig:
        """Load configuration"""
        try:
            return load_pipeline_config(config_path)
        except FileNotFoundError:
            print(f"⚠️  Config file {config_path} not found, using defaults")
            return PipelineConfig()

    def export_single(self, invoice_number: str):
        """Export a single invoice"""

        print("\n🚀 Invoice Export - Single Invoice Mode")
        print("=" * 80)

        try:
            invoice = build_invoice(self.invoice_loader.get_invoice(invoice_number))
        except (ValueError, ValidationError) as e:
            print(f"❌ Error: {e}")
            return

        print(f"\n📄 Loading invoice: {invoice_number}")
        print(f"   Customer: {invoice.customer.name or 'N/A'}")
        print(f"   Line items: {len(invoice.items)}")

        start_time = datetime.now()
        try:
            normalized = self.orchestrator.normalize(invoice)
            artifact = self.orchestrator.export_invoice(invoice, self.company)
            saved_to = self.orchestrator.save(artifact)
        except InvoiceDocumentError as e:
            print(f"\n❌ Export failed [{e.code.value}]: {e.message}")
            return
        processing_time_ms = (datetime.now() - start_time).total_seconds() * 1000

        report = self.reporter.generate_console_report(normalized, artifact, saved_to, processing_time_ms)
        print("\n" + report)

        report_file = Path("reports") / f"{invoice_number}_report.json"
        report_file.parent.mkdir(exist_ok=True)
        with open(report_file, 'w') as f:
            f.write(self.reporter.generate_json_report(normalized, artifact, saved_to))

        print(f"\n💾 JSON report saved: {report_file}")

    def preview(self, invoice_number: str):
        """Write page images for an invoice without building the PDF"""

        print("\n🚀 Invoice Export - Preview Mode")
        print("=" * 80)

        try:
            invoice = build_invoice(self.invoice_loader.get_invoice(invoice_number))
            pages = self.orchestrator.preview_invoice(invoice, self.company)
        except (ValueError, ValidationError) as e:
            print(f"❌ Error: {e}")
            return
        except InvoiceDocumentError as e:
            print(f"❌ Preview failed [{e.code.value}]: {e.message}")
            return

        preview_dir = Path(self.config.output_dir) / "preview"
        preview_dir.mkdir(parents=True, exist_ok=True)
        stem = Path(artifact_filename(invoice_number)).stem

        for page in pages:
            page_file = preview_dir / f"{stem}-{page.page_number}.png"
            page_file.write_bytes(page.image_bytes)
            print(f"   🖼️  Page {page.page_number}: {page.width}x{page.height}px "
                  f"(rows {page.source_top}-{page.source_bottom}) -> {page_file}")

        print(f"\n✅ {len(pages)} page(s) written to {preview_dir}")

    def export_order(self, order_number: str):
        """Export an order confirmation"""

        print("\n🚀 Invoice Export - Order Confirmation Mode")
        print("=" * 80)

        try:
            order = build_order(OrderDataLoader(self.data_dir).get_order(order_number))
        except (ValueError, ValidationError) as e:
            print(f"❌ Error: {e}")
            return

        result = self.orchestrator.process_order(order)
        if result.status == 'success':
            print(f"\n✅ {result.filename}: {result.page_count} page(s) -> {result.saved_to}")
        else:
            print(f"\n❌ Export failed [{result.error_code}]: {result.error}")

    async def export_batch(self, filter_status: str = None):
        """Export multiple invoices"""

        print("\n🚀 Invoice Export - Batch Mode")
        print("=" * 80)

        if filter_status:
            invoices_json = self.invoice_loader.get_by_status(filter_status)
            print(f"\n📦 Exporting {len(invoices_json)} invoices with status: {filter_status}")
        else:
            invoices_json = self.invoice_loader.invoices
            print(f"\n📦 Exporting all {len(invoices_json)} stored invoices")

        invoices = []
        for inv_json in invoices_json:
            try:
                invoices.append(build_invoice(inv_json))
            except (ValueError, ValidationError) as e:
                print(f"   ⚠️  Error converting {inv_json.get('invoice_number')}: {e}")

        summary = await self.orchestrator.export_batch(invoices, self.company)

        print("\n" + self.reporter.generate_summary_report(summary))

        print("\n" + "=" * 80)
        print("INDIVIDUAL RESULTS")
        print("=" * 80)

        for result in summary.results:
            status_symbol = '✓' if result.status == 'success' else '✗'
            detail = result.filename if result.status == 'success' else result.error_code
            print(f"{status_symbol} {result.document_number:20s} | "
                  f"{result.status:8s} | "
                  f"Pages: {result.page_count:2d} | "
                  f"{result.processing_time_ms:>6.0f}ms | {detail}")

        print("=" * 80)

        batch_report_file = Path("reports") / "batch_report.json"
        batch_report_file.parent.mkdir(exist_ok=True)
        with open(batch_report_file, 'w') as f:
            json.dump(self.reporter.generate_batch_json(summary), f, indent=2)

        print(f"\n💾 Batch report saved: {batch_report_file}")


async def main():
    """Main entry point"""

    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    exporter = InvoiceExporter()

    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == '--batch':
            await exporter.export_batch()
        elif arg == '--status' and len(sys.argv) > 2:
            await exporter.export_batch(filter_status=sys.argv[2])
        elif arg == '--preview':
            exporter.preview(sys.argv[2] if len(sys.argv) > 2 else "INV-2024-0001")
        elif arg == '--order':
            exporter.export_order(sys.argv[2] if len(sys.argv) > 2 else "ORD-2024-0001")
        elif arg == '--help':
            print("""
Invoice Export - Usage

Single Invoice:
    python main.py [invoice_number]
    Example: python main.py INV-2024-0001

Batch Export:
    python main.py --batch                  # All invoices
    python main.py --status paid            # By payment status

Preview / Orders:
    python main.py --preview INV-2024-0001  # Page images only
    python main.py --order ORD-2024-0001    # Order confirmation PDF

Options:
    --help          Show this help message
""")
        else:
            # Treat as invoice number
            exporter.export_single(arg)
    else:
        # Default: export first invoice
        exporter.export_single("INV-2024-0001")


if __name__ == "__main__":
    asyncio.run(main())
