"""
Export Reporter
Console and JSON reports for exported documents
"""

import json
from datetime import datetime
from typing import List

from models.document import BatchSummary, ExportArtifact, ExportResult
from models.invoice import NormalizedInvoice
from utils.formatting import CurrencyFormatter, format_date, format_percent, or_na


class ExportReporter:
    """
    Export Reporter

    Generates reports in various formats:
    - Console (colored text)
    - JSON (machine readable)
    - Summary (batch view)
    """

    def __init__(self, currency_code: str = "INR", locale: str = "en_IN"):
        self.money = CurrencyFormatter(currency_code, locale)

        # ANSI color codes
        self.colors = {
            'green': '\033[92m',
            'red': '\033[91m',
            'yellow': '\033[93m',
            'blue': '\033[94m',
            'gray': '\033[90m',
            'bold': '\033[1m',
            'reset': '\033[0m'
        }

    def generate_console_report(
        self,
        normalized: NormalizedInvoice,
        artifact: ExportArtifact,
        saved_to: str,
        processing_time_ms: float = 0
    ) -> str:
        """Generate detailed console report with colors"""

        c = self.colors
        invoice = normalized.invoice
        lines = []

        lines.append("=" * 80)
        lines.append(f"{c['bold']}INVOICE EXPORT REPORT{c['reset']}")
        lines.append("=" * 80)
        lines.append("")

        lines.append(f"{c['bold']}Invoice Details:{c['reset']}")
        lines.append(f"  Number: {normalized.invoice_number}")
        lines.append(f"  Date: {format_date(invoice.invoice_date)}")
        lines.append(f"  Customer: {or_na(invoice.customer.name)}")
        status_color = self._get_status_color(invoice.payment_status.value)
        lines.append(f"  Payment Status: {status_color}{invoice.payment_status.value}{c['reset']}")
        lines.append("")

        lines.append("-" * 80)
        lines.append(f"{c['bold']}Line Items ({len(normalized.items)}){c['reset']}")
        lines.append("-" * 80)
        for item in normalized.items:
            lines.append(
                f"  {item.line_number:>3}. {item.product_name[:30]:30s} "
                f"{item.quantity:>5} x {self.money(item.unit_price):>14} = {self.money(item.line_total):>16}"
            )
        if not normalized.items:
            lines.append(f"  {c['gray']}No items found{c['reset']}")
        lines.append("")

        lines.append(f"{c['bold']}Totals:{c['reset']}")
        lines.append(f"  Subtotal: {self.money(normalized.subtotal)}")
        for row in normalized.tax_breakdown:
            lines.append(
                f"  Tax {or_na(row.hsn_sac)} (CGST {format_percent(row.cgst_rate)} + "
                f"SGST {format_percent(row.sgst_rate)}): {self.money(row.total_tax)}"
            )
        lines.append(f"  Shipping: {self.money(normalized.shipping_amount)}")
        if normalized.discount_total:
            lines.append(f"  Discount: -{self.money(normalized.discount_total)}")
        lines.append(f"  {c['bold']}Total: {self.money(normalized.total_amount)}{c['reset']}")
        lines.append(f"  Received: {self.money(normalized.received_amount)}")
        balance_color = c['green'] if normalized.balance_due == 0 else c['yellow']
        lines.append(f"  Balance: {balance_color}{self.money(normalized.balance_due)}{c['reset']}")
        lines.append("")

        lines.append("-" * 80)
        lines.append(f"{c['bold']}Export:{c['reset']}")
        lines.append(f"  {c['green']}✓ {artifact.filename}{c['reset']}")
        lines.append(f"  Pages: {artifact.page_count}")
        lines.append(f"  Size: {artifact.size_bytes / 1024:.1f} KB")
        lines.append(f"  Saved to: {saved_to}")
        lines.append(f"  Processing Time: {processing_time_ms:.0f}ms")
        lines.append("")

        lines.append("=" * 80)
        lines.append(f"Report generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        lines.append("=" * 80)

        return "\n".join(lines)

    def generate_json_report(
        self,
        normalized: NormalizedInvoice,
        artifact: ExportArtifact,
        saved_to: str
    ) -> str:
        """Generate JSON report"""

        invoice = normalized.invoice

        report = {
            'invoice': {
                'number': normalized.invoice_number,
                'date': str(invoice.invoice_date) if invoice.invoice_date else None,
                'customer': invoice.customer.name,
                'payment_status': invoice.payment_status.value,
            },
            'totals': {
                'subtotal': str(normalized.subtotal),
                'cgst': str(normalized.cgst_total),
                'sgst': str(normalized.sgst_total),
                'tax': str(normalized.tax_amount),
                'shipping': str(normalized.shipping_amount),
                'discount': str(normalized.discount_total),
                'total': str(normalized.total_amount),
                'received': str(normalized.received_amount),
                'balance': str(normalized.balance_due),
            },
            'tax_breakdown': [
                {
                    'hsn_sac': row.hsn_sac,
                    'cgst_rate': str(row.cgst_rate),
                    'sgst_rate': str(row.sgst_rate),
                    'taxable': str(row.taxable_amount),
                    'tax': str(row.total_tax),
                }
                for row in normalized.tax_breakdown
            ],
            'export': {
                'filename': artifact.filename,
                'pages': artifact.page_count,
                'size_bytes': artifact.size_bytes,
                'saved_to': saved_to,
                'created_at': artifact.created_at.isoformat(),
            },
        }

        return json.dumps(report, indent=2)

    def generate_summary_report(self, summary: BatchSummary) -> str:
        """Generate summary for batch export"""

        c = self.colors
        lines = []

        lines.append("=" * 80)
        lines.append(f"{c['bold']}BATCH EXPORT SUMMARY{c['reset']}")
        lines.append("=" * 80)
        lines.append("")

        lines.append(f"{c['bold']}Overview:{c['reset']}")
        lines.append(f"  Total Documents: {summary.total_documents}")
        lines.append(f"  Successful: {c['green']}{summary.successful}{c['reset']}")
        lines.append(f"  Failed: {c['red']}{summary.failed}{c['reset']}")
        lines.append(f"  Total Pages: {summary.total_pages}")
        lines.append(f"  Average Processing Time: {summary.average_processing_time_ms:.0f}ms")
        lines.append("")

        failures = self._get_failures(summary.results)
        if failures:
            lines.append("-" * 80)
            lines.append(f"{c['red']}{c['bold']}FAILED EXPORTS ({len(failures)}){c['reset']}")
            lines.append("-" * 80)
            for result in failures:
                lines.append(f"  • {result.document_number}: {result.error_code}")
                lines.append(f"    {result.error}")
            lines.append("")

        lines.append("=" * 80)

        return "\n".join(lines)

    def generate_batch_json(self, summary: BatchSummary) -> dict:
        """Batch report as a JSON-ready dict"""
        return {
            'summary': {
                'total_documents': summary.total_documents,
                'successful': summary.successful,
                'failed': summary.failed,
                'total_pages': summary.total_pages,
                'average_processing_time_ms': summary.average_processing_time_ms,
            },
            'documents': [result.model_dump() for result in summary.results],
        }

    def _get_status_color(self, status: str) -> str:
        """Get color for payment status"""
        if status == 'paid':
            return self.colors['green']
        elif status in ['overdue', 'cancelled']:
            return self.colors['red']
        elif status == 'pending':
            return self.colors['yellow']
        else:
            return self.colors['gray']

    def _get_failures(self, results: List[ExportResult]) -> List[ExportResult]:
        return [r for r in results if r.status != 'success']
