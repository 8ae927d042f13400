"""
Data loaders for invoice records, company profile and GST rates

These stand in for the storefront's API and database: they read the same
record shapes from local files so the pipeline can run on its own.
"""

import json
import pandas as pd
from decimal import Decimal
from pathlib import Path
from typing import List, Dict, Optional
from datetime import date
import yaml

from models.invoice import CompanyProfile


class InvoiceDataLoader:
    """Load and manage stored invoice records"""

    def __init__(self, data_dir: str = "data", filename: str = "sample_invoices.json"):
        self.data_dir = Path(data_dir)
        self.filename = filename
        self.invoices = self._load_invoices()

    def _load_invoices(self) -> List[Dict]:
        """Load all invoice records"""
        invoice_file = self.data_dir / self.filename

        with open(invoice_file) as f:
            return json.load(f)

    def get_invoice(self, invoice_number: str) -> Dict:
        """Get specific invoice by number"""
        for inv in self.invoices:
            if inv['invoice_number'] == invoice_number:
                return inv
        raise ValueError(f"Invoice {invoice_number} not found")

    def get_by_status(self, payment_status: str) -> List[Dict]:
        """Get invoices by payment status"""
        return [
            inv for inv in self.invoices
            if inv.get('payment_status', 'pending') == payment_status
        ]


class OrderDataLoader:
    """Load stored order records"""

    def __init__(self, data_dir: str = "data", filename: str = "sample_orders.json"):
        self.data_dir = Path(data_dir)
        self.filename = filename
        self.orders = self._load_orders()

    def _load_orders(self) -> List[Dict]:
        order_file = self.data_dir / self.filename

        with open(order_file) as f:
            return json.load(f)

    def get_order(self, order_number: str) -> Dict:
        """Get specific order by number"""
        for order in self.orders:
            if order['order_number'] == order_number:
                return order
        raise ValueError(f"Order {order_number} not found")


class CompanyProfileLoader:
    """Load the issuer profile from YAML"""

    def __init__(self, data_dir: str = "data", filename: str = "company_profile.yaml"):
        self.data_dir = Path(data_dir)
        self.filename = filename

    def load(self) -> CompanyProfile:
        profile_file = self.data_dir / self.filename

        with open(profile_file) as f:
            data = yaml.safe_load(f) or {}

        # Relative logo paths are relative to the data directory
        logo = data.get('company_logo')
        if logo and not Path(logo).is_absolute():
            data['company_logo'] = str(self.data_dir / logo)

        return CompanyProfile(**data)


class GSTRateSchedule:
    """
    Manage GST rates with temporal validity

    CSV columns: hsn_sac_code, description, rate_cgst, rate_sgst, rate_igst,
    effective_from, effective_to. Rates in the file are percentages.
    """

    def __init__(self, rates_file: str):
        self.rates_file = Path(rates_file)
        self.rates_df = self._load_rates()

    def _load_rates(self) -> pd.DataFrame:
        """Load GST rates schedule"""

        df = pd.read_csv(self.rates_file, dtype={'hsn_sac_code': str, 'rate_cgst': str, 'rate_sgst': str})
        df['effective_from'] = pd.to_datetime(df['effective_from'])
        df['effective_to'] = pd.to_datetime(df['effective_to'])

        return df

    def get_rate(self, hsn_sac: str, invoice_date: date) -> Dict:
        """Get applicable GST rate for date"""

        matches = self.rates_df[self.rates_df['hsn_sac_code'] == hsn_sac]

        if matches.empty:
            raise ValueError(f"HSN/SAC {hsn_sac} not found")

        invoice_dt = pd.Timestamp(invoice_date)

        applicable = matches[
            (matches['effective_from'] <= invoice_dt) &
            ((matches['effective_to'].isna()) | (matches['effective_to'] >= invoice_dt))
        ]

        if applicable.empty:
            historical = matches[matches['effective_from'] <= invoice_dt]
            if not historical.empty:
                applicable = historical.sort_values('effective_from', ascending=False).head(1)
            else:
                raise ValueError(f"No rate found for {hsn_sac} on {invoice_date}")

        rate_row = applicable.sort_values('effective_from', ascending=False).iloc[0]

        return {
            'hsn_sac': hsn_sac,
            'description': rate_row['description'],
            'cgst': Decimal(rate_row['rate_cgst']) / 100,
            'sgst': Decimal(rate_row['rate_sgst']) / 100,
            'effective_from': rate_row['effective_from'].date()
        }

    def find_rate(self, hsn_sac: str, invoice_date: date) -> Optional[Dict]:
        """Like get_rate, but None when the schedule has nothing for the code"""
        try:
            return self.get_rate(hsn_sac, invoice_date)
        except ValueError:
            return None
