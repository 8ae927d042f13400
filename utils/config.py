"""
Configuration management

Every knob the pipeline recognises lives in PipelineConfig. Values come from
config.yaml, then environment variables (.env is loaded first), then the
defaults below.
"""

import yaml
import os
from decimal import Decimal
from pathlib import Path
from typing import Dict, Any, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables
load_dotenv()

# CSS reference pixel density, the unit the page geometry is scaled from
PX_PER_MM = 96 / 25.4


class PipelineConfig(BaseModel):
    """Explicit inputs of the render / paginate / export pipeline"""

    # Physical page (A4 portrait by default)
    page_width_mm: float = Field(210.0, gt=0)
    page_height_mm: float = Field(297.0, gt=0)
    margin_top_mm: float = Field(0.0, ge=0)
    margin_bottom_mm: float = Field(0.0, ge=0)
    margin_left_mm: float = Field(0.0, ge=0)
    margin_right_mm: float = Field(0.0, ge=0)

    # Rasterization quality/size trade-off
    scale: float = Field(2.0, gt=0, le=8)

    # Tax defaults used when neither the line nor the rate schedule says otherwise
    default_cgst_rate: Decimal = Field(Decimal('0.09'), ge=0, le=1)
    default_sgst_rate: Decimal = Field(Decimal('0.09'), ge=0, le=1)
    max_line_amount: Decimal = Field(Decimal('1000000000'), gt=0)

    # Money formatting
    currency_code: str = "INR"
    locale: str = "en_IN"

    # Trailing slivers this tall or shorter do not get their own page
    trailing_remainder_mm: float = Field(10.0, ge=0)

    # Batch export
    batch_workers: int = Field(2, ge=1, le=8)

    # Files
    font_path: Optional[str] = None
    bold_font_path: Optional[str] = None
    output_dir: str = "exports"
    rate_schedule_path: Optional[str] = None

    @field_validator('currency_code')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode='after')
    def check_margins(self):
        if self.margin_left_mm + self.margin_right_mm >= self.page_width_mm:
            raise ValueError("Horizontal margins leave no printable width")
        if self.margin_top_mm + self.margin_bottom_mm >= self.page_height_mm:
            raise ValueError("Vertical margins leave no printable height")
        return self

    @property
    def printable_width_mm(self) -> float:
        return self.page_width_mm - self.margin_left_mm - self.margin_right_mm

    @property
    def printable_height_mm(self) -> float:
        return self.page_height_mm - self.margin_top_mm - self.margin_bottom_mm

    @property
    def px_per_mm(self) -> float:
        """Surface pixels per physical millimetre at the configured scale"""
        return PX_PER_MM * self.scale

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "PipelineConfig":
        """Build from the nested config.yaml structure"""

        flat: Dict[str, Any] = {}
        for section in ('page', 'tax', 'currency', 'pagination', 'batch', 'files'):
            flat.update(config.get(section) or {})

        # Top-level keys win over sections
        for key, value in config.items():
            if key in cls.model_fields:
                flat[key] = value

        return cls(**{k: v for k, v in flat.items() if k in cls.model_fields})


ENV_OVERRIDES = {
    'INVOICE_SCALE': 'scale',
    'INVOICE_OUTPUT_DIR': 'output_dir',
    'INVOICE_BATCH_WORKERS': 'batch_workers',
    'INVOICE_LOCALE': 'locale',
    'INVOICE_FONT_PATH': 'font_path',
}


def load_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """Load configuration from YAML file"""

    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file) as f:
        config = yaml.safe_load(f) or {}

    # Override with environment variables if present
    for env_name, key in ENV_OVERRIDES.items():
        if os.getenv(env_name):
            config[key] = os.getenv(env_name)

    return config


def load_pipeline_config(config_path: str = "config.yaml") -> PipelineConfig:
    """Load and validate the pipeline configuration"""
    return PipelineConfig.from_dict(load_config(config_path))

