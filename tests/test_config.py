"""
Tests for configuration loading

Run with: pytest tests/test_config.py -v
"""

import pytest
from decimal import Decimal
from pydantic import ValidationError

from utils.config import ENV_OVERRIDES, PX_PER_MM, PipelineConfig, load_config, load_pipeline_config

CONFIG_YAML = """
page:
  page_width_mm: 216
  page_height_mm: 279
  margin_left_mm: 5
  margin_right_mm: 5
scale: 1.5
tax:
  default_cgst_rate: "0.06"
  default_sgst_rate: "0.06"
currency:
  currency_code: usd
  locale: en_US
pagination:
  trailing_remainder_mm: 4
batch:
  batch_workers: 3
files:
  output_dir: out/pdf
"""


class TestPipelineConfig:
    """Defaults and validation"""

    def test_defaults(self):
        config = PipelineConfig()

        assert config.page_width_mm == 210
        assert config.page_height_mm == 297
        assert config.scale == 2
        assert config.default_cgst_rate == Decimal("0.09")
        assert config.default_sgst_rate == Decimal("0.09")
        assert config.trailing_remainder_mm == 10
        assert config.currency_code == "INR"
        assert config.px_per_mm == pytest.approx(PX_PER_MM * 2)

    def test_printable_area(self):
        config = PipelineConfig(margin_left_mm=10, margin_right_mm=15, margin_top_mm=20)

        assert config.printable_width_mm == 185
        assert config.printable_height_mm == 277

    def test_margins_must_leave_room(self):
        with pytest.raises(ValidationError):
            PipelineConfig(margin_left_mm=105, margin_right_mm=105)

    @pytest.mark.parametrize("field, value", [
        ('scale', 0),
        ('scale', 20),
        ('batch_workers', 0),
        ('batch_workers', 50),
        ('default_cgst_rate', Decimal("1.5")),
        ('trailing_remainder_mm', -1),
    ])
    def test_out_of_range_rejected(self, field, value):
        with pytest.raises(ValidationError):
            PipelineConfig(**{field: value})

    def test_currency_code_uppercased(self):
        assert PipelineConfig(currency_code=" eur ").currency_code == "EUR"


class TestLoadConfig:
    """YAML file plus environment overrides"""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ENV_OVERRIDES:
            monkeypatch.delenv(name, raising=False)

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)
        return path

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_sections_flattened(self, config_file):
        config = load_pipeline_config(str(config_file))

        assert config.page_width_mm == 216
        assert config.printable_width_mm == 206
        assert config.scale == 1.5
        assert config.default_cgst_rate == Decimal("0.06")
        assert config.currency_code == "USD"
        assert config.locale == "en_US"
        assert config.trailing_remainder_mm == 4
        assert config.batch_workers == 3
        assert config.output_dir == "out/pdf"

    def test_env_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv("INVOICE_SCALE", "3")
        monkeypatch.setenv("INVOICE_BATCH_WORKERS", "4")
        monkeypatch.setenv("INVOICE_OUTPUT_DIR", "/tmp/invoices")

        config = load_pipeline_config(str(config_file))

        assert config.scale == 3
        assert config.batch_workers == 4
        assert config.output_dir == "/tmp/invoices"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_pipeline_config(str(path)) == PipelineConfig()

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "extra.yaml"
        path.write_text("data:\n  dir: ./data\nsomething_else: 1\n")

        assert load_pipeline_config(str(path)).scale == 2

    def test_invalid_value_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("batch:\n  batch_workers: 100\n")

        with pytest.raises(ValidationError):
            load_pipeline_config(str(path))


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
