"""
Tests for codec configuration loading.

Covers the shipped sets, explicit YAML files, structural validation,
checksums and the STATEMENT_CONFIG_TRACE audit record.
"""

from datetime import date
from decimal import Decimal

import pytest
import yaml

from statement_config import available_sets, get_codec_config
from statement_config.loader import (
    compute_checksum,
    parse_codec_config,
    parse_csv_column,
    parse_csv_options,
    parse_mt940_options,
)
from statement_config.schema import CAMT053_NAMESPACE, DEFAULT_MAX_INPUT_BYTES


# =============================================================================
# Shipped sets
# =============================================================================


class TestShippedSets:
    def test_available_sets(self):
        assert available_sets() == ["default", "split_columns"]

    def test_default_set(self):
        config = get_codec_config()
        assert config.config_id == "default"
        assert config.max_input_bytes == DEFAULT_MAX_INPUT_BYTES
        assert not config.lenient_balances
        assert config.mt940.century_pivot == 51
        assert config.mt940.line_length == 65
        assert config.camt053.namespace == CAMT053_NAMESPACE
        assert config.csv.column_for("amount").header == "Amount"
        assert config.csv.extension_keys == frozenset()

    def test_split_columns_set(self):
        config = get_codec_config(set_name="split_columns")
        assert config.csv.amount_mode == "split"
        assert config.csv.delimiter == ";"
        assert config.csv.skip_rows == 2
        assert config.csv.currency == "RUB"
        assert config.csv.extension_keys == frozenset({"csv.counterparty"})
        # sections missing from the file fall back to defaults
        assert config.mt940.envelope is True

    def test_unknown_set(self):
        with pytest.raises(FileNotFoundError):
            get_codec_config(set_name="nope")

    def test_trace_record(self, captured_logs):
        config = get_codec_config()
        [trace] = [r for r in captured_logs() if r["message"] == "STATEMENT_CONFIG_TRACE"]
        assert trace["config_id"] == "default"
        assert trace["config_version"] == 1
        assert trace["checksum"] == config.checksum
        assert trace["source"].endswith("default.yaml")


# =============================================================================
# Explicit files
# =============================================================================


class TestExplicitFile:
    def test_load_from_path(self, tmp_path):
        path = tmp_path / "bank.yaml"
        path.write_text(
            "config_id: bank\n"
            "version: 3\n"
            "lenient_balances: true\n"
            "csv:\n"
            "  statement_date: 2024-01-31\n"
            "  starting_balance: 12.5\n"
            "  columns:\n"
            "    - {header: Datum, field: booking_date}\n"
            "    - {header: Betrag, field: amount}\n"
        )
        config = get_codec_config(path)
        assert config.config_id == "bank"
        assert config.version == 3
        assert config.lenient_balances
        assert config.csv.statement_date == date(2024, 1, 31)
        assert config.csv.starting_balance == Decimal("12.5")
        assert [c.header for c in config.csv.columns] == ["Datum", "Betrag"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_codec_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("csv: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            get_codec_config(path)

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = get_codec_config(path)
        assert config.config_id == "default"
        assert config.csv.columns == ()


# =============================================================================
# Validation
# =============================================================================


class TestValidation:
    def test_unknown_csv_field(self):
        with pytest.raises(ValueError, match="Unknown CSV field"):
            parse_csv_column({"header": "X", "field": "payee"})

    def test_column_without_header(self):
        with pytest.raises(KeyError):
            parse_csv_column({"field": "amount"})

    def test_empty_extension_key(self):
        with pytest.raises(ValueError):
            parse_csv_column({"header": "X", "field": "ext:"})

    def test_extension_column(self):
        column = parse_csv_column({"header": "Payee", "field": "ext:csv.payee"})
        assert column.is_extension
        assert column.extension_key == "csv.payee"

    def test_duplicate_mapping(self):
        with pytest.raises(ValueError, match="more than once"):
            parse_csv_options({
                "columns": [
                    {"header": "A", "field": "amount"},
                    {"header": "B", "field": "amount"},
                ]
            })

    def test_bad_amount_mode(self):
        with pytest.raises(ValueError, match="amount_mode"):
            parse_csv_options({"amount_mode": "mixed"})

    def test_multi_character_delimiter(self):
        with pytest.raises(ValueError, match="delimiter"):
            parse_csv_options({"delimiter": ";;"})

    def test_bad_starting_balance(self):
        with pytest.raises(ValueError):
            parse_csv_options({"starting_balance": "lots"})

    @pytest.mark.parametrize("pivot", [-1, 100])
    def test_century_pivot_range(self, pivot):
        with pytest.raises(ValueError, match="century_pivot"):
            parse_mt940_options({"century_pivot": pivot})

    @pytest.mark.parametrize("length", [0, 1])
    def test_line_length_leaves_room_for_wrap_mark(self, length):
        with pytest.raises(ValueError, match="line_length"):
            parse_mt940_options({"line_length": length})

    def test_non_positive_input_cap(self):
        with pytest.raises(ValueError, match="max_input_bytes"):
            parse_codec_config({"max_input_bytes": 0})


# =============================================================================
# Checksum
# =============================================================================


class TestChecksum:
    def test_deterministic_and_key_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_sensitive_to_values(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_recorded_on_config(self):
        data = {"config_id": "x", "csv": {"delimiter": ";"}}
        assert parse_codec_config(data).checksum == compute_checksum(data)
