"""Tests for currency code validation and minor-unit quantization."""

from decimal import Decimal

import pytest

from statement_kernel.domain.currency import minor_units, normalize_currency, quantize
from statement_kernel.exceptions import InvalidCurrencyError


class TestNormalizeCurrency:
    def test_upper_cases_and_strips(self):
        assert normalize_currency(" usd ") == "USD"

    @pytest.mark.parametrize("code", ["", "US", "USDD", "U$D", "12A", "ÉUR"])
    def test_rejects_non_iso_shapes(self, code):
        with pytest.raises(InvalidCurrencyError) as exc_info:
            normalize_currency(code)
        assert exc_info.value.code == "INVALID_CURRENCY"

    def test_rejects_non_string(self):
        with pytest.raises(InvalidCurrencyError):
            normalize_currency(None)  # type: ignore[arg-type]


class TestMinorUnits:
    def test_default_two_places(self):
        assert minor_units("EUR") == 2

    def test_zero_and_three_place_currencies(self):
        assert minor_units("JPY") == 0
        assert minor_units("KWD") == 3


class TestQuantize:
    def test_pads_to_currency_precision(self):
        assert str(quantize(Decimal("1250"), "EUR")) == "1250.00"
        assert str(quantize(Decimal("7"), "KWD")) == "7.000"

    def test_zero_place_currency(self):
        assert str(quantize(Decimal("500"), "JPY")) == "500"

    def test_extra_precision_left_untouched(self):
        assert str(quantize(Decimal("1.005"), "EUR")) == "1.005"
