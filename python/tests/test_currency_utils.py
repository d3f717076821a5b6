"""
Tests for currency conversion and currency/country metadata.
"""

import pytest
from decimal import Decimal

from currency_utils import (
    convert,
    convert_from_usd,
    convert_to_usd,
    default_currency,
    exchange_rate,
    format_amount,
    is_valid_currency,
    supported_countries,
    supported_currencies,
)


class TestConversion:

    def test_usd_is_unchanged(self):
        assert convert_to_usd(Decimal("1234.56"), "USD") == Decimal("1234.56")

    @pytest.mark.parametrize("amount,currency,expected", [
        ("1000", "MXN", Decimal("59.00")),
        ("100", "EUR", Decimal("110.00")),
        ("100", "GBP", Decimal("127.00")),
        ("1000000", "COP", Decimal("250.00")),
        ("12345", "JPY", Decimal("87.65")),
    ])
    def test_to_usd(self, amount, currency, expected):
        assert convert_to_usd(Decimal(amount), currency) == expected

    def test_rounds_half_up_to_cents(self):
        # 5 ARS * 0.0010 = 0.005 USD
        assert convert_to_usd(Decimal("5"), "ARS") == Decimal("0.01")
        assert convert_to_usd(Decimal("4"), "ARS") == Decimal("0.00")

    def test_unknown_currency_at_par(self):
        assert exchange_rate("XYZ") == Decimal("1.0")
        assert convert_to_usd(Decimal("10.00"), "XYZ") == Decimal("10.00")

    def test_lowercase_codes(self):
        assert convert_to_usd(Decimal("100"), "eur") == Decimal("110.00")

    def test_accepts_floats_and_ints(self):
        assert convert_to_usd(100, "EUR") == Decimal("110.00")
        assert convert_to_usd(0.1, "USD") == Decimal("0.1")

    def test_from_usd(self):
        assert convert_from_usd(Decimal("59"), "MXN") == Decimal("1000.00")
        assert convert_from_usd(Decimal("5"), "USD") == Decimal("5")

    def test_cross_conversion(self):
        assert convert(Decimal("100"), "EUR", "GBP") == Decimal("86.61")


class TestFormatting:

    def test_usd_format(self):
        assert format_amount(Decimal("12345.6"), "USD") == "$12,345.60"
        assert format_amount(Decimal("1000.01"), "USD") == "$1,000.01"

    def test_symbols(self):
        assert format_amount(Decimal("10"), "EUR") == "€10.00"
        assert format_amount(Decimal("10"), "BRL") == "R$10.00"

    def test_zero_decimal_currencies(self):
        assert format_amount(Decimal("1500.4"), "JPY") == "¥1,500"
        assert format_amount(Decimal("2500.5"), "CLP") == "CL$2,501"

    def test_unknown_code_prefix(self):
        assert format_amount(Decimal("3"), "XYZ") == "XYZ 3.00"


class TestMetadata:

    @pytest.mark.parametrize("country,currency", [
        ("MX", "MXN"),
        ("US", "USD"),
        ("ES", "EUR"),
        ("DE", "EUR"),
        ("BR", "BRL"),
        ("JP", "JPY"),
        ("ZZ", "USD"),
        ("mx", "MXN"),
    ])
    def test_default_currency(self, country, currency):
        assert default_currency(country) == currency

    def test_is_valid_currency(self):
        assert is_valid_currency("MXN")
        assert is_valid_currency("nzd")
        assert not is_valid_currency("XYZ")

    def test_supported_currencies(self):
        currencies = {c["code"]: c for c in supported_currencies()}
        assert len(currencies) == 15
        assert currencies["PEN"]["symbol"] == "S/"
        assert currencies["MXN"]["name"] == "Mexican Peso"

    def test_supported_countries_have_tax_id_labels(self):
        countries = {c["code"]: c for c in supported_countries()}
        assert countries["MX"]["tax_id"] == "RFC"
        assert countries["ES"]["currency"] == "EUR"
        assert all(c["currency"] == default_currency(c["code"]) for c in countries.values())

    def test_supported_countries_returns_copies(self):
        supported_countries()[0]["code"] = "XX"
        assert supported_countries()[0]["code"] == "MX"
