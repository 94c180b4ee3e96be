"""Tests for invoice numbering and totals (freight_modules/invoicing/documents.py)."""

from decimal import Decimal

import pytest

from freight_modules.invoicing.documents import (
    VAT_RATE,
    InvoiceNumber,
    calculate_invoice_totals,
    calculate_line_subtotal,
    format_invoice_number,
    next_invoice_number,
    parse_invoice_number,
)


class TestInvoiceNumbering:

    def test_format(self):
        assert format_invoice_number(2024, 7) == "INV-2024-0007"

    def test_format_beyond_four_digits(self):
        assert format_invoice_number(2024, 12345) == "INV-2024-12345"

    def test_parse(self):
        assert parse_invoice_number("INV-2024-0042") == InvoiceNumber(2024, 42)

    @pytest.mark.parametrize("text", ["INV-24-0001", "JO-0001", "", "INV-2024-01", None])
    def test_parse_rejects_other_text(self, text):
        assert parse_invoice_number(text) is None

    def test_next_number_continues_year(self):
        existing = ["INV-2024-0001", "INV-2024-0009", "INV-2023-0050", "garbage"]
        assert next_invoice_number(2024, existing) == "INV-2024-0010"

    def test_next_number_new_year_restarts(self):
        assert next_invoice_number(2025, ["INV-2024-0099"]) == "INV-2025-0001"


class TestInvoiceTotals:

    def test_vat_rate(self):
        assert VAT_RATE == Decimal("0.11")

    def test_line_subtotal_rounds_half_up(self):
        assert calculate_line_subtotal("3", "0.335") == Decimal("1.01")

    def test_totals(self):
        totals = calculate_invoice_totals([
            {"quantity": 2, "unit_price": Decimal("1500000")},
            {"quantity": 1, "unit_price": Decimal("2000000")},
        ])
        assert totals.subtotal == Decimal("5000000")
        assert totals.vat_amount == Decimal("550000")
        assert totals.grand_total == Decimal("5550000")

    def test_empty_invoice(self):
        totals = calculate_invoice_totals([])
        assert totals.subtotal == Decimal("0")
        assert totals.grand_total == Decimal("0")

    def test_vat_rounded_to_cents(self):
        totals = calculate_invoice_totals([{"quantity": 1, "unit_price": "10.05"}])
        assert totals.vat_amount == Decimal("1.11")
        assert totals.grand_total == Decimal("11.16")
