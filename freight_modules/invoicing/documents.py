"""
Invoice document helpers: numbering and line totals.

Invoice numbers follow ``INV-YYYY-NNNN`` with a per-year sequence.  Totals
add VAT at the Indonesian PPN rate and round to whole cents.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from freight_kernel.domain.values import ZERO, as_decimal_or_zero
from freight_modules.invoicing.models import InvoiceTotals

VAT_RATE = Decimal("0.11")
_CENT = Decimal("0.01")
_INVOICE_NUMBER_RE = re.compile(r"^INV-(\d{4})-(\d{4,})$")


@dataclass(frozen=True)
class InvoiceNumber:
    year: int
    sequence: int


def format_invoice_number(year: int, sequence: int) -> str:
    return f"INV-{year:04d}-{sequence:04d}"


def parse_invoice_number(text: str) -> InvoiceNumber | None:
    """Parse ``INV-YYYY-NNNN``; anything else yields ``None``."""
    if not isinstance(text, str):
        return None
    match = _INVOICE_NUMBER_RE.match(text.strip())
    if match is None:
        return None
    return InvoiceNumber(year=int(match.group(1)), sequence=int(match.group(2)))


def next_invoice_number(year: int, existing: Iterable[str]) -> str:
    """Next number in ``year`` after the highest one already issued."""
    highest = 0
    for number in existing:
        parsed = parse_invoice_number(number)
        if parsed is not None and parsed.year == year:
            highest = max(highest, parsed.sequence)
    return format_invoice_number(year, highest + 1)


def _round(amount: Decimal) -> Decimal:
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def calculate_line_subtotal(quantity: object, unit_price: object) -> Decimal:
    return _round(as_decimal_or_zero(quantity) * as_decimal_or_zero(unit_price))


def calculate_invoice_totals(line_items: Iterable[Mapping]) -> InvoiceTotals:
    """Subtotal of ``quantity * unit_price`` lines, VAT, and grand total."""
    subtotal = sum(
        (calculate_line_subtotal(item.get("quantity"), item.get("unit_price"))
         for item in line_items),
        ZERO,
    )
    vat_amount = _round(subtotal * VAT_RATE)
    return InvoiceTotals(
        subtotal=subtotal,
        vat_amount=vat_amount,
        grand_total=subtotal + vat_amount,
    )
