"""Job order numbering: ``JO-NNNN/CARGO/<roman month>/YYYY``."""

from datetime import date

_ROMAN_MONTHS = (
    "I", "II", "III", "IV", "V", "VI",
    "VII", "VIII", "IX", "X", "XI", "XII",
)


def to_roman_month(month: int) -> str:
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")
    return _ROMAN_MONTHS[month - 1]


def format_jo_number(sequence: int, on_date: date) -> str:
    return f"JO-{sequence:04d}/CARGO/{to_roman_month(on_date.month)}/{on_date.year}"


def job_order_sequence_name(on_date: date) -> str:
    """Job order numbers restart every month."""
    return f"job_order:{on_date.year}-{on_date.month:02d}"
