"""
Numeric coercion for monetary input (``freight_kernel.domain.values``).

Responsibility
--------------
Turn loosely typed amounts coming from forms and rows (``Decimal``,
``int``, numeric strings, the occasional ``float``) into ``Decimal`` for
the rule functions, or ``None`` when the value is not a usable finite
number.

Invariants enforced
-------------------
* Floats go through ``str()`` so binary noise does not leak into money.
* ``bool`` is not a number here, even though it subclasses ``int``.
* NaN and infinities are rejected.
"""

from decimal import Decimal, InvalidOperation

ZERO = Decimal("0")


def as_decimal(value: object) -> Decimal | None:
    """Coerce ``value`` to a finite ``Decimal``, or return ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


def as_decimal_or_zero(value: object) -> Decimal:
    """Like :func:`as_decimal` but missing or unusable values count as zero."""
    result = as_decimal(value)
    return ZERO if result is None else result
