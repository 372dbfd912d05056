"""
Custom column types.
"""

from decimal import Decimal

from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator


class DecimalText(TypeDecorator):
    """
    Exact decimal stored as plain fixed-point text.

    SQLite has no exact numeric storage class and keeps NUMERIC values as
    REAL, so the digits are stored verbatim and parsed back into Decimal.
    """
    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return format(value, "f")

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


def exact_numeric(precision: int, scale: int):
    """NUMERIC(precision, scale) on real databases, exact text on SQLite."""
    return Numeric(precision, scale, asdecimal=True).with_variant(DecimalText(), "sqlite")
