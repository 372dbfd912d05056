"""
Calculation Engine (Domain Logic).

Pure fixed-point decimal arithmetic for calculation nodes. Values must fit a
NUMERIC(38, 10) column: at most 28 integer digits and 10 fractional digits.
Nothing here touches the database.
"""

from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from calctree.app.core.exceptions import (
    CalculationOverflowError,
    DivisionByZeroError,
    InvalidNumberError,
)
from calctree.app.models.calculation import RESULT_SCALE
from calctree.app.models.enums import OperationType

MAX_SAFE_NUMBER = Decimal(10) ** 28 - 1
MIN_SAFE_NUMBER = -MAX_SAFE_NUMBER

QUANTUM = Decimal(1).scaleb(-RESULT_SCALE)

# Wide enough for the exact product of two in-range values (2 x 38 digits)
ARITHMETIC_CONTEXT = Context(prec=80, rounding=ROUND_HALF_UP)

NumberLike = Union[Decimal, int, float, str]


class CalculationEngine:

    @staticmethod
    def to_decimal(value: NumberLike) -> Decimal:
        """
        Convert an incoming number to Decimal without binary float artifacts.

        Raises:
            InvalidNumberError: If the value cannot be read as a number.
        """
        if isinstance(value, Decimal):
            return value
        if isinstance(value, bool):
            raise InvalidNumberError("Operand must be a number")
        try:
            if isinstance(value, float):
                return Decimal(repr(value))
            return Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidNumberError("Operand must be a number", details={"value": str(value)})

    @staticmethod
    def is_within_range(value: Decimal) -> bool:
        return value.is_finite() and MIN_SAFE_NUMBER <= value <= MAX_SAFE_NUMBER

    @staticmethod
    def quantize(value: Decimal) -> Decimal:
        """Round to the stored scale. The value must already be in range."""
        quantized = value.quantize(QUANTUM, context=ARITHMETIC_CONTEXT)
        # No negative zero in storage
        return quantized.copy_abs() if quantized.is_zero() else quantized

    @staticmethod
    def validate_number(value: NumberLike) -> Decimal:
        """
        Validate a number is finite and within the storable range.

        Args:
            value: Candidate operand or parent result

        Returns:
            The value as a Decimal rounded to 10 fractional digits

        Raises:
            InvalidNumberError: If the value is NaN, infinite or out of range
        """
        number = CalculationEngine.to_decimal(value)

        if not number.is_finite():
            raise InvalidNumberError("Number is not finite (Infinity or NaN)")

        if not CalculationEngine.is_within_range(number):
            raise InvalidNumberError(
                f"Number is too large. Maximum allowed: ±{MAX_SAFE_NUMBER:,}",
                details={"max_abs": str(MAX_SAFE_NUMBER)}
            )

        return CalculationEngine.quantize(number)

    @staticmethod
    def compute_result(
        parent_result: NumberLike,
        operation: OperationType,
        operand: NumberLike
    ) -> Decimal:
        """
        Apply an operation to a parent's result.

        Both inputs are validated first. The raw result is checked again
        because a valid pair can still overflow (multiplication, or division
        by a small fraction).

        Args:
            parent_result: Result stored on the parent calculation
            operation: Operation to apply
            operand: Right-hand side of the operation

        Returns:
            The result rounded to 10 fractional digits

        Raises:
            InvalidNumberError: If an input is not finite or out of range
            DivisionByZeroError: If dividing by zero
            CalculationOverflowError: If the result leaves the storable range
        """
        left = CalculationEngine.validate_number(parent_result)
        right = CalculationEngine.validate_number(operand)
        operation = OperationType(operation)

        ctx = ARITHMETIC_CONTEXT
        if operation == OperationType.ADD:
            result = ctx.add(left, right)
        elif operation == OperationType.SUBTRACT:
            result = ctx.subtract(left, right)
        elif operation == OperationType.MULTIPLY:
            result = ctx.multiply(left, right)
        else:
            if right.is_zero():
                raise DivisionByZeroError()
            result = ctx.divide(left, right)

        if not CalculationEngine.is_within_range(result):
            raise CalculationOverflowError(
                f"{operation.value.capitalize()} result is too large (overflow)",
                details={"operation": operation.value, "max_abs": str(MAX_SAFE_NUMBER)}
            )

        return CalculationEngine.quantize(result)
