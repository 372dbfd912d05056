"""
Calculation operation enumeration.

Defines the arithmetic operations a child calculation can apply.
"""

import enum


class OperationType(str, enum.Enum):
    """
    Operation applied to the parent's result.

    Values are the lowercase tags used on the wire and in the database.
    """
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
