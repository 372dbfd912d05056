"""
Calculation Pydantic schemas.

Defines request and response models for calculation trees.
"""

from decimal import Decimal
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from calctree.app.models.enums import OperationType


class CalculationCreate(BaseModel):
    """
    Schema for creating a calculation.

    A root (starting number) has neither parent_id nor operation_type.
    A child has both.
    """
    parent_id: Optional[int] = Field(None, ge=1, description="Parent calculation ID (omit for a root)")
    operation_type: Optional[OperationType] = Field(None, description="Operation applied to the parent's result")
    operand: Decimal = Field(..., allow_inf_nan=False, description="Starting number, or right-hand side of the operation")


class CalculationResponse(BaseModel):
    """Schema for a single calculation node."""
    id: int
    user_id: int
    username: Optional[str] = None
    parent_id: Optional[int] = None
    operation_type: Optional[OperationType] = None
    operand: Decimal
    result: Decimal
    depth: int
    created_at: datetime

    class Config:
        from_attributes = True

    @field_serializer("operand", "result")
    def serialize_fixed_point(self, value: Decimal) -> str:
        return format(value, "f")


class CalculationTreeNode(CalculationResponse):
    """Calculation node with its descendants nested under `children`."""
    children: List["CalculationTreeNode"] = Field(default_factory=list)


CalculationTreeNode.model_rebuild()


class CalculationCreatedResponse(BaseModel):
    """Schema returned after creating a calculation."""
    message: str = "Calculation created successfully"
    calculation: CalculationResponse


class CalculationListResponse(BaseModel):
    """Schema for a flat list of calculations (roots or children)."""
    calculations: List[CalculationResponse]


class ForestResponse(BaseModel):
    """Schema for every calculation tree."""
    trees: List[CalculationTreeNode]


class TreeResponse(BaseModel):
    """Schema for a single calculation tree."""
    tree: CalculationTreeNode


class MessageResponse(BaseModel):
    message: str
