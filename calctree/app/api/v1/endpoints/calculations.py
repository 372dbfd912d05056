"""
Calculation API endpoints.

Reads are public (a token is optional). Creating and deleting require
authentication. Domain errors propagate to the global AppException handler.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from calctree.app.db.session import get_db
from calctree.app.core.dependencies import get_current_user, get_optional_user
from calctree.app.core.exceptions import CalculationNotFoundError, ResourceNotFoundError
from calctree.app.core.routing import DecimalJSONRoute
from calctree.app.domain.calculation.calculation_store import CalculationStore
from calctree.app.domain.calculation.tree_materializer import TreeMaterializer
from calctree.app.schemas.calculation import (
    CalculationCreate,
    CalculationCreatedResponse,
    CalculationListResponse,
    CalculationResponse,
    ForestResponse,
    MessageResponse,
    TreeResponse,
)

router = APIRouter(prefix="/calculations", tags=["Calculations"], route_class=DecimalJSONRoute)


@router.get("/trees", response_model=ForestResponse)
async def get_all_trees(
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Every calculation tree, fully nested."""
    trees = await TreeMaterializer.get_forest(db)
    return ForestResponse(trees=trees)


@router.get("/trees/{calculation_id}", response_model=TreeResponse)
async def get_tree(
    calculation_id: int = Path(..., ge=1),
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """
    One calculation and all its descendants.

    Raises:
        404: If the calculation does not exist
    """
    trees = await TreeMaterializer.get_forest(db, root_id=calculation_id)
    if not trees:
        raise ResourceNotFoundError("Calculation tree", calculation_id)
    return TreeResponse(tree=trees[0])


@router.get("/roots", response_model=CalculationListResponse)
async def get_roots(
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Starting numbers, newest first."""
    roots = await CalculationStore.list_roots(db)
    return CalculationListResponse(
        calculations=[CalculationResponse.model_validate(root) for root in roots]
    )


@router.get("/{calculation_id}/children", response_model=CalculationListResponse)
async def get_children(
    calculation_id: int = Path(..., ge=1),
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Direct children of a calculation, oldest first."""
    children = await CalculationStore.list_children(db, calculation_id)
    return CalculationListResponse(
        calculations=[CalculationResponse.model_validate(child) for child in children]
    )


@router.post("", response_model=CalculationCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_calculation(
    data: CalculationCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a starting number or apply an operation to an existing calculation.

    - Root: no parent_id and no operation_type
    - Child: both parent_id and operation_type
    """
    user_id = current_user["user_id"]

    if data.parent_id is None:
        if data.operation_type is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Root calculations (starting numbers) should not have an operation type"
            )
        calculation = await CalculationStore.create_root(db, user_id, data.operand)
    else:
        if data.operation_type is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Child calculations must have an operation type"
            )
        calculation = await CalculationStore.create_child(
            db, user_id, data.parent_id, data.operation_type, data.operand
        )

    return CalculationCreatedResponse(
        calculation=CalculationResponse.model_validate(calculation)
    )


@router.delete("/{calculation_id}", response_model=MessageResponse)
async def delete_calculation(
    calculation_id: int = Path(..., ge=1),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a calculation and everything below it (owner only).

    Raises:
        404: If the calculation does not exist or belongs to another user
    """
    deleted = await CalculationStore.delete(db, calculation_id, current_user["user_id"])
    if not deleted:
        raise CalculationNotFoundError(calculation_id)
    return MessageResponse(message="Calculation deleted successfully")
