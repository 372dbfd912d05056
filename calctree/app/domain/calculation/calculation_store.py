"""
Calculation Store (Domain Logic).

Creates, reads and deletes calculation nodes. The session is always passed
in by the caller; the store never reaches for a global connection.

Rows are never updated. A child is written in one transaction that reads
the parent, computes the result and inserts; any failure rolls the whole
sequence back.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from calctree.app.core.exceptions import ParentNotFoundError
from calctree.app.core.reliability import translate_pool_errors
from calctree.app.domain.calculation.engine import CalculationEngine, NumberLike
from calctree.app.models.calculation import Calculation
from calctree.app.models.enums import OperationType

logger = logging.getLogger("calctree.store")


class CalculationStore:

    @staticmethod
    @translate_pool_errors
    async def create_root(db: AsyncSession, user_id: int, operand: NumberLike) -> Calculation:
        """
        Create a starting number.

        Args:
            db: Database session
            user_id: Owner of the new root
            operand: Starting value (also stored as the result)

        Returns:
            Created Calculation with owner loaded

        Raises:
            InvalidNumberError: If the operand is not finite or out of range
        """
        value = CalculationEngine.validate_number(operand)

        root = Calculation(
            user_id=user_id,
            parent_id=None,
            operation_type=None,
            operand=value,
            result=value,
            depth=0
        )

        try:
            db.add(root)
            await db.flush()
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Root calculation %s created by user %s (operand=%s)", root.id, user_id, value)
        return await CalculationStore.find_by_id(db, root.id)

    @staticmethod
    @translate_pool_errors
    async def create_child(
        db: AsyncSession,
        user_id: int,
        parent_id: int,
        operation: OperationType,
        operand: NumberLike
    ) -> Calculation:
        """
        Apply an operation to an existing calculation.

        Flow (single transaction):
        1. Read parent result and depth
        2. Compute the child result
        3. Insert the child at parent depth + 1
        4. Commit

        Args:
            db: Database session
            user_id: Owner of the new child
            parent_id: Calculation being extended
            operation: Operation to apply to the parent's result
            operand: Right-hand side of the operation

        Returns:
            Created Calculation with owner loaded

        Raises:
            ParentNotFoundError: If parent_id does not exist
            InvalidNumberError, DivisionByZeroError, CalculationOverflowError:
                From the engine. Nothing is written in any failure case.
        """
        try:
            parent_row = (
                await db.execute(
                    select(Calculation.result, Calculation.depth).where(Calculation.id == parent_id)
                )
            ).one_or_none()

            if parent_row is None:
                raise ParentNotFoundError(parent_id)

            parent_result: Decimal = parent_row.result
            result = CalculationEngine.compute_result(parent_result, operation, operand)

            child = Calculation(
                user_id=user_id,
                parent_id=parent_id,
                operation_type=OperationType(operation),
                operand=CalculationEngine.validate_number(operand),
                result=result,
                depth=parent_row.depth + 1
            )
            db.add(child)
            await db.flush()
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Child calculation %s created by user %s under %s (%s %s -> %s)",
            child.id, user_id, parent_id, child.operation_type.value, child.operand, result
        )
        return await CalculationStore.find_by_id(db, child.id)

    @staticmethod
    @translate_pool_errors
    async def find_by_id(db: AsyncSession, calculation_id: int) -> Optional[Calculation]:
        """Fetch a calculation from the database, with its owner."""
        result = await db.execute(
            select(Calculation)
            .where(Calculation.id == calculation_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    @translate_pool_errors
    async def list_roots(db: AsyncSession) -> List[Calculation]:
        """All starting numbers, most recent first."""
        result = await db.execute(
            select(Calculation)
            .where(Calculation.parent_id.is_(None))
            .order_by(Calculation.created_at.desc(), Calculation.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    @translate_pool_errors
    async def list_children(db: AsyncSession, parent_id: int) -> List[Calculation]:
        """Direct children of a calculation, oldest first."""
        result = await db.execute(
            select(Calculation)
            .where(Calculation.parent_id == parent_id)
            .order_by(Calculation.created_at.asc(), Calculation.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    @translate_pool_errors
    async def delete(db: AsyncSession, calculation_id: int, user_id: int) -> bool:
        """
        Delete a calculation and its whole subtree.

        The ownership check is part of the DELETE itself, so a missing row
        and a row owned by someone else look the same to the caller.

        Returns:
            True if a row was removed, False otherwise
        """
        try:
            result = await db.execute(
                delete(Calculation)
                .where(Calculation.id == calculation_id, Calculation.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        deleted = (result.rowcount or 0) > 0
        if deleted:
            logger.info("Calculation %s and its descendants deleted by user %s", calculation_id, user_id)
        return deleted
