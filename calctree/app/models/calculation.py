"""
Calculation database model.

One row per node of a calculation tree. Roots are starting numbers; every
other row applies an operation to its parent's result.
"""

from sqlalchemy import (
    CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, Integer
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from calctree.app.db.session import Base
from calctree.app.db.types import exact_numeric
from calctree.app.models.enums import OperationType

# 28 integer digits and 10 fractional digits
RESULT_PRECISION = 38
RESULT_SCALE = 10


class Calculation(Base):
    """
    Calculation node model.

    Rows are immutable after insert. Deleting a row removes its whole
    subtree through the self-referencing ON DELETE CASCADE.
    """
    __tablename__ = "calculations"
    __table_args__ = (
        CheckConstraint(
            "operation_type IS NULL OR "
            "operation_type IN ('add', 'subtract', 'multiply', 'divide')",
            name="check_operation_type",
        ),
        CheckConstraint(
            "(parent_id IS NULL AND operation_type IS NULL) OR "
            "(parent_id IS NOT NULL AND operation_type IS NOT NULL)",
            name="check_root_node",
        ),
        CheckConstraint("depth >= 0", name="check_depth_non_negative"),
        Index("idx_calculations_parent_id", "parent_id"),
        Index("idx_calculations_user_id", "user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Ownership
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Tree structure (NULL parent = root / starting number)
    parent_id = Column(Integer, ForeignKey("calculations.id", ondelete="CASCADE"), nullable=True)
    operation_type = Column(
        Enum(
            OperationType,
            native_enum=False,
            create_constraint=False,
            length=20,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=True,
    )

    operand = Column(exact_numeric(RESULT_PRECISION, RESULT_SCALE), nullable=False)
    result = Column(exact_numeric(RESULT_PRECISION, RESULT_SCALE), nullable=False)
    depth = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Many-to-one, always needed for display so load it with the row
    owner = relationship("User", lazy="joined")

    @property
    def username(self):
        return self.owner.username if self.owner is not None else None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def __repr__(self):
        op = self.operation_type.value if self.operation_type else None
        return (
            f"<Calculation(id={self.id}, parent_id={self.parent_id}, op={op}, "
            f"operand={self.operand}, result={self.result}, depth={self.depth})>"
        )
