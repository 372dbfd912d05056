"""
Tree Materializer (Domain Logic).

Rebuilds nested calculation trees from a flat node set.

Flow:
1. Closure fetch: the anchor nodes (one root, or every root) plus all of
   their descendants, ordered by level, then creation time.
2. Assembly: index nodes by id and hang each one under its parent.

Nothing is cached. Every call reads the current state of the store.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Set

from sqlalchemy import literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession

from calctree.app.core.config import settings
from calctree.app.core.reliability import translate_pool_errors
from calctree.app.models.calculation import Calculation
from calctree.app.schemas.calculation import CalculationTreeNode

logger = logging.getLogger("calctree.tree")

STRATEGY_RECURSIVE = "recursive"
STRATEGY_LEVELWISE = "levelwise"


class TreeMaterializer:

    @staticmethod
    def _anchor_condition(root_id: Optional[int]):
        if root_id is not None:
            return Calculation.id == root_id
        return Calculation.parent_id.is_(None)

    @staticmethod
    async def fetch_closure_recursive(db: AsyncSession, root_id: Optional[int] = None) -> List[Calculation]:
        """
        Fetch the anchor set and every descendant with one WITH RECURSIVE query.
        """
        anchor = (
            select(Calculation.id.label("id"), literal_column("0").label("level"))
            .where(TreeMaterializer._anchor_condition(root_id))
            .cte("tree", recursive=True)
        )
        descendants = (
            select(Calculation.id, (anchor.c.level + 1).label("level"))
            .join(anchor, Calculation.parent_id == anchor.c.id)
        )
        tree = anchor.union_all(descendants)

        query = (
            select(Calculation)
            .join(tree, Calculation.id == tree.c.id)
            .order_by(tree.c.level, Calculation.created_at.asc(), Calculation.id.asc())
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def fetch_closure_levelwise(db: AsyncSession, root_id: Optional[int] = None) -> List[Calculation]:
        """
        Fetch the anchor set, then one batch per level by parent id until a
        level comes back empty.
        """
        order = (Calculation.created_at.asc(), Calculation.id.asc())

        result = await db.execute(
            select(Calculation).where(TreeMaterializer._anchor_condition(root_id)).order_by(*order)
        )
        level = list(result.scalars().all())
        nodes: List[Calculation] = []
        seen: Set[int] = set()

        while level:
            nodes.extend(level)
            seen.update(node.id for node in level)
            parent_ids = [node.id for node in level]
            result = await db.execute(
                select(Calculation).where(Calculation.parent_id.in_(parent_ids)).order_by(*order)
            )
            # Guard against revisiting ids if the data were ever cyclic
            level = [node for node in result.scalars().all() if node.id not in seen]

        return nodes

    @staticmethod
    def assemble_forest(
        nodes: Iterable[Calculation],
        anchor_ids: Optional[Sequence[int]] = None
    ) -> List[CalculationTreeNode]:
        """
        Build nested trees from a flat, level-ordered node list.

        Args:
            nodes: Flat closure, parents before children
            anchor_ids: Ids to treat as top-level even if they have a parent

        Returns:
            Top-level nodes in fetch order, children in creation order.
            Nodes whose parent is not in the set are dropped.
        """
        anchors = set(anchor_ids or ())
        nodes = list(nodes)

        index = {node.id: CalculationTreeNode.model_validate(node) for node in nodes}
        roots: List[CalculationTreeNode] = []

        for node in nodes:
            tree_node = index[node.id]
            if node.parent_id is None or node.id in anchors:
                roots.append(tree_node)
                continue

            parent = index.get(node.parent_id)
            if parent is None:
                logger.warning(
                    "Dropping calculation %s: parent %s not in fetched set", node.id, node.parent_id
                )
                continue
            parent.children.append(tree_node)

        return roots

    @staticmethod
    @translate_pool_errors
    async def get_forest(
        db: AsyncSession,
        root_id: Optional[int] = None,
        strategy: Optional[str] = None
    ) -> List[CalculationTreeNode]:
        """
        Materialize one tree or the whole forest.

        Args:
            db: Database session
            root_id: Anchor node; every root when omitted. A non-root id
                returns the subtree below that node.
            strategy: "recursive" or "levelwise" (defaults to settings)

        Returns:
            List of top-level tree nodes; empty if root_id does not exist
        """
        strategy = strategy or settings.tree_fetch_strategy
        if strategy == STRATEGY_RECURSIVE:
            nodes = await TreeMaterializer.fetch_closure_recursive(db, root_id)
        elif strategy == STRATEGY_LEVELWISE:
            nodes = await TreeMaterializer.fetch_closure_levelwise(db, root_id)
        else:
            raise ValueError(f"Unknown tree fetch strategy: {strategy}")

        anchor_ids = [root_id] if root_id is not None else None
        return TreeMaterializer.assemble_forest(nodes, anchor_ids)
