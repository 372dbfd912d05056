"""
Tests for tree materialization.

Both closure strategies must produce the same nested structure.
"""

import pytest
from datetime import datetime
from decimal import Decimal

from calctree.app.domain.calculation.calculation_store import CalculationStore
from calctree.app.domain.calculation.tree_materializer import (
    STRATEGY_LEVELWISE,
    STRATEGY_RECURSIVE,
    TreeMaterializer,
)
from calctree.app.models.calculation import Calculation
from calctree.app.models.enums import OperationType
from calctree.app.models.user import User

STRATEGIES = [STRATEGY_RECURSIVE, STRATEGY_LEVELWISE]


def shape(nodes):
    """Reduce a forest to (id, result, depth, children) tuples for comparison."""
    return [(n.id, n.result, n.depth, shape(n.children)) for n in nodes]


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", STRATEGIES)
async def test_empty_forest(db_session, strategy):
    assert await TreeMaterializer.get_forest(db_session, strategy=strategy) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", STRATEGIES)
async def test_root_with_two_children_in_creation_order(db_session, user_a, user_b, strategy):
    root = await CalculationStore.create_root(db_session, user_a.id, 10)
    first = await CalculationStore.create_child(db_session, user_b.id, root.id, OperationType.ADD, 1)
    second = await CalculationStore.create_child(db_session, user_a.id, root.id, OperationType.SUBTRACT, 1)

    forest = await TreeMaterializer.get_forest(db_session, strategy=strategy)

    assert len(forest) == 1
    assert forest[0].id == root.id
    assert [c.id for c in forest[0].children] == [first.id, second.id]
    assert [c.result for c in forest[0].children] == [Decimal("11"), Decimal("9")]


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", STRATEGIES)
async def test_three_level_chain(db_session, user_a, user_b, strategy):
    root = await CalculationStore.create_root(db_session, user_a.id, 10)
    child = await CalculationStore.create_child(db_session, user_b.id, root.id, OperationType.ADD, 5)
    await CalculationStore.create_child(db_session, user_a.id, child.id, OperationType.MULTIPLY, 2)

    forest = await TreeMaterializer.get_forest(db_session, strategy=strategy)

    assert len(forest) == 1
    top = forest[0]
    assert (top.result, top.depth, top.username, top.operation_type) == (Decimal("10"), 0, "alice", None)

    assert len(top.children) == 1
    middle = top.children[0]
    assert (middle.result, middle.depth, middle.username) == (Decimal("15"), 1, "bob")
    assert middle.operation_type == OperationType.ADD

    assert len(middle.children) == 1
    leaf = middle.children[0]
    assert (leaf.result, leaf.depth, leaf.username) == (Decimal("30"), 2, "alice")
    assert leaf.operation_type == OperationType.MULTIPLY
    assert leaf.children == []


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", STRATEGIES)
async def test_single_tree_by_root_id(db_session, user_a, strategy):
    root = await CalculationStore.create_root(db_session, user_a.id, 1)
    other = await CalculationStore.create_root(db_session, user_a.id, 2)
    await CalculationStore.create_child(db_session, user_a.id, root.id, OperationType.ADD, 1)
    await CalculationStore.create_child(db_session, user_a.id, other.id, OperationType.ADD, 1)

    forest = await TreeMaterializer.get_forest(db_session, root_id=root.id, strategy=strategy)

    assert [t.id for t in forest] == [root.id]
    assert len(forest[0].children) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", STRATEGIES)
async def test_missing_root_id_returns_empty(db_session, strategy):
    assert await TreeMaterializer.get_forest(db_session, root_id=777, strategy=strategy) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", STRATEGIES)
async def test_non_root_id_returns_its_subtree(db_session, user_a, strategy):
    root = await CalculationStore.create_root(db_session, user_a.id, 3)
    child = await CalculationStore.create_child(db_session, user_a.id, root.id, OperationType.MULTIPLY, 3)
    grandchild = await CalculationStore.create_child(db_session, user_a.id, child.id, OperationType.ADD, 1)

    forest = await TreeMaterializer.get_forest(db_session, root_id=child.id, strategy=strategy)

    assert [t.id for t in forest] == [child.id]
    assert forest[0].depth == 1
    assert [c.id for c in forest[0].children] == [grandchild.id]


@pytest.mark.asyncio
async def test_strategies_agree_on_larger_forest(db_session, user_a, user_b):
    r1 = await CalculationStore.create_root(db_session, user_a.id, 2)
    r2 = await CalculationStore.create_root(db_session, user_b.id, -8)
    a = await CalculationStore.create_child(db_session, user_b.id, r1.id, OperationType.MULTIPLY, 3)
    b = await CalculationStore.create_child(db_session, user_a.id, r2.id, OperationType.DIVIDE, 2)
    await CalculationStore.create_child(db_session, user_a.id, a.id, OperationType.SUBTRACT, 1)
    await CalculationStore.create_child(db_session, user_a.id, r1.id, OperationType.ADD, 0.5)
    await CalculationStore.create_child(db_session, user_b.id, b.id, OperationType.ADD, 4)

    recursive = await TreeMaterializer.get_forest(db_session, strategy=STRATEGY_RECURSIVE)
    levelwise = await TreeMaterializer.get_forest(db_session, strategy=STRATEGY_LEVELWISE)

    assert shape(recursive) == shape(levelwise)
    assert [t.id for t in recursive] == [r1.id, r2.id]


@pytest.mark.asyncio
async def test_reads_reflect_deletes(db_session, user_a):
    root = await CalculationStore.create_root(db_session, user_a.id, 1)
    child = await CalculationStore.create_child(db_session, user_a.id, root.id, OperationType.ADD, 1)

    before = await TreeMaterializer.get_forest(db_session)
    assert len(before[0].children) == 1

    await CalculationStore.delete(db_session, child.id, user_a.id)

    after = await TreeMaterializer.get_forest(db_session)
    assert after[0].children == []


@pytest.mark.asyncio
async def test_unknown_strategy_rejected(db_session):
    with pytest.raises(ValueError):
        await TreeMaterializer.get_forest(db_session, strategy="depth-first")


def make_node(node_id, parent_id, result, depth, operation=None):
    node = Calculation(
        id=node_id,
        user_id=1,
        parent_id=parent_id,
        operation_type=operation,
        operand=Decimal(result),
        result=Decimal(result),
        depth=depth,
        created_at=datetime(2026, 1, 1),
    )
    node.owner = User(id=1, username="alice", hashed_password="x")
    return node


class TestAssembleForest:

    def test_orphan_is_dropped(self):
        nodes = [
            make_node(1, None, "1", 0),
            make_node(2, 1, "2", 1, OperationType.ADD),
            make_node(3, 99, "3", 1, OperationType.ADD),
        ]

        forest = TreeMaterializer.assemble_forest(nodes)

        assert [t.id for t in forest] == [1]
        assert [c.id for c in forest[0].children] == [2]

    def test_roots_keep_input_order(self):
        nodes = [make_node(5, None, "5", 0), make_node(2, None, "2", 0), make_node(9, None, "9", 0)]

        forest = TreeMaterializer.assemble_forest(nodes)

        assert [t.id for t in forest] == [5, 2, 9]

    def test_anchor_ids_promote_subtree_top(self):
        nodes = [
            make_node(4, 1, "4", 1, OperationType.ADD),
            make_node(6, 4, "6", 2, OperationType.ADD),
        ]

        forest = TreeMaterializer.assemble_forest(nodes, anchor_ids=[4])

        assert [t.id for t in forest] == [4]
        assert forest[0].children[0].id == 6
        assert forest[0].children[0].username == "alice"

    def test_empty_input(self):
        assert TreeMaterializer.assemble_forest([]) == []
