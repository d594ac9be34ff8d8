from __future__ import annotations

import pytest

from kanban.errors import InvalidStateError
from kanban.services.ordering import clamp_index, is_contiguous, next_order, plan_reorder, plan_transfer


def test_next_order_appends_after_max() -> None:
    assert next_order([]) == 0
    assert next_order([0, 1, 2]) == 3
    assert next_order([0, 4]) == 5
    assert next_order(order for order in (2, 0, 1)) == 3


def test_clamp_index_bounds() -> None:
    assert clamp_index(-3, 4) == 0
    assert clamp_index(2, 4) == 2
    assert clamp_index(1000, 4) == 4


def test_plan_reorder_moves_item() -> None:
    assert plan_reorder(["a", "b", "c"], "a", 2) == ["b", "c", "a"]
    assert plan_reorder(["a", "b", "c"], "c", 0) == ["c", "a", "b"]


def test_plan_reorder_same_index_is_noop() -> None:
    ids = ["a", "b", "c"]
    for index, item in enumerate(ids):
        assert plan_reorder(ids, item, index) == ids


def test_plan_reorder_clamps_against_post_removal_length() -> None:
    assert plan_reorder(["a", "b", "c"], "a", 1000) == plan_reorder(["a", "b", "c"], "a", 2)
    assert plan_reorder(["a", "b", "c"], "b", -5) == ["b", "a", "c"]


def test_plan_reorder_rejects_foreign_item() -> None:
    with pytest.raises(InvalidStateError):
        plan_reorder([1, 2, 3], 9, 0)


def test_plan_transfer_between_scopes() -> None:
    source, target = plan_transfer(["t1", "t2", "t3"], ["t4", "t5"], "t2", 1)
    assert source == ["t1", "t3"]
    assert target == ["t4", "t2", "t5"]


def test_plan_transfer_clamps_target_index() -> None:
    _, appended = plan_transfer(["t1"], ["t4", "t5"], "t1", 1000)
    _, prepended = plan_transfer(["t1"], ["t4", "t5"], "t1", -1)
    _, into_empty = plan_transfer(["t1"], [], "t1", 3)
    assert appended == ["t4", "t5", "t1"]
    assert prepended == ["t1", "t4", "t5"]
    assert into_empty == ["t1"]


def test_plan_transfer_requires_item_in_source() -> None:
    with pytest.raises(InvalidStateError):
        plan_transfer(["t1"], ["t2"], "t2", 0)


def test_is_contiguous() -> None:
    assert is_contiguous([])
    assert is_contiguous([2, 0, 1])
    assert not is_contiguous([0, 2])
    assert not is_contiguous([1, 1])
