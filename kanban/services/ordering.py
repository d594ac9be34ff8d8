"""Order-index planning for columns within a board and tasks within a column.

Everything here is pure: callers read the full ordered scope, ask for a plan,
then write every row of the plan inside one transaction. A plan is a list of
ids whose list position is the new ``order`` value.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Sequence
from typing import TypeVar

from kanban.errors import InvalidStateError

T = TypeVar("T", bound=Hashable)


def next_order(orders: Iterable[int]) -> int:
    """Order for an appended row: one past the current maximum, 0 for an empty scope.

    Gaps left behind by deletions are tolerated.
    """
    return max(orders, default=-1) + 1


def clamp_index(index: int, upper: int) -> int:
    return max(0, min(index, upper))


def plan_reorder(ids: Sequence[T], item_id: T, to_index: int) -> list[T]:
    if item_id not in ids:
        raise InvalidStateError("Item is not part of this scope")
    remaining = [current for current in ids if current != item_id]
    remaining.insert(clamp_index(to_index, len(remaining)), item_id)
    return remaining


def plan_transfer(
    source_ids: Sequence[T],
    target_ids: Sequence[T],
    item_id: T,
    to_index: int,
) -> tuple[list[T], list[T]]:
    """Move ``item_id`` out of ``source_ids`` and into ``target_ids`` at ``to_index``.

    Returns ``(source, target)``. The source keeps its relative order and the
    target index is clamped to ``[0, len(target_ids)]``.
    """
    if item_id not in source_ids:
        raise InvalidStateError("Item is not part of the source scope")
    source = [current for current in source_ids if current != item_id]
    target = [current for current in target_ids if current != item_id]
    target.insert(clamp_index(to_index, len(target)), item_id)
    return source, target


def is_contiguous(orders: Iterable[int]) -> bool:
    values = sorted(orders)
    return values == list(range(len(values)))
