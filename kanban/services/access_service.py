from __future__ import annotations

import logging
from dataclasses import dataclass

from kanban.db.models import Board, BoardColumn, Task
from kanban.errors import ForbiddenError, NotFoundError
from kanban.store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Identity of the authenticated caller, resolved upstream."""

    user_id: int


def can_access_board(board: Board, user_id: int) -> bool:
    if board.owner_id == user_id:
        return True
    return any(member.id == user_id for member in board.members)


def _require(board: Board, ctx: RequestContext) -> None:
    if not can_access_board(board, ctx.user_id):
        logger.warning("Board access denied", extra={"board_id": board.id, "user_id": ctx.user_id})
        raise ForbiddenError("You do not have access to this board")


async def ensure_board_access(store: Store, ctx: RequestContext, board_id: int) -> Board:
    board = await store.find_board(board_id)
    if board is None:
        raise NotFoundError("Board not found")
    _require(board, ctx)
    return board


async def ensure_column_access(store: Store, ctx: RequestContext, column_id: int) -> BoardColumn:
    column = await store.find_column(column_id)
    if column is None:
        raise NotFoundError("Column not found")
    _require(column.board, ctx)
    return column


async def ensure_task_access(store: Store, ctx: RequestContext, task_id: int) -> Task:
    task = await store.find_task(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    _require(task.column.board, ctx)
    return task
