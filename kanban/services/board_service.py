from __future__ import annotations

import logging
from dataclasses import dataclass, field

from kanban.db.models import Board, BoardColumn, Task
from kanban.errors import ForbiddenError, NotFoundError, ValidationFailedError
from kanban.services.access_service import RequestContext, ensure_board_access, ensure_column_access
from kanban.services.ordering import is_contiguous, next_order, plan_reorder
from kanban.store import Store

logger = logging.getLogger(__name__)


@dataclass
class ColumnView:
    column: BoardColumn
    tasks: list[Task] = field(default_factory=list)


@dataclass
class BoardView:
    board: Board
    columns: list[ColumnView] = field(default_factory=list)


def _clean_name(value: str, label: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValidationFailedError(f"{label} must not be empty")
    return cleaned


async def list_my_boards(store: Store, ctx: RequestContext) -> list[Board]:
    return await store.list_boards_for_user(ctx.user_id)


async def create_board(store: Store, ctx: RequestContext, name: str) -> Board:
    name = _clean_name(name, "Board name")
    if await store.find_user(ctx.user_id) is None:
        raise NotFoundError("User not found")
    async with store.transaction():
        board = await store.create_board(name=name, owner_id=ctx.user_id)
    logger.info("Board created", extra={"board_id": board.id, "user_id": ctx.user_id})
    return board


async def rename_board(store: Store, ctx: RequestContext, board_id: int, name: str) -> Board:
    name = _clean_name(name, "Board name")
    board = await ensure_board_access(store, ctx, board_id)
    async with store.transaction():
        await store.update_board(board, name=name)
    return board


async def delete_board(store: Store, ctx: RequestContext, board_id: int) -> None:
    board = await ensure_board_access(store, ctx, board_id)
    if board.owner_id != ctx.user_id:
        raise ForbiddenError("Only the board owner can delete it")
    async with store.transaction():
        await store.delete_board(board)
    logger.info("Board deleted", extra={"board_id": board_id, "user_id": ctx.user_id})


async def get_board_detail(store: Store, ctx: RequestContext, board_id: int) -> BoardView:
    board = await ensure_board_access(store, ctx, board_id)
    view = BoardView(board=board)
    for column in await store.list_columns(board.id):
        view.columns.append(ColumnView(column=column, tasks=await store.list_tasks(column.id)))
    return view


async def create_column(store: Store, ctx: RequestContext, board_id: int, title: str) -> BoardColumn:
    title = _clean_name(title, "Column title")
    board = await ensure_board_access(store, ctx, board_id)
    columns = await store.list_columns(board.id)
    async with store.transaction():
        column = await store.create_column(
            board_id=board.id,
            title=title,
            order=next_order(col.order for col in columns),
        )
    return column


async def rename_column(store: Store, ctx: RequestContext, column_id: int, title: str) -> BoardColumn:
    title = _clean_name(title, "Column title")
    column = await ensure_column_access(store, ctx, column_id)
    async with store.transaction():
        await store.update_column(column, title=title)
    return column


async def move_column(store: Store, ctx: RequestContext, column_id: int, to_index: int) -> list[BoardColumn]:
    column = await ensure_column_access(store, ctx, column_id)
    columns = await store.list_columns(column.board_id)
    if not is_contiguous(col.order for col in columns):
        logger.debug("Closing gaps in column order", extra={"board_id": column.board_id})

    by_id = {col.id: col for col in columns}
    plan = plan_reorder([col.id for col in columns], column.id, to_index)
    async with store.transaction():
        for position, planned_id in enumerate(plan):
            await store.update_column(by_id[planned_id], order=position)
    return [by_id[planned_id] for planned_id in plan]


async def delete_column(store: Store, ctx: RequestContext, column_id: int) -> None:
    # Siblings keep their order values; the next append or move recomputes bounds.
    column = await ensure_column_access(store, ctx, column_id)
    board_id = column.board_id
    async with store.transaction():
        await store.delete_column(column)
    logger.info("Column deleted", extra={"column_id": column_id, "board_id": board_id})
