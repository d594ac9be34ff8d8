from __future__ import annotations

import logging
from collections.abc import Sequence

from kanban.db.models import Board, Task, User
from kanban.errors import InvalidStateError, NotFoundError, ValidationFailedError
from kanban.services.access_service import (
    RequestContext,
    can_access_board,
    ensure_column_access,
    ensure_task_access,
)
from kanban.services.ordering import next_order, plan_reorder, plan_transfer
from kanban.store import Store

logger = logging.getLogger(__name__)

_UNSET = object()


async def _resolve_assignees(store: Store, board: Board, user_ids: Sequence[int]) -> list[User]:
    users = await store.find_users(user_ids)
    found = {user.id for user in users}
    missing = [user_id for user_id in user_ids if user_id not in found]
    if missing:
        raise ValidationFailedError(f"Unknown assignees: {', '.join(str(user_id) for user_id in missing)}")
    outsiders = [user.id for user in users if not can_access_board(board, user.id)]
    if outsiders:
        raise ValidationFailedError("Assignees must be members of the board")
    return users


async def create_task(
    store: Store,
    ctx: RequestContext,
    *,
    column_id: int,
    title: str,
    description: str | None = None,
    tags: Sequence[str] = (),
    assignee_ids: Sequence[int] = (),
) -> Task:
    title = title.strip()
    if not title:
        raise ValidationFailedError("Task title must not be empty")
    column = await ensure_column_access(store, ctx, column_id)
    assignees = await _resolve_assignees(store, column.board, assignee_ids)
    siblings = await store.list_tasks(column.id)
    async with store.transaction():
        task = await store.create_task(
            column_id=column.id,
            title=title,
            description=description,
            order=next_order(sibling.order for sibling in siblings),
            tags=list(tags),
            assignees=assignees,
        )
    return task


async def update_task(
    store: Store,
    ctx: RequestContext,
    task_id: int,
    *,
    title: str | None = None,
    description: str | None | object = _UNSET,
    tags: Sequence[str] | None = None,
    assignee_ids: Sequence[int] | None = None,
) -> Task:
    task = await ensure_task_access(store, ctx, task_id)
    fields: dict[str, object] = {}
    if title is not None:
        if not title.strip():
            raise ValidationFailedError("Task title must not be empty")
        fields["title"] = title.strip()
    if description is not _UNSET:
        fields["description"] = description
    if tags is not None:
        fields["tags"] = list(tags)
    if assignee_ids is not None:
        fields["assignees"] = await _resolve_assignees(store, task.column.board, assignee_ids)
    async with store.transaction():
        await store.update_task(task, **fields)
    return task


async def delete_task(store: Store, ctx: RequestContext, task_id: int) -> None:
    # Remaining tasks keep their order values until the next append or move.
    task = await ensure_task_access(store, ctx, task_id)
    column_id = task.column_id
    async with store.transaction():
        await store.delete_task(task)
    logger.info("Task deleted", extra={"task_id": task_id, "column_id": column_id})


async def move_within_column(
    store: Store,
    ctx: RequestContext,
    *,
    column_id: int,
    task_id: int,
    to_index: int,
) -> list[Task]:
    column = await ensure_column_access(store, ctx, column_id)
    task = await store.find_task(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    if task.column_id != column.id:
        raise InvalidStateError("Task does not belong to the source column")

    tasks = await store.list_tasks(column.id)
    by_id = {item.id: item for item in tasks}
    plan = plan_reorder([item.id for item in tasks], task.id, to_index)
    async with store.transaction():
        for position, planned_id in enumerate(plan):
            await store.update_task(by_id[planned_id], order=position)
    return [by_id[planned_id] for planned_id in plan]


async def move_across_columns(
    store: Store,
    ctx: RequestContext,
    *,
    from_column_id: int,
    to_column_id: int,
    task_id: int,
    to_index: int,
) -> tuple[list[Task], list[Task]]:
    source_column = await ensure_column_access(store, ctx, from_column_id)
    target_column = await store.find_column(to_column_id)
    if target_column is None:
        raise NotFoundError("Column not found")
    if target_column.board_id != source_column.board_id:
        raise InvalidStateError("Columns belong to different boards")
    task = await store.find_task(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    if task.column_id != source_column.id:
        raise InvalidStateError("Task does not belong to the source column")

    source_tasks = await store.list_tasks(source_column.id)
    target_tasks = await store.list_tasks(target_column.id)
    by_id = {item.id: item for item in [*source_tasks, *target_tasks]}
    source_plan, target_plan = plan_transfer(
        [item.id for item in source_tasks],
        [item.id for item in target_tasks],
        task.id,
        to_index,
    )

    async with store.transaction():
        for position, planned_id in enumerate(source_plan):
            await store.update_task(by_id[planned_id], order=position)
        for position, planned_id in enumerate(target_plan):
            if planned_id == task.id:
                await store.update_task(task, column=target_column, order=position)
            else:
                await store.update_task(by_id[planned_id], order=position)

    logger.info(
        "Task moved across columns",
        extra={"task_id": task.id, "from_column_id": source_column.id, "to_column_id": target_column.id},
    )
    return [by_id[i] for i in source_plan], [by_id[i] for i in target_plan]


async def move_task(
    store: Store,
    ctx: RequestContext,
    *,
    from_column_id: int,
    to_column_id: int,
    task_id: int,
    to_index: int,
) -> None:
    if from_column_id == to_column_id:
        await move_within_column(store, ctx, column_id=from_column_id, task_id=task_id, to_index=to_index)
        return
    await move_across_columns(
        store,
        ctx,
        from_column_id=from_column_id,
        to_column_id=to_column_id,
        task_id=task_id,
        to_index=to_index,
    )
