from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kanban.errors import (
    ForbiddenError,
    InternalError,
    InvalidStateError,
    KanbanError,
    NotFoundError,
    ValidationFailedError,
)
from kanban.schemas import (
    BoardDetail,
    BoardIn,
    BoardOut,
    ColumnIn,
    ColumnMove,
    ColumnOut,
    InviteIn,
    NotificationOut,
    Ok,
    ReorderIn,
    TaskIn,
    TaskOut,
    TaskUpdate,
    board_detail,
    board_out,
    column_out,
    notification_out,
    task_out,
)
from kanban.services import board_service, invite_service, notification_service, task_service
from kanban.services.access_service import RequestContext
from kanban.store import SqlAlchemyStore

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
_MAX_USER_ID = 2**63 - 1

_STATUS_BY_ERROR: dict[type[KanbanError], int] = {
    ValidationFailedError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
    InvalidStateError: 409,
    InternalError: 500,
}


async def get_store(request: Request) -> AsyncIterator[SqlAlchemyStore]:
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        yield SqlAlchemyStore(session)


def get_request_context(x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER)) -> RequestContext:
    raw = (x_user_id or "").strip()
    if not (raw.isascii() and raw.isdigit()):
        raise HTTPException(status_code=401, detail="Missing user context")
    user_id = int(raw)
    if user_id > _MAX_USER_ID:
        raise HTTPException(status_code=401, detail="Invalid user context")
    return RequestContext(user_id=user_id)


# === Boards ===

boards_router = APIRouter(prefix="/api/boards", tags=["boards"])


@boards_router.get("", response_model=list[BoardOut])
async def list_boards(
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> list[BoardOut]:
    return [board_out(board) for board in await board_service.list_my_boards(store, ctx)]


@boards_router.post("", response_model=BoardOut)
async def create_board(
    payload: BoardIn,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> BoardOut:
    return board_out(await board_service.create_board(store, ctx, payload.name))


@boards_router.get("/{board_id}", response_model=BoardDetail)
async def get_board(
    board_id: int,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> BoardDetail:
    return board_detail(await board_service.get_board_detail(store, ctx, board_id))


@boards_router.put("/{board_id}", response_model=BoardOut)
async def rename_board(
    board_id: int,
    payload: BoardIn,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> BoardOut:
    return board_out(await board_service.rename_board(store, ctx, board_id, payload.name))


@boards_router.delete("/{board_id}", response_model=Ok)
async def delete_board(
    board_id: int,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> Ok:
    await board_service.delete_board(store, ctx, board_id)
    return Ok()


@boards_router.post("/{board_id}/columns", response_model=ColumnOut)
async def create_column(
    board_id: int,
    payload: ColumnIn,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> ColumnOut:
    return column_out(await board_service.create_column(store, ctx, board_id, payload.title))


@boards_router.post("/{board_id}/invite", response_model=Ok)
async def invite_member(
    board_id: int,
    payload: InviteIn,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> Ok:
    await invite_service.invite(store, ctx, board_id, payload.to_selector())
    return Ok()


# === Columns ===

columns_router = APIRouter(prefix="/api/columns", tags=["columns"])


@columns_router.put("/{column_id}", response_model=ColumnOut)
async def rename_column(
    column_id: int,
    payload: ColumnIn,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> ColumnOut:
    return column_out(await board_service.rename_column(store, ctx, column_id, payload.title))


@columns_router.post("/{column_id}/move", response_model=list[ColumnOut])
async def move_column(
    column_id: int,
    payload: ColumnMove,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> list[ColumnOut]:
    columns = await board_service.move_column(store, ctx, column_id, payload.toIndex)
    return [column_out(column) for column in columns]


@columns_router.delete("/{column_id}", response_model=Ok)
async def delete_column(
    column_id: int,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> Ok:
    await board_service.delete_column(store, ctx, column_id)
    return Ok()


@columns_router.post("/{column_id}/tasks", response_model=TaskOut)
async def create_task(
    column_id: int,
    payload: TaskIn,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> TaskOut:
    task = await task_service.create_task(
        store,
        ctx,
        column_id=column_id,
        title=payload.title,
        description=payload.description,
        tags=payload.tags,
        assignee_ids=payload.assigneeIds,
    )
    return task_out(task)


# === Tasks ===

tasks_router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@tasks_router.post("/reorder", response_model=Ok)
async def reorder_task(
    payload: ReorderIn,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> Ok:
    await task_service.move_task(
        store,
        ctx,
        from_column_id=payload.fromColumnId,
        to_column_id=payload.toColumnId,
        task_id=payload.taskId,
        to_index=payload.toIndex,
    )
    return Ok()


@tasks_router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: int,
    payload: TaskUpdate,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> TaskOut:
    changes: dict[str, Any] = {
        "title": payload.title,
        "tags": payload.tags,
        "assignee_ids": payload.assigneeIds,
    }
    if "description" in payload.model_fields_set:
        changes["description"] = payload.description
    task = await task_service.update_task(store, ctx, task_id, **changes)
    return task_out(task)


@tasks_router.delete("/{task_id}", response_model=Ok)
async def delete_task(
    task_id: int,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> Ok:
    await task_service.delete_task(store, ctx, task_id)
    return Ok()


# === Notifications ===

notifications_router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@notifications_router.get("", response_model=list[NotificationOut])
async def list_notifications(
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> list[NotificationOut]:
    return [notification_out(item) for item in await notification_service.list_notifications(store, ctx)]


@notifications_router.post("/read-all", response_model=Ok)
async def mark_all_notifications_read(
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> Ok:
    await notification_service.mark_all_read(store, ctx)
    return Ok()


@notifications_router.post("/{notification_id}/read", response_model=Ok)
async def mark_notification_read(
    notification_id: int,
    store: SqlAlchemyStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> Ok:
    await notification_service.mark_read(store, ctx, notification_id)
    return Ok()


def create_api_app(
    session_factory: async_sessionmaker[AsyncSession],
    cors_origins: list[str] | None = None,
) -> FastAPI:
    app = FastAPI(title="Kanban API", version="1.0.0")
    app.state.session_factory = session_factory
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(KanbanError)
    async def handle_domain_error(request: Request, exc: KanbanError) -> JSONResponse:
        status_code = next(
            (code for error_type, code in _STATUS_BY_ERROR.items() if isinstance(exc, error_type)),
            500,
        )
        if status_code >= 500:
            logger.error("Request failed", extra={"path": request.url.path, "error": exc.message})
        return JSONResponse(content={"error": exc.message}, status_code=status_code)

    @app.get("/health")
    async def health() -> JSONResponse:
        payload: dict[str, Any] = {"status": "ok", "checks": {}}
        status_code = 200

        try:
            async with session_factory() as session:
                await session.execute(text("SELECT 1"))
            payload["checks"]["database"] = "ok"
        except Exception as exc:
            payload["checks"]["database"] = f"error: {exc.__class__.__name__}"
            status_code = 503

        if status_code != 200:
            payload["status"] = "degraded"

        return JSONResponse(content=payload, status_code=status_code)

    app.include_router(boards_router)
    app.include_router(columns_router)
    app.include_router(tasks_router)
    app.include_router(notifications_router)
    return app
