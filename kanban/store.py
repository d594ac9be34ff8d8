from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any, Protocol

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from kanban.db.models import (
    Board,
    BoardColumn,
    BoardMember,
    Notification,
    NotificationType,
    Task,
    TaskAssignee,
    User,
)
from kanban.errors import InternalError

logger = logging.getLogger(__name__)


class Store(Protocol):
    """Persistence operations the board services depend on."""

    def transaction(self) -> Any: ...

    async def find_user(self, user_id: int) -> User | None: ...

    async def find_user_by_email(self, email: str) -> User | None: ...

    async def find_users(self, user_ids: Sequence[int]) -> list[User]: ...

    async def create_user(self, *, name: str, email: str, password_hash: str | None = None,
                          provider: str = "local", external_id: str | None = None,
                          avatar_url: str | None = None) -> User: ...

    async def find_board(self, board_id: int) -> Board | None: ...

    async def list_boards_for_user(self, user_id: int) -> list[Board]: ...

    async def create_board(self, *, name: str, owner_id: int) -> Board: ...

    async def update_board(self, board: Board, **fields: Any) -> Board: ...

    async def delete_board(self, board: Board) -> None: ...

    async def find_column(self, column_id: int) -> BoardColumn | None: ...

    async def list_columns(self, board_id: int) -> list[BoardColumn]: ...

    async def create_column(self, *, board_id: int, title: str, order: int) -> BoardColumn: ...

    async def update_column(self, column: BoardColumn, **fields: Any) -> BoardColumn: ...

    async def delete_column(self, column: BoardColumn) -> None: ...

    async def find_task(self, task_id: int) -> Task | None: ...

    async def list_tasks(self, column_id: int) -> list[Task]: ...

    async def create_task(self, *, column_id: int, title: str, description: str | None, order: int,
                          tags: list[str], assignees: list[User]) -> Task: ...

    async def update_task(self, task: Task, **fields: Any) -> Task: ...

    async def delete_task(self, task: Task) -> None: ...

    async def add_board_member(self, board: Board, user: User) -> None: ...

    async def is_board_member(self, board_id: int, user_id: int) -> bool: ...

    async def create_notification(self, *, user_id: int, type: NotificationType, message: str,
                                  board_id: int | None = None) -> Notification: ...

    async def find_notification(self, notification_id: int) -> Notification | None: ...

    async def list_notifications(self, user_id: int) -> list[Notification]: ...

    async def mark_read(self, notification: Notification) -> None: ...

    async def mark_all_read(self, user_id: int) -> int: ...


class SqlAlchemyStore:
    """``Store`` over a single ``AsyncSession``.

    Reads may happen at any time; writes are staged on the session and become
    durable only when the enclosing ``transaction()`` block exits cleanly.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlAlchemyStore]:
        try:
            yield self
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Transaction failed")
            raise InternalError("Storage transaction failed") from exc
        except Exception:
            await self.session.rollback()
            raise

    # === Users ===
    async def find_user(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def find_user_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
        return result.scalar_one_or_none()

    async def find_users(self, user_ids: Sequence[int]) -> list[User]:
        if not user_ids:
            return []
        result = await self.session.execute(select(User).where(User.id.in_(list(user_ids))))
        by_id = {user.id: user for user in result.scalars().all()}
        return [by_id[user_id] for user_id in dict.fromkeys(user_ids) if user_id in by_id]

    async def create_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str | None = None,
        provider: str = "local",
        external_id: str | None = None,
        avatar_url: str | None = None,
    ) -> User:
        user = User(
            name=name.strip(),
            email=email.strip().lower(),
            password_hash=password_hash,
            provider=provider,
            external_id=external_id,
            avatar_url=avatar_url,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    # === Boards ===
    async def find_board(self, board_id: int) -> Board | None:
        result = await self.session.execute(
            select(Board).options(selectinload(Board.members)).where(Board.id == board_id)
        )
        return result.scalar_one_or_none()

    async def list_boards_for_user(self, user_id: int) -> list[Board]:
        result = await self.session.execute(
            select(Board)
            .options(selectinload(Board.members))
            .where(or_(Board.owner_id == user_id, Board.members.any(User.id == user_id)))
            .order_by(Board.id.asc())
        )
        return list(result.scalars().all())

    async def create_board(self, *, name: str, owner_id: int) -> Board:
        board = Board(name=name.strip(), owner_id=owner_id, members=[])
        self.session.add(board)
        await self.session.flush()
        return board

    async def update_board(self, board: Board, **fields: Any) -> Board:
        for key, value in fields.items():
            setattr(board, key, value)
        return board

    async def delete_board(self, board: Board) -> None:
        # Tasks go before their columns; notifications outlive the board.
        column_ids = select(BoardColumn.id).where(BoardColumn.board_id == board.id)
        task_ids = select(Task.id).where(Task.column_id.in_(column_ids))
        await self.session.execute(delete(TaskAssignee).where(TaskAssignee.task_id.in_(task_ids)))
        await self.session.execute(delete(Task).where(Task.column_id.in_(column_ids)))
        await self.session.execute(delete(BoardColumn).where(BoardColumn.board_id == board.id))
        await self.session.execute(delete(BoardMember).where(BoardMember.board_id == board.id))
        await self.session.execute(
            update(Notification).where(Notification.board_id == board.id).values(board_id=None)
        )
        await self.session.execute(delete(Board).where(Board.id == board.id))

    # === Columns ===
    async def find_column(self, column_id: int) -> BoardColumn | None:
        result = await self.session.execute(
            select(BoardColumn)
            .options(selectinload(BoardColumn.board).selectinload(Board.members))
            .where(BoardColumn.id == column_id)
        )
        return result.scalar_one_or_none()

    async def list_columns(self, board_id: int) -> list[BoardColumn]:
        result = await self.session.execute(
            select(BoardColumn)
            .where(BoardColumn.board_id == board_id)
            .order_by(BoardColumn.order.asc(), BoardColumn.id.asc())
        )
        return list(result.scalars().all())

    async def create_column(self, *, board_id: int, title: str, order: int) -> BoardColumn:
        column = BoardColumn(board_id=board_id, title=title.strip(), order=order)
        self.session.add(column)
        return column

    async def update_column(self, column: BoardColumn, **fields: Any) -> BoardColumn:
        for key, value in fields.items():
            setattr(column, key, value)
        return column

    async def delete_column(self, column: BoardColumn) -> None:
        task_ids = select(Task.id).where(Task.column_id == column.id)
        await self.session.execute(delete(TaskAssignee).where(TaskAssignee.task_id.in_(task_ids)))
        await self.session.execute(delete(Task).where(Task.column_id == column.id))
        await self.session.execute(delete(BoardColumn).where(BoardColumn.id == column.id))

    # === Tasks ===
    async def find_task(self, task_id: int) -> Task | None:
        result = await self.session.execute(
            select(Task)
            .options(
                selectinload(Task.assignees),
                selectinload(Task.column).selectinload(BoardColumn.board).selectinload(Board.members),
            )
            .where(Task.id == task_id)
        )
        return result.scalar_one_or_none()

    async def list_tasks(self, column_id: int) -> list[Task]:
        result = await self.session.execute(
            select(Task)
            .options(selectinload(Task.assignees))
            .where(Task.column_id == column_id)
            .order_by(Task.order.asc(), Task.id.asc())
        )
        return list(result.scalars().all())

    async def create_task(
        self,
        *,
        column_id: int,
        title: str,
        description: str | None,
        order: int,
        tags: list[str],
        assignees: list[User],
    ) -> Task:
        task = Task(
            column_id=column_id,
            title=title.strip(),
            description=description,
            order=order,
            tags=list(tags),
            assignees=list(assignees),
        )
        self.session.add(task)
        return task

    async def update_task(self, task: Task, **fields: Any) -> Task:
        for key, value in fields.items():
            setattr(task, key, value)
        return task

    async def delete_task(self, task: Task) -> None:
        await self.session.execute(delete(TaskAssignee).where(TaskAssignee.task_id == task.id))
        await self.session.execute(delete(Task).where(Task.id == task.id))

    # === Membership ===
    async def add_board_member(self, board: Board, user: User) -> None:
        board.members.append(user)

    async def is_board_member(self, board_id: int, user_id: int) -> bool:
        result = await self.session.execute(
            select(BoardMember.user_id).where(BoardMember.board_id == board_id, BoardMember.user_id == user_id)
        )
        return result.scalar_one_or_none() is not None

    # === Notifications ===
    async def create_notification(
        self,
        *,
        user_id: int,
        type: NotificationType,
        message: str,
        board_id: int | None = None,
    ) -> Notification:
        notification = Notification(user_id=user_id, type=type.value, message=message, board_id=board_id, read=False)
        self.session.add(notification)
        return notification

    async def find_notification(self, notification_id: int) -> Notification | None:
        return await self.session.get(Notification, notification_id)

    async def list_notifications(self, user_id: int) -> list[Notification]:
        result = await self.session.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return list(result.scalars().all())

    async def mark_read(self, notification: Notification) -> None:
        notification.read = True

    async def mark_all_read(self, user_id: int) -> int:
        result = await self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
