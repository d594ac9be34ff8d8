from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from kanban.db.base import Base
from kanban.db.models import Board, BoardColumn, BoardMember, Notification, Task
from kanban.store import SqlAlchemyStore


@pytest.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    yield factory

    await engine.dispose()


@dataclass
class SeededBoard:
    owner_id: int
    member_id: int
    outsider_id: int
    board_id: int
    todo_id: int
    doing_id: int
    tasks: dict[str, int]


@pytest.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> SeededBoard:
    """Board owned by Alice with Bob as member: To Do = [t1, t2, t3], Doing = [t4, t5]."""
    async with session_factory() as session:
        store = SqlAlchemyStore(session)
        async with store.transaction():
            owner = await store.create_user(name="Alice", email="alice@example.com")
            member = await store.create_user(name="Bob", email="bob@example.com")
            outsider = await store.create_user(name="Mallory", email="mallory@example.com")
            board = await store.create_board(name="Roadmap", owner_id=owner.id)
            await store.add_board_member(board, member)
            todo = await store.create_column(board_id=board.id, title="To Do", order=0)
            doing = await store.create_column(board_id=board.id, title="Doing", order=1)
            await session.flush()

            created: list[Task] = []
            for column, titles in ((todo, ["t1", "t2", "t3"]), (doing, ["t4", "t5"])):
                for order, title in enumerate(titles):
                    created.append(
                        await store.create_task(
                            column_id=column.id,
                            title=title,
                            description=None,
                            order=order,
                            tags=[],
                            assignees=[],
                        )
                    )

        return SeededBoard(
            owner_id=owner.id,
            member_id=member.id,
            outsider_id=outsider.id,
            board_id=board.id,
            todo_id=todo.id,
            doing_id=doing.id,
            tasks={task.title: task.id for task in created},
        )


@pytest.fixture
def layout(session_factory: async_sessionmaker[AsyncSession]):
    """Read ``(title, order)`` pairs of one column straight from the database."""

    async def _layout(column_id: int) -> list[tuple[str, int]]:
        async with session_factory() as session:
            result = await session.execute(
                select(Task.title, Task.order).where(Task.column_id == column_id).order_by(Task.order, Task.id)
            )
            return [(title, order) for title, order in result.all()]

    return _layout


@pytest.fixture
def snapshot(session_factory: async_sessionmaker[AsyncSession]):
    """Capture every persisted row that a board mutation could touch."""

    async def _snapshot() -> dict[str, list[tuple]]:
        async with session_factory() as session:
            boards = await session.execute(select(Board.id, Board.name, Board.owner_id).order_by(Board.id))
            columns = await session.execute(
                select(BoardColumn.id, BoardColumn.title, BoardColumn.order).order_by(BoardColumn.id)
            )
            tasks = await session.execute(
                select(Task.id, Task.column_id, Task.order, Task.title, Task.description).order_by(Task.id)
            )
            members = await session.execute(
                select(BoardMember.board_id, BoardMember.user_id).order_by(BoardMember.board_id, BoardMember.user_id)
            )
            notifications = await session.execute(
                select(Notification.id, Notification.read).order_by(Notification.id)
            )
            return {
                "boards": [tuple(row) for row in boards.all()],
                "columns": [tuple(row) for row in columns.all()],
                "tasks": [tuple(row) for row in tasks.all()],
                "members": [tuple(row) for row in members.all()],
                "notifications": [tuple(row) for row in notifications.all()],
            }

    return _snapshot
