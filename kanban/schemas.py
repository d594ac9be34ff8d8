from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from kanban.db.models import Board, BoardColumn, Notification, Task, User
from kanban.services.board_service import BoardView
from kanban.services.invite_service import EmailSelector, Selector, UserIdSelector


class Ok(BaseModel):
    ok: bool = True


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    avatarUrl: Optional[str] = None


class BoardIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)


class BoardOut(BaseModel):
    id: int
    name: str
    ownerId: int
    members: list[UserSummary]


class ColumnIn(BaseModel):
    title: str = Field(min_length=1, max_length=120)


class ColumnMove(BaseModel):
    toIndex: int


class TaskIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    assigneeIds: list[int] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    tags: Optional[list[str]] = None
    assigneeIds: Optional[list[int]] = None


class TaskOut(BaseModel):
    id: int
    columnId: int
    title: str
    description: Optional[str]
    order: int
    tags: list[str]
    assignees: list[UserSummary]


class ColumnOut(BaseModel):
    id: int
    boardId: int
    title: str
    order: int


class ColumnDetail(ColumnOut):
    tasks: list[TaskOut]


class BoardDetail(BoardOut):
    columns: list[ColumnDetail]


class ReorderIn(BaseModel):
    fromColumnId: int
    toColumnId: int
    taskId: int
    toIndex: int


class InviteIn(BaseModel):
    email: Optional[EmailStr] = None
    userId: Optional[int] = None

    @model_validator(mode="after")
    def exactly_one_selector(self) -> InviteIn:
        if (self.email is None) == (self.userId is None):
            raise ValueError("Provide exactly one of email or userId")
        return self

    def to_selector(self) -> Selector:
        if self.email is not None:
            return EmailSelector(email=str(self.email))
        return UserIdSelector(user_id=self.userId)


class NotificationOut(BaseModel):
    id: int
    type: str
    message: str
    boardId: Optional[int]
    read: bool
    createdAt: datetime


def user_summary(user: User) -> UserSummary:
    return UserSummary(id=user.id, name=user.name, email=user.email, avatarUrl=user.avatar_url)


def board_out(board: Board) -> BoardOut:
    return BoardOut(
        id=board.id,
        name=board.name,
        ownerId=board.owner_id,
        members=[user_summary(member) for member in board.members],
    )


def column_out(column: BoardColumn) -> ColumnOut:
    return ColumnOut(id=column.id, boardId=column.board_id, title=column.title, order=column.order)


def task_out(task: Task) -> TaskOut:
    return TaskOut(
        id=task.id,
        columnId=task.column_id,
        title=task.title,
        description=task.description,
        order=task.order,
        tags=list(task.tags),
        assignees=[user_summary(user) for user in task.assignees],
    )


def board_detail(view: BoardView) -> BoardDetail:
    base = board_out(view.board)
    return BoardDetail(
        **base.model_dump(),
        columns=[
            ColumnDetail(**column_out(item.column).model_dump(), tasks=[task_out(task) for task in item.tasks])
            for item in view.columns
        ],
    )


def notification_out(notification: Notification) -> NotificationOut:
    return NotificationOut(
        id=notification.id,
        type=notification.type,
        message=notification.message,
        boardId=notification.board_id,
        read=notification.read,
        createdAt=notification.created_at,
    )
