from __future__ import annotations

import logging
from dataclasses import dataclass

from kanban.db.models import Board, NotificationType, User
from kanban.errors import NotFoundError
from kanban.services.access_service import RequestContext, can_access_board, ensure_board_access
from kanban.store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailSelector:
    email: str


@dataclass(frozen=True)
class UserIdSelector:
    user_id: int


Selector = EmailSelector | UserIdSelector


async def resolve_invitee(store: Store, selector: Selector) -> User:
    if isinstance(selector, EmailSelector):
        user = await store.find_user_by_email(selector.email)
    else:
        user = await store.find_user(selector.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def invite_message(inviter: User, board: Board) -> str:
    return f'{inviter.name} invited you to the board "{board.name}"'


async def invite(store: Store, ctx: RequestContext, board_id: int, selector: Selector) -> None:
    """Grant board membership and notify the invitee.

    Membership is written at most once per user; the INVITE notification is
    created on every call, including re-invites of existing members.
    """
    board = await ensure_board_access(store, ctx, board_id)
    invitee = await resolve_invitee(store, selector)
    inviter = await store.find_user(ctx.user_id)
    if inviter is None:
        raise NotFoundError("User not found")

    already_member = can_access_board(board, invitee.id) or await store.is_board_member(board.id, invitee.id)
    async with store.transaction():
        if not already_member:
            await store.add_board_member(board, invitee)
        await store.create_notification(
            user_id=invitee.id,
            type=NotificationType.INVITE,
            message=invite_message(inviter, board),
            board_id=board.id,
        )

    logger.info(
        "Board invite sent",
        extra={
            "board_id": board.id,
            "inviter_id": inviter.id,
            "invitee_id": invitee.id,
            "new_member": not already_member,
        },
    )
