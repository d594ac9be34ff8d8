from __future__ import annotations

import pytest

from kanban.db.models import NotificationType
from kanban.errors import NotFoundError
from kanban.services.access_service import RequestContext
from kanban.services.notification_service import list_notifications, mark_all_read, mark_read
from kanban.store import SqlAlchemyStore


async def _notify(session_factory, user_id: int, message: str, board_id: int | None = None) -> int:
    async with session_factory() as session:
        store = SqlAlchemyStore(session)
        async with store.transaction():
            notification = await store.create_notification(
                user_id=user_id, type=NotificationType.INVITE, message=message, board_id=board_id
            )
        return notification.id


@pytest.mark.asyncio
async def test_list_is_newest_first_and_scoped_to_user(session_factory, seeded) -> None:
    await _notify(session_factory, seeded.member_id, "first", seeded.board_id)
    await _notify(session_factory, seeded.member_id, "second")
    await _notify(session_factory, seeded.owner_id, "not yours")

    async with session_factory() as session:
        items = await list_notifications(SqlAlchemyStore(session), RequestContext(user_id=seeded.member_id))

    assert [item.message for item in items] == ["second", "first"]


@pytest.mark.asyncio
async def test_mark_read_requires_ownership(session_factory, seeded) -> None:
    notification_id = await _notify(session_factory, seeded.member_id, "hello")

    async with session_factory() as session:
        store = SqlAlchemyStore(session)
        with pytest.raises(NotFoundError):
            await mark_read(store, RequestContext(user_id=seeded.owner_id), notification_id)
        with pytest.raises(NotFoundError):
            await mark_read(store, RequestContext(user_id=seeded.member_id), 9999)

    async with session_factory() as session:
        store = SqlAlchemyStore(session)
        await mark_read(store, RequestContext(user_id=seeded.member_id), notification_id)

    async with session_factory() as session:
        items = await list_notifications(SqlAlchemyStore(session), RequestContext(user_id=seeded.member_id))
    assert [item.read for item in items] == [True]


@pytest.mark.asyncio
async def test_mark_all_read_touches_only_own_unread(session_factory, seeded) -> None:
    for message in ("a", "b", "c"):
        await _notify(session_factory, seeded.member_id, message)
    await _notify(session_factory, seeded.owner_id, "owner's")

    async with session_factory() as session:
        updated = await mark_all_read(SqlAlchemyStore(session), RequestContext(user_id=seeded.member_id))
    assert updated == 3

    async with session_factory() as session:
        store = SqlAlchemyStore(session)
        member_items = await list_notifications(store, RequestContext(user_id=seeded.member_id))
        owner_items = await list_notifications(store, RequestContext(user_id=seeded.owner_id))
    assert all(item.read for item in member_items)
    assert [item.read for item in owner_items] == [False]

    async with session_factory() as session:
        assert await mark_all_read(SqlAlchemyStore(session), RequestContext(user_id=seeded.member_id)) == 0
