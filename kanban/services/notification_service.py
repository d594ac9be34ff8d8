from __future__ import annotations

from kanban.db.models import Notification
from kanban.errors import NotFoundError
from kanban.services.access_service import RequestContext
from kanban.store import Store


async def list_notifications(store: Store, ctx: RequestContext) -> list[Notification]:
    return await store.list_notifications(ctx.user_id)


async def mark_read(store: Store, ctx: RequestContext, notification_id: int) -> None:
    notification = await store.find_notification(notification_id)
    # Someone else's notification is reported exactly like a missing one.
    if notification is None or notification.user_id != ctx.user_id:
        raise NotFoundError("Notification not found")
    async with store.transaction():
        await store.mark_read(notification)


async def mark_all_read(store: Store, ctx: RequestContext) -> int:
    async with store.transaction():
        return await store.mark_all_read(ctx.user_id)
