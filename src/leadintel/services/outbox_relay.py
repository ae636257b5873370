import logging
from typing import Any, Awaitable, Callable

from src.leadintel.domain.contracts.uow import UoW

logger = logging.getLogger(__name__)

Publish = Callable[[str, dict[str, Any]], Awaitable[None]]


async def relay_pending(uow: UoW, publish: Publish, limit: int = 100) -> int:
    """
    Публикует неотправленные события outbox в порядке создания.
    Каждое событие помечается отдельным коммитом; при ошибке публикации
    пачка прерывается, событие остаётся pending (at-least-once).
    Возвращает число опубликованных событий.
    """
    published = 0
    for event in uow.outbox.list_pending(limit=limit):
        try:
            await publish(event.topic, {"event_id": event.id, **event.payload})
        except Exception:
            logger.exception("outbox event %s (%s) publish failed", event.id, event.topic)
            uow.rollback()
            break

        try:
            uow.outbox.mark_published(event.id)
            uow.commit()
        except Exception:
            uow.rollback()
            raise
        published += 1

    if published:
        logger.info("outbox relay published %d event(s)", published)
    return published
