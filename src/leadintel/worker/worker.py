import logging
import asyncio
from typing import Optional

from sqlalchemy.orm import Session
from faststream import FastStream

from src.leadintel.core.settings import settings
from src.leadintel.infra.db import SessionLocal
from src.leadintel.infra.uow import SqlAlchemyUoW
from src.leadintel.infra.mq import broker, publish_event
from src.leadintel.services.outbox_relay import relay_pending

logging.basicConfig(level=logging.INFO)

app = FastStream(broker)

_relay_task: Optional[asyncio.Task] = None


async def relay_once() -> int:
    db: Session = SessionLocal()
    uow = SqlAlchemyUoW(db)
    try:
        return await relay_pending(uow, publish_event, limit=settings.OUTBOX_BATCH_SIZE)
    finally:
        db.close()


async def relay_forever() -> None:
    while True:
        try:
            sent = await relay_once()
        except Exception as exc:
            logging.exception("outbox relay iteration FAILED: %s", exc)
            sent = 0
        # полная пачка: скорее всего есть ещё, не ждём
        if sent < settings.OUTBOX_BATCH_SIZE:
            await asyncio.sleep(settings.OUTBOX_POLL_SECONDS)


@app.after_startup
async def start_relay() -> None:
    global _relay_task
    _relay_task = asyncio.create_task(relay_forever())
    logging.info("outbox relay started, poll every %ss", settings.OUTBOX_POLL_SECONDS)


@app.on_shutdown
async def stop_relay() -> None:
    if _relay_task is not None:
        _relay_task.cancel()


if __name__ == "__main__":
    asyncio.run(app.run())
