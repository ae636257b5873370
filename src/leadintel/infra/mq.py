import json
from typing import Any
from faststream.rabbit import RabbitBroker

from src.leadintel.core.settings import settings

broker = RabbitBroker(settings.RABBIT_URL)


async def publish_event(topic: str, payload: dict[str, Any]) -> None:
    # имя очереди совпадает с топиком события
    await broker.publish(json.dumps(payload), queue=topic)
