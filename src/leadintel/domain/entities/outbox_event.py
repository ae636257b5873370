from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

@dataclass
class OutboxEvent:
    id: str
    topic: str
    payload: dict[str, Any]
    created_at: datetime
    published_at: Optional[datetime] = None
