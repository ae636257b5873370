from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Any
from src.leadintel.domain.enums import EnrichmentKind, JobStatus
from src.leadintel.domain.value_objects import RunHandle, TargetRef

@dataclass
class EnrichmentJob:
    id: str
    kind: EnrichmentKind
    status: JobStatus
    payload: dict[str, Any]
    scheduled_at: datetime
    started_at: datetime
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def run_handle(self) -> RunHandle:
        return RunHandle.from_dict(self.payload.get("run_handle") or {})

    @property
    def targets(self) -> list[TargetRef]:
        return [TargetRef.from_dict(t) for t in self.payload.get("targets", [])]
