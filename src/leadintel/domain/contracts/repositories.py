from typing import Any, Optional, Protocol, Sequence

from src.leadintel.domain.entities.enrichment_job import EnrichmentJob
from src.leadintel.domain.entities.outbox_event import OutboxEvent
from src.leadintel.domain.entities.prospect import Prospect
from src.leadintel.domain.enums import EnrichmentKind
from src.leadintel.domain.value_objects import ProspectPatch


class EnrichmentJobRepo(Protocol):
    def create(self, kind: EnrichmentKind, payload: dict[str, Any]) -> EnrichmentJob: ...
    def get_by_id(self, job_id: str) -> Optional[EnrichmentJob]: ...
    def complete(self, job_id: str, result: dict[str, Any]) -> bool: ...
    def fail(self, job_id: str, error: str) -> bool: ...
    def list_recent(self, kind: Optional[EnrichmentKind] = None, limit: int = 20) -> list[EnrichmentJob]: ...


class ProspectRepo(Protocol):
    def get_by_id(self, prospect_id: str) -> Optional[Prospect]: ...
    def get_many(self, prospect_ids: Sequence[str]) -> list[Prospect]: ...
    def get_for_update(self, prospect_id: str) -> Optional[Prospect]: ...
    def find_by_native_id(self, native_id: str) -> Optional[Prospect]: ...
    def find_by_hostname(self, hostname: str) -> list[Prospect]: ...
    def find_by_name(self, name: str) -> list[Prospect]: ...
    def list_missing(self, slots: Sequence[str], needs_website: bool, limit: int) -> list[Prospect]: ...
    def apply_patch(self, prospect_id: str, patch: ProspectPatch) -> None: ...


class OutboxRepo(Protocol):
    def add(self, topic: str, payload: dict[str, Any]) -> OutboxEvent: ...
    def list_pending(self, limit: int = 100) -> list[OutboxEvent]: ...
    def mark_published(self, event_id: str) -> None: ...
