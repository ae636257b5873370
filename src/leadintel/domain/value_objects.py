from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from src.leadintel.domain.enums import RunState


@dataclass(frozen=True)
class OwnerScope:
    """
    Непрозрачный тег владельца (user / organization).
    Движок только переносит его в payload задачи и не интерпретирует.
    """
    user_id: Optional[str] = None
    organization_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"user_id": self.user_id, "organization_id": self.organization_id}


@dataclass(frozen=True)
class TargetRef:
    internal_id: Optional[str] = None
    url: Optional[str] = None
    name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"internal_id": self.internal_id, "url": self.url, "name": self.name}

    @classmethod
    def from_dict(cls, d: dict) -> "TargetRef":
        return cls(internal_id=d.get("internal_id"), url=d.get("url"), name=d.get("name"))


@dataclass(frozen=True)
class RunHandle:
    run_id: str
    dataset_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"run_id": self.run_id, "dataset_id": self.dataset_id}

    @classmethod
    def from_dict(cls, d: dict) -> "RunHandle":
        if not d or not d.get("run_id"):
            raise ValueError("Run handle is missing run_id")
        return cls(run_id=str(d["run_id"]), dataset_id=d.get("dataset_id"))


@dataclass(frozen=True)
class RunStatus:
    state: RunState
    dataset_id: Optional[str] = None
    raw_status: Optional[str] = None


@dataclass(frozen=True)
class ResultRow:
    """Строка результата провайдера после нормализации."""
    native_id: Optional[str] = None
    url: Optional[str] = None
    name: Optional[str] = None
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProspectPatch:
    fields: dict[str, Any]
    enrichment_sources: list[str]
    enriched_at: datetime

    @property
    def changed_fields(self) -> list[str]:
        return sorted(self.fields)


@dataclass
class ReconcileSummary:
    processed: int = 0
    updated: int = 0
    not_found: int = 0
    errors: int = 0
    prospect_ids: list[str] = field(default_factory=list)

    def merge(self, other: "ReconcileSummary") -> "ReconcileSummary":
        return ReconcileSummary(
            processed=self.processed + other.processed,
            updated=self.updated + other.updated,
            not_found=self.not_found + other.not_found,
            errors=self.errors + other.errors,
            prospect_ids=self.prospect_ids + other.prospect_ids,
        )

    def to_result(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "updated": self.updated,
            "not_found": self.not_found,
            "errors": self.errors,
        }
