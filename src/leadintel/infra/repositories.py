from __future__ import annotations

from typing import Optional, Sequence, Any
from datetime import datetime, timezone

from sqlalchemy.orm import Session
from sqlalchemy import func, or_, and_

from src.leadintel.infra.models import ProspectORM, EnrichmentJobORM, OutboxEventORM

from src.leadintel.domain.enums import EnrichmentKind, JobStatus
from src.leadintel.domain.value_objects import ProspectPatch
from src.leadintel.domain.entities.prospect import ENRICHABLE_FIELDS, Prospect
from src.leadintel.domain.entities.enrichment_job import EnrichmentJob
from src.leadintel.domain.entities.outbox_event import OutboxEvent


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite возвращает naive datetime даже для timezone=True
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


# mappers ORM -> Domain
def _prospect_dom(p: ProspectORM) -> Prospect:
    return Prospect(
        id=str(p.id),
        company_name=str(p.company_name),
        created_at=_aware(p.created_at),
        external_id=p.external_id,
        enrichment_sources=list(p.enrichment_sources or []),
        enriched_at=_aware(p.enriched_at),
        **{slot: getattr(p, slot) for slot in ENRICHABLE_FIELDS},
    )


def _job_dom(j: EnrichmentJobORM) -> EnrichmentJob:
    return EnrichmentJob(
        id=str(j.id),
        kind=EnrichmentKind(str(j.kind)),
        status=JobStatus(str(j.status)),
        payload=j.payload or {},
        scheduled_at=_aware(j.scheduled_at),
        started_at=_aware(j.started_at),
        result=j.result,
        error=j.error,
        completed_at=_aware(j.completed_at),
        created_at=_aware(j.created_at),
    )


def _event_dom(e: OutboxEventORM) -> OutboxEvent:
    return OutboxEvent(
        id=str(e.id),
        topic=str(e.topic),
        payload=e.payload or {},
        created_at=_aware(e.created_at),
        published_at=_aware(e.published_at),
    )


# repos
class SqlEnrichmentJobRepo:
    """
    Узкий журнал задач: создание и единственный переход running -> terminal.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, kind: EnrichmentKind, payload: dict[str, Any]) -> EnrichmentJob:
        now = _utcnow()
        j = EnrichmentJobORM(
            kind=str(kind),
            status=JobStatus.RUNNING.value,
            payload=payload or {},
            scheduled_at=now,
            started_at=now,
            created_at=now,
        )
        self.db.add(j)
        self.db.flush()
        return _job_dom(j)

    def get_by_id(self, job_id: str) -> Optional[EnrichmentJob]:
        j = (
            self.db.query(EnrichmentJobORM)
            .filter(EnrichmentJobORM.id == job_id)
            .populate_existing()
            .first()
        )
        return _job_dom(j) if j else None

    def _finish(self, job_id: str, values: dict[str, Any]) -> bool:
        """
        Compare-and-set: меняем только строку, которая ещё RUNNING.
        Повторное завершение ничего не трогает и возвращает False.
        """
        values[EnrichmentJobORM.completed_at] = _utcnow()
        n = (
            self.db.query(EnrichmentJobORM)
            .filter(
                EnrichmentJobORM.id == job_id,
                EnrichmentJobORM.status == JobStatus.RUNNING.value,
            )
            .update(values, synchronize_session="fetch")
        )
        self.db.flush()
        return n == 1

    def complete(self, job_id: str, result: dict[str, Any]) -> bool:
        return self._finish(
            job_id,
            {
                EnrichmentJobORM.status: JobStatus.COMPLETED.value,
                EnrichmentJobORM.result: result,
            },
        )

    def fail(self, job_id: str, error: str) -> bool:
        return self._finish(
            job_id,
            {
                EnrichmentJobORM.status: JobStatus.FAILED.value,
                EnrichmentJobORM.error: error,
            },
        )

    def list_recent(self, kind: Optional[EnrichmentKind] = None, limit: int = 20) -> list[EnrichmentJob]:
        q = self.db.query(EnrichmentJobORM)
        if kind is not None:
            q = q.filter(EnrichmentJobORM.kind == str(kind))
        rows = q.order_by(EnrichmentJobORM.created_at.desc()).limit(limit).all()
        return [_job_dom(j) for j in rows]


class SqlProspectRepo:
    def __init__(self, db: Session):
        self.db = db

    def _ordered(self, q):
        # детерминированный порядок кандидатов: сначала самые старые
        return q.order_by(ProspectORM.created_at.asc(), ProspectORM.id.asc())

    def get_by_id(self, prospect_id: str) -> Optional[Prospect]:
        p = self.db.query(ProspectORM).filter(ProspectORM.id == prospect_id).first()
        return _prospect_dom(p) if p else None

    def get_many(self, prospect_ids: Sequence[str]) -> list[Prospect]:
        ids = [str(x) for x in prospect_ids]
        if not ids:
            return []
        rows = self._ordered(self.db.query(ProspectORM).filter(ProspectORM.id.in_(ids))).all()
        return [_prospect_dom(p) for p in rows]

    def get_for_update(self, prospect_id: str) -> Optional[Prospect]:
        """
        Блокирует строку до конца транзакции (SELECT ... FOR UPDATE),
        чтобы проверка "поле пустое" и запись были атомарны.
        """
        p = (
            self.db.query(ProspectORM)
            .filter(ProspectORM.id == prospect_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        return _prospect_dom(p) if p else None

    def find_by_native_id(self, native_id: str) -> Optional[Prospect]:
        p = self.db.query(ProspectORM).filter(ProspectORM.external_id == native_id).first()
        return _prospect_dom(p) if p else None

    def find_by_hostname(self, hostname: str) -> list[Prospect]:
        rows = self._ordered(
            self.db.query(ProspectORM).filter(
                func.lower(ProspectORM.website).contains(hostname.lower(), autoescape=True)
            )
        ).all()
        return [_prospect_dom(p) for p in rows]

    def find_by_name(self, name: str) -> list[Prospect]:
        rows = self._ordered(
            self.db.query(ProspectORM).filter(
                func.lower(func.trim(ProspectORM.company_name)) == name.strip().lower()
            )
        ).all()
        return [_prospect_dom(p) for p in rows]

    def list_missing(self, slots: Sequence[str], needs_website: bool, limit: int) -> list[Prospect]:
        """
        Кандидаты на обогащение: хотя бы один слот пуст,
        и у prospect есть website, если провайдеру нужен url.
        """
        q = self.db.query(ProspectORM)
        if slots:
            q = q.filter(or_(*[getattr(ProspectORM, s).is_(None) for s in slots]))
        if needs_website:
            q = q.filter(and_(ProspectORM.website.is_not(None), ProspectORM.website != ""))
        rows = q.order_by(ProspectORM.created_at.desc(), ProspectORM.id.asc()).limit(limit).all()
        return [_prospect_dom(p) for p in rows]

    def apply_patch(self, prospect_id: str, patch: ProspectPatch) -> None:
        p = self.db.query(ProspectORM).filter(ProspectORM.id == prospect_id).first()
        if not p:
            raise ValueError("Prospect not found")

        for slot, value in patch.fields.items():
            if slot not in ENRICHABLE_FIELDS:
                raise ValueError(f"Unknown enrichable field: {slot}")
            setattr(p, slot, value)

        p.enrichment_sources = list(patch.enrichment_sources)
        p.enriched_at = patch.enriched_at
        p.updated_at = _utcnow()
        self.db.flush()


class SqlOutboxRepo:
    def __init__(self, db: Session):
        self.db = db

    def add(self, topic: str, payload: dict[str, Any]) -> OutboxEvent:
        e = OutboxEventORM(topic=topic, payload=payload, created_at=_utcnow())
        self.db.add(e)
        self.db.flush()
        return _event_dom(e)

    def list_pending(self, limit: int = 100) -> list[OutboxEvent]:
        rows = (
            self.db.query(OutboxEventORM)
            .filter(OutboxEventORM.published_at.is_(None))
            .order_by(OutboxEventORM.created_at.asc(), OutboxEventORM.id.asc())
            .limit(limit)
            .all()
        )
        return [_event_dom(e) for e in rows]

    def mark_published(self, event_id: str) -> None:
        e = self.db.query(OutboxEventORM).filter(OutboxEventORM.id == event_id).first()
        if not e:
            raise ValueError("Outbox event not found")
        e.published_at = _utcnow()
        self.db.flush()
