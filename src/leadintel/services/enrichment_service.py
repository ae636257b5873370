import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import reduce
from typing import Any, Callable, Optional, Sequence

from src.leadintel.domain.contracts.provider import ProviderGateway, ProviderRegistry
from src.leadintel.domain.contracts.uow import UoW
from src.leadintel.domain.entities.enrichment_job import EnrichmentJob
from src.leadintel.domain.entities.prospect import Prospect
from src.leadintel.domain.enums import EnrichmentKind, OutboxTopic, RunState
from src.leadintel.domain.errors import JobNotFoundError, NoTargetsError
from src.leadintel.domain.services.entity_matcher import EntityMatcher
from src.leadintel.domain.services.merge_policy import compute_patch
from src.leadintel.domain.value_objects import OwnerScope, ReconcileSummary, TargetRef

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PollResult:
    job: EnrichmentJob
    provider_status: Optional[str] = None


class EnrichmentService:
    """
    Оркестратор обогащения: submit -> (poll)* -> reconcile -> completed | failed.

    Между запросами сервис ничего не хранит: всё, что нужно для продолжения,
    лежит в payload задачи (run handle, цели, scope).
    """

    def __init__(
        self,
        uow: UoW,
        providers: ProviderRegistry,
        uow_factory: Optional[Callable[[], UoW]] = None,
        max_run_age: Optional[timedelta] = None,
        workers: int = 1,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.uow = uow
        self.providers = providers
        self.uow_factory = uow_factory
        self.max_run_age = max_run_age
        self.workers = max(1, int(workers))
        self.clock = clock

    # submit
    def submit(
        self,
        kind: EnrichmentKind,
        targets: Sequence[TargetRef],
        scope: OwnerScope,
        options: Optional[dict[str, Any]] = None,
        bulk: bool = False,
        limit: int = 20,
    ) -> EnrichmentJob:
        gateway = self.providers.get(kind)

        resolved = self._resolve_targets(gateway, targets, bulk=bulk, limit=limit)
        if not resolved:
            raise NoTargetsError("Нет целей для обогащения: укажите url или название компании.")

        # ProviderUnavailableError пробрасывается: задача не создаётся
        handle = gateway.start_run(resolved, options)

        payload = {
            "run_handle": handle.to_dict(),
            "targets": [t.to_dict() for t in resolved],
            "scope": scope.to_dict(),
            "options": dict(options or {}),
        }
        try:
            job = self.uow.jobs.create(kind, payload)
            self.uow.commit()
        except Exception:
            self.uow.rollback()
            raise

        logger.info("enrichment job %s (%s) submitted: run=%s targets=%d", job.id, kind, handle.run_id, len(resolved))
        return job

    def _resolve_targets(
        self,
        gateway: ProviderGateway,
        targets: Sequence[TargetRef],
        bulk: bool,
        limit: int,
    ) -> list[TargetRef]:
        if bulk:
            prospects = self.uow.prospects.list_missing(
                gateway.fills,
                needs_website=tuple(gateway.requires) == ("url",),
                limit=limit,
            )
            candidates = [_target_from_prospect(p) for p in prospects]
        else:
            known = {
                p.id: p
                for p in self.uow.prospects.get_many([t.internal_id for t in targets if t.internal_id])
            }
            candidates = []
            for t in targets:
                p = known.get(t.internal_id) if t.internal_id else None
                if p is not None:
                    t = TargetRef(
                        internal_id=p.id,
                        url=t.url or p.website,
                        name=t.name or p.company_name,
                    )
                candidates.append(t)

        out: list[TargetRef] = []
        seen: set[tuple] = set()
        for t in candidates:
            if not any((getattr(t, attr) or "").strip() for attr in gateway.requires):
                continue
            key = (t.internal_id, t.url, t.name)
            if key in seen:
                continue
            seen.add(key)
            out.append(t)
        return out

    # poll
    def poll(self, job_id: str) -> PollResult:
        job = self.uow.jobs.get_by_id(job_id)
        if not job:
            raise JobNotFoundError("Job not found")

        # терминальная задача не меняется и провайдер не опрашивается
        if job.status.is_terminal:
            return PollResult(job=job)

        gateway = self.providers.get(job.kind)
        handle = job.run_handle
        status = gateway.get_run_status(handle.run_id)

        if status.state.is_active:
            if self._is_stale(job):
                return self._fail(job, "timeout")
            return PollResult(job=job, provider_status=str(status.state))

        if status.state is RunState.SUCCEEDED:
            dataset_id = status.dataset_id or handle.dataset_id
            if not dataset_id:
                return self._fail(job, "provider run succeeded without dataset")

            rows = gateway.fetch_dataset(dataset_id)
            summary = self._reconcile(job, gateway, rows)
            return self._complete(job, summary)

        return self._fail(job, f"provider run {status.state}")

    def _is_stale(self, job: EnrichmentJob) -> bool:
        if not self.max_run_age:
            return False
        return self.clock() - job.started_at > self.max_run_age

    def _complete(self, job: EnrichmentJob, summary: ReconcileSummary) -> PollResult:
        result = summary.to_result()
        try:
            won = self.uow.jobs.complete(job.id, result)
            if won:
                # событие пишется в той же транзакции, что и завершение
                self.uow.outbox.add(
                    OutboxTopic.ENRICHMENT_COMPLETED.value,
                    {
                        "job_id": job.id,
                        "kind": str(job.kind),
                        "result": result,
                        "scope": job.payload.get("scope"),
                        "prospect_ids": list(dict.fromkeys(summary.prospect_ids)),
                    },
                )
            self.uow.commit()
        except Exception:
            self.uow.rollback()
            raise

        if won:
            logger.info("enrichment job %s completed: %s", job.id, result)
        else:
            logger.info("enrichment job %s was already finished by a concurrent poll", job.id)
        return PollResult(job=self._reload(job.id))

    def _fail(self, job: EnrichmentJob, reason: str) -> PollResult:
        try:
            won = self.uow.jobs.fail(job.id, reason)
            self.uow.commit()
        except Exception:
            self.uow.rollback()
            raise

        if won:
            logger.info("enrichment job %s failed: %s", job.id, reason)
        return PollResult(job=self._reload(job.id))

    def _reload(self, job_id: str) -> EnrichmentJob:
        job = self.uow.jobs.get_by_id(job_id)
        if not job:
            raise JobNotFoundError("Job not found")
        return job

    # reconcile
    def _reconcile(self, job: EnrichmentJob, gateway: ProviderGateway, rows: list[Any]) -> ReconcileSummary:
        now = self.clock()
        n = min(self.workers, len(rows))

        if n <= 1 or self.uow_factory is None:
            return self._reconcile_rows(self.uow, job, gateway, rows, now)

        # у каждого воркера своя сессия: строки разных prospect не конфликтуют
        def _run(chunk: list[Any]) -> ReconcileSummary:
            uow = self.uow_factory()
            try:
                return self._reconcile_rows(uow, job, gateway, chunk, now)
            finally:
                uow.close()

        chunks = [rows[i::n] for i in range(n)]
        with ThreadPoolExecutor(max_workers=n, thread_name_prefix=f"reconcile-{job.id[:8]}") as pool:
            parts = list(pool.map(_run, chunks))
        return reduce(ReconcileSummary.merge, parts, ReconcileSummary())

    def _reconcile_rows(
        self,
        uow: UoW,
        job: EnrichmentJob,
        gateway: ProviderGateway,
        rows: list[Any],
        now: datetime,
    ) -> ReconcileSummary:
        matcher = EntityMatcher(uow.prospects, job.targets)
        summary = ReconcileSummary()

        for i, raw in enumerate(rows):
            summary.processed += 1
            try:
                row = gateway.normalize(raw)
                match = matcher.match(row)
                if match is None:
                    summary.not_found += 1
                    continue

                # fill-if-empty проверяется на заблокированной строке
                locked = uow.prospects.get_for_update(match.id)
                if locked is None:
                    summary.not_found += 1
                    continue

                patch = compute_patch(locked, row.fields, job.kind, now)
                uow.prospects.apply_patch(locked.id, patch)
                uow.commit()
                logger.debug("job %s: prospect %s filled %s", job.id, locked.id, patch.changed_fields or "-")

                summary.updated += 1
                summary.prospect_ids.append(locked.id)
            except Exception:
                # одна плохая строка не должна валить весь импорт
                uow.rollback()
                summary.errors += 1
                logger.warning("job %s: row %d could not be reconciled", job.id, i, exc_info=True)

        return summary

    # queries
    def list_jobs(self, kind: Optional[EnrichmentKind] = None, limit: int = 20) -> list[EnrichmentJob]:
        return self.uow.jobs.list_recent(kind=kind, limit=limit)

    def enrichment_candidates(self, kind: EnrichmentKind, limit: int = 20) -> list[Prospect]:
        gateway = self.providers.get(kind)
        return self.uow.prospects.list_missing(
            gateway.fills,
            needs_website=tuple(gateway.requires) == ("url",),
            limit=limit,
        )


def _target_from_prospect(p: Prospect) -> TargetRef:
    return TargetRef(internal_id=p.id, url=p.website, name=p.company_name)
