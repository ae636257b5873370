from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.leadintel.domain.enums import EnrichmentKind


# Enrichment
class TargetRequest(BaseModel):
    internal_id: Optional[str] = None
    url: Optional[str] = None
    name: Optional[str] = None


class SubmitEnrichmentRequest(BaseModel):
    kind: EnrichmentKind
    targets: list[TargetRequest] = Field(default_factory=list)
    options: dict[str, Any] = Field(default_factory=dict)
    bulk: bool = Field(False, description="Подобрать prospects без данных автоматически")
    limit: int = Field(20, ge=1, le=500)


class SubmitEnrichmentResponse(BaseModel):
    job_id: str
    provider_run_id: str
    status: str


class PollJobResponse(BaseModel):
    """
    running   -> provider_status
    completed -> result {processed, updated, not_found, errors}
    failed    -> error
    """
    job_id: str
    status: str
    provider_status: Optional[str] = None
    result: Optional[dict[str, int]] = None
    error: Optional[str] = None


class EnrichmentJobResponse(BaseModel):
    id: str
    kind: str
    status: str
    targets_count: int
    scheduled_at: datetime
    started_at: datetime
    completed_at: Optional[datetime] = None
    result: Optional[dict[str, int]] = None
    error: Optional[str] = None


class CandidateResponse(BaseModel):
    id: str
    company_name: str
    website: Optional[str] = None
    enrichment_sources: list[str] = Field(default_factory=list)
    enriched_at: Optional[datetime] = None


# Мапперы домен -> API DTO
def poll_to_response(res) -> PollJobResponse:
    job = res.job
    return PollJobResponse(
        job_id=job.id,
        status=str(job.status),
        provider_status=res.provider_status,
        result=job.result,
        error=job.error,
    )


def job_to_response(job) -> EnrichmentJobResponse:
    # payload наружу не отдаём: там run handle провайдера и scope
    return EnrichmentJobResponse(
        id=job.id,
        kind=str(job.kind),
        status=str(job.status),
        targets_count=len(job.payload.get("targets", [])),
        scheduled_at=job.scheduled_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        result=job.result,
        error=job.error,
    )


def candidate_to_response(p) -> CandidateResponse:
    return CandidateResponse(
        id=p.id,
        company_name=p.company_name,
        website=p.website,
        enrichment_sources=list(p.enrichment_sources),
        enriched_at=p.enriched_at,
    )
