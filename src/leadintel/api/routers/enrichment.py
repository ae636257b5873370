import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from src.leadintel.api.deps import get_enrichment_service, get_owner_scope
from src.leadintel.api.schemas import (
    SubmitEnrichmentRequest,
    SubmitEnrichmentResponse,
    PollJobResponse,
    EnrichmentJobResponse,
    CandidateResponse,
    poll_to_response,
    job_to_response,
    candidate_to_response,
)
from src.leadintel.services.enrichment_service import EnrichmentService
from src.leadintel.domain.enums import EnrichmentKind
from src.leadintel.domain.errors import JobNotFoundError, NoTargetsError, ProviderUnavailableError
from src.leadintel.domain.value_objects import OwnerScope, TargetRef

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/enrichment", tags=["enrichment"])

PROVIDER_UNAVAILABLE = "Провайдер обогащения недоступен. Повторите попытку позже."


@router.post("/jobs", response_model=SubmitEnrichmentResponse, status_code=status.HTTP_202_ACCEPTED)
def submit_job(
    req: SubmitEnrichmentRequest,
    scope: OwnerScope = Depends(get_owner_scope),
    svc: EnrichmentService = Depends(get_enrichment_service),
):
    """
    Запускает обогащение и сразу возвращает id задачи, не дожидаясь провайдера.
    """
    targets = [TargetRef(internal_id=t.internal_id, url=t.url, name=t.name) for t in req.targets]
    try:
        job = svc.submit(
            kind=req.kind,
            targets=targets,
            scope=scope,
            options=req.options,
            bulk=req.bulk,
            limit=req.limit,
        )
    except NoTargetsError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ProviderUnavailableError:
        logger.exception("enrichment submit (%s) rejected by provider", req.kind)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=PROVIDER_UNAVAILABLE)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return SubmitEnrichmentResponse(
        job_id=job.id,
        provider_run_id=job.run_handle.run_id,
        status=str(job.status),
    )


@router.get("/jobs", response_model=list[EnrichmentJobResponse])
def list_jobs(
    kind: Optional[EnrichmentKind] = None,
    limit: int = 20,
    svc: EnrichmentService = Depends(get_enrichment_service),
):
    return [job_to_response(j) for j in svc.list_jobs(kind=kind, limit=limit)]


@router.get("/jobs/{job_id}", response_model=PollJobResponse, response_model_exclude_none=True)
def poll_job(
    job_id: str,
    svc: EnrichmentService = Depends(get_enrichment_service),
):
    """
    Проверяет задачу. Если провайдер закончил - сверяет результаты с prospects
    и завершает задачу. Для завершённых задач провайдер не опрашивается.
    """
    try:
        res = svc.poll(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    except ProviderUnavailableError:
        logger.exception("enrichment job %s: provider status check failed", job_id)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=PROVIDER_UNAVAILABLE)
    except SQLAlchemyError:
        # задача остаётся running, следующий poll повторит сверку
        logger.exception("enrichment job %s: store error while finishing", job_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Хранилище временно недоступно. Повторите запрос статуса.",
        )
    return poll_to_response(res)


@router.get("/candidates", response_model=list[CandidateResponse])
def enrichment_candidates(
    kind: EnrichmentKind,
    limit: int = 20,
    svc: EnrichmentService = Depends(get_enrichment_service),
):
    try:
        prospects = svc.enrichment_candidates(kind, limit=limit)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return [candidate_to_response(p) for p in prospects]
