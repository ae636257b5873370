from datetime import timedelta
from functools import lru_cache
from typing import Generator, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from src.leadintel.core.settings import settings
from src.leadintel.infra.db import SessionLocal
from src.leadintel.infra.uow import SqlAlchemyUoW
from src.leadintel.infra.providers.apify import build_apify_registry
from src.leadintel.domain.contracts.uow import UoW
from src.leadintel.domain.contracts.provider import ProviderRegistry
from src.leadintel.domain.value_objects import OwnerScope

from src.leadintel.services.enrichment_service import EnrichmentService


def get_db() -> Generator[Session, None, None]:
    """
    Dependency для SQLAlchemy-сессии.
    Сессия создаётся на запрос и гарантированно закрывается.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_owner_scope(
    x_user_id: Optional[str] = Header(default=None),
    x_organization_id: Optional[str] = Header(default=None),
) -> OwnerScope:
    """
    Тег владельца выставляет внешний слой аутентификации.
    Движок его не проверяет, а только сохраняет в payload задачи.
    """
    return OwnerScope(user_id=x_user_id, organization_id=x_organization_id)


def get_uow(db: Session = Depends(get_db)) -> UoW:
    """
    Dependency для Unit of Work.
    """
    return SqlAlchemyUoW(db)


@lru_cache
def get_provider_registry() -> ProviderRegistry:
    # один HTTP-клиент Apify на процесс
    return build_apify_registry()


def close_provider_registry() -> None:
    # закрываем только уже созданный реестр
    if get_provider_registry.cache_info().currsize:
        get_provider_registry().close()
        get_provider_registry.cache_clear()


def _new_uow() -> UoW:
    return SqlAlchemyUoW(SessionLocal())


# Service factories (composition root)
def get_enrichment_service(
    uow: UoW = Depends(get_uow),
    providers: ProviderRegistry = Depends(get_provider_registry),
) -> EnrichmentService:
    max_age = settings.ENRICHMENT_MAX_RUN_AGE_MINUTES
    return EnrichmentService(
        uow,
        providers,
        uow_factory=_new_uow,
        max_run_age=timedelta(minutes=max_age) if max_age > 0 else None,
        workers=settings.RECONCILE_WORKERS,
    )
