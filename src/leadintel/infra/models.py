import uuid

from sqlalchemy import (
    Column, String, DateTime,
    Text, Float, Integer, JSON,
    Index,
)
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import JSONB

from src.leadintel.infra.db import Base

# JSONB в Postgres, обычный JSON в остальных диалектах (SQLite в тестах)
JsonType = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


def _new_id() -> str:
    return uuid.uuid4().hex


class ProspectORM(Base):
    """
    Бизнес-prospect. Создается CRUD-частью приложения,
    движок обогащения его только обновляет.
    """
    __tablename__ = "prospects"

    id = Column(String(32), primary_key=True, default=_new_id)
    external_id = Column(String, nullable=True, unique=True)
    company_name = Column(String, nullable=False)
    website = Column(Text, nullable=True)

    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    facebook = Column(Text, nullable=True)
    instagram = Column(Text, nullable=True)
    twitter = Column(Text, nullable=True)
    linkedin = Column(Text, nullable=True)
    cms = Column(String, nullable=True)
    tech_stack = Column(JsonType, nullable=True)
    owner_name = Column(String, nullable=True)
    owner_title = Column(String, nullable=True)
    owner_email = Column(String, nullable=True)
    owner_phone = Column(String, nullable=True)
    owner_linkedin = Column(Text, nullable=True)
    employee_count = Column(Integer, nullable=True)
    directory_url = Column(Text, nullable=True)
    directory_rating = Column(Float, nullable=True)

    enrichment_sources = Column(JsonType, nullable=False, default=list)
    enriched_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_prospects_created", "created_at"),
        Index("idx_prospects_company_name", "company_name"),
    )


class EnrichmentJobORM(Base):
    __tablename__ = "enrichment_jobs"

    id = Column(String(32), primary_key=True, default=_new_id)
    kind = Column(String, nullable=False)
    status = Column(String, nullable=False)
    payload = Column(JsonType, nullable=False)
    result = Column(JsonType, nullable=True)
    error = Column(Text, nullable=True)

    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_enrichment_jobs_kind_created", "kind", "created_at"),
        Index("idx_enrichment_jobs_status", "status"),
    )


class OutboxEventORM(Base):
    """
    Outbox: события пишутся в той же транзакции, что и завершение задачи,
    и публикуются в MQ отдельным воркером.
    """
    __tablename__ = "enrichment_outbox"

    id = Column(String(32), primary_key=True, default=_new_id)
    topic = Column(String, nullable=False)
    payload = Column(JsonType, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_enrichment_outbox_pending", "published_at", "created_at"),
    )
