from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

# Слоты, которые движок обогащения может заполнять
ENRICHABLE_FIELDS: tuple[str, ...] = (
    "email",
    "phone",
    "website",
    "facebook",
    "instagram",
    "twitter",
    "linkedin",
    "cms",
    "tech_stack",
    "owner_name",
    "owner_title",
    "owner_email",
    "owner_phone",
    "owner_linkedin",
    "employee_count",
    "directory_url",
    "directory_rating",
)


@dataclass
class Prospect:
    id: str
    company_name: str
    created_at: datetime
    external_id: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    facebook: Optional[str] = None
    instagram: Optional[str] = None
    twitter: Optional[str] = None
    linkedin: Optional[str] = None
    cms: Optional[str] = None
    tech_stack: Optional[list[Any]] = None
    owner_name: Optional[str] = None
    owner_title: Optional[str] = None
    owner_email: Optional[str] = None
    owner_phone: Optional[str] = None
    owner_linkedin: Optional[str] = None
    employee_count: Optional[int] = None
    directory_url: Optional[str] = None
    directory_rating: Optional[float] = None
    enrichment_sources: list[str] = field(default_factory=list)
    enriched_at: Optional[datetime] = None
