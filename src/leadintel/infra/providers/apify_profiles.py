"""
Профили акторов Apify для каждого вида обогащения.

Профиль знает три вещи о конкретном акторе:
- как собрать input из списка целей;
- как привести строку датасета к ResultRow (все причуды формата остаются здесь);
- какие атрибуты цели нужны и какие слоты prospect он заполняет.
"""
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from src.leadintel.core.settings import settings
from src.leadintel.domain.enums import EnrichmentKind
from src.leadintel.domain.services.urls import normalize_hostname
from src.leadintel.domain.value_objects import ResultRow, TargetRef


InputBuilder = Callable[[Sequence[TargetRef], dict[str, Any]], dict[str, Any]]
RowNormalizer = Callable[[dict[str, Any]], ResultRow]


@dataclass(frozen=True)
class ActorProfile:
    kind: EnrichmentKind
    actor_id: str
    build_input: InputBuilder
    normalize: RowNormalizer
    # цель пригодна, если у неё есть хотя бы один из атрибутов
    requires: tuple[str, ...]
    fills: tuple[str, ...]


# helpers
def _blank(v: Any) -> bool:
    # 0 и False - значения, пустыми считаются только None, "" и пустые коллекции
    if v is None:
        return True
    if isinstance(v, str):
        return not v.strip()
    if isinstance(v, (list, tuple, dict)):
        return len(v) == 0
    return False


def _first(*values: Any) -> Any:
    for v in values:
        if isinstance(v, (list, tuple)):
            v = next((x for x in v if not _blank(x)), None)
        if isinstance(v, str):
            v = v.strip()
        if not _blank(v):
            return v
    return None


def _as_url(url: str) -> str:
    url = url.strip()
    return url if "://" in url else f"https://{url}"


def _require_dict(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise ValueError(f"Dataset row must be an object, got {type(raw).__name__}")
    return raw


def _to_int(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return int(v)
    # "11-50" -> 11, "10,001+" -> 10001, "abc" -> None
    m = re.match(r"\d+", str(v).replace(",", "").strip())
    return int(m.group()) if m else None


# contact-scrape: vdrmota/contact-info-scraper
def _contact_input(targets: Sequence[TargetRef], options: dict[str, Any]) -> dict[str, Any]:
    return {
        "startUrls": [{"url": _as_url(t.url)} for t in targets if t.url],
        "maxRequestsPerStartUrl": int(options.get("max_pages", 5)),
        "maxDepth": int(options.get("max_depth", 1)),
        "sameDomain": True,
        "considerChildFrames": False,
    }


def _contact_row(raw: dict[str, Any]) -> ResultRow:
    raw = _require_dict(raw)
    return ResultRow(
        url=_first(raw.get("url"), raw.get("domain"), raw.get("originalStartUrl")),
        fields={
            "email": _first(raw.get("emails")),
            "phone": _first(raw.get("phones"), raw.get("phonesUncertain")),
            "linkedin": _first(raw.get("linkedIns")),
            "facebook": _first(raw.get("facebooks")),
            "instagram": _first(raw.get("instagrams")),
            "twitter": _first(raw.get("twitters")),
        },
    )


# tech-stack: canadesk/builtwith
def _tech_input(targets: Sequence[TargetRef], options: dict[str, Any]) -> dict[str, Any]:
    domains = [normalize_hostname(t.url) for t in targets]
    return {"domains": [d for d in domains if d]}


def _tech_row(raw: dict[str, Any]) -> ResultRow:
    raw = _require_dict(raw)
    technologies = raw.get("technologies") or []
    names = [t["name"] for t in technologies if isinstance(t, dict) and t.get("name")]
    cms = _first(
        raw.get("cms"),
        [t.get("name") for t in technologies if isinstance(t, dict) and str(t.get("category", "")).lower() == "cms"],
    )
    return ResultRow(
        url=_first(raw.get("domain"), raw.get("url")),
        fields={"cms": cms, "tech_stack": names},
    )


# decision-maker-lookup: code_crafter/leads-finder
def _decision_input(targets: Sequence[TargetRef], options: dict[str, Any]) -> dict[str, Any]:
    return {
        "companies": [
            {"name": t.name, "domain": normalize_hostname(t.url)}
            for t in targets
        ],
        "jobTitles": list(options.get("titles") or ["owner", "founder", "ceo", "president"]),
        "maxContactsPerCompany": int(options.get("max_contacts", 3)),
    }


def _decision_row(raw: dict[str, Any]) -> ResultRow:
    raw = _require_dict(raw)
    contacts = [c for c in (raw.get("contacts") or []) if isinstance(c, dict)]
    # контакт с email полезнее, иначе первый
    contact = next((c for c in contacts if c.get("email")), contacts[0] if contacts else {})
    return ResultRow(
        url=_first(raw.get("domain"), raw.get("website")),
        name=_first(raw.get("company"), raw.get("companyName")),
        fields={
            "owner_name": _first(contact.get("name"), contact.get("fullName")),
            "owner_title": _first(contact.get("title"), contact.get("position")),
            "owner_email": _first(contact.get("email")),
            "owner_phone": _first(contact.get("phone"), contact.get("mobilePhone")),
            "owner_linkedin": _first(contact.get("linkedin"), contact.get("linkedinUrl")),
        },
    )


# social-profile-lookup: LinkedIn company pages
def _social_input(targets: Sequence[TargetRef], options: dict[str, Any]) -> dict[str, Any]:
    return {"companies": [t.url or t.name for t in targets]}


def _social_row(raw: dict[str, Any]) -> ResultRow:
    raw = _require_dict(raw)
    # url строки - это страница LinkedIn, для сопоставления берём website компании
    return ResultRow(
        url=_first(raw.get("website"), raw.get("websiteUrl")),
        name=_first(raw.get("name"), raw.get("companyName")),
        fields={
            "linkedin": _first(raw.get("url"), raw.get("linkedinUrl")),
            "employee_count": _to_int(_first(raw.get("employeeCount"), raw.get("staffCount"))),
            "website": _first(raw.get("website"), raw.get("websiteUrl")),
        },
    )


# directory-lookup: maxcopell/yelp-scraper (формат совместим с google maps)
def _directory_input(targets: Sequence[TargetRef], options: dict[str, Any]) -> dict[str, Any]:
    data = {
        "searchTerms": [t.name for t in targets if t.name],
        "searchLimit": int(options.get("max_results", 1)),
    }
    if options.get("location"):
        data["locations"] = [str(options["location"])]
    return data


def _directory_row(raw: dict[str, Any]) -> ResultRow:
    raw = _require_dict(raw)
    socials = raw.get("socialProfiles") or {}
    return ResultRow(
        native_id=_first(raw.get("placeId")),
        url=_first(raw.get("website")),
        name=_first(raw.get("name"), raw.get("title")),
        fields={
            "phone": _first(raw.get("phone")),
            "email": _first(raw.get("email"), raw.get("emails")),
            "website": _first(raw.get("website")),
            "directory_url": _first(raw.get("url"), raw.get("directUrl")),
            "directory_rating": _first(raw.get("rating"), raw.get("totalScore")),
            "facebook": _first(socials.get("facebook"), raw.get("facebook")),
            "instagram": _first(socials.get("instagram"), raw.get("instagram")),
            "twitter": _first(socials.get("twitter"), raw.get("twitter")),
            "linkedin": _first(socials.get("linkedin"), raw.get("linkedin")),
        },
    )


def default_profiles() -> dict[EnrichmentKind, ActorProfile]:
    return {
        EnrichmentKind.CONTACT_SCRAPE: ActorProfile(
            kind=EnrichmentKind.CONTACT_SCRAPE,
            actor_id=settings.ACTOR_CONTACT_SCRAPE,
            build_input=_contact_input,
            normalize=_contact_row,
            requires=("url",),
            fills=("email", "phone", "facebook", "instagram", "twitter", "linkedin"),
        ),
        EnrichmentKind.TECH_STACK: ActorProfile(
            kind=EnrichmentKind.TECH_STACK,
            actor_id=settings.ACTOR_TECH_STACK,
            build_input=_tech_input,
            normalize=_tech_row,
            requires=("url",),
            fills=("cms", "tech_stack"),
        ),
        EnrichmentKind.DECISION_MAKER_LOOKUP: ActorProfile(
            kind=EnrichmentKind.DECISION_MAKER_LOOKUP,
            actor_id=settings.ACTOR_DECISION_MAKER_LOOKUP,
            build_input=_decision_input,
            normalize=_decision_row,
            requires=("name", "url"),
            fills=("owner_name", "owner_email"),
        ),
        EnrichmentKind.SOCIAL_PROFILE_LOOKUP: ActorProfile(
            kind=EnrichmentKind.SOCIAL_PROFILE_LOOKUP,
            actor_id=settings.ACTOR_SOCIAL_PROFILE_LOOKUP,
            build_input=_social_input,
            normalize=_social_row,
            requires=("url", "name"),
            fills=("linkedin", "employee_count"),
        ),
        EnrichmentKind.DIRECTORY_LOOKUP: ActorProfile(
            kind=EnrichmentKind.DIRECTORY_LOOKUP,
            actor_id=settings.ACTOR_DIRECTORY_LOOKUP,
            build_input=_directory_input,
            normalize=_directory_row,
            requires=("name",),
            fills=("phone", "directory_url", "directory_rating"),
        ),
    }
