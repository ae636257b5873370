from datetime import datetime
from typing import Any, Mapping

from src.leadintel.domain.entities.prospect import ENRICHABLE_FIELDS, Prospect
from src.leadintel.domain.enums import EnrichmentKind
from src.leadintel.domain.value_objects import ProspectPatch


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (tuple, set)):
        return list(value)
    return value


def compute_patch(
    prospect: Prospect,
    candidate: Mapping[str, Any],
    kind: EnrichmentKind,
    now: datetime,
) -> ProspectPatch:
    """
    Обогащение только дополняет: слот попадает в patch, если у prospect он пуст,
    а кандидат непуст. Заполненные поля не перезаписываются никогда.
    Тег kind добавляется в enrichment_sources (без дублей), enriched_at = now.
    """
    fields: dict[str, Any] = {}
    for slot in ENRICHABLE_FIELDS:
        if slot not in candidate:
            continue
        value = candidate[slot]
        if is_empty(value) or not is_empty(getattr(prospect, slot)):
            continue
        fields[slot] = _clean(value)

    sources = list(prospect.enrichment_sources or [])
    if str(kind) not in sources:
        sources.append(str(kind))

    return ProspectPatch(fields=fields, enrichment_sources=sources, enriched_at=now)
