import logging
from typing import Optional, Sequence

from src.leadintel.domain.contracts.repositories import ProspectRepo
from src.leadintel.domain.entities.prospect import Prospect
from src.leadintel.domain.services.urls import normalize_hostname
from src.leadintel.domain.value_objects import ResultRow, TargetRef

logger = logging.getLogger(__name__)


class EntityMatcher:
    """
    Сопоставляет строку результата с существующим prospect.

    Порядок (первое совпадение выигрывает):
    1. native_id провайдера == prospect.external_id;
    2. цели задачи с internal_id: hostname или название строки совпадает
       с тем, что было отправлено провайдеру;
    3. hostname из url: точное совпадение нормализованного website важнее
       вхождения подстроки;
    4. название компании без учета регистра.

    При нескольких кандидатах берется самый ранний по created_at
    (репозиторий отдает кандидатов уже упорядоченными).
    """

    def __init__(self, prospects: ProspectRepo, targets: Sequence[TargetRef] = ()):
        self.prospects = prospects

        # первая цель с данным ключом выигрывает
        self._by_host: dict[str, str] = {}
        self._by_name: dict[str, str] = {}
        for t in targets:
            if not t.internal_id:
                continue
            host = normalize_hostname(t.url)
            if host:
                self._by_host.setdefault(host, t.internal_id)
            name = (t.name or "").strip().lower()
            if name:
                self._by_name.setdefault(name, t.internal_id)

    def match(self, row: ResultRow) -> Optional[Prospect]:
        if row.native_id:
            p = self.prospects.find_by_native_id(str(row.native_id))
            if p:
                return p

        p = self._match_targets(row)
        if p:
            return p

        host = normalize_hostname(row.url)
        if host:
            p = self._match_hostname(host)
            if p:
                return p

        name = (row.name or "").strip()
        if name:
            candidates = self.prospects.find_by_name(name)
            if candidates:
                return candidates[0]

        logger.debug("no prospect matched row native_id=%s url=%s name=%s", row.native_id, row.url, row.name)
        return None

    def _match_targets(self, row: ResultRow) -> Optional[Prospect]:
        host = normalize_hostname(row.url)
        name = (row.name or "").strip().lower()
        for prospect_id in (self._by_host.get(host or ""), self._by_name.get(name)):
            if prospect_id:
                p = self.prospects.get_by_id(prospect_id)
                if p:
                    return p
        return None

    def _match_hostname(self, host: str) -> Optional[Prospect]:
        substring: Optional[Prospect] = None
        for p in self.prospects.find_by_hostname(host):
            site = normalize_hostname(p.website)
            if not site:
                continue
            if site == host:
                return p
            if substring is None and host in site:
                substring = p
        return substring
