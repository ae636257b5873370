import logging
from typing import Any, Optional, Sequence

import httpx

from src.leadintel.core.settings import settings
from src.leadintel.domain.contracts.provider import ProviderRegistry
from src.leadintel.domain.enums import RunState
from src.leadintel.domain.errors import ProviderUnavailableError
from src.leadintel.domain.value_objects import ResultRow, RunHandle, RunStatus, TargetRef
from src.leadintel.infra.providers.apify_profiles import ActorProfile, default_profiles

logger = logging.getLogger(__name__)

# Статусы запусков Apify -> состояния движка
RUN_STATES: dict[str, RunState] = {
    "READY": RunState.QUEUED,
    "RUNNING": RunState.RUNNING,
    "TIMING-OUT": RunState.RUNNING,
    "ABORTING": RunState.RUNNING,
    "SUCCEEDED": RunState.SUCCEEDED,
    "FAILED": RunState.FAILED,
    "ABORTED": RunState.ABORTED,
    "TIMED-OUT": RunState.TIMED_OUT,
}


class ApifyClient:
    """Тонкий HTTP-клиент к Apify API v2."""

    def __init__(self, token: str, base_url: str, timeout: float = 30.0, transport: Optional[httpx.BaseTransport] = None):
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            params={"token": token},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            r = self._http.request(method, path, **kwargs)
            r.raise_for_status()
            return r.json()
        except httpx.HTTPStatusError as e:
            logger.warning("apify %s %s -> %s", method, path, e.response.status_code)
            raise ProviderUnavailableError(f"Apify API error: HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("apify %s %s failed: %s", method, path, e)
            raise ProviderUnavailableError(f"Apify API unreachable: {e}") from e

    def start_run(self, actor_id: str, run_input: dict[str, Any]) -> dict[str, Any]:
        # в URL актора '/' заменяется на '~'
        return self._request("POST", f"/acts/{actor_id.replace('/', '~')}/runs", json=run_input)["data"]

    def get_run(self, run_id: str) -> dict[str, Any]:
        return self._request("GET", f"/actor-runs/{run_id}")["data"]

    def get_dataset_items(self, dataset_id: str) -> list[dict[str, Any]]:
        items = self._request("GET", f"/datasets/{dataset_id}/items", params={"clean": "true", "format": "json"})
        if not isinstance(items, list):
            raise ProviderUnavailableError("Apify dataset response is not a list")
        return items


class ApifyGateway:
    """Шлюз одного вида обогащения поверх конкретного актора."""

    def __init__(self, client: ApifyClient, profile: ActorProfile):
        self.client = client
        self.profile = profile

    @property
    def requires(self) -> tuple[str, ...]:
        return self.profile.requires

    @property
    def fills(self) -> tuple[str, ...]:
        return self.profile.fills

    def start_run(self, targets: Sequence[TargetRef], options: Optional[dict[str, Any]] = None) -> RunHandle:
        run_input = self.profile.build_input(targets, dict(options or {}))
        data = self.client.start_run(self.profile.actor_id, run_input)
        run_id = data.get("id")
        if not run_id:
            raise ProviderUnavailableError("Apify did not return a run id")
        logger.info("apify run %s started for actor %s (%d targets)", run_id, self.profile.actor_id, len(targets))
        return RunHandle(run_id=str(run_id), dataset_id=data.get("defaultDatasetId"))

    def get_run_status(self, run_id: str) -> RunStatus:
        data = self.client.get_run(run_id)
        raw = str(data.get("status") or "").upper()
        state = RUN_STATES.get(raw)
        if state is None:
            # неизвестный статус считаем незавершённым
            logger.warning("apify run %s has unknown status %r", run_id, raw)
            state = RunState.RUNNING
        return RunStatus(state=state, dataset_id=data.get("defaultDatasetId"), raw_status=raw)

    def fetch_dataset(self, dataset_id: str) -> list[dict[str, Any]]:
        return self.client.get_dataset_items(dataset_id)

    def normalize(self, raw: dict[str, Any]) -> ResultRow:
        return self.profile.normalize(raw)


def build_apify_registry(client: Optional[ApifyClient] = None) -> ProviderRegistry:
    client = client or ApifyClient(
        token=settings.APIFY_API_TOKEN,
        base_url=settings.APIFY_BASE_URL,
        timeout=settings.APIFY_TIMEOUT_SECONDS,
    )
    return ProviderRegistry(
        {kind: ApifyGateway(client, profile) for kind, profile in default_profiles().items()},
        on_close=client.close,
    )
