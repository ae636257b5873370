from typing import Any, Callable, Optional, Protocol, Sequence

from src.leadintel.domain.enums import EnrichmentKind
from src.leadintel.domain.value_objects import ResultRow, RunHandle, RunStatus, TargetRef


class ProviderGateway(Protocol):
    """
    Внешний асинхронный провайдер обогащения.
    Все состояние для продолжения работы живет в RunHandle, а не в шлюзе.
    """

    # Какие атрибуты цели нужны провайдеру: ("url",), ("name",) или оба
    requires: tuple[str, ...]
    # Слоты, пустота которых означает "кандидат на обогащение"
    fills: tuple[str, ...]

    def start_run(self, targets: Sequence[TargetRef], options: Optional[dict[str, Any]] = None) -> RunHandle: ...
    def get_run_status(self, run_id: str) -> RunStatus: ...
    def fetch_dataset(self, dataset_id: str) -> list[dict[str, Any]]: ...
    def normalize(self, raw: dict[str, Any]) -> ResultRow: ...


class ProviderRegistry:
    def __init__(
        self,
        gateways: dict[EnrichmentKind, ProviderGateway],
        on_close: Optional[Callable[[], None]] = None,
    ):
        self._gateways = dict(gateways)
        self._on_close = on_close

    def get(self, kind: EnrichmentKind) -> ProviderGateway:
        try:
            return self._gateways[kind]
        except KeyError:
            raise ValueError(f"Провайдер для '{kind}' не настроен.") from None

    def kinds(self) -> list[EnrichmentKind]:
        return list(self._gateways)

    def close(self) -> None:
        # освобождает общий HTTP-клиент шлюзов, если он есть
        if self._on_close is not None:
            self._on_close()
            self._on_close = None
