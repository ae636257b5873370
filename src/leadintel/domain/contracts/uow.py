from typing import Protocol
from src.leadintel.domain.contracts.repositories import (
    EnrichmentJobRepo, ProspectRepo, OutboxRepo,
)

class UoW(Protocol):
    jobs: EnrichmentJobRepo
    prospects: ProspectRepo
    outbox: OutboxRepo

    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def close(self) -> None: ...
