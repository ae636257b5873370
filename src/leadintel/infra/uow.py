from sqlalchemy.orm import Session

from src.leadintel.infra.repositories import (
    SqlEnrichmentJobRepo, SqlProspectRepo, SqlOutboxRepo,
)

class SqlAlchemyUoW:
    def __init__(self, db: Session):
        self.db = db

        self.jobs = SqlEnrichmentJobRepo(db)
        self.prospects = SqlProspectRepo(db)
        self.outbox = SqlOutboxRepo(db)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def close(self) -> None:
        self.db.close()
