import os
import itertools
import pytest
from datetime import datetime, timezone, timedelta

# БД для тестов: по умолчанию SQLite в памяти (одно соединение на процесс).
# Выставляем до импорта приложения: infra.db читает DATABASE_URL при импорте.
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", "sqlite+pysqlite:///:memory:")

from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

from src.leadintel.main import app as fastapi_app
from src.leadintel.api.deps import get_provider_registry
from src.leadintel.infra.db import Base, SessionLocal, engine
from src.leadintel.infra.models import ProspectORM
from src.leadintel.infra.uow import SqlAlchemyUoW
from src.leadintel.infra.providers.apify_profiles import ActorProfile, default_profiles
from src.leadintel.domain.contracts.provider import ProviderRegistry
from src.leadintel.domain.enums import EnrichmentKind, RunState
from src.leadintel.domain.errors import ProviderUnavailableError
from src.leadintel.domain.value_objects import RunHandle, RunStatus
from src.leadintel.services.enrichment_service import EnrichmentService


class FakeGateway:
    """
    Провайдер-заглушка: состояние запуска и датасет задаются тестом,
    нормализация строк - настоящая, из профиля актора.
    """

    def __init__(self, profile: ActorProfile):
        self.profile = profile
        self.requires = profile.requires
        self.fills = profile.fills

        self.state = RunState.RUNNING
        self.dataset: list = []
        self.unavailable = False

        self.started: list = []
        self.status_calls = 0
        self.dataset_calls = 0

    def start_run(self, targets, options=None):
        if self.unavailable:
            raise ProviderUnavailableError("provider is down")
        self.started.append((list(targets), dict(options or {})))
        n = len(self.started)
        return RunHandle(run_id=f"run-{n}", dataset_id=f"ds-{n}")

    def get_run_status(self, run_id):
        if self.unavailable:
            raise ProviderUnavailableError("provider is down")
        self.status_calls += 1
        return RunStatus(state=self.state, raw_status=self.state.value.upper())

    def fetch_dataset(self, dataset_id):
        self.dataset_calls += 1
        return list(self.dataset)

    def normalize(self, raw):
        return self.profile.normalize(raw)


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def gateways() -> dict[EnrichmentKind, FakeGateway]:
    return {kind: FakeGateway(profile) for kind, profile in default_profiles().items()}


@pytest.fixture
def registry(gateways) -> ProviderRegistry:
    return ProviderRegistry(gateways)


@pytest.fixture
def app(registry):
    fastapi_app.dependency_overrides[get_provider_registry] = lambda: registry
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    """
    HTTP client поверх ASGI приложения (без реального поднятия сервера).
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def db_session() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def uow(db_session) -> SqlAlchemyUoW:
    return SqlAlchemyUoW(db_session)


@pytest.fixture
def service(uow, registry) -> EnrichmentService:
    return EnrichmentService(uow, registry, max_run_age=timedelta(hours=6))


@pytest.fixture
def make_prospect(db_session):
    """
    Создаёт prospect напрямую в БД и возвращает его id.
    created_at растёт с каждым вызовом, чтобы порядок кандидатов был предсказуем.
    """
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = itertools.count()

    def _make(**fields) -> str:
        fields.setdefault("company_name", f"Company {next(counter)}")
        fields.setdefault("created_at", base + timedelta(minutes=next(counter)))
        fields.setdefault("enrichment_sources", [])
        p = ProspectORM(**fields)
        db_session.add(p)
        db_session.commit()
        return str(p.id)

    return _make
