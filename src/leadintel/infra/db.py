import dotenv
from sqlalchemy import create_engine, MetaData
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

# .env нужен и процессам без pydantic-settings (alembic, воркер)
dotenv.load_dotenv()

from src.leadintel.core.settings import settings  # noqa: E402

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def make_engine(dsn: str) -> Engine:
    if dsn.startswith("sqlite"):
        # SQLite (локально и в тестах): in-memory база живёт в одном соединении
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in dsn:
            kwargs["poolclass"] = StaticPool
        return create_engine(dsn, **kwargs)
    # Postgres: FOR UPDATE при сверке держит соединение, пул должен это выдерживать
    return create_engine(dsn, pool_pre_ping=True, pool_size=max(5, settings.RECONCILE_WORKERS + 2))


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


if not settings.DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set")

engine = make_engine(settings.DATABASE_URL)
SessionLocal = make_session_factory(engine)
