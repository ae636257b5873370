from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from src.leadintel.core.settings import settings
from src.leadintel.infra.db import Base
from src.leadintel.infra import models  # noqa: F401  регистрирует таблицы в Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# URL берём из тех же настроек, что и приложение
if settings.DATABASE_URL:
    config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

if not config.get_main_option("sqlalchemy.url"):
    raise RuntimeError("DATABASE_URL is not set and sqlalchemy.url is empty")

target_metadata = Base.metadata

# своя таблица версий: схема prospects общая с CRUD-приложением
VERSION_TABLE = "leadintel_alembic_version"


def include_object(obj, name, type_, reflected, compare_to):
    # чужие таблицы в общей БД autogenerate не трогает
    if type_ == "table" and reflected and compare_to is None:
        return False
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        version_table=VERSION_TABLE,
        include_object=include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = config.get_main_option("sqlalchemy.url")

    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
