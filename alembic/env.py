"""
Alembic 마이그레이션 환경

DB URL 우선순위:
    1. alembic -x db_url=... 옵션
    2. Settings.database_url_sync (.env)
"""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

from storerate.config import get_settings
from storerate.database import Base

# users / stores / ratings 테이블을 메타데이터에 등록
import storerate.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_url() -> str:
    """마이그레이션 대상 DB URL (동기 드라이버)"""
    x_args = context.get_x_argument(as_dictionary=True)
    if x_args.get("db_url"):
        return x_args["db_url"]
    return get_settings().database_url_sync


def _configure_options(url: str) -> dict:
    # SQLite는 ALTER TABLE 제약이 있어 batch 모드로 실행
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """DB 연결 없이 SQL 스크립트 출력"""
    url = get_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """DB에 연결하여 마이그레이션 적용"""
    url = get_url()
    engine = create_engine(url, poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(connection=connection, **_configure_options(url))

        with context.begin_transaction():
            context.run_migrations()

    engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
