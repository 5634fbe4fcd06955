"""
데이터베이스 연결 및 세션 관리 모듈
SQLAlchemy 비동기 설정

엔진과 세션 팩토리는 Database 객체가 소유하며,
애플리케이션 lifespan에서 생성/해제되어 app.state.database로 주입됩니다.
"""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from storerate.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy 모델 베이스 클래스"""
    pass


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record) -> None:
    """SQLite 외래키 제약 활성화"""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """데이터베이스 엔진 및 세션 팩토리"""

    def __init__(self, url: str, echo: bool = False, pool_size: int = 5, max_overflow: int = 10):
        self.url = url
        self.is_sqlite = url.startswith("sqlite")

        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if not self.is_sqlite:
            engine_kwargs.update(pool_size=pool_size, max_overflow=max_overflow)

        # 비동기 엔진 생성
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)

        if self.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        # 비동기 세션 팩토리
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            echo=settings.debug,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )

    async def create_tables(self) -> None:
        """
        테이블 생성
        개발용, 프로덕션에서는 Alembic 사용
        """
        # 메타데이터에 모델 등록
        import storerate.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """데이터베이스 연결 종료"""
        await self.engine.dispose()
        logger.info("데이터베이스 연결 종료")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    데이터베이스 세션 의존성
    FastAPI Depends에서 사용
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
