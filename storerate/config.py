"""
환경변수 설정 모듈
Pydantic Settings를 사용하여 환경변수를 관리합니다.
모든 설정은 .env 파일에서 가져옵니다.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """애플리케이션 설정"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========== 서버 설정 ==========
    api_host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    @property
    def server_port(self) -> int:
        """PORT 환경변수 우선 사용"""
        return self.port

    # ========== CORS 설정 ==========
    cors_origins: str = ""

    @property
    def cors_origins_list(self) -> List[str]:
        """CORS origins를 리스트로 변환"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ========== 데이터베이스 설정 ==========
    postgres_user: str = ""
    postgres_password: str = ""
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "store_rating"

    # 지정되면 postgres_* 설정보다 우선 (예: sqlite+aiosqlite:///./dev.db)
    database_url_override: Optional[str] = None

    db_pool_size: int = 5
    db_max_overflow: int = 10

    @property
    def database_url(self) -> str:
        """비동기 연결 URL"""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def database_url_sync(self) -> str:
        """동기 연결 URL (Alembic, 관리 스크립트용)"""
        if self.database_url_override:
            return self.database_url_override.replace("+aiosqlite", "").replace("+asyncpg", "")
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # 개발 환경에서 시작 시 테이블 자동 생성 (프로덕션에서는 Alembic 사용)
    db_create_tables: bool = True

    # ========== JWT 인증 설정 ==========
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440
    jwt_refresh_expire_days: int = 7
    jwt_issuer: str = "store-rating-platform"
    jwt_audience: str = "store-rating-users"

    # ========== 별점 설정 ==========
    rating_review_max_length: int = 1000
    recent_ratings_days: int = 30
    dashboard_recent_ratings: int = 5


@lru_cache()
def get_settings() -> Settings:
    """캐싱된 설정 인스턴스 반환"""
    return Settings()
