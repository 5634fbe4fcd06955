"""
FastAPI 메인 애플리케이션
매장 별점 플랫폼 백엔드
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storerate.api import admin, auth, health, ratings, stores
from storerate.config import Settings, get_settings
from storerate.database import Database
from storerate.exceptions import StoreRatingError, Unauthenticated
from storerate.services.jwt_service import JWTService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """애플리케이션 생명주기 관리"""
    settings: Settings = app.state.settings
    logger.info("매장 별점 서버 시작")

    # 데이터베이스 초기화
    database = Database.from_settings(settings)
    app.state.database = database
    if settings.db_create_tables:
        await database.create_tables()
    logger.info("데이터베이스 연결 준비 완료")

    yield

    # 종료 시 정리
    await database.dispose()
    logger.info("매장 별점 서버 종료")


async def store_rating_error_handler(request: Request, exc: StoreRatingError) -> JSONResponse:
    """도메인 예외 → 고정된 에러 코드 응답"""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """요청 형식 오류"""
    return JSONResponse(
        status_code=422,
        content={
            "detail": "요청 형식이 올바르지 않습니다",
            "code": "validation_error",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """FastAPI 앱 팩토리"""
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Store Rating Platform",
        description="매장 별점 플랫폼 API - 관리자, 점주, 일반 사용자 역할 지원",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.jwt_service = JWTService(settings)

    # CORS 설정
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 예외 처리
    app.add_exception_handler(StoreRatingError, store_rating_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)

    # 라우터 등록
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(auth.router, prefix="/api", tags=["Auth"])
    app.include_router(ratings.router, prefix="/api", tags=["Ratings"])
    app.include_router(stores.router, prefix="/api", tags=["Stores"])
    app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])

    # Docker healthcheck용 루트 레벨 헬스체크
    @app.get("/health")
    async def root_health():
        return {"status": "ok"}

    return app


# 앱 인스턴스
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "storerate.main:app",
        host=settings.api_host,
        port=settings.server_port,
        reload=settings.debug,
    )
