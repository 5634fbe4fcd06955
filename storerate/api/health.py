"""
헬스체크 엔드포인트
서버 및 데이터베이스 상태 확인
"""
import logging
from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storerate.database import Database

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    """헬스체크 응답"""

    status: Literal["healthy", "unhealthy"]
    database: Literal["up", "down"]


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    서버 상태 확인

    Returns:
        HealthResponse: 서버 및 데이터베이스 상태
    """
    database: Database = request.app.state.database

    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        database_status = "up"
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"데이터베이스 헬스체크 실패: {e}")
        database_status = "down"

    return HealthResponse(
        status="healthy" if database_status == "up" else "unhealthy",
        database=database_status,
    )
