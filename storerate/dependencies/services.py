"""
서비스 의존성
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storerate.config import Settings
from storerate.database import get_db
from storerate.dependencies.auth import get_app_settings
from storerate.services.rating_service import RatingService
from storerate.services.store_service import StoreService


def get_rating_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> RatingService:
    return RatingService(db, settings)


def get_store_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> StoreService:
    return StoreService(db, settings)
