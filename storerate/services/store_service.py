"""
매장 서비스
매장 목록/상세 조회, 관리자 매장 관리, 점주 대시보드
"""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storerate.config import Settings, get_settings
from storerate.exceptions import Forbidden, NotFound, StorageError, ValidationError
from storerate.models.query import MAX_PAGE_LIMIT, Page, RatingFilters, SortOrder
from storerate.models.store import Store
from storerate.models.user import Actor, User, UserRole
from storerate.services.rating_service import RatingService, RatingView, StoreStats

logger = logging.getLogger(__name__)

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

# 정렬 가능한 컬럼 화이트리스트
STORE_SORT_COLUMNS = {
    "name": Store.name,
    "average_rating": Store.average_rating,
    "total_ratings": Store.total_ratings,
    "created_at": Store.created_at,
}

OWNER_ROLES = (UserRole.STORE_OWNER, UserRole.ADMIN)


# ==================== Request/Response Models ====================
class StoreCreate(BaseModel):
    """매장 등록 요청"""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    address: Optional[str] = Field(None, max_length=400)
    owner_id: Optional[int] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class StoreUpdate(BaseModel):
    """매장 수정 요청 (집계 필드는 수정 불가)"""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    address: Optional[str] = Field(None, max_length=400)
    owner_id: Optional[int] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class StoreListFilters(BaseModel):
    """매장 목록 필터"""

    search: Optional[str] = None
    owner_id: Optional[int] = None
    min_rating: Optional[float] = Field(None, ge=0, le=5)
    sort_by: str = "name"
    sort_order: str = SortOrder.ASC.value
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)


class StoreView(BaseModel):
    """매장 응답"""

    id: int
    name: str
    email: Optional[str] = None
    address: Optional[str] = None
    owner_id: Optional[int] = None
    owner_name: Optional[str] = None
    average_rating: float
    total_ratings: int
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_store(cls, store: Store) -> "StoreView":
        return cls(
            id=store.id,
            name=store.name,
            email=store.email,
            address=store.address,
            owner_id=store.owner_id,
            owner_name=store.owner.name if store.owner is not None else None,
            average_rating=float(store.average_rating or 0),
            total_ratings=store.total_ratings or 0,
            is_active=store.is_active,
            created_at=store.created_at,
        )


class OwnerStoreSummary(BaseModel):
    """점주 대시보드 매장 요약"""

    store: StoreView
    stats: StoreStats
    recent_ratings: List[RatingView]


def resolve_store_ordering(sort_by: str, sort_order: str) -> tuple:
    """알 수 없는 정렬 필드는 name asc 로 대체"""
    column = STORE_SORT_COLUMNS.get(sort_by)
    if column is None:
        return (Store.name.asc(), Store.id.asc())
    if isinstance(sort_order, str) and sort_order.lower() == SortOrder.DESC.value:
        return (column.desc(), Store.id.desc())
    return (column.asc(), Store.id.asc())


class StoreService:
    """매장 서비스"""

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("매장 저장 실패")
            raise StorageError() from e

    async def _load(self, store_id: int, include_inactive: bool = False) -> Store:
        result = await self.db.execute(
            select(Store)
            .options(selectinload(Store.owner))
            .where(Store.id == store_id)
            .execution_options(populate_existing=True)
        )
        store = result.scalar_one_or_none()
        if store is None or (not store.is_active and not include_inactive):
            raise NotFound("매장을 찾을 수 없습니다")
        return store

    async def _validate_owner(self, owner_id: Optional[int]) -> None:
        if owner_id is None:
            return
        owner = await self.db.get(User, owner_id)
        if owner is None or not owner.is_active or owner.role not in OWNER_ROLES:
            raise ValidationError("점주는 활성화된 store_owner 또는 admin 사용자여야 합니다")

    # ==================== 조회 ====================
    async def list_stores(self, filters: StoreListFilters) -> Page[StoreView]:
        """활성 매장 목록 (공개)"""
        conditions = [Store.is_active.is_(True)]

        if filters.search and filters.search.strip():
            term = f"%{filters.search.strip()}%"
            conditions.append(or_(Store.name.ilike(term), Store.address.ilike(term)))
        if filters.owner_id is not None:
            conditions.append(Store.owner_id == filters.owner_id)
        if filters.min_rating is not None and filters.min_rating > 0:
            conditions.append(Store.average_rating >= filters.min_rating)

        limit = min(filters.limit, MAX_PAGE_LIMIT)
        result = await self.db.execute(
            select(Store)
            .options(selectinload(Store.owner))
            .where(and_(*conditions))
            .order_by(*resolve_store_ordering(filters.sort_by, filters.sort_order))
            .offset((filters.page - 1) * limit)
            .limit(limit)
        )
        stores = result.scalars().all()

        count_result = await self.db.execute(select(func.count(Store.id)).where(and_(*conditions)))

        return Page(
            items=[StoreView.from_store(s) for s in stores],
            current_page=filters.page,
            items_per_page=limit,
            total_items=count_result.scalar() or 0,
        )

    async def get_store(self, store_id: int) -> StoreView:
        store = await self._load(store_id)
        return StoreView.from_store(store)

    # ==================== 관리 ====================
    async def create_store(self, actor: Actor, data: StoreCreate) -> StoreView:
        """매장 등록 (관리자)"""
        if not actor.is_admin:
            raise Forbidden("관리자만 매장을 등록할 수 있습니다")

        await self._validate_owner(data.owner_id)

        store = Store(
            name=data.name,
            email=data.email,
            address=data.address,
            owner_id=data.owner_id,
        )
        self.db.add(store)
        await self._commit()

        logger.info(f"매장 등록: store_id={store.id}, owner_id={store.owner_id}")
        return StoreView.from_store(await self._load(store.id))

    async def update_store(self, actor: Actor, store_id: int, data: StoreUpdate) -> StoreView:
        """매장 수정 (관리자 또는 해당 매장 점주)"""
        store = await self._load(store_id)

        if not actor.is_admin and store.owner_id != actor.id:
            raise Forbidden("본인 매장만 수정할 수 있습니다")

        changes = {name: getattr(data, name) for name in data.model_fields_set}
        if not changes:
            raise ValidationError("수정할 항목이 없습니다")

        if "owner_id" in changes:
            if not actor.is_admin:
                raise Forbidden("점주 변경은 관리자만 가능합니다")
            await self._validate_owner(changes["owner_id"])

        if "name" in changes and changes["name"] is None:
            raise ValidationError("매장 이름은 비울 수 없습니다")

        for name, value in changes.items():
            setattr(store, name, value)

        await self._commit()
        logger.info(f"매장 수정: store_id={store_id}, fields={sorted(changes)}")
        return StoreView.from_store(await self._load(store_id))

    async def deactivate_store(self, actor: Actor, store_id: int) -> bool:
        """매장 비활성화 (soft delete, 별점은 유지)"""
        if not actor.is_admin:
            raise Forbidden("관리자만 매장을 삭제할 수 있습니다")

        store = await self._load(store_id)
        store.is_active = False
        await self._commit()

        logger.info(f"매장 비활성화: store_id={store_id}")
        return True

    # ==================== 점주 대시보드 ====================
    async def owner_dashboard(self, actor: Actor) -> List[OwnerStoreSummary]:
        """점주 본인 매장의 통계와 최근 별점"""
        if actor.role not in OWNER_ROLES:
            raise Forbidden("점주만 조회할 수 있습니다")

        result = await self.db.execute(
            select(Store)
            .options(selectinload(Store.owner))
            .where(and_(Store.owner_id == actor.id, Store.is_active.is_(True)))
            .order_by(Store.name.asc())
        )
        stores = result.scalars().all()

        rating_service = RatingService(self.db, self.settings)
        recent_filters = RatingFilters(limit=self.settings.dashboard_recent_ratings)

        summaries = []
        for store in stores:
            stats = await rating_service.get_store_stats(store.id)
            recent = await rating_service.get_store_ratings(store.id, recent_filters, viewer=actor)
            summaries.append(
                OwnerStoreSummary(
                    store=StoreView.from_store(store),
                    stats=stats,
                    recent_ratings=recent.items,
                )
            )
        return summaries
