"""
별점 서비스
API 계층에서 호출하는 별점 등록/수정/삭제/조회/통계 기능

별점 변경과 매장 집계 재계산은 하나의 트랜잭션으로 커밋됩니다.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncGenerator, Dict, Optional

from pydantic import BaseModel
from sqlalchemy import and_, case, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storerate.config import Settings, get_settings
from storerate.exceptions import (
    DuplicateRating,
    Forbidden,
    NotFound,
    StorageError,
    StoreRatingError,
)
from storerate.models.query import Page, RatingFilters, RatingPatch
from storerate.models.rating import Rating, SCORE_MAX, SCORE_MIN
from storerate.models.store import Store
from storerate.models.user import Actor, User
from storerate.services import rating_policy
from storerate.services.rating_store import RatingStore, is_unique_violation
from storerate.services.store_aggregates import StoreAggregateMaintainer, compute_average

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "익명"


# ==================== 응답 모델 ====================
class RatingView(BaseModel):
    """별점 응답 (익명 별점은 작성자 정보 숨김 가능)"""

    id: int
    store_id: int
    store_name: Optional[str] = None
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    score: int
    review: Optional[str] = None
    is_anonymous: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_rating(cls, rating: Rating, redact: bool = False) -> "RatingView":
        if redact:
            user_id, user_name = None, ANONYMOUS_NAME
        else:
            user_id = rating.user_id
            user_name = rating.user.name if rating.user is not None else None

        return cls(
            id=rating.id,
            store_id=rating.store_id,
            store_name=rating.store.name if rating.store is not None else None,
            user_id=user_id,
            user_name=user_name,
            score=rating.score,
            review=rating.review,
            is_anonymous=rating.is_anonymous,
            created_at=rating.created_at,
            updated_at=rating.updated_at,
        )


class StoreStats(BaseModel):
    """매장 별점 통계"""

    store_id: int
    total_ratings: int
    average_rating: float
    review_count: int
    distribution: Dict[int, int]


class OverallStats(BaseModel):
    """전체 별점 통계 (관리자)"""

    total_ratings: int
    average_rating: float
    review_count: int
    rated_stores: int
    rating_users: int
    recent_ratings: int
    total_users: int
    total_stores: int


def _has_review_clause():
    return and_(Rating.review.isnot(None), Rating.review != "")


class RatingService:
    """별점 서비스"""

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.ratings = RatingStore(db, review_max_length=self.settings.rating_review_max_length)
        self.aggregates = StoreAggregateMaintainer(db)

    @asynccontextmanager
    async def _transaction(self) -> AsyncGenerator[None, None]:
        """쓰기 트랜잭션: 예외 시 전체 롤백, DB 오류는 StorageError로 변환"""
        try:
            yield
            await self.db.commit()
        except StoreRatingError:
            await self.db.rollback()
            raise
        except IntegrityError as e:
            await self.db.rollback()
            if is_unique_violation(e):
                raise DuplicateRating() from e
            logger.exception("별점 트랜잭션 제약 위반")
            raise StorageError() from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("별점 트랜잭션 실패")
            raise StorageError() from e

    async def _load_rating(self, rating_id: int) -> Rating:
        rating = await self.ratings.find_by_id(rating_id)
        if rating is None:
            raise NotFound("별점을 찾을 수 없습니다")
        return rating

    async def _get_active_store(self, store_id: int) -> Store:
        store = await self.db.get(Store, store_id)
        if store is None or not store.is_active:
            raise NotFound("매장을 찾을 수 없습니다")
        return store

    # ==================== 변경 ====================
    async def submit_rating(
        self,
        actor: Actor,
        store_id: int,
        score: int,
        review: Optional[str] = None,
        is_anonymous: bool = False,
    ) -> RatingView:
        """별점 등록 (일반 사용자만)"""
        if not rating_policy.can_create(actor.role):
            logger.warning(f"별점 등록 거부: user_id={actor.id}, role={actor.role.value}")
            raise Forbidden("일반 사용자만 별점을 등록할 수 있습니다")

        async with self._transaction():
            store = await self.aggregates.lock_store(store_id)
            if store is None or not store.is_active:
                raise NotFound("매장을 찾을 수 없습니다")

            rating = await self.ratings.create(
                user_id=actor.id,
                store_id=store_id,
                score=score,
                review=review,
                is_anonymous=is_anonymous,
            )
            await self.aggregates.recompute(store_id)

        logger.info(f"별점 등록: rating_id={rating.id}, user_id={actor.id}, store_id={store_id}")
        created = await self._load_rating(rating.id)
        return RatingView.from_rating(created)

    async def update_rating(self, actor: Actor, rating_id: int, patch: RatingPatch) -> RatingView:
        """별점 수정 (작성자 또는 관리자)"""
        rating = await self._load_rating(rating_id)

        if not rating_policy.can_mutate(actor.id, actor.role, rating.user_id):
            logger.warning(f"별점 수정 거부: rating_id={rating_id}, user_id={actor.id}")
            raise Forbidden("본인의 별점만 수정할 수 있습니다")

        store_id = rating.store_id
        old_score = rating.score

        async with self._transaction():
            await self.aggregates.lock_store(store_id)
            updated = await self.ratings.update(rating_id, patch)
            if updated.score != old_score:
                await self.aggregates.recompute(store_id)

        logger.info(f"별점 수정: rating_id={rating_id}, by user_id={actor.id}")
        return RatingView.from_rating(updated)

    async def delete_rating(self, actor: Actor, rating_id: int) -> bool:
        """별점 삭제 (작성자 또는 관리자)"""
        rating = await self._load_rating(rating_id)

        if not rating_policy.can_mutate(actor.id, actor.role, rating.user_id):
            logger.warning(f"별점 삭제 거부: rating_id={rating_id}, user_id={actor.id}")
            raise Forbidden("본인의 별점만 삭제할 수 있습니다")

        store_id = rating.store_id

        async with self._transaction():
            store = await self.aggregates.lock_store(store_id)
            deleted = await self.ratings.delete(rating_id)
            if deleted and store is not None:
                await self.aggregates.recompute(store_id)

        logger.info(f"별점 삭제: rating_id={rating_id}, by user_id={actor.id}")
        return deleted

    # ==================== 조회 ====================
    async def get_store_ratings(
        self,
        store_id: int,
        filters: RatingFilters,
        viewer: Optional[Actor] = None,
    ) -> Page[RatingView]:
        """매장 별점 목록 (공개, 익명 별점은 권한에 따라 작성자 숨김)"""
        await self._get_active_store(store_id)
        page = await self.ratings.list_by_store(store_id, filters)

        return page.map(
            lambda r: RatingView.from_rating(
                r,
                redact=rating_policy.should_redact(viewer, r.user_id, r.is_anonymous),
            )
        )

    async def get_user_ratings(
        self,
        actor: Actor,
        user_id: int,
        filters: RatingFilters,
    ) -> Page[RatingView]:
        """사용자 별점 목록 (본인 또는 관리자)"""
        if not rating_policy.can_view_user_ratings(actor, user_id):
            logger.warning(f"사용자 별점 조회 거부: target={user_id}, user_id={actor.id}")
            raise Forbidden("본인의 별점만 조회할 수 있습니다")

        page = await self.ratings.list_by_user(user_id, filters)
        return page.map(RatingView.from_rating)

    async def list_all_ratings(self, actor: Actor, filters: RatingFilters) -> Page[RatingView]:
        """전체 별점 목록 (관리자)"""
        if not rating_policy.can_view_all(actor.role):
            raise Forbidden("관리자만 조회할 수 있습니다")

        page = await self.ratings.list_all(filters)
        return page.map(RatingView.from_rating)

    # ==================== 통계 ====================
    async def get_store_stats(self, store_id: int) -> StoreStats:
        """매장 별점 통계 (공개)"""
        await self._get_active_store(store_id)

        scores = list(range(SCORE_MAX, SCORE_MIN - 1, -1))
        result = await self.db.execute(
            select(
                func.count(Rating.id).label("total"),
                func.coalesce(func.sum(Rating.score), 0).label("score_sum"),
                func.sum(case((_has_review_clause(), 1), else_=0)).label("review_count"),
                *[
                    func.sum(case((Rating.score == score, 1), else_=0)).label(f"score_{score}")
                    for score in scores
                ],
            ).where(Rating.store_id == store_id)
        )
        row = result.one()
        total = int(row.total or 0)

        return StoreStats(
            store_id=store_id,
            total_ratings=total,
            average_rating=float(compute_average(int(row.score_sum or 0), total)),
            review_count=int(row.review_count or 0),
            distribution={score: int(getattr(row, f"score_{score}") or 0) for score in scores},
        )

    async def get_overall_stats(self, actor: Actor) -> OverallStats:
        """전체 별점 통계 (관리자)"""
        if not rating_policy.can_view_all(actor.role):
            raise Forbidden("관리자만 조회할 수 있습니다")

        result = await self.db.execute(
            select(
                func.count(Rating.id).label("total"),
                func.coalesce(func.sum(Rating.score), 0).label("score_sum"),
                func.sum(case((_has_review_clause(), 1), else_=0)).label("review_count"),
                func.count(func.distinct(Rating.store_id)).label("rated_stores"),
                func.count(func.distinct(Rating.user_id)).label("rating_users"),
            )
        )
        row = result.one()
        total = int(row.total or 0)

        cutoff = datetime.utcnow() - timedelta(days=self.settings.recent_ratings_days)
        recent = await self.db.execute(
            select(func.count(Rating.id)).where(Rating.created_at >= cutoff)
        )
        users = await self.db.execute(select(func.count(User.id)))
        stores = await self.db.execute(select(func.count(Store.id)).where(Store.is_active.is_(True)))

        return OverallStats(
            total_ratings=total,
            average_rating=float(compute_average(int(row.score_sum or 0), total)),
            review_count=int(row.review_count or 0),
            rated_stores=int(row.rated_stores or 0),
            rating_users=int(row.rating_users or 0),
            recent_ratings=recent.scalar() or 0,
            total_users=users.scalar() or 0,
            total_stores=stores.scalar() or 0,
        )

    async def recompute_all_stores(self, actor: Actor) -> int:
        """전체 매장 집계 재계산 (관리자)"""
        if not rating_policy.can_view_all(actor.role):
            raise Forbidden("관리자만 실행할 수 있습니다")

        async with self._transaction():
            count = await self.aggregates.recompute_all()
        return count
