"""
별점 저장소
ratings 테이블에 대한 생성/조회/수정/삭제 및 필터 목록 조회
"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storerate.exceptions import (
    DuplicateRating,
    InvalidScore,
    NoOp,
    NotFound,
    StorageError,
    ValidationError,
)
from storerate.models.query import Page, RatingFilters, RatingPatch, RatingSortField, SortOrder
from storerate.models.rating import (
    Rating,
    REVIEW_MAX_LENGTH,
    SCORE_MAX,
    SCORE_MIN,
    UNIQUE_USER_STORE,
)
from storerate.models.store import Store
from storerate.models.user import User

logger = logging.getLogger(__name__)

# 정렬 가능한 컬럼 화이트리스트 (요청 값을 SQL에 직접 넣지 않음)
SORT_COLUMNS = {
    RatingSortField.CREATED_AT.value: Rating.created_at,
    RatingSortField.UPDATED_AT.value: Rating.updated_at,
    RatingSortField.SCORE.value: Rating.score,
}


def validate_score(score: Any) -> int:
    """별점 검증 (1-5 정수, bool 불가)"""
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidScore()
    if score < SCORE_MIN or score > SCORE_MAX:
        raise InvalidScore()
    return score


def is_unique_violation(error: IntegrityError) -> bool:
    """(user_id, store_id) 유니크 제약 위반 여부"""
    message = str(error.orig) if error.orig is not None else str(error)
    return UNIQUE_USER_STORE in message or "UNIQUE constraint failed" in message or (
        "duplicate key" in message.lower()
    )


def resolve_ordering(sort_by: Any, sort_order: Any) -> tuple:
    """
    정렬 조건 결정

    알 수 없는 정렬 필드는 created_at desc 로 대체합니다.
    """
    field_name = getattr(sort_by, "value", sort_by)
    direction = getattr(sort_order, "value", sort_order)
    column = SORT_COLUMNS.get(field_name) if isinstance(field_name, str) else None

    if column is None:
        return (Rating.created_at.desc(), Rating.id.desc())

    if isinstance(direction, str) and direction.lower() == SortOrder.ASC.value:
        return (column.asc(), Rating.id.asc())
    return (column.desc(), Rating.id.desc())


class RatingStore:
    """별점 저장소"""

    def __init__(self, db: AsyncSession, review_max_length: int = REVIEW_MAX_LENGTH):
        self.db = db
        self.review_max_length = review_max_length

    # ==================== 검증 ====================
    def validate_review(self, review: Any) -> Optional[str]:
        """리뷰 검증 (빈 문자열은 None으로 저장)"""
        if review is None:
            return None
        if not isinstance(review, str):
            raise ValidationError("리뷰는 문자열이어야 합니다")
        review = review.strip()
        if len(review) > self.review_max_length:
            raise ValidationError(f"리뷰는 {self.review_max_length}자 이하여야 합니다")
        return review or None

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            if is_unique_violation(e):
                raise DuplicateRating() from e
            logger.error(f"별점 저장 제약 위반: {e.orig}")
            raise StorageError() from e

    # ==================== 단건 CRUD ====================
    async def create(
        self,
        user_id: int,
        store_id: int,
        score: Any,
        review: Optional[str] = None,
        is_anonymous: bool = False,
    ) -> Rating:
        """
        별점 생성

        Raises:
            InvalidScore: 별점 범위 오류
            ValidationError: 리뷰 길이 초과
            NotFound: 사용자/매장 없음
            DuplicateRating: 이미 같은 매장에 별점 존재
        """
        score = validate_score(score)
        review = self.validate_review(review)

        user = await self.db.get(User, user_id)
        if user is None or not user.is_active:
            raise NotFound("사용자를 찾을 수 없습니다")

        store = await self.db.get(Store, store_id)
        if store is None or not store.is_active:
            raise NotFound("매장을 찾을 수 없습니다")

        # 애플리케이션 레벨 확인 (경쟁 상황은 유니크 제약이 처리)
        existing = await self.find_by_user_and_store(user_id, store_id)
        if existing is not None:
            raise DuplicateRating()

        rating = Rating(
            user_id=user_id,
            store_id=store_id,
            score=score,
            review=review,
            is_anonymous=bool(is_anonymous),
        )
        self.db.add(rating)
        await self._flush()
        return rating

    async def find_by_id(self, rating_id: int) -> Optional[Rating]:
        result = await self.db.execute(
            select(Rating)
            .options(selectinload(Rating.user), selectinload(Rating.store))
            .where(Rating.id == rating_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_user_and_store(self, user_id: int, store_id: int) -> Optional[Rating]:
        result = await self.db.execute(
            select(Rating).where(
                and_(
                    Rating.user_id == user_id,
                    Rating.store_id == store_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def update(self, rating_id: int, patch: RatingPatch) -> Rating:
        """
        별점 부분 수정

        Raises:
            NotFound: 별점 없음
            NoOp: 수정할 필드 없음
            InvalidScore: 별점 범위 오류
        """
        rating = await self.find_by_id(rating_id)
        if rating is None:
            raise NotFound("별점을 찾을 수 없습니다")

        changes = patch.changes()
        if not changes:
            raise NoOp()

        if "score" in changes:
            rating.score = validate_score(changes["score"])
        if "review" in changes:
            rating.review = self.validate_review(changes["review"])
        if "is_anonymous" in changes:
            rating.is_anonymous = bool(changes["is_anonymous"])
        rating.updated_at = datetime.utcnow()

        await self._flush()
        return rating

    async def delete(self, rating_id: int) -> bool:
        """별점 삭제 (이미 없으면 False)"""
        result = await self.db.execute(delete(Rating).where(Rating.id == rating_id))
        return (result.rowcount or 0) > 0

    # ==================== 목록 조회 ====================
    def _filter_conditions(self, filters: RatingFilters) -> list:
        conditions = []

        if filters.score_equals is not None:
            conditions.append(Rating.score == filters.score_equals)
        if filters.score_min is not None:
            conditions.append(Rating.score >= filters.score_min)
        if filters.score_max is not None:
            conditions.append(Rating.score <= filters.score_max)

        if filters.has_review is True:
            conditions.append(and_(Rating.review.isnot(None), Rating.review != ""))
        elif filters.has_review is False:
            conditions.append(or_(Rating.review.is_(None), Rating.review == ""))

        return conditions

    async def _list(self, filters: RatingFilters, scope: list) -> Page[Rating]:
        conditions = scope + self._filter_conditions(filters)

        query = select(Rating).options(selectinload(Rating.user), selectinload(Rating.store))
        if conditions:
            query = query.where(and_(*conditions))
        query = (
            query.order_by(*resolve_ordering(filters.sort_by, filters.sort_order))
            .offset(filters.offset)
            .limit(filters.effective_limit)
        )

        result = await self.db.execute(query)
        items = list(result.scalars().all())
        total = await self._count(conditions)

        return Page(
            items=items,
            current_page=filters.page,
            items_per_page=filters.effective_limit,
            total_items=total,
        )

    async def _count(self, conditions: list) -> int:
        query = select(func.count(Rating.id))
        if conditions:
            query = query.where(and_(*conditions))
        result = await self.db.execute(query)
        return result.scalar() or 0

    def _all_scope(self, filters: RatingFilters) -> list:
        scope = []
        if filters.store_id is not None:
            scope.append(Rating.store_id == filters.store_id)
        if filters.user_id is not None:
            scope.append(Rating.user_id == filters.user_id)
        return scope

    async def list_by_store(self, store_id: int, filters: RatingFilters) -> Page[Rating]:
        return await self._list(filters, [Rating.store_id == store_id])

    async def list_by_user(self, user_id: int, filters: RatingFilters) -> Page[Rating]:
        return await self._list(filters, [Rating.user_id == user_id])

    async def list_all(self, filters: RatingFilters) -> Page[Rating]:
        """전체 별점 목록 (관리자 권한은 서비스 계층에서 확인)"""
        return await self._list(filters, self._all_scope(filters))

    async def count_by_store(self, store_id: int, filters: RatingFilters) -> int:
        return await self._count([Rating.store_id == store_id] + self._filter_conditions(filters))

    async def count_by_user(self, user_id: int, filters: RatingFilters) -> int:
        return await self._count([Rating.user_id == user_id] + self._filter_conditions(filters))

    async def count_all(self, filters: RatingFilters) -> int:
        return await self._count(self._all_scope(filters) + self._filter_conditions(filters))
