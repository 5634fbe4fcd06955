"""
매장 별점 집계 관리
별점이 바뀔 때마다 같은 트랜잭션 안에서 average_rating / total_ratings 재계산
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storerate.exceptions import NotFound
from storerate.models.rating import Rating
from storerate.models.store import Store

logger = logging.getLogger(__name__)

ONE_DECIMAL = Decimal("0.1")


def compute_average(score_sum: int, count: int) -> Decimal:
    """평균 별점 (소수점 1자리 반올림, 별점이 없으면 0)"""
    if count <= 0:
        return Decimal("0.0")
    return (Decimal(score_sum) / Decimal(count)).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


class StoreAggregateMaintainer:
    """매장 집계값 관리자"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def lock_store(self, store_id: int) -> Optional[Store]:
        """매장 행 잠금 (SELECT ... FOR UPDATE)"""
        result = await self.db.execute(
            select(Store).where(Store.id == store_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def recompute(self, store_id: int) -> dict:
        """
        매장 집계값 전체 재계산

        현재 별점 전체를 다시 읽어 계산하므로 이전 오차도 함께 복구됩니다.

        Returns:
            {"average_rating": float, "total_ratings": int}
        """
        store = await self.lock_store(store_id)
        if store is None:
            raise NotFound("매장을 찾을 수 없습니다")

        result = await self.db.execute(
            select(
                func.count(Rating.id).label("total"),
                func.coalesce(func.sum(Rating.score), 0).label("score_sum"),
            ).where(Rating.store_id == store_id)
        )
        row = result.one()
        total = int(row.total or 0)
        average = compute_average(int(row.score_sum or 0), total)

        store.average_rating = average
        store.total_ratings = total
        await self.db.flush()

        logger.info(f"매장 집계 갱신: store_id={store_id}, avg={average}, total={total}")
        return {"average_rating": float(average), "total_ratings": total}

    async def recompute_all(self) -> int:
        """모든 매장 집계 재계산 (관리용), 처리한 매장 수 반환"""
        result = await self.db.execute(select(Store.id).order_by(Store.id))
        store_ids = list(result.scalars().all())

        for store_id in store_ids:
            await self.recompute(store_id)

        logger.info(f"전체 매장 집계 재계산 완료: {len(store_ids)}개")
        return len(store_ids)
