"""
별점 API 엔드포인트
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, StrictBool, StrictInt

from storerate.dependencies.auth import get_current_actor, get_current_actor_optional
from storerate.dependencies.services import get_rating_service
from storerate.models.query import MAX_PAGE_LIMIT, RatingFilters, RatingPatch
from storerate.models.response import MessageResponse, PaginatedResponse
from storerate.models.user import Actor
from storerate.services.rating_service import (
    OverallStats,
    RatingService,
    RatingView,
    StoreStats,
)

router = APIRouter(prefix="/ratings", tags=["별점"])


# ==================== Request/Response Models ====================
class RatingCreate(BaseModel):
    """별점 등록 요청"""

    model_config = ConfigDict(extra="forbid")

    store_id: int
    score: StrictInt
    review: Optional[str] = None
    is_anonymous: StrictBool = False


class RatingListResponse(PaginatedResponse[RatingView]):
    """별점 목록 응답"""


class StoreRatingListResponse(PaginatedResponse[RatingView]):
    """매장 별점 목록 응답 (통계 포함)"""

    statistics: StoreStats


def rating_filters(
    score: Optional[int] = Query(default=None, ge=1, le=5, description="특정 별점"),
    min_score: Optional[int] = Query(default=None, ge=1, le=5),
    max_score: Optional[int] = Query(default=None, ge=1, le=5),
    has_review: Optional[bool] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_LIMIT),
    sort_by: str = Query(default="created_at", description="created_at, updated_at, score"),
    sort_order: str = Query(default="desc", description="asc, desc"),
) -> RatingFilters:
    """목록 조회 공통 쿼리 파라미터"""
    return RatingFilters(
        score_equals=score,
        score_min=min_score,
        score_max=max_score,
        has_review=has_review,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


# ==================== API Endpoints ====================
@router.get("", response_model=RatingListResponse)
async def get_all_ratings(
    store_id: Optional[int] = Query(default=None),
    user_id: Optional[int] = Query(default=None),
    filters: RatingFilters = Depends(rating_filters),
    actor: Actor = Depends(get_current_actor),
    service: RatingService = Depends(get_rating_service),
):
    """전체 별점 목록 조회 (관리자)"""
    filters = filters.model_copy(update={"store_id": store_id, "user_id": user_id})
    page = await service.list_all_ratings(actor, filters)
    return RatingListResponse.from_page(page)


@router.get("/stats", response_model=OverallStats)
async def get_rating_stats(
    actor: Actor = Depends(get_current_actor),
    service: RatingService = Depends(get_rating_service),
):
    """전체 별점 통계 (관리자)"""
    return await service.get_overall_stats(actor)


@router.get("/store/{store_id}", response_model=StoreRatingListResponse)
async def get_store_ratings(
    store_id: int,
    filters: RatingFilters = Depends(rating_filters),
    viewer: Optional[Actor] = Depends(get_current_actor_optional),
    service: RatingService = Depends(get_rating_service),
):
    """매장 별점 목록 조회 (공개)"""
    page = await service.get_store_ratings(store_id, filters, viewer=viewer)
    statistics = await service.get_store_stats(store_id)
    return StoreRatingListResponse.from_page(page, statistics=statistics)


@router.get("/store/{store_id}/stats", response_model=StoreStats)
async def get_store_stats(
    store_id: int,
    service: RatingService = Depends(get_rating_service),
):
    """매장 별점 통계 (공개)"""
    return await service.get_store_stats(store_id)


@router.get("/user/{user_id}", response_model=RatingListResponse)
async def get_user_ratings(
    user_id: int,
    filters: RatingFilters = Depends(rating_filters),
    actor: Actor = Depends(get_current_actor),
    service: RatingService = Depends(get_rating_service),
):
    """사용자 별점 목록 조회 (본인 또는 관리자)"""
    page = await service.get_user_ratings(actor, user_id, filters)
    return RatingListResponse.from_page(page)


@router.post("", response_model=RatingView, status_code=status.HTTP_201_CREATED)
async def submit_rating(
    request: RatingCreate,
    actor: Actor = Depends(get_current_actor),
    service: RatingService = Depends(get_rating_service),
):
    """별점 등록 (일반 사용자, 매장당 1회)"""
    return await service.submit_rating(
        actor,
        store_id=request.store_id,
        score=request.score,
        review=request.review,
        is_anonymous=request.is_anonymous,
    )


@router.put("/{rating_id}", response_model=RatingView)
async def update_rating(
    rating_id: int,
    request: RatingPatch,
    actor: Actor = Depends(get_current_actor),
    service: RatingService = Depends(get_rating_service),
):
    """별점 수정 (작성자 또는 관리자)"""
    return await service.update_rating(actor, rating_id, request)


@router.delete("/{rating_id}", response_model=MessageResponse)
async def delete_rating(
    rating_id: int,
    actor: Actor = Depends(get_current_actor),
    service: RatingService = Depends(get_rating_service),
):
    """별점 삭제 (작성자 또는 관리자)"""
    await service.delete_rating(actor, rating_id)
    return MessageResponse(message="별점이 삭제되었습니다")
