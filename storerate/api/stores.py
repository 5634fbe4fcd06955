"""
매장 API 엔드포인트
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status

from storerate.dependencies.auth import get_current_actor
from storerate.dependencies.services import get_store_service
from storerate.models.query import MAX_PAGE_LIMIT
from storerate.models.response import MessageResponse, PaginatedResponse
from storerate.models.user import Actor
from storerate.services.store_service import (
    OwnerStoreSummary,
    StoreCreate,
    StoreListFilters,
    StoreService,
    StoreUpdate,
    StoreView,
)

router = APIRouter(prefix="/stores", tags=["매장"])


class StoreListResponse(PaginatedResponse[StoreView]):
    """매장 목록 응답"""


@router.get("", response_model=StoreListResponse)
async def get_stores(
    search: Optional[str] = Query(default=None, max_length=100, description="이름/주소 검색"),
    owner_id: Optional[int] = Query(default=None),
    min_rating: Optional[float] = Query(default=None, ge=0, le=5),
    sort_by: str = Query(default="name", description="name, average_rating, total_ratings, created_at"),
    sort_order: str = Query(default="asc"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_LIMIT),
    service: StoreService = Depends(get_store_service),
):
    """
    매장 목록 조회 (공개)

    - search: 매장 이름 또는 주소 검색
    - min_rating: 최소 평균 별점
    - sort_by: 허용되지 않은 값은 name 으로 대체
    """
    filters = StoreListFilters(
        search=search,
        owner_id=owner_id,
        min_rating=min_rating,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    page_result = await service.list_stores(filters)
    return StoreListResponse.from_page(page_result)


@router.get("/owner/dashboard", response_model=List[OwnerStoreSummary])
async def get_owner_dashboard(
    actor: Actor = Depends(get_current_actor),
    service: StoreService = Depends(get_store_service),
):
    """점주 대시보드 (본인 매장 통계 및 최근 별점)"""
    return await service.owner_dashboard(actor)


@router.get("/{store_id}", response_model=StoreView)
async def get_store(
    store_id: int,
    service: StoreService = Depends(get_store_service),
):
    """매장 상세 조회 (공개)"""
    return await service.get_store(store_id)


@router.post("", response_model=StoreView, status_code=status.HTTP_201_CREATED)
async def create_store(
    request: StoreCreate,
    actor: Actor = Depends(get_current_actor),
    service: StoreService = Depends(get_store_service),
):
    """매장 등록 (관리자)"""
    return await service.create_store(actor, request)


@router.put("/{store_id}", response_model=StoreView)
async def update_store(
    store_id: int,
    request: StoreUpdate,
    actor: Actor = Depends(get_current_actor),
    service: StoreService = Depends(get_store_service),
):
    """매장 수정 (관리자 또는 점주)"""
    return await service.update_store(actor, store_id, request)


@router.delete("/{store_id}", response_model=MessageResponse)
async def delete_store(
    store_id: int,
    actor: Actor = Depends(get_current_actor),
    service: StoreService = Depends(get_store_service),
):
    """매장 삭제 (관리자, 비활성화 처리)"""
    await service.deactivate_store(actor, store_id)
    return MessageResponse(message="매장이 삭제되었습니다")
