"""
관리자 API
대시보드, 사용자 관리, 매장 집계 재계산
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storerate.database import get_db
from storerate.dependencies.auth import require_roles
from storerate.dependencies.services import get_rating_service
from storerate.exceptions import Forbidden, NotFound
from storerate.models.query import MAX_PAGE_LIMIT, Page
from storerate.models.response import PaginatedResponse
from storerate.models.user import Actor, User, UserRole
from storerate.services.password import validate_password
from storerate.services.rating_service import OverallStats, RatingService
from storerate.services.store_service import EMAIL_PATTERN
from storerate.api.auth import UserResponse, create_user

logger = logging.getLogger(__name__)
router = APIRouter()

require_admin = require_roles(UserRole.ADMIN)


# ========== Schemas ==========


class AdminUserCreate(BaseModel):
    """관리자 사용자 생성 요청"""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=60)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str
    address: Optional[str] = Field(None, max_length=400)
    role: UserRole = UserRole.NORMAL_USER


class UserStatusUpdate(BaseModel):
    """사용자 활성 상태 변경"""

    model_config = ConfigDict(extra="forbid")

    is_active: bool


class UserListResponse(PaginatedResponse[UserResponse]):
    """사용자 목록 응답"""


class DashboardResponse(BaseModel):
    """관리자 대시보드"""

    users_by_role: dict[str, int]
    total_users: int
    active_stores: int
    ratings: OverallStats


class RecomputeResponse(BaseModel):
    """집계 재계산 결과"""

    stores: int


# ========== Endpoints ==========


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    service: RatingService = Depends(get_rating_service),
):
    """관리자 대시보드 (역할별 사용자 수, 별점 통계)"""
    result = await db.execute(
        select(User.role, func.count(User.id)).group_by(User.role)
    )
    users_by_role = {role.value: 0 for role in UserRole}
    for role, count in result.all():
        users_by_role[role.value] = count

    ratings = await service.get_overall_stats(actor)

    return DashboardResponse(
        users_by_role=users_by_role,
        total_users=sum(users_by_role.values()),
        active_stores=ratings.total_stores,
        ratings=ratings,
    )


@router.get("/users", response_model=UserListResponse)
async def get_users(
    role: Optional[UserRole] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_LIMIT),
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    사용자 목록 조회

    - role: 역할 필터
    - search: 이름/이메일 검색
    """
    conditions = []
    if role is not None:
        conditions.append(User.role == role)
    if search and search.strip():
        term = f"%{search.strip()}%"
        conditions.append(or_(User.name.ilike(term), User.email.ilike(term)))

    stmt = select(User).where(*conditions).order_by(User.created_at.desc(), User.id.desc())
    stmt = stmt.offset((page - 1) * limit).limit(limit)
    result = await db.execute(stmt)
    users = result.scalars().all()

    count_result = await db.execute(select(func.count(User.id)).where(*conditions))

    page_result = Page(
        items=[UserResponse(**u.to_dict()) for u in users],
        current_page=page,
        items_per_page=limit,
        total_items=count_result.scalar() or 0,
    )
    return UserListResponse.from_page(page_result)


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user_by_admin(
    request: AdminUserCreate,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """사용자 생성 (역할 지정 가능)"""
    validate_password(request.password)
    user = await create_user(
        db,
        name=request.name,
        email=request.email,
        password=request.password,
        role=request.role,
        address=request.address,
    )
    await db.commit()

    logger.info(f"관리자 사용자 생성: user_id={user.id}, role={user.role.value}")
    return UserResponse(**user.to_dict())


@router.patch("/users/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: int,
    request: UserStatusUpdate,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """사용자 활성/비활성 처리 (작성한 별점은 유지)"""
    if user_id == actor.id and not request.is_active:
        raise Forbidden("본인 계정은 비활성화할 수 없습니다")

    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("사용자를 찾을 수 없습니다")

    user.is_active = request.is_active
    await db.commit()

    logger.info(f"사용자 상태 변경: user_id={user_id}, is_active={request.is_active}")
    return UserResponse(**user.to_dict())


@router.post("/stores/recompute", response_model=RecomputeResponse)
async def recompute_store_aggregates(
    actor: Actor = Depends(require_admin),
    service: RatingService = Depends(get_rating_service),
):
    """전체 매장 별점 집계 재계산"""
    count = await service.recompute_all_stores(actor)
    return RecomputeResponse(stores=count)
