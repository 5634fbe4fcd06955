"""
목록 조회 / 수정 요청 모델
필터, 정렬, 페이지네이션 및 부분 수정(patch) 정의
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt

T = TypeVar("T")

MAX_PAGE_LIMIT = 100


class SortOrder(str, Enum):
    """정렬 방향"""

    ASC = "asc"
    DESC = "desc"


class RatingSortField(str, Enum):
    """별점 정렬 기준"""

    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    SCORE = "score"


class RatingFilters(BaseModel):
    """별점 목록 필터"""

    score_equals: Optional[int] = Field(None, description="특정 별점만")
    score_min: Optional[int] = Field(None, description="최소 별점")
    score_max: Optional[int] = Field(None, description="최대 별점")
    has_review: Optional[bool] = Field(None, description="리뷰 작성 여부")

    # 전체 목록(관리자)에서만 사용
    store_id: Optional[int] = None
    user_id: Optional[int] = None

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)

    # 화이트리스트에 없는 값은 저장소에서 created_at desc 로 대체
    sort_by: str = RatingSortField.CREATED_AT.value
    sort_order: str = SortOrder.DESC.value

    @property
    def effective_limit(self) -> int:
        return min(self.limit, MAX_PAGE_LIMIT)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.effective_limit


class RatingPatch(BaseModel):
    """별점 부분 수정 요청"""

    model_config = ConfigDict(extra="forbid")

    score: Optional[StrictInt] = None
    review: Optional[str] = None
    is_anonymous: Optional[StrictBool] = None

    def changes(self) -> dict:
        """실제로 전달된 필드만 반환"""
        data = {name: getattr(self, name) for name in self.model_fields_set}
        if data.get("is_anonymous", False) is None:
            data.pop("is_anonymous")
        return data


@dataclass
class Page(Generic[T]):
    """페이지 단위 조회 결과"""

    items: List[T]
    current_page: int
    items_per_page: int
    total_items: int

    @property
    def total_pages(self) -> int:
        if self.total_items == 0:
            return 0
        return math.ceil(self.total_items / self.items_per_page)

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    def pagination(self) -> dict:
        return {
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "total_items": self.total_items,
            "items_per_page": self.items_per_page,
            "has_next_page": self.has_next_page,
            "has_prev_page": self.has_prev_page,
        }

    def map(self, func) -> "Page":
        return Page(
            items=[func(item) for item in self.items],
            current_page=self.current_page,
            items_per_page=self.items_per_page,
            total_items=self.total_items,
        )
