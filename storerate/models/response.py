"""
응답 모델 정의
API 공통 응답 관련 Pydantic 모델
"""
from typing import Generic, List, TypeVar

from pydantic import BaseModel, Field

from storerate.models.query import Page

T = TypeVar("T")


class PaginationInfo(BaseModel):
    """페이지네이션 정보"""

    current_page: int = Field(..., description="현재 페이지")
    total_pages: int = Field(..., description="전체 페이지 수")
    total_items: int = Field(..., description="전체 항목 수")
    items_per_page: int = Field(..., description="페이지당 항목 수")
    has_next_page: bool
    has_prev_page: bool


class PaginatedResponse(BaseModel, Generic[T]):
    """목록 응답"""

    items: List[T]
    pagination: PaginationInfo

    @classmethod
    def from_page(cls, page: Page, **extra):
        return cls(items=page.items, pagination=PaginationInfo(**page.pagination()), **extra)


class MessageResponse(BaseModel):
    """단순 메시지 응답"""

    message: str

