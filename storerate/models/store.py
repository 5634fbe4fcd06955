"""
매장 모델
average_rating / total_ratings 는 별점에서 파생되는 값이며
StoreAggregateMaintainer 만 갱신합니다.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Integer, Numeric, Boolean, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storerate.database import Base

if TYPE_CHECKING:
    from storerate.models.rating import Rating
    from storerate.models.user import User


class Store(Base):
    """매장 모델"""

    __tablename__ = "stores"

    # Primary Key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # 매장 정보
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(400), nullable=True)

    # 점주 연결
    owner_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # 파생 집계값
    average_rating: Mapped[Decimal] = mapped_column(
        Numeric(2, 1),
        nullable=False,
        default=Decimal("0.0"),
        comment="별점 평균 (소수점 1자리)",
    )
    total_ratings: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="별점 개수",
    )

    # 메타데이터
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # 관계
    owner: Mapped[Optional["User"]] = relationship("User", back_populates="stores")
    ratings: Mapped[list["Rating"]] = relationship(
        "Rating", back_populates="store", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint(
            "average_rating >= 0 AND average_rating <= 5", name="check_average_rating_range"
        ),
        CheckConstraint("total_ratings >= 0", name="check_total_ratings_positive"),
        {"comment": "매장 테이블"},
    )

    def __repr__(self) -> str:
        return f"<Store(id={self.id}, name={self.name})>"
