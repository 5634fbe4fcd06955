"""
별점 모델
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import (
    String,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storerate.database import Base

if TYPE_CHECKING:
    from storerate.models.store import Store
    from storerate.models.user import User

SCORE_MIN = 1
SCORE_MAX = 5
REVIEW_MAX_LENGTH = 1000

UNIQUE_USER_STORE = "uq_ratings_user_store"


class Rating(Base):
    """매장 별점 모델"""

    __tablename__ = "ratings"

    # Primary Key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # 작성자 (생성 후 변경 불가)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # 매장 (생성 후 변경 불가)
    store_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # 별점 (1-5)
    score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="별점 (1-5)",
    )
    review: Mapped[Optional[str]] = mapped_column(
        String(REVIEW_MAX_LENGTH),
        nullable=True,
    )
    is_anonymous: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="익명 여부 (공개 조회 시 작성자 숨김)",
    )

    # 메타데이터
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # 관계
    user: Mapped["User"] = relationship("User", back_populates="ratings")
    store: Mapped["Store"] = relationship("Store", back_populates="ratings")

    __table_args__ = (
        UniqueConstraint("user_id", "store_id", name=UNIQUE_USER_STORE),
        CheckConstraint("score >= 1 AND score <= 5", name="check_score_range"),
        {"comment": "매장 별점 테이블"},
    )

    def __repr__(self) -> str:
        return f"<Rating(id={self.id}, store_id={self.store_id}, score={self.score})>"
