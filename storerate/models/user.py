"""
사용자 모델
이메일/비밀번호 기반 인증, 역할(role) 기반 권한
"""

from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING
from pydantic import BaseModel
from sqlalchemy import String, Boolean, DateTime, Integer
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storerate.database import Base

if TYPE_CHECKING:
    from storerate.models.rating import Rating
    from storerate.models.store import Store


class UserRole(str, Enum):
    """사용자 역할"""

    ADMIN = "admin"  # 시스템 관리자
    STORE_OWNER = "store_owner"  # 매장 점주
    NORMAL_USER = "normal_user"  # 일반 사용자


class Actor(BaseModel):
    """인증된 요청 주체"""

    id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class User(Base):
    """사용자 모델"""

    __tablename__ = "users"

    # Primary Key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # 기본 정보
    name: Mapped[str] = mapped_column(String(60), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(400), nullable=True)

    # 권한
    role: Mapped[UserRole] = mapped_column(
        SAEnum(
            UserRole,
            name="user_role",
            native_enum=False,
            length=20,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=UserRole.NORMAL_USER,
        index=True,
        comment="admin, store_owner, normal_user",
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
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
    )

    # 관계 정의
    ratings: Mapped[list["Rating"]] = relationship(
        "Rating", back_populates="user", passive_deletes=True
    )
    stores: Mapped[list["Store"]] = relationship("Store", back_populates="owner")

    __table_args__ = (
        {"comment": "사용자 테이블"},
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    def to_actor(self) -> Actor:
        return Actor(id=self.id, role=self.role)

    def to_dict(self) -> dict:
        """딕셔너리로 변환 (API 응답용)"""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "address": self.address,
            "role": self.role.value,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
        }
