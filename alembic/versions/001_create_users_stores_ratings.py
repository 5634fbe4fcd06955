"""Create users, stores, ratings tables

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(60), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("address", sa.String(400), nullable=True),
        sa.Column(
            "role",
            sa.String(20),
            nullable=False,
            server_default="normal_user",
            comment="admin, store_owner, normal_user",
        ),
        # 메타데이터
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column(
            "updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()
        ),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        comment="사용자 테이블",
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "stores",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.String(400), nullable=True),
        sa.Column(
            "owner_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        # 파생 집계값
        sa.Column(
            "average_rating",
            sa.Numeric(2, 1),
            nullable=False,
            server_default="0.0",
            comment="별점 평균 (소수점 1자리)",
        ),
        sa.Column(
            "total_ratings",
            sa.Integer(),
            nullable=False,
            server_default="0",
            comment="별점 개수",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column(
            "updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()
        ),
        # 제약 조건
        sa.CheckConstraint(
            "average_rating >= 0 AND average_rating <= 5", name="check_average_rating_range"
        ),
        sa.CheckConstraint("total_ratings >= 0", name="check_total_ratings_positive"),
        comment="매장 테이블",
    )
    op.create_index("ix_stores_name", "stores", ["name"])
    op.create_index("ix_stores_owner_id", "stores", ["owner_id"])

    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "store_id",
            sa.Integer(),
            sa.ForeignKey("stores.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("score", sa.Integer(), nullable=False, comment="별점 (1-5)"),
        sa.Column("review", sa.String(1000), nullable=True),
        sa.Column(
            "is_anonymous",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
            comment="익명 여부 (공개 조회 시 작성자 숨김)",
        ),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column(
            "updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()
        ),
        # 제약 조건 (사용자당 매장별 별점 1개)
        sa.UniqueConstraint("user_id", "store_id", name="uq_ratings_user_store"),
        sa.CheckConstraint("score >= 1 AND score <= 5", name="check_score_range"),
        comment="매장 별점 테이블",
    )
    op.create_index("ix_ratings_user_id", "ratings", ["user_id"])
    op.create_index("ix_ratings_store_id", "ratings", ["store_id"])
    op.create_index("ix_ratings_created_at", "ratings", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_ratings_created_at", table_name="ratings")
    op.drop_index("ix_ratings_store_id", table_name="ratings")
    op.drop_index("ix_ratings_user_id", table_name="ratings")
    op.drop_table("ratings")

    op.drop_index("ix_stores_owner_id", table_name="stores")
    op.drop_index("ix_stores_name", table_name="stores")
    op.drop_table("stores")

    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
