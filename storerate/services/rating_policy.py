"""
별점 권한 정책
I/O 없는 순수 판단 함수
"""

from typing import Optional

from storerate.models.user import Actor, UserRole


def can_create(actor_role: UserRole) -> bool:
    """별점 작성 가능 여부 (일반 사용자만 작성, 관리자는 관리만)"""
    return actor_role == UserRole.NORMAL_USER


def can_mutate(actor_id: int, actor_role: UserRole, rating_owner_id: int) -> bool:
    """별점 수정/삭제 가능 여부 (작성자 본인 또는 관리자)"""
    return actor_role == UserRole.ADMIN or actor_id == rating_owner_id


def can_view_unredacted(
    actor_id: Optional[int],
    actor_role: Optional[UserRole],
    rating_owner_id: int,
) -> bool:
    """익명 별점의 작성자 정보 열람 가능 여부"""
    if actor_id is None:
        return False
    return actor_role == UserRole.ADMIN or actor_id == rating_owner_id


def can_view_user_ratings(actor: Actor, user_id: int) -> bool:
    return actor.role == UserRole.ADMIN or actor.id == user_id


def can_view_all(actor_role: UserRole) -> bool:
    return actor_role == UserRole.ADMIN


def should_redact(viewer: Optional[Actor], rating_owner_id: int, is_anonymous: bool) -> bool:
    """공개 응답에서 작성자 정보를 숨겨야 하는지"""
    if not is_anonymous:
        return False
    if viewer is None:
        return True
    return not can_view_unredacted(viewer.id, viewer.role, rating_owner_id)
