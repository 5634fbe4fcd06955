"""
인증 의존성
Bearer 토큰에서 요청 주체(Actor)를 확인합니다.
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from storerate.config import Settings
from storerate.database import get_db
from storerate.exceptions import Forbidden, Unauthenticated
from storerate.models.user import Actor, User, UserRole
from storerate.services.jwt_service import JWTService

# Bearer 토큰 스키마
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """앱에 주입된 설정"""
    return request.app.state.settings


def get_jwt_service(request: Request) -> JWTService:
    return request.app.state.jwt_service


async def resolve_user(db: AsyncSession, jwt_service: JWTService, token: Optional[str]) -> User:
    """
    토큰으로 활성 사용자 조회

    Raises:
        Unauthenticated: 토큰 없음/형식 오류/만료, 사용자 없음 또는 비활성
    """
    if not token:
        raise Unauthenticated()

    token_data = jwt_service.verify_token(token)
    if token_data is None:
        raise Unauthenticated("유효하지 않은 토큰입니다")

    # 사용자 조회
    result = await db.execute(select(User).where(User.id == token_data.user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise Unauthenticated("사용자를 찾을 수 없거나 비활성화된 계정입니다")

    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
    jwt_service: JWTService = Depends(get_jwt_service),
) -> User:
    """
    현재 로그인된 사용자 조회 (필수)
    토큰이 없거나 유효하지 않으면 401 에러
    """
    token = credentials.credentials if credentials is not None else None
    return await resolve_user(db, jwt_service, token)


async def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    return current_user.to_actor()


async def get_current_actor_optional(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
    jwt_service: JWTService = Depends(get_jwt_service),
) -> Optional[Actor]:
    """
    현재 로그인된 사용자 조회 (선택)
    토큰이 없거나 유효하지 않으면 None 반환
    """
    if credentials is None:
        return None

    try:
        user = await resolve_user(db, jwt_service, credentials.credentials)
    except Unauthenticated:
        return None
    return user.to_actor()


def require_roles(*roles: UserRole):
    """역할 기반 권한 의존성"""

    async def checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            allowed = " 또는 ".join(r.value for r in roles)
            raise Forbidden(f"{allowed} 권한이 필요합니다")
        return actor

    return checker
