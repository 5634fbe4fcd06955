"""
인증 API 엔드포인트
이메일/비밀번호 로그인 및 JWT 토큰 관리
"""

import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select

from storerate.config import Settings
from storerate.database import get_db
from storerate.dependencies.auth import get_app_settings, get_current_user, get_jwt_service
from storerate.exceptions import DuplicateEmail, Unauthenticated
from storerate.models.response import MessageResponse
from storerate.models.user import User, UserRole
from storerate.services.jwt_service import REFRESH_TOKEN, JWTService
from storerate.services.password import get_password_hash, validate_password, verify_password
from storerate.services.store_service import EMAIL_PATTERN

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["인증"])


# ==================== Request/Response Models ====================
class RegisterRequest(BaseModel):
    """회원가입 요청 (일반 사용자)"""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=60)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str
    address: Optional[str] = Field(None, max_length=400)


class LoginRequest(BaseModel):
    """로그인 요청"""

    model_config = ConfigDict(extra="forbid")

    email: str
    password: str


class TokenResponse(BaseModel):
    """토큰 응답"""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class UserResponse(BaseModel):
    """사용자 정보 응답"""

    id: int
    name: str
    email: str
    address: Optional[str]
    role: UserRole
    is_active: bool
    created_at: Optional[str]
    last_login_at: Optional[str]


class RefreshTokenRequest(BaseModel):
    """토큰 갱신 요청"""

    refresh_token: str


class PasswordChangeRequest(BaseModel):
    """비밀번호 변경 요청"""

    model_config = ConfigDict(extra="forbid")

    current_password: str
    new_password: str


class LoginResponse(TokenResponse):
    user: UserResponse


# ==================== 회원가입 / 로그인 ====================
@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    jwt_service: JWTService = Depends(get_jwt_service),
    settings: Settings = Depends(get_app_settings),
):
    """회원가입 (항상 일반 사용자 역할로 생성)"""
    validate_password(request.password)
    user = await create_user(
        db,
        name=request.name,
        email=request.email,
        password=request.password,
        address=request.address,
        role=UserRole.NORMAL_USER,
    )
    await db.commit()

    logger.info(f"회원가입: user_id={user.id}")
    tokens = create_tokens(jwt_service, settings, user)
    return LoginResponse(**tokens, user=UserResponse(**user.to_dict()))


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
    jwt_service: JWTService = Depends(get_jwt_service),
    settings: Settings = Depends(get_app_settings),
):
    """이메일/비밀번호 로그인"""
    result = await db.execute(select(User).where(User.email == normalize_email(request.email)))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(request.password, user.password_hash):
        raise Unauthenticated("이메일 또는 비밀번호가 올바르지 않습니다")

    if not user.is_active:
        raise Unauthenticated("비활성화된 계정입니다")

    # 마지막 로그인 시간 업데이트
    user.last_login_at = datetime.utcnow()
    await db.commit()

    tokens = create_tokens(jwt_service, settings, user)
    return LoginResponse(**tokens, user=UserResponse(**user.to_dict()))


# ==================== 토큰 관리 ====================
@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db),
    jwt_service: JWTService = Depends(get_jwt_service),
    settings: Settings = Depends(get_app_settings),
):
    """토큰 갱신"""
    token_data = jwt_service.verify_token(request.refresh_token, token_type=REFRESH_TOKEN)

    if token_data is None:
        raise Unauthenticated("유효하지 않은 리프레시 토큰입니다")

    # 사용자 존재 확인
    result = await db.execute(select(User).where(User.id == token_data.user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise Unauthenticated("사용자를 찾을 수 없습니다")

    # 새 토큰 발급
    return TokenResponse(**create_tokens(jwt_service, settings, user))


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: User = Depends(get_current_user)):
    """로그아웃 (클라이언트에서 토큰 삭제)"""
    # JWT는 stateless이므로 서버에서 무효화할 수 없음
    return MessageResponse(message="로그아웃 되었습니다")


# ==================== 사용자 정보 ====================
@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """현재 로그인된 사용자 정보 조회"""
    return UserResponse(**current_user.to_dict())


@router.put("/password", response_model=MessageResponse)
async def change_password(
    request: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """비밀번호 변경"""
    if not verify_password(request.current_password, current_user.password_hash):
        raise Unauthenticated("현재 비밀번호가 올바르지 않습니다")

    validate_password(request.new_password)
    current_user.password_hash = get_password_hash(request.new_password)
    await db.commit()

    return MessageResponse(message="비밀번호가 변경되었습니다")


# ==================== Helper Functions ====================
def normalize_email(email: str) -> str:
    return email.strip().lower()


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: UserRole,
    address: Optional[str] = None,
) -> User:
    """사용자 생성 (이메일 중복 시 DuplicateEmail), 커밋은 호출자가 수행"""
    email = normalize_email(email)

    result = await db.execute(select(func.count(User.id)).where(User.email == email))
    if result.scalar():
        raise DuplicateEmail()

    user = User(
        name=name.strip(),
        email=email,
        password_hash=get_password_hash(password),
        address=address,
        role=role,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateEmail() from e
    return user


def create_tokens(jwt_service: JWTService, settings: Settings, user: User) -> dict:
    """JWT 토큰 쌍 생성"""
    access_token = jwt_service.create_access_token(user.id, user.role)
    refresh_token = jwt_service.create_refresh_token(user.id, user.role)
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_in": settings.jwt_expire_minutes * 60,
    }
