"""
JWT 토큰 서비스
"""

from datetime import datetime, timedelta
from typing import Optional
from jose import jwt, JWTError
from pydantic import BaseModel, ValidationError

from storerate.config import Settings
from storerate.models.user import UserRole

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


class TokenData(BaseModel):
    """토큰 데이터"""

    user_id: int
    role: UserRole
    token_type: str
    exp: datetime


class JWTService:
    """JWT 토큰 서비스"""

    def __init__(self, settings: Settings):
        self.secret_key = settings.jwt_secret_key
        self.algorithm = settings.jwt_algorithm
        self.expire_minutes = settings.jwt_expire_minutes
        self.refresh_expire_days = settings.jwt_refresh_expire_days
        self.issuer = settings.jwt_issuer
        self.audience = settings.jwt_audience

    def _encode(self, user_id: int, role: UserRole, token_type: str, expire: datetime) -> str:
        payload = {
            "sub": str(user_id),
            "role": role.value,
            "exp": expire,
            "iat": datetime.utcnow(),
            "type": token_type,
            "iss": self.issuer,
            "aud": self.audience,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def create_access_token(
        self,
        user_id: int,
        role: UserRole,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """액세스 토큰 생성"""
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=self.expire_minutes)
        return self._encode(user_id, role, ACCESS_TOKEN, expire)

    def create_refresh_token(self, user_id: int, role: UserRole) -> str:
        """리프레시 토큰 생성"""
        expire = datetime.utcnow() + timedelta(days=self.refresh_expire_days)
        return self._encode(user_id, role, REFRESH_TOKEN, expire)

    def verify_token(self, token: str, token_type: str = ACCESS_TOKEN) -> Optional[TokenData]:
        """
        토큰 검증 및 디코딩

        서명/만료/발급자/대상이 맞지 않거나 토큰 종류가 다르면 None 반환
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except JWTError:
            return None

        if payload.get("type") != token_type:
            return None

        try:
            return TokenData(
                user_id=payload.get("sub"),
                role=payload.get("role"),
                token_type=payload.get("type"),
                exp=datetime.utcfromtimestamp(payload.get("exp")),
            )
        except (ValidationError, TypeError, ValueError):
            return None
