"""
비밀번호 해시 및 정책 검증
"""

import re

from passlib.context import CryptContext

from storerate.exceptions import ValidationError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 16
_UPPERCASE = re.compile(r"[A-Z]")
_SPECIAL = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def validate_password(password: str) -> str:
    """비밀번호 정책: 8-16자, 대문자 1개 이상, 특수문자 1개 이상"""
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        raise ValidationError(
            f"비밀번호는 {PASSWORD_MIN_LENGTH}-{PASSWORD_MAX_LENGTH}자여야 합니다"
        )
    if not _UPPERCASE.search(password):
        raise ValidationError("비밀번호에 대문자가 1개 이상 포함되어야 합니다")
    if not _SPECIAL.search(password):
        raise ValidationError("비밀번호에 특수문자가 1개 이상 포함되어야 합니다")
    return password
