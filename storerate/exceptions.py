"""
도메인 예외 정의
API 계층은 code / status_code만 보고 HTTP 응답을 결정합니다.
"""

from typing import Optional


class StoreRatingError(Exception):
    """서비스 예외 베이스 클래스"""

    code: str = "error"
    status_code: int = 500
    default_message: str = "요청을 처리할 수 없습니다"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class Unauthenticated(StoreRatingError):
    """인증 정보가 없거나 유효하지 않음"""

    code = "unauthenticated"
    status_code = 401
    default_message = "인증이 필요합니다"


class Forbidden(StoreRatingError):
    """인증은 되었으나 권한 없음"""

    code = "forbidden"
    status_code = 403
    default_message = "권한이 없습니다"


class NotFound(StoreRatingError):
    code = "not_found"
    status_code = 404
    default_message = "리소스를 찾을 수 없습니다"


class ValidationError(StoreRatingError):
    """입력값 형식 오류"""

    code = "validation_error"
    status_code = 400
    default_message = "입력값이 올바르지 않습니다"


class InvalidScore(ValidationError):
    """별점이 1-5 범위의 정수가 아님"""

    code = "invalid_score"
    default_message = "별점은 1에서 5 사이의 정수여야 합니다"


class NoOp(ValidationError):
    """수정할 필드가 없음"""

    code = "no_changes"
    default_message = "수정할 항목이 없습니다"


class DuplicateRating(StoreRatingError):
    """(user_id, store_id) 유니크 제약 위반"""

    code = "duplicate_rating"
    status_code = 409
    default_message = "이미 별점을 등록한 매장입니다"


class DuplicateEmail(StoreRatingError):
    code = "duplicate_email"
    status_code = 409
    default_message = "이미 사용 중인 이메일입니다"


class StorageError(StoreRatingError):
    """저장소 오류 (연결 끊김, 분류되지 않은 제약 위반 등)"""

    code = "storage_error"
    status_code = 503
    default_message = "일시적인 저장소 오류가 발생했습니다"
