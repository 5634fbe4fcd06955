"""
FastAPI 의존성 모듈
"""

from storerate.dependencies.auth import (
    get_app_settings,
    get_current_actor,
    get_current_actor_optional,
    get_current_user,
    get_jwt_service,
    require_roles,
)
from storerate.dependencies.services import get_rating_service, get_store_service

__all__ = [
    "get_app_settings",
    "get_current_actor",
    "get_current_actor_optional",
    "get_current_user",
    "get_jwt_service",
    "require_roles",
    "get_rating_service",
    "get_store_service",
]
