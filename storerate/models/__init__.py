# SQLAlchemy Models
from storerate.models.user import Actor, User, UserRole
from storerate.models.store import Store
from storerate.models.rating import Rating

# Pydantic Models
from storerate.models.query import (
    MAX_PAGE_LIMIT,
    Page,
    RatingFilters,
    RatingPatch,
    RatingSortField,
    SortOrder,
)

__all__ = [
    # ORM models
    "User",
    "UserRole",
    "Actor",
    "Store",
    "Rating",
    # Query models
    "MAX_PAGE_LIMIT",
    "Page",
    "RatingFilters",
    "RatingPatch",
    "RatingSortField",
    "SortOrder",
]
