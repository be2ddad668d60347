from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models.data_models import (
    ActivityRecord,
    Course,
    EnrollmentRecord,
    Mentor,
    ReviewRecord,
    WishlistRecord,
)

COURSE_VIEW_ACTION = "course_view"

OrderBy = List[Tuple[str, str]]

# Document field name -> projection attribute. Queries (order_by, group by)
# speak in document field names.
COURSE_FIELDS: Dict[str, str] = {
    "categoryId": "category_id",
    "level": "level",
    "price": "price",
    "isFree": "is_free",
    "isPremium": "is_premium",
    "language": "language",
    "mentorId": "mentor_id",
    "averageRating": "average_rating",
    "totalStudents": "total_students",
    "totalReviews": "total_reviews",
    "totalViews": "total_views",
    "publishedAt": "published_at",
}

MENTOR_FIELDS: Dict[str, str] = {
    "averageRating": "average_rating",
    "totalReviews": "total_reviews",
    "totalStudents": "total_students",
    "totalCourses": "total_courses",
    "experience": "experience",
}


@dataclass
class CourseMatchAny:
    """OR-group: a course matches if it satisfies at least one populated field."""
    category_ids: List[str] = field(default_factory=list)
    levels: List[str] = field(default_factory=list)
    mentor_ids: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.category_ids or self.levels or self.mentor_ids or self.tags)


@dataclass
class CourseQuery:
    """
    Store-level read over published courses. Every populated field narrows
    the result (AND), except `match_any` which is an OR-group of its own.

    `text` matches title / description / short description by
    case-insensitive substring, or any tag equal to a lower-cased query term.
    """
    ids: Optional[List[str]] = None
    exclude_ids: List[str] = field(default_factory=list)
    category_id: Optional[str] = None
    level: Optional[str] = None
    mentor_ids: Optional[List[str]] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_rating: Optional[float] = None
    is_free: Optional[bool] = None
    is_premium: Optional[bool] = None
    tags: List[str] = field(default_factory=list)
    language: Optional[str] = None
    text: Optional[str] = None
    title_contains: Optional[str] = None
    published_after: Optional[Any] = None
    match_any: Optional[CourseMatchAny] = None
    order_by: OrderBy = field(default_factory=list)
    skip: int = 0
    limit: Optional[int] = None


@dataclass
class MentorQuery:
    """Read over approved mentors whose user account is active."""
    text: Optional[str] = None
    name_contains: Optional[str] = None
    expertise: List[str] = field(default_factory=list)
    min_rating: Optional[float] = None
    min_experience: Optional[int] = None
    order_by: OrderBy = field(default_factory=list)
    skip: int = 0
    limit: Optional[int] = None


class CatalogStore(ABC):
    """
    Read-only view of the course catalog and user history.

    Implementations never write; every query is bounded by its `limit`.
    """

    # ---- courses ----
    @abstractmethod
    def query_courses(self, query: CourseQuery) -> List[Course]:
        ...

    @abstractmethod
    def count_courses(self, query: CourseQuery) -> int:
        ...

    @abstractmethod
    def get_course(self, course_id: str) -> Optional[Course]:
        ...

    @abstractmethod
    def group_count_courses(self, query: CourseQuery, field_name: str) -> Dict[Any, int]:
        ...

    @abstractmethod
    def get_category_names(self, category_ids: Iterable[str]) -> Dict[str, str]:
        ...

    # ---- user history ----
    @abstractmethod
    def query_enrollments(self, user_id: str) -> List[EnrollmentRecord]:
        ...

    @abstractmethod
    def query_reviews(self, user_id: str) -> List[ReviewRecord]:
        ...

    @abstractmethod
    def query_wishlist(self, user_id: str) -> List[WishlistRecord]:
        ...

    @abstractmethod
    def query_activity_log(
        self, user_id: str, action: str, limit: int
    ) -> List[ActivityRecord]:
        """Most recent first."""

    # ---- mentors ----
    @abstractmethod
    def query_mentors(self, query: MentorQuery) -> List[Mentor]:
        ...

    @abstractmethod
    def count_mentors(self, query: MentorQuery) -> int:
        ...
