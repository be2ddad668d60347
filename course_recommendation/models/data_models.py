from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

COURSE_LEVELS = ("beginner", "intermediate", "advanced")

COURSE_SORT_KEYS = ("relevance", "rating", "students", "price", "newest")
MENTOR_SORT_KEYS = ("relevance", "rating", "students", "courses")
SORT_ORDERS = ("asc", "desc")


def parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def dedupe_tags(tags: Optional[List[str]]) -> List[str]:
    return list(dict.fromkeys(t for t in (tags or []) if t))


# ------------------------------------------------------
# Catalog projections
# ------------------------------------------------------
@dataclass
class Course:
    id: str
    title: str
    slug: str = ""
    thumbnail: Optional[str] = None
    short_description: Optional[str] = None
    description: Optional[str] = None
    level: str = "beginner"
    price: float = 0.0
    discount_price: Optional[float] = None
    is_free: bool = False
    is_premium: bool = False
    language: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    category_slug: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    mentor_id: Optional[str] = None
    mentor_name: Optional[str] = None
    mentor_picture: Optional[str] = None
    average_rating: float = 0.0
    total_students: int = 0
    total_reviews: int = 0
    total_views: int = 0
    published_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.tags = dedupe_tags(self.tags)
        self.average_rating = min(max(float(self.average_rating or 0.0), 0.0), 5.0)
        self.total_students = max(int(self.total_students or 0), 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "thumbnail": self.thumbnail,
            "shortDescription": self.short_description,
            "description": self.description,
            "level": self.level,
            "price": self.price,
            "discountPrice": self.discount_price,
            "isFree": self.is_free,
            "isPremium": self.is_premium,
            "language": self.language,
            "category": {
                "id": self.category_id,
                "name": self.category_name,
                "slug": self.category_slug,
            },
            "tags": list(self.tags),
            "mentor": {
                "id": self.mentor_id,
                "name": self.mentor_name,
                "profilePicture": self.mentor_picture,
            },
            "averageRating": self.average_rating,
            "totalStudents": self.total_students,
            "totalReviews": self.total_reviews,
            "totalViews": self.total_views,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Course":
        category = data.get("category") or {}
        mentor = data.get("mentor") or {}
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            slug=data.get("slug") or "",
            thumbnail=data.get("thumbnail"),
            short_description=data.get("shortDescription"),
            description=data.get("description"),
            level=data.get("level") or "beginner",
            price=data.get("price", 0.0),
            discount_price=data.get("discountPrice"),
            is_free=bool(data.get("isFree")),
            is_premium=bool(data.get("isPremium")),
            language=data.get("language"),
            category_id=category.get("id"),
            category_name=category.get("name"),
            category_slug=category.get("slug"),
            tags=list(data.get("tags") or []),
            mentor_id=mentor.get("id"),
            mentor_name=mentor.get("name"),
            mentor_picture=mentor.get("profilePicture"),
            average_rating=data.get("averageRating") or 0.0,
            total_students=data.get("totalStudents") or 0,
            total_reviews=data.get("totalReviews") or 0,
            total_views=data.get("totalViews") or 0,
            published_at=parse_datetime(data.get("publishedAt")),
        )


@dataclass
class Mentor:
    id: str
    name: str
    email: Optional[str] = None
    profile_picture: Optional[str] = None
    headline: Optional[str] = None
    bio: Optional[str] = None
    expertise: List[str] = field(default_factory=list)
    experience: int = 0
    average_rating: float = 0.0
    total_students: int = 0
    total_courses: int = 0
    total_reviews: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "profilePicture": self.profile_picture,
            "headline": self.headline,
            "expertise": list(self.expertise),
            "experience": self.experience,
            "averageRating": self.average_rating,
            "totalStudents": self.total_students,
            "totalCourses": self.total_courses,
        }


# ------------------------------------------------------
# User history rows
# ------------------------------------------------------
@dataclass
class EnrollmentRecord:
    course_id: str
    category_id: Optional[str] = None
    level: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    mentor_id: Optional[str] = None


@dataclass
class ReviewRecord:
    course_id: str
    rating: float


@dataclass
class WishlistRecord:
    course_id: str
    category_id: Optional[str] = None
    level: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class ActivityRecord:
    entity_id: Optional[str]
    created_at: Optional[datetime] = None


@dataclass
class UserAffinityProfile:
    """
    Per-request preference profile. Built on a cache miss, consumed by one
    scoring pass, then dropped.
    """
    user_id: str
    enrolled_course_ids: Set[str] = field(default_factory=set)
    category_affinity: Dict[str, float] = field(default_factory=dict)
    level_affinity: Dict[str, float] = field(default_factory=dict)
    tag_affinity: Dict[str, float] = field(default_factory=dict)
    recently_viewed_course_ids: List[str] = field(default_factory=list)
    reviewed_ratings: Dict[str, float] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (
            self.enrolled_course_ids
            or self.category_affinity
            or self.level_affinity
            or self.tag_affinity
            or self.recently_viewed_course_ids
            or self.reviewed_ratings
        )


@dataclass
class ScoredCandidate:
    course: Course
    score: float
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        data = self.course.to_dict()
        data["score"] = self.score
        data["reason"] = self.reason
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoredCandidate":
        payload = dict(data)
        score = float(payload.pop("score"))
        reason = payload.pop("reason")
        return cls(course=Course.from_dict(payload), score=score, reason=reason)


# ------------------------------------------------------
# Search requests / responses
# ------------------------------------------------------
@dataclass
class SearchFilters:
    query: Optional[str] = None
    category_id: Optional[str] = None
    level: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_rating: Optional[float] = None
    is_free: Optional[bool] = None
    is_premium: Optional[bool] = None
    tags: List[str] = field(default_factory=list)
    language: Optional[str] = None
    page: int = 1
    limit: int = 12
    sort_by: str = "relevance"
    sort_order: str = "desc"


@dataclass
class MentorSearchFilters:
    query: Optional[str] = None
    expertise: List[str] = field(default_factory=list)
    min_rating: Optional[float] = None
    min_experience: Optional[int] = None
    page: int = 1
    limit: int = 12
    sort_by: str = "relevance"
    sort_order: str = "desc"


@dataclass
class FacetBucket:
    label: str
    count: int
    key: Optional[str] = None

    def to_dict(self, label_field: str = "label") -> Dict[str, Any]:
        data: Dict[str, Any] = {label_field: self.label, "count": self.count}
        if self.key is not None:
            data["id"] = self.key
        return data


@dataclass
class CourseFacets:
    categories: List[FacetBucket] = field(default_factory=list)
    levels: List[FacetBucket] = field(default_factory=list)
    price_ranges: List[FacetBucket] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": [
                {"id": b.key, "name": b.label, "count": b.count} for b in self.categories
            ],
            "levels": [b.to_dict("level") for b in self.levels],
            "priceRanges": [b.to_dict("range") for b in self.price_ranges],
        }


@dataclass
class MentorFacets:
    expertise: List[FacetBucket] = field(default_factory=list)
    experience_ranges: List[FacetBucket] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expertise": [b.to_dict("skill") for b in self.expertise],
            "experienceRanges": [b.to_dict("range") for b in self.experience_ranges],
        }


@dataclass
class CourseSearchResult:
    courses: List[Course]
    total: int
    facets: CourseFacets

    def to_dict(self) -> Dict[str, Any]:
        return {
            "courses": [c.to_dict() for c in self.courses],
            "total": self.total,
            "facets": self.facets.to_dict(),
        }


@dataclass
class MentorSearchResult:
    mentors: List[Mentor]
    total: int
    facets: MentorFacets

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mentors": [m.to_dict() for m in self.mentors],
            "total": self.total,
            "facets": self.facets.to_dict(),
        }


@dataclass
class SearchSuggestions:
    courses: List[Dict[str, str]] = field(default_factory=list)
    mentors: List[Dict[str, str]] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"courses": self.courses, "mentors": self.mentors, "tags": self.tags}
