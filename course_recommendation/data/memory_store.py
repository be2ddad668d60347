from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..models.data_models import (
    ActivityRecord,
    Course,
    EnrollmentRecord,
    Mentor,
    ReviewRecord,
    WishlistRecord,
)
from .catalog_store import (
    COURSE_FIELDS,
    MENTOR_FIELDS,
    CatalogStore,
    CourseQuery,
    MentorQuery,
)
from .preprocess import contains_ci, query_terms
from . import mock_data


def _sorted(items: List[Any], order_by: Sequence[Tuple[str, str]], fields: Dict[str, str]) -> List[Any]:
    # stable multi-key sort: apply the least significant key first.
    # None sorts lowest, like null in Mongo.
    result = list(items)
    for field_name, direction in reversed(list(order_by)):
        attr = fields[field_name]
        result.sort(
            key=lambda item: (getattr(item, attr) is not None, getattr(item, attr)),
            reverse=(direction == "desc"),
        )
    return result


def _window(items: List[Any], skip: int, limit: Optional[int]) -> List[Any]:
    end = None if limit is None else skip + limit
    return items[skip:end]


def course_matches(course: Course, query: CourseQuery) -> bool:
    if query.ids is not None and course.id not in query.ids:
        return False
    if course.id in query.exclude_ids:
        return False
    if query.category_id and course.category_id != query.category_id:
        return False
    if query.level and course.level != query.level:
        return False
    if query.mentor_ids is not None and course.mentor_id not in query.mentor_ids:
        return False
    if query.min_price is not None and course.price < query.min_price:
        return False
    if query.max_price is not None and course.price > query.max_price:
        return False
    if query.min_rating is not None and course.average_rating < query.min_rating:
        return False
    if query.is_free is not None and course.is_free != query.is_free:
        return False
    if query.is_premium is not None and course.is_premium != query.is_premium:
        return False
    if query.tags and not set(t.lower() for t in query.tags) & set(course.tags):
        return False
    if query.language and course.language != query.language:
        return False
    if query.published_after is not None and (
        course.published_at is None or course.published_at < query.published_after
    ):
        return False
    if query.title_contains and not contains_ci(course.title, query.title_contains):
        return False

    if query.text:
        text_hit = (
            contains_ci(course.title, query.text)
            or contains_ci(course.description, query.text)
            or contains_ci(course.short_description, query.text)
            or bool(set(query_terms(query.text)) & set(course.tags))
        )
        if not text_hit:
            return False

    if query.match_any is not None:
        any_of = query.match_any
        if not (
            course.category_id in any_of.category_ids
            or course.level in any_of.levels
            or course.mentor_id in any_of.mentor_ids
            or bool(set(any_of.tags) & set(course.tags))
        ):
            return False

    return True


def mentor_matches(mentor: Mentor, query: MentorQuery) -> bool:
    if query.text:
        text_hit = (
            contains_ci(mentor.name, query.text)
            or contains_ci(mentor.email, query.text)
            or contains_ci(mentor.headline, query.text)
            or contains_ci(mentor.bio, query.text)
            or bool(set(query_terms(query.text)) & set(mentor.expertise))
        )
        if not text_hit:
            return False
    if query.name_contains and not contains_ci(mentor.name, query.name_contains):
        return False
    if query.expertise and not set(e.lower() for e in query.expertise) & set(mentor.expertise):
        return False
    if query.min_rating is not None and mentor.average_rating < query.min_rating:
        return False
    if query.min_experience is not None and mentor.experience < query.min_experience:
        return False
    return True


class InMemoryCatalogStore(CatalogStore):
    """
    List-backed catalog with the same query semantics as MongoCatalogStore.

    Used by tests and by the `memory` catalog backend.
    """

    def __init__(
        self,
        courses: Iterable[Course],
        categories: Optional[Dict[str, Dict[str, str]]] = None,
        mentors: Iterable[Mentor] = (),
        history: Optional[Dict[str, Dict[str, Any]]] = None,
        draft_courses: Iterable[Course] = (),
        pending_mentors: Iterable[Mentor] = (),
    ):
        self.courses: List[Course] = list(courses)
        self.draft_courses: List[Course] = list(draft_courses)
        self.categories = dict(categories or {})
        self.mentors: List[Mentor] = list(mentors)
        self.pending_mentors: List[Mentor] = list(pending_mentors)
        self.history = dict(history or {})

    @classmethod
    def from_mock_data(cls) -> "InMemoryCatalogStore":
        return cls(
            courses=mock_data.get_mock_courses(),
            categories=mock_data.CATEGORIES,
            mentors=mock_data.get_mock_mentors(),
            history=mock_data.get_mock_history(),
            draft_courses=mock_data.get_mock_draft_courses(),
            pending_mentors=mock_data.get_mock_pending_mentors(),
        )

    def _any_course(self, course_id: str) -> Optional[Course]:
        for c in self.courses + self.draft_courses:
            if c.id == course_id:
                return c
        return None

    def _user(self, user_id: str) -> Dict[str, Any]:
        return self.history.get(user_id) or {}

    # ---- courses ----
    def _matching_courses(self, query: CourseQuery) -> List[Course]:
        return [c for c in self.courses if course_matches(c, query)]

    def query_courses(self, query: CourseQuery) -> List[Course]:
        rows = _sorted(self._matching_courses(query), query.order_by, COURSE_FIELDS)
        return _window(rows, query.skip, query.limit)

    def count_courses(self, query: CourseQuery) -> int:
        return len(self._matching_courses(query))

    def get_course(self, course_id: str) -> Optional[Course]:
        return self._any_course(course_id)

    def group_count_courses(self, query: CourseQuery, field_name: str) -> Dict[Any, int]:
        attr = COURSE_FIELDS[field_name]
        return dict(Counter(getattr(c, attr) for c in self._matching_courses(query)))

    def get_category_names(self, category_ids: Iterable[str]) -> Dict[str, str]:
        return {
            cid: self.categories[cid]["name"]
            for cid in category_ids
            if cid in self.categories
        }

    # ---- user history ----
    def query_enrollments(self, user_id: str) -> List[EnrollmentRecord]:
        result = []
        for course_id in self._user(user_id).get("enrollments", []):
            course = self._any_course(course_id)
            if course is None:
                continue
            result.append(EnrollmentRecord(
                course_id=course.id,
                category_id=course.category_id,
                level=course.level,
                tags=list(course.tags),
                mentor_id=course.mentor_id,
            ))
        return result

    def query_reviews(self, user_id: str) -> List[ReviewRecord]:
        return [
            ReviewRecord(course_id=course_id, rating=rating)
            for course_id, rating in self._user(user_id).get("reviews", [])
        ]

    def query_wishlist(self, user_id: str) -> List[WishlistRecord]:
        result = []
        for course_id in self._user(user_id).get("wishlist", []):
            course = self._any_course(course_id)
            if course is None:
                continue
            result.append(WishlistRecord(
                course_id=course.id,
                category_id=course.category_id,
                level=course.level,
                tags=list(course.tags),
            ))
        return result

    def query_activity_log(self, user_id: str, action: str, limit: int) -> List[ActivityRecord]:
        events = [e for e in self._user(user_id).get("activity", []) if e[0] == action]
        events.sort(key=lambda e: e[2], reverse=True)
        return [ActivityRecord(entity_id=e[1], created_at=e[2]) for e in events[:limit]]

    # ---- mentors ----
    def _matching_mentors(self, query: MentorQuery) -> List[Mentor]:
        return [m for m in self.mentors if mentor_matches(m, query)]

    def query_mentors(self, query: MentorQuery) -> List[Mentor]:
        rows = _sorted(self._matching_mentors(query), query.order_by, MENTOR_FIELDS)
        return _window(rows, query.skip, query.limit)

    def count_mentors(self, query: MentorQuery) -> int:
        return len(self._matching_mentors(query))
