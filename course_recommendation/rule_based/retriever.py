from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..config import EngineSettings
from ..data.catalog_store import (
    CatalogStore,
    CourseMatchAny,
    CourseQuery,
    MentorQuery,
    OrderBy,
)
from ..models.data_models import Course, MentorSearchFilters, SearchFilters, UserAffinityProfile

logger = logging.getLogger(__name__)

SIMILAR_CANDIDATE_FACTOR = 2

TRENDING_ORDER: OrderBy = [
    ("totalStudents", "desc"),
    ("averageRating", "desc"),
    ("totalViews", "desc"),
]
RATING_FIRST_ORDER: OrderBy = [("averageRating", "desc"), ("totalStudents", "desc")]
RECENT_TRENDING_ORDER: OrderBy = [("totalStudents", "desc"), ("averageRating", "desc")]
FAVORITE_MENTOR_ORDER: OrderBy = [("averageRating", "desc"), ("publishedAt", "desc")]


def course_order(sort_by: str, sort_order: str) -> OrderBy:
    if sort_by == "rating":
        return [("averageRating", sort_order), ("totalReviews", "desc")]
    if sort_by == "students":
        return [("totalStudents", sort_order)]
    if sort_by == "price":
        return [("price", sort_order)]
    if sort_by == "newest":
        return [("publishedAt", sort_order)]
    # relevance
    return [("totalStudents", "desc"), ("averageRating", "desc")]


def mentor_order(sort_by: str, sort_order: str) -> OrderBy:
    if sort_by == "rating":
        return [("averageRating", sort_order), ("totalReviews", "desc")]
    if sort_by == "students":
        return [("totalStudents", sort_order)]
    if sort_by == "courses":
        return [("totalCourses", sort_order)]
    return [("totalStudents", "desc"), ("averageRating", "desc")]


def course_query_from_filters(filters: SearchFilters, paginate: bool = True) -> CourseQuery:
    """
    Translate search filters into a store query. With `paginate=False` the
    query covers the whole filtered universe (used for totals and facets).
    """
    query = CourseQuery(
        category_id=filters.category_id,
        level=filters.level,
        min_price=filters.min_price,
        max_price=filters.max_price,
        min_rating=filters.min_rating,
        is_free=filters.is_free,
        is_premium=filters.is_premium,
        tags=list(filters.tags),
        language=filters.language,
        text=(filters.query or "").strip() or None,
    )
    if paginate:
        query.order_by = course_order(filters.sort_by, filters.sort_order)
        query.skip = (filters.page - 1) * filters.limit
        query.limit = filters.limit
    return query


def mentor_query_from_filters(filters: MentorSearchFilters, paginate: bool = True) -> MentorQuery:
    query = MentorQuery(
        text=(filters.query or "").strip() or None,
        expertise=list(filters.expertise),
        min_rating=filters.min_rating,
        min_experience=filters.min_experience,
    )
    if paginate:
        query.order_by = mentor_order(filters.sort_by, filters.sort_order)
        query.skip = (filters.page - 1) * filters.limit
        query.limit = filters.limit
    return query


class CandidateRetriever:
    """Bounded candidate reads for every ranking variant."""

    def __init__(self, store: CatalogStore, settings: Optional[EngineSettings] = None):
        self.store = store
        self.settings = settings or EngineSettings()

    def _query(self, label: str, query: CourseQuery) -> List[Course]:
        courses = self.store.query_courses(query)
        logger.debug(f"[Retriever] {label}: {len(courses)} candidates (limit={query.limit})")
        return courses

    def personalized(self, profile: UserAffinityProfile) -> List[Course]:
        return self._query(
            "personalized",
            CourseQuery(
                exclude_ids=sorted(profile.enrolled_course_ids),
                limit=self.settings.personalized_candidate_limit,
            ),
        )

    def similar_to(self, reference: Course, limit: int) -> List[Course]:
        match_any = CourseMatchAny(
            category_ids=[reference.category_id] if reference.category_id else [],
            levels=[reference.level] if reference.level else [],
            mentor_ids=[reference.mentor_id] if reference.mentor_id else [],
            tags=list(reference.tags),
        )
        return self._query(
            "similar",
            CourseQuery(
                exclude_ids=[reference.id],
                match_any=match_any,
                limit=SIMILAR_CANDIDATE_FACTOR * limit,
            ),
        )

    def trending(self, limit: int) -> List[Course]:
        return self._query("trending", CourseQuery(order_by=list(TRENDING_ORDER), limit=limit))

    def in_category(self, category_id: str, exclude_ids: Iterable[str], limit: int) -> List[Course]:
        return self._query(
            "in-category",
            CourseQuery(
                category_id=category_id,
                exclude_ids=list(exclude_ids),
                order_by=list(RATING_FIRST_ORDER),
                limit=limit,
            ),
        )

    def matching_any(
        self,
        category_ids: Iterable[str],
        tags: Iterable[str],
        exclude_ids: Iterable[str],
        limit: int,
    ) -> List[Course]:
        return self._query(
            "because-viewed",
            CourseQuery(
                exclude_ids=list(exclude_ids),
                match_any=CourseMatchAny(category_ids=list(category_ids), tags=list(tags)),
                order_by=list(RATING_FIRST_ORDER),
                limit=limit,
            ),
        )

    def by_mentors(self, mentor_ids: Iterable[str], exclude_ids: Iterable[str], limit: int) -> List[Course]:
        return self._query(
            "favorite-mentors",
            CourseQuery(
                mentor_ids=list(mentor_ids),
                exclude_ids=list(exclude_ids),
                order_by=list(FAVORITE_MENTOR_ORDER),
                limit=limit,
            ),
        )

    def by_ids(self, course_ids: Iterable[str]) -> Dict[str, Course]:
        """Lookup by id, published or not. Missing ids are skipped."""
        found: Dict[str, Course] = {}
        for course_id in course_ids:
            course = self.store.get_course(course_id)
            if course is not None:
                found[course.id] = course
        return found

    def published_since(self, since: datetime, limit: int) -> List[Course]:
        return self._query(
            "recent-trending",
            CourseQuery(published_after=since, order_by=list(RECENT_TRENDING_ORDER), limit=limit),
        )
