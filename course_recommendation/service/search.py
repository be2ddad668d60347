from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..config import EngineSettings
from ..data.catalog_store import CatalogStore, CourseQuery, MentorQuery
from ..data.preprocess import normalize_text, query_terms
from ..models.data_models import (
    Course,
    CourseFacets,
    CourseSearchResult,
    MentorFacets,
    MentorSearchFilters,
    MentorSearchResult,
    SearchFilters,
    SearchSuggestions,
)
from ..rule_based.retriever import (
    CandidateRetriever,
    course_query_from_filters,
    mentor_query_from_filters,
)
from .facets import FacetAggregator
from .fallback import empty_list, with_fallback
from .fanout import Deadline, fan_out
from .validation import validate_limit, validate_mentor_filters, validate_search_filters

logger = logging.getLogger(__name__)

SUGGESTION_MIN_LENGTH = 2
TAG_SCAN_LIMIT = 100
RECENT_TRENDING_DAYS = 30


def _raise_failed(branches) -> None:
    for b in branches.values():
        if not b.ok:
            raise b.error


class SearchService:
    """
    Faceted course and mentor search, autocomplete and discovery lists.

    A listing, its total and its facets are read concurrently over the same
    filtered universe. A failed facet branch yields empty facets; a failed
    listing yields an empty result.
    """

    def __init__(
        self,
        store: CatalogStore,
        settings: Optional[EngineSettings] = None,
        executor: Optional[Executor] = None,
    ):
        self.store = store
        self.settings = settings or EngineSettings()
        self.executor = executor or ThreadPoolExecutor(
            max_workers=self.settings.fanout_workers, thread_name_prefix="search-fanout"
        )
        self.facets = FacetAggregator(store)
        self.retriever = CandidateRetriever(store, self.settings)

    def _timeout(self) -> Optional[float]:
        return Deadline(self.settings.request_timeout_seconds).cap(self.settings.query_timeout_seconds)

    # ------------------------------------------------------
    # Courses
    # ------------------------------------------------------
    def search_courses(self, filters: Optional[SearchFilters] = None) -> CourseSearchResult:
        filters = validate_search_filters(filters or SearchFilters(), self.settings.max_page_size)
        logger.info(
            f"[Search] courses query={filters.query!r} page={filters.page} "
            f"limit={filters.limit} sort={filters.sort_by}/{filters.sort_order}"
        )

        def primary() -> CourseSearchResult:
            page_query = course_query_from_filters(filters)
            universe = course_query_from_filters(filters, paginate=False)
            branches = fan_out(
                {
                    "courses": lambda: self.store.query_courses(page_query),
                    "total": lambda: self.store.count_courses(universe),
                    "facets": lambda: self.facets.course_facets(universe),
                },
                timeout=self._timeout(),
                executor=self.executor,
            )
            facets = branches.pop("facets")
            _raise_failed(branches)
            if not facets.ok:
                logger.warning(f"[Search] course facets failed, returning none: {facets.error}")
            return CourseSearchResult(
                courses=branches["courses"].value,
                total=branches["total"].value,
                facets=facets.value if facets.ok else CourseFacets(),
            )

        result = with_fallback(
            primary,
            lambda: CourseSearchResult(courses=[], total=0, facets=CourseFacets()),
            label="course search",
        )
        logger.info(f"[Search] courses -> {len(result.courses)} of {result.total}")
        return result

    # ------------------------------------------------------
    # Mentors
    # ------------------------------------------------------
    def search_mentors(self, filters: Optional[MentorSearchFilters] = None) -> MentorSearchResult:
        filters = validate_mentor_filters(filters or MentorSearchFilters(), self.settings.max_page_size)
        logger.info(f"[Search] mentors query={filters.query!r} page={filters.page} limit={filters.limit}")

        def primary() -> MentorSearchResult:
            page_query = mentor_query_from_filters(filters)
            universe = mentor_query_from_filters(filters, paginate=False)
            branches = fan_out(
                {
                    "mentors": lambda: self.store.query_mentors(page_query),
                    "total": lambda: self.store.count_mentors(universe),
                    "facets": lambda: self.facets.mentor_facets(universe),
                },
                timeout=self._timeout(),
                executor=self.executor,
            )
            facets = branches.pop("facets")
            _raise_failed(branches)
            if not facets.ok:
                logger.warning(f"[Search] mentor facets failed, returning none: {facets.error}")
            return MentorSearchResult(
                mentors=branches["mentors"].value,
                total=branches["total"].value,
                facets=facets.value if facets.ok else MentorFacets(),
            )

        return with_fallback(
            primary,
            lambda: MentorSearchResult(mentors=[], total=0, facets=MentorFacets()),
            label="mentor search",
        )

    # ------------------------------------------------------
    # Autocomplete / discovery
    # ------------------------------------------------------
    def get_search_suggestions(self, query: Optional[str], limit: int = 5) -> SearchSuggestions:
        """
        Autocomplete over course titles, mentor names and course tags.

        Mentor entries carry the mentor profile id, the same id that
        search_mentors returns.
        """
        validate_limit(limit, self.settings.max_page_size)
        if not query or len(query) < SUGGESTION_MIN_LENGTH:
            return SearchSuggestions()

        def primary() -> SearchSuggestions:
            branches = fan_out(
                {
                    "courses": lambda: self.store.query_courses(
                        CourseQuery(title_contains=query, limit=limit)
                    ),
                    "mentors": lambda: self.store.query_mentors(
                        MentorQuery(name_contains=query, limit=limit)
                    ),
                    "tags": lambda: self._matching_tags(query, limit),
                },
                timeout=self._timeout(),
                executor=self.executor,
            )
            _raise_failed(branches)
            return SearchSuggestions(
                courses=[
                    {"id": c.id, "title": c.title, "slug": c.slug}
                    for c in branches["courses"].value
                ],
                mentors=[{"id": m.id, "name": m.name} for m in branches["mentors"].value],
                tags=branches["tags"].value,
            )

        return with_fallback(primary, SearchSuggestions, label="search suggestions")

    def _matching_tags(self, query: str, limit: int) -> List[str]:
        needle = normalize_text(query)
        courses = self.store.query_courses(
            CourseQuery(tags=query_terms(query), limit=TAG_SCAN_LIMIT)
        )
        tags: List[str] = []
        for course in courses:
            for tag in course.tags:
                if needle in tag.lower() and tag not in tags:
                    tags.append(tag)
        return tags[:limit]

    def get_popular_searches(self, limit: int = 10) -> List[str]:
        validate_limit(limit, self.settings.max_page_size)

        def primary() -> List[str]:
            courses = self.store.query_courses(CourseQuery(limit=TAG_SCAN_LIMIT))
            counts = Counter(tag for c in courses for tag in c.tags)
            return [tag for tag, _ in counts.most_common(limit)]

        return with_fallback(primary, empty_list, label="popular searches")

    def global_search(
        self,
        query: Optional[str],
        courses_limit: int = 5,
        mentors_limit: int = 3,
    ) -> Dict[str, Any]:
        course_filters = validate_search_filters(
            SearchFilters(query=query, limit=courses_limit), self.settings.max_page_size
        )
        mentor_filters = validate_mentor_filters(
            MentorSearchFilters(query=query, limit=mentors_limit), self.settings.max_page_size
        )
        # outer branches get their own pool; each search fans out on self.executor
        branches = fan_out(
            {
                "courses": lambda: self.search_courses(course_filters),
                "mentors": lambda: self.search_mentors(mentor_filters),
            },
            timeout=self.settings.request_timeout_seconds,
        )
        for name, b in branches.items():
            if not b.ok:
                logger.warning(f"[Search] global {name} search failed: {b.error}")
        courses = (
            branches["courses"].value
            if branches["courses"].ok
            else CourseSearchResult(courses=[], total=0, facets=CourseFacets())
        )
        mentors = (
            branches["mentors"].value
            if branches["mentors"].ok
            else MentorSearchResult(mentors=[], total=0, facets=MentorFacets())
        )
        return {
            "courses": courses.courses,
            "mentors": mentors.mentors,
            "totalCourses": courses.total,
            "totalMentors": mentors.total,
        }

    def get_recent_trending_courses(
        self,
        limit: int = 10,
        window_days: int = RECENT_TRENDING_DAYS,
        now: Optional[datetime] = None,
    ) -> List[Course]:
        validate_limit(limit, self.settings.max_page_size)
        since = (now or datetime.utcnow()) - timedelta(days=window_days)
        return with_fallback(
            lambda: self.retriever.published_since(since, limit),
            empty_list,
            label="recent trending courses",
        )
