from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Iterable, List, Optional

from ..config import EngineSettings
from ..data.cache_store import CacheStore, InMemoryCacheStore
from ..data.catalog_store import COURSE_VIEW_ACTION, CatalogStore
from ..models.data_models import ScoredCandidate
from ..rule_based import scoring
from ..rule_based.retriever import CandidateRetriever
from .cache import RecommendationCache, deserialize_candidates, serialize_candidates
from .fallback import empty_list, with_fallback
from .fanout import Deadline, fan_out
from .profile import ProfileAggregator
from .validation import require_id, validate_limit

logger = logging.getLogger(__name__)


class _Uncacheable(list):
    """Ranking produced by the trending fallback after a failure; never cached."""


class RecommendationService:
    """
    Ranked, explained course recommendations.

    Every public operation validates its input first (InvalidFilterError is
    the only error that escapes), then runs under `with_fallback`:
    personalized degrades to trending, every other variant to [].
    """

    def __init__(
        self,
        store: CatalogStore,
        cache_store: Optional[CacheStore] = None,
        settings: Optional[EngineSettings] = None,
        executor: Optional[Executor] = None,
    ):
        self.store = store
        self.settings = settings or EngineSettings()
        self.executor = executor or ThreadPoolExecutor(
            max_workers=self.settings.fanout_workers, thread_name_prefix="reco-fanout"
        )
        self.cache = RecommendationCache(cache_store or InMemoryCacheStore())
        self.retriever = CandidateRetriever(store, self.settings)
        self.profiles = ProfileAggregator(store, self.settings, self.executor)
        # bumped on every personalized recomputation (cache miss)
        self.compute_count = 0

    def _deadline(self) -> Deadline:
        return Deadline(self.settings.request_timeout_seconds)

    # ------------------------------------------------------
    # Personalized
    # ------------------------------------------------------
    def get_personalized_recommendations(self, user_id: str, limit: int = 10) -> List[ScoredCandidate]:
        user_id = require_id(user_id, "user_id")
        validate_limit(limit, self.settings.max_page_size)
        logger.info(f"[Pipeline] personalized user={user_id} limit={limit}")

        ranking = self.cache.get_or_compute(
            self.cache.user_key(user_id),
            self.settings.recommendation_cache_ttl,
            lambda: self._compute_personalized(user_id),
            serialize=serialize_candidates,
            deserialize=deserialize_candidates,
            should_cache=lambda value: not isinstance(value, _Uncacheable),
        )
        result = list(ranking[:limit])
        logger.info(f"[Pipeline] personalized user={user_id} -> {len(result)} results")
        return result

    def _compute_personalized(self, user_id: str) -> List[ScoredCandidate]:
        self.compute_count += 1
        cap = self.settings.personalized_candidate_limit
        return with_fallback(
            lambda: self._personalized_ranking(user_id, self._deadline()),
            lambda: _Uncacheable(self._guarded_trending(cap)),
            label=f"personalized ranking for user {user_id}",
        )

    def _personalized_ranking(self, user_id: str, deadline: Deadline) -> List[ScoredCandidate]:
        cap = self.settings.personalized_candidate_limit

        profile = self.profiles.build(user_id, deadline)
        if profile.is_empty():
            logger.info(f"[Pipeline] user={user_id} has no history, serving trending")
            return self._trending(cap)

        deadline.check("candidate retrieval")
        candidates = self.retriever.personalized(profile)

        deadline.check("scoring")
        ranked = scoring.rank(candidates, scoring.personalized_scorer(profile), cap)
        logger.debug(f"[Pipeline] user={user_id} scored {len(candidates)} candidates")
        return ranked

    def clear_user_cache(self, user_id: str) -> None:
        self.cache.clear_user(require_id(user_id, "user_id"))

    # ------------------------------------------------------
    # Similar / trending / category
    # ------------------------------------------------------
    def get_similar_courses(self, course_id: str, limit: int = 6) -> List[ScoredCandidate]:
        course_id = require_id(course_id, "course_id")
        validate_limit(limit, self.settings.max_page_size)

        def primary() -> List[ScoredCandidate]:
            reference = self.store.get_course(course_id)
            if reference is None:
                logger.info(f"[Pipeline] similar: course {course_id} not found")
                return []
            candidates = self.retriever.similar_to(reference, limit)
            candidates = [c for c in candidates if c.id != reference.id]
            return scoring.rank(candidates, scoring.similar_scorer(reference), limit)

        return with_fallback(primary, empty_list, label=f"similar courses for {course_id}")

    def _trending(self, limit: int) -> List[ScoredCandidate]:
        return scoring.rank(self.retriever.trending(limit), scoring.trending_score, limit)

    def _guarded_trending(self, limit: int) -> List[ScoredCandidate]:
        return with_fallback(lambda: self._trending(limit), empty_list, label="trending courses")

    def get_trending_courses(self, limit: int = 10) -> List[ScoredCandidate]:
        validate_limit(limit, self.settings.max_page_size)
        return self._guarded_trending(limit)

    def get_courses_in_category(
        self,
        category_id: str,
        exclude_ids: Iterable[str] = (),
        limit: int = 6,
    ) -> List[ScoredCandidate]:
        category_id = require_id(category_id, "category_id")
        validate_limit(limit, self.settings.max_page_size)
        exclude = list(exclude_ids or [])

        def primary() -> List[ScoredCandidate]:
            candidates = self.retriever.in_category(category_id, exclude, limit)
            return scoring.rank(candidates, scoring.in_category_score, limit)

        return with_fallback(primary, empty_list, label=f"courses in category {category_id}")

    # ------------------------------------------------------
    # History-driven variants
    # ------------------------------------------------------
    def get_because_you_viewed(self, user_id: str, limit: int = 6) -> List[ScoredCandidate]:
        user_id = require_id(user_id, "user_id")
        validate_limit(limit, self.settings.max_page_size)

        def primary() -> List[ScoredCandidate]:
            deadline = self._deadline()
            views = self.store.query_activity_log(
                user_id, COURSE_VIEW_ACTION, self.settings.because_viewed_window
            )
            viewed_ids = [v.entity_id for v in views if v.entity_id]
            if not viewed_ids:
                return []

            branches = fan_out(
                {
                    "viewed": lambda: self.retriever.by_ids(viewed_ids),
                    "enrollments": lambda: self.store.query_enrollments(user_id),
                },
                timeout=deadline.cap(self.settings.query_timeout_seconds),
                executor=self.executor,
            )
            for b in branches.values():
                if not b.ok:
                    raise b.error

            viewed = branches["viewed"].value.values()
            category_ids = list(dict.fromkeys(c.category_id for c in viewed if c.category_id))
            tags = list(dict.fromkeys(t for c in viewed for t in c.tags))
            exclude = [e.course_id for e in branches["enrollments"].value] + viewed_ids

            deadline.check("because-you-viewed retrieval")
            candidates = self.retriever.matching_any(category_ids, tags, exclude, limit)
            return scoring.rank(candidates, scoring.because_viewed_score, limit)

        return with_fallback(primary, empty_list, label=f"because-you-viewed for user {user_id}")

    def get_courses_from_favorite_mentors(self, user_id: str, limit: int = 6) -> List[ScoredCandidate]:
        user_id = require_id(user_id, "user_id")
        validate_limit(limit, self.settings.max_page_size)

        def primary() -> List[ScoredCandidate]:
            enrollments = self.store.query_enrollments(user_id)
            mentor_ids = list(dict.fromkeys(e.mentor_id for e in enrollments if e.mentor_id))
            if not mentor_ids:
                return []
            exclude = [e.course_id for e in enrollments]
            candidates = self.retriever.by_mentors(mentor_ids, exclude, limit)
            return scoring.rank(candidates, scoring.favorite_mentor_score, limit)

        return with_fallback(primary, empty_list, label=f"favorite mentors for user {user_id}")
