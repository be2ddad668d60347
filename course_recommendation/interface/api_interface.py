from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Optional

from .. import config
from ..config import EngineSettings
from ..data.cache_store import CacheStore, InMemoryCacheStore, RedisCacheStore
from ..data.catalog_store import CatalogStore
from ..data.memory_store import InMemoryCatalogStore
from ..data.mongo_store import MongoCatalogStore
from ..models.data_models import MentorSearchFilters, ScoredCandidate, SearchFilters
from ..service.pipeline import RecommendationService
from ..service.search import SearchService

logger = logging.getLogger(__name__)

# Store / service singletons
_catalog_store: Optional[CatalogStore] = None
_cache_store: Optional[CacheStore] = None
_settings: Optional[EngineSettings] = None
_recommendation_service: Optional[RecommendationService] = None
_search_service: Optional[SearchService] = None


def _get_settings() -> EngineSettings:
    global _settings
    if _settings is None:
        _settings = EngineSettings.from_env()
    return _settings


def _get_catalog_store() -> CatalogStore:
    global _catalog_store
    if _catalog_store is None:
        if config.CATALOG_BACKEND == "memory":
            logger.info("[API] catalog backend: in-memory fixture catalog")
            _catalog_store = InMemoryCatalogStore.from_mock_data()
        else:
            logger.info("[API] catalog backend: MongoDB")
            _catalog_store = MongoCatalogStore(
                max_time_ms=int(_get_settings().query_timeout_seconds * 1000)
            )
    return _catalog_store


def _get_cache_store() -> CacheStore:
    global _cache_store
    if _cache_store is None:
        if config.CACHE_BACKEND == "memory":
            _cache_store = InMemoryCacheStore()
        else:
            _cache_store = RedisCacheStore()
    return _cache_store


def _get_recommendation_service() -> RecommendationService:
    global _recommendation_service
    if _recommendation_service is None:
        _recommendation_service = RecommendationService(
            _get_catalog_store(), _get_cache_store(), _get_settings()
        )
    return _recommendation_service


def _get_search_service() -> SearchService:
    global _search_service
    if _search_service is None:
        _search_service = SearchService(_get_catalog_store(), _get_settings())
    return _search_service


def configure(
    catalog_store: Optional[CatalogStore] = None,
    cache_store: Optional[CacheStore] = None,
    settings: Optional[EngineSettings] = None,
) -> None:
    """Replace the process-wide stores (tests, embedding). Services are rebuilt lazily."""
    global _catalog_store, _cache_store, _settings, _recommendation_service, _search_service
    _catalog_store = catalog_store
    _cache_store = cache_store
    _settings = settings
    _recommendation_service = None
    _search_service = None


def _ranked(results: List[ScoredCandidate], **meta: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = dict(meta)
    payload["count"] = len(results)
    payload["results"] = [r.to_dict() for r in results]
    return payload


# ------------------------------------------------------
# Recommendations
# ------------------------------------------------------
def get_personalized_recommendations(user_id: str, limit: int = 10) -> Dict[str, Any]:
    results = _get_recommendation_service().get_personalized_recommendations(user_id, limit)
    return _ranked(results, user_id=user_id)


def get_similar_course_recommendations(course_id: str, limit: int = 6) -> Dict[str, Any]:
    results = _get_recommendation_service().get_similar_courses(course_id, limit)
    return _ranked(results, course_id=course_id)


def get_trending_recommendations(limit: int = 10) -> Dict[str, Any]:
    return _ranked(_get_recommendation_service().get_trending_courses(limit))


def get_category_recommendations(
    category_id: str,
    exclude_ids: Iterable[str] = (),
    limit: int = 6,
) -> Dict[str, Any]:
    results = _get_recommendation_service().get_courses_in_category(category_id, exclude_ids, limit)
    return _ranked(results, category_id=category_id)


def get_because_you_viewed_recommendations(user_id: str, limit: int = 6) -> Dict[str, Any]:
    results = _get_recommendation_service().get_because_you_viewed(user_id, limit)
    return _ranked(results, user_id=user_id)


def get_favorite_mentor_recommendations(user_id: str, limit: int = 6) -> Dict[str, Any]:
    results = _get_recommendation_service().get_courses_from_favorite_mentors(user_id, limit)
    return _ranked(results, user_id=user_id)


def clear_user_recommendations(user_id: str) -> Dict[str, Any]:
    """
    Drop a user's cached personalized ranking. Call after any change to
    the user's enrollments, reviews or wishlist.
    """
    _get_recommendation_service().clear_user_cache(user_id)
    return {"ok": True, "user_id": user_id}


# ------------------------------------------------------
# Search
# ------------------------------------------------------
def search_courses(filters: SearchFilters) -> Dict[str, Any]:
    return _get_search_service().search_courses(filters).to_dict()


def search_mentors(filters: MentorSearchFilters) -> Dict[str, Any]:
    return _get_search_service().search_mentors(filters).to_dict()


def get_search_suggestions(query: Optional[str], limit: int = 5) -> Dict[str, Any]:
    return _get_search_service().get_search_suggestions(query, limit).to_dict()


def get_popular_searches(limit: int = 10) -> List[str]:
    return _get_search_service().get_popular_searches(limit)


def global_search(query: str, courses_limit: int = 5, mentors_limit: int = 3) -> Dict[str, Any]:
    result = _get_search_service().global_search(query, courses_limit, mentors_limit)
    return {
        "query": query,
        "courses": {
            "items": [c.to_dict() for c in result["courses"]],
            "total": result["totalCourses"],
        },
        "mentors": {
            "items": [m.to_dict() for m in result["mentors"]],
            "total": result["totalMentors"],
        },
    }


def get_recent_trending_courses(limit: int = 10) -> List[Dict[str, Any]]:
    return [c.to_dict() for c in _get_search_service().get_recent_trending_courses(limit)]
