import json

import pytest

from course_recommendation.config import EngineSettings
from course_recommendation.data.cache_store import InMemoryCacheStore
from course_recommendation.errors import InvalidFilterError
from course_recommendation.service.fallback import with_fallback
from course_recommendation.service.pipeline import RecommendationService

from .helpers import HISTORY_METHODS, WrappedStore, ids


def _dump(results):
    return json.dumps([r.to_dict() for r in results])


# ------------------------------------------------------
# Personalized
# ------------------------------------------------------
def test_personalized_ranking_for_learner(service):
    results = service.get_personalized_recommendations("u-learner", limit=5)

    assert ids(results)[:3] == ["crs-ml", "crs-pandas", "crs-js-modern"]
    assert len(results) == 5
    by_id = {r.course.id: r for r in results}
    assert by_id["crs-ml"].reason == "You recently viewed this"
    assert by_id["crs-pandas"].reason == "Matches your interests"


def test_personalized_never_returns_enrolled_courses(service):
    results = service.get_personalized_recommendations("u-learner", limit=20)

    assert not {"crs-py-basics", "crs-web-html"} & set(ids(results))
    assert "crs-rust-draft" not in ids(results)


def test_personalized_results_are_sorted(service):
    results = service.get_personalized_recommendations("u-learner", limit=20)
    scores = [r.score for r in results]

    assert scores == sorted(scores, reverse=True)


def test_user_without_history_gets_trending(service):
    results = service.get_personalized_recommendations("u-new", limit=4)

    assert _dump(results) == _dump(service.get_trending_courses(4))
    assert {r.reason for r in results} == {"Trending now"}


def test_total_profile_failure_falls_back_to_trending(catalog, cache_store):
    store = WrappedStore(catalog, failing=HISTORY_METHODS)
    svc = RecommendationService(store, cache_store)

    results = svc.get_personalized_recommendations("u-learner", limit=5)

    assert _dump(results) == _dump(svc.get_trending_courses(5))


def test_fallback_result_is_not_cached(catalog, cache_store):
    store = WrappedStore(catalog, failing=HISTORY_METHODS)
    svc = RecommendationService(store, cache_store)

    svc.get_personalized_recommendations("u-learner", limit=5)
    svc.get_personalized_recommendations("u-learner", limit=5)

    assert svc.compute_count == 2
    assert cache_store.get("recommendations:user:u-learner") is None


def test_catalog_down_gives_empty_personalized_result(catalog, cache_store):
    store = WrappedStore(catalog, failing=HISTORY_METHODS + ("query_courses",))
    svc = RecommendationService(store, cache_store)

    assert svc.get_personalized_recommendations("u-learner", limit=5) == []
    assert cache_store.get("recommendations:user:u-learner") is None


def test_catalog_down_for_user_without_history(catalog, cache_store):
    svc = RecommendationService(WrappedStore(catalog, failing=["query_courses"]), cache_store)

    assert svc.get_personalized_recommendations("u-new", limit=5) == []
    svc.get_personalized_recommendations("u-new", limit=5)
    assert svc.compute_count == 2


def test_expired_deadline_falls_back_to_trending(catalog, cache_store):
    svc = RecommendationService(catalog, cache_store, EngineSettings(request_timeout_seconds=0))

    results = svc.get_personalized_recommendations("u-learner", limit=3)

    assert ids(results) == ["crs-ml", "crs-web-html", "crs-js-modern"]
    assert {r.reason for r in results} == {"Trending now"}


def test_scoring_failure_falls_back_to_trending(catalog, cache_store, monkeypatch):
    svc = RecommendationService(catalog, cache_store)

    def broken(profile):
        raise ZeroDivisionError("bad weight")

    monkeypatch.setattr(svc.retriever, "personalized", broken)

    results = svc.get_personalized_recommendations("u-learner", limit=3)
    assert {r.reason for r in results} == {"Trending now"}


# ------------------------------------------------------
# Cache behaviour
# ------------------------------------------------------
def test_second_call_is_served_from_cache(service):
    first = service.get_personalized_recommendations("u-learner", limit=5)
    second = service.get_personalized_recommendations("u-learner", limit=5)

    assert _dump(first) == _dump(second)
    assert service.compute_count == 1


def test_one_cached_ranking_serves_every_limit(service):
    small = service.get_personalized_recommendations("u-learner", limit=3)
    large = service.get_personalized_recommendations("u-learner", limit=6)

    assert service.compute_count == 1
    assert _dump(large[:3]) == _dump(small)


def test_clear_user_cache_forces_recompute(service):
    service.get_personalized_recommendations("u-learner", limit=5)
    service.clear_user_cache("u-learner")
    service.get_personalized_recommendations("u-learner", limit=5)

    assert service.compute_count == 2


def test_clear_user_cache_only_touches_that_user(service):
    service.get_personalized_recommendations("u-learner", limit=5)
    service.get_personalized_recommendations("u-viewer", limit=5)
    service.clear_user_cache("u-viewer")

    service.get_personalized_recommendations("u-learner", limit=5)
    assert service.compute_count == 2


# ------------------------------------------------------
# Validation
# ------------------------------------------------------
@pytest.mark.parametrize("limit", [0, -1, 101])
def test_bad_limit_is_rejected(service, limit):
    with pytest.raises(InvalidFilterError):
        service.get_personalized_recommendations("u-learner", limit=limit)


def test_empty_ids_are_rejected(service):
    with pytest.raises(InvalidFilterError):
        service.get_personalized_recommendations("", limit=5)
    with pytest.raises(InvalidFilterError):
        service.get_similar_courses("  ", limit=5)
    with pytest.raises(InvalidFilterError):
        service.get_courses_in_category("", limit=5)


def test_with_fallback_reraises_filter_errors():
    def bad():
        raise InvalidFilterError("limit must be positive")

    with pytest.raises(InvalidFilterError):
        with_fallback(bad, list, label="test")

    assert with_fallback(lambda: 1 / 0, lambda: "fallback", label="test") == "fallback"


# ------------------------------------------------------
# Similar / trending / category
# ------------------------------------------------------
def test_similar_courses(service):
    results = service.get_similar_courses("crs-py-basics", limit=6)

    assert "crs-py-basics" not in ids(results)
    assert ids(results)[:2] == ["crs-pandas", "crs-py-advanced"]
    assert len(results) == 6
    assert "crs-git" not in ids(results)
    assert results[0].reason == "From the same instructor"


def test_similar_to_missing_course_is_empty(service):
    assert service.get_similar_courses("crs-does-not-exist", limit=6) == []


def test_similar_candidates_capped_at_twice_limit(catalog, cache_store):
    store = WrappedStore(catalog)
    svc = RecommendationService(store, cache_store)
    seen = []
    original = catalog.query_courses

    def spy(query):
        seen.append(query.limit)
        return original(query)

    catalog.query_courses = spy
    svc.get_similar_courses("crs-py-basics", limit=2)

    assert seen == [4]


def test_trending_order(service):
    results = service.get_trending_courses(limit=3)

    assert ids(results) == ["crs-ml", "crs-web-html", "crs-js-modern"]
    assert [r.score for r in results] == [3200.0, 2500.0, 1800.0]
    assert {r.reason for r in results} == {"Trending now"}


def test_courses_in_category(service):
    results = service.get_courses_in_category("cat-web", exclude_ids=["crs-web-html"], limit=6)

    assert ids(results) == ["crs-js-modern", "crs-react", "crs-git"]
    assert results[0].reason == "Popular in Web Development"


def test_store_failure_in_category_returns_empty(catalog, cache_store):
    svc = RecommendationService(WrappedStore(catalog, failing=["query_courses"]), cache_store)

    assert svc.get_courses_in_category("cat-web", limit=6) == []
    assert svc.get_trending_courses(limit=6) == []


# ------------------------------------------------------
# History-driven variants
# ------------------------------------------------------
def test_because_you_viewed(service):
    results = service.get_because_you_viewed("u-learner", limit=6)

    assert ids(results) == ["crs-pandas", "crs-react", "crs-git", "crs-sql", "crs-py-advanced"]
    assert [r.score for r in results] == pytest.approx([47.0, 44.0, 43.0, 41.0, 40.0])
    assert {r.reason for r in results} == {"Because you viewed similar courses"}


def test_because_you_viewed_without_views_is_empty(service):
    assert service.get_because_you_viewed("u-new", limit=6) == []


def test_because_you_viewed_swallows_store_failure(catalog, cache_store):
    svc = RecommendationService(WrappedStore(catalog, failing=["query_enrollments"]), cache_store)

    assert svc.get_because_you_viewed("u-learner", limit=6) == []


def test_courses_from_favorite_mentors(service):
    results = service.get_courses_from_favorite_mentors("u-learner", limit=6)

    assert ids(results) == ["crs-pandas", "crs-js-modern", "crs-react", "crs-git", "crs-py-advanced"]
    assert results[0].reason == "From instructors you've learned with"


def test_favorite_mentors_without_enrollments_is_empty(service):
    assert service.get_courses_from_favorite_mentors("u-viewer", limit=6) == []


def test_service_works_with_default_cache():
    from course_recommendation.data.memory_store import InMemoryCatalogStore

    svc = RecommendationService(InMemoryCatalogStore.from_mock_data())
    assert isinstance(svc.cache.store, InMemoryCacheStore)
    assert svc.get_personalized_recommendations("u-viewer", limit=2)
