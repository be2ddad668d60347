"""
Shared pytest fixtures: the in-memory fixture catalog, an in-memory cache
and ready-made services over them.
"""
import pytest

from course_recommendation.config import EngineSettings
from course_recommendation.data.cache_store import InMemoryCacheStore
from course_recommendation.data.memory_store import InMemoryCatalogStore
from course_recommendation.service.pipeline import RecommendationService
from course_recommendation.service.search import SearchService

from .helpers import WrappedStore


@pytest.fixture
def catalog():
    return InMemoryCatalogStore.from_mock_data()


@pytest.fixture
def cache_store():
    return InMemoryCacheStore()


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def counting_store(catalog):
    return WrappedStore(catalog)


@pytest.fixture
def service(catalog, cache_store, settings):
    return RecommendationService(catalog, cache_store, settings)


@pytest.fixture
def search(catalog, settings):
    return SearchService(catalog, settings)
