from .catalog_store import CatalogStore, CourseMatchAny, CourseQuery, MentorQuery
from .memory_store import InMemoryCatalogStore
from .mongo_store import MongoCatalogStore
from .cache_store import CacheStore, InMemoryCacheStore, RedisCacheStore
from .preprocess import normalize_text, query_terms

__all__ = [
    "CatalogStore",
    "CourseMatchAny",
    "CourseQuery",
    "MentorQuery",
    "InMemoryCatalogStore",
    "MongoCatalogStore",
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "normalize_text",
    "query_terms",
]
