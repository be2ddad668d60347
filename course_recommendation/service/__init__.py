from .pipeline import RecommendationService
from .search import SearchService
from .fallback import with_fallback

__all__ = ["RecommendationService", "SearchService", "with_fallback"]
