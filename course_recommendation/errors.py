from __future__ import annotations


class RecommendationError(Exception):
    """Base class for engine errors."""


class InvalidFilterError(RecommendationError, ValueError):
    """
    Caller-side input problem (bad limit, unknown sort key, ...).

    The only error class that is allowed to reach callers of the engine.
    """


class ProfileBuildError(RecommendationError):
    """Every historical sub-query of a profile build failed."""


class DeadlineExceeded(RecommendationError):
    pass


class CacheError(RecommendationError):
    pass
