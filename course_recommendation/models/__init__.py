from .data_models import (
    Course,
    CourseFacets,
    CourseSearchResult,
    FacetBucket,
    Mentor,
    MentorFacets,
    MentorSearchFilters,
    MentorSearchResult,
    ScoredCandidate,
    SearchFilters,
    SearchSuggestions,
    UserAffinityProfile,
)

__all__ = [
    "Course",
    "CourseFacets",
    "CourseSearchResult",
    "FacetBucket",
    "Mentor",
    "MentorFacets",
    "MentorSearchFilters",
    "MentorSearchResult",
    "ScoredCandidate",
    "SearchFilters",
    "SearchSuggestions",
    "UserAffinityProfile",
]
