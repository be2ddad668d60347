from .api_interface import (
    clear_user_recommendations,
    configure,
    get_because_you_viewed_recommendations,
    get_category_recommendations,
    get_favorite_mentor_recommendations,
    get_personalized_recommendations,
    get_popular_searches,
    get_recent_trending_courses,
    get_search_suggestions,
    get_similar_course_recommendations,
    get_trending_recommendations,
    global_search,
    search_courses,
    search_mentors,
)

__all__ = [
    "clear_user_recommendations",
    "configure",
    "get_because_you_viewed_recommendations",
    "get_category_recommendations",
    "get_favorite_mentor_recommendations",
    "get_personalized_recommendations",
    "get_popular_searches",
    "get_recent_trending_courses",
    "get_search_suggestions",
    "get_similar_course_recommendations",
    "get_trending_recommendations",
    "global_search",
    "search_courses",
    "search_mentors",
]
