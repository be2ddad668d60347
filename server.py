"""
Course recommendation server - FastAPI main module.

Personalized / similar / trending course recommendations and faceted
course & mentor search.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from course_recommendation import config
from course_recommendation.errors import InvalidFilterError
from course_recommendation.interface.api_interface import (
    clear_user_recommendations,
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
from course_recommendation.models.data_models import MentorSearchFilters, SearchFilters

logging.basicConfig(
    level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# --- Schemas ---


class RecommendedCourse(BaseModel):
    """Single recommended course"""
    course_id: str
    title: str
    slug: str = ""
    thumbnail: Optional[str] = None
    short_description: Optional[str] = None
    level: str
    price: float = 0.0
    discount_price: Optional[float] = None
    is_free: bool = False
    tags: List[str] = []
    category: Dict[str, Any] = {}
    mentor: Dict[str, Any] = {}
    average_rating: float = 0.0
    total_students: int = 0
    score: float
    reason: str


class RecommendationResponse(BaseModel):
    recommendation_type: str
    user_id: Optional[str] = None
    course_id: Optional[str] = None
    category_id: Optional[str] = None
    recommendations: List[RecommendedCourse]
    total_count: int
    timestamp: str


class CacheClearResponse(BaseModel):
    ok: bool
    user_id: str


class CourseSearchResponse(BaseModel):
    courses: List[Dict[str, Any]]
    total: int
    page: int
    limit: int
    total_pages: int
    facets: Dict[str, Any]


class MentorSearchResponse(BaseModel):
    mentors: List[Dict[str, Any]]
    total: int
    page: int
    limit: int
    total_pages: int
    facets: Dict[str, Any]


class SuggestionResponse(BaseModel):
    courses: List[Dict[str, Any]]
    mentors: List[Dict[str, Any]]
    tags: List[str]


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


# --- Helper Functions ---


def transform_course(raw: Dict[str, Any]) -> RecommendedCourse:
    """Engine dict (camelCase) -> response schema"""
    return RecommendedCourse(
        course_id=raw.get("id", ""),
        title=raw.get("title") or "",
        slug=raw.get("slug") or "",
        thumbnail=raw.get("thumbnail"),
        short_description=raw.get("shortDescription"),
        level=raw.get("level") or "beginner",
        price=raw.get("price") or 0.0,
        discount_price=raw.get("discountPrice"),
        is_free=bool(raw.get("isFree")),
        tags=raw.get("tags", []),
        category=raw.get("category") or {},
        mentor=raw.get("mentor") or {},
        average_rating=raw.get("averageRating", 0.0),
        total_students=raw.get("totalStudents", 0),
        score=raw.get("score", 0.0),
        reason=raw.get("reason", ""),
    )


def to_response(recommendation_type: str, raw: Dict[str, Any]) -> RecommendationResponse:
    recommendations = [transform_course(c) for c in raw.get("results", [])]
    return RecommendationResponse(
        recommendation_type=recommendation_type,
        user_id=raw.get("user_id"),
        course_id=raw.get("course_id"),
        category_id=raw.get("category_id"),
        recommendations=recommendations,
        total_count=len(recommendations),
        timestamp=datetime.utcnow().isoformat(),
    )


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit > 0 else 0


def call_engine(label: str, fn: Callable[[], Any]) -> Any:
    """Run an engine call; filter errors -> 400, anything else -> 500."""
    try:
        return fn()
    except InvalidFilterError as e:
        logger.info(f"[API] {label} rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"[API] {label} error: {e}")
        raise HTTPException(status_code=500, detail=f"{label} failed: {e}")


# --- Lifespan ---


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("[Startup] Course Recommendation Server starting...")
    try:
        logger.info("[Startup] Warming up catalog connection...")
        get_trending_recommendations(limit=1)
        logger.info("[Startup] Recommendation engine ready")
    except Exception as e:
        logger.warning(f"[Startup] Warmup failed (will retry on first request): {e}")

    yield

    logger.info("[Shutdown] Course Recommendation Server shutting down...")


app = FastAPI(
    title="Course Recommendation Server",
    description="Rule-based course recommendations and faceted search",
    version=VERSION,
    lifespan=lifespan,
)


# --- API Endpoints ---


@app.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(status="ok", service="course-recommendation", version=VERSION)


@app.get("/recommendations/personalized", response_model=RecommendationResponse)
def personalized(
    user_id: str = Query(..., description="User ID"),
    limit: int = Query(10, description="Number of recommendations"),
):
    """
    Personalized recommendations.

    Built from the user's enrollments, wishlist and recent views; served
    from cache for an hour. Falls back to trending courses.
    """
    logger.info(f"[API] Personalized: user_id={user_id}, limit={limit}")
    raw = call_engine(
        "personalized recommendations",
        lambda: get_personalized_recommendations(user_id=user_id, limit=limit),
    )
    return to_response("personalized", raw)


@app.get("/recommendations/similar/{course_id}", response_model=RecommendationResponse)
def similar(course_id: str, limit: int = Query(6)):
    logger.info(f"[API] Similar courses: course_id={course_id}, limit={limit}")
    raw = call_engine(
        "similar courses",
        lambda: get_similar_course_recommendations(course_id=course_id, limit=limit),
    )
    return to_response("similar_courses", raw)


@app.get("/recommendations/trending", response_model=RecommendationResponse)
def trending(limit: int = Query(10)):
    raw = call_engine("trending courses", lambda: get_trending_recommendations(limit=limit))
    return to_response("trending", raw)


@app.get("/recommendations/category/{category_id}", response_model=RecommendationResponse)
def in_category(
    category_id: str,
    limit: int = Query(6),
    exclude: Optional[List[str]] = Query(None, description="Course IDs to leave out"),
):
    raw = call_engine(
        "category courses",
        lambda: get_category_recommendations(category_id, exclude or [], limit),
    )
    return to_response("category", raw)


@app.get("/recommendations/because-you-viewed", response_model=RecommendationResponse)
def because_you_viewed(user_id: str = Query(...), limit: int = Query(6)):
    raw = call_engine(
        "because-you-viewed",
        lambda: get_because_you_viewed_recommendations(user_id=user_id, limit=limit),
    )
    return to_response("because_you_viewed", raw)


@app.get("/recommendations/favorite-mentors", response_model=RecommendationResponse)
def favorite_mentors(user_id: str = Query(...), limit: int = Query(6)):
    raw = call_engine(
        "favorite mentors",
        lambda: get_favorite_mentor_recommendations(user_id=user_id, limit=limit),
    )
    return to_response("favorite_mentors", raw)


@app.delete("/recommendations/cache/{user_id}", response_model=CacheClearResponse)
def clear_cache(user_id: str):
    """Called by the LMS whenever a user's enrollments, reviews or wishlist change."""
    logger.info(f"[API] Clear recommendation cache: user_id={user_id}")
    result = call_engine("cache clear", lambda: clear_user_recommendations(user_id))
    return CacheClearResponse(**result)


@app.get("/search/courses", response_model=CourseSearchResponse)
def course_search(
    q: Optional[str] = Query(None, description="Free-text query"),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    level: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    min_rating: Optional[float] = Query(None, alias="minRating"),
    is_free: Optional[bool] = Query(None, alias="isFree"),
    is_premium: Optional[bool] = Query(None, alias="isPremium"),
    tags: Optional[List[str]] = Query(None),
    language: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(12),
    sort_by: str = Query("relevance", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
):
    filters = SearchFilters(
        query=q,
        category_id=category_id,
        level=level,
        min_price=min_price,
        max_price=max_price,
        min_rating=min_rating,
        is_free=is_free,
        is_premium=is_premium,
        tags=tags or [],
        language=language,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = call_engine("course search", lambda: search_courses(filters))
    return CourseSearchResponse(
        page=page,
        limit=limit,
        total_pages=total_pages(result["total"], limit),
        **result,
    )


@app.get("/search/mentors", response_model=MentorSearchResponse)
def mentor_search(
    q: Optional[str] = Query(None),
    expertise: Optional[List[str]] = Query(None),
    min_rating: Optional[float] = Query(None, alias="minRating"),
    min_experience: Optional[int] = Query(None, alias="minExperience"),
    page: int = Query(1),
    limit: int = Query(12),
    sort_by: str = Query("relevance", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
):
    filters = MentorSearchFilters(
        query=q,
        expertise=expertise or [],
        min_rating=min_rating,
        min_experience=min_experience,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = call_engine("mentor search", lambda: search_mentors(filters))
    return MentorSearchResponse(
        page=page,
        limit=limit,
        total_pages=total_pages(result["total"], limit),
        **result,
    )


@app.get("/search/suggestions", response_model=SuggestionResponse)
def suggestions(q: Optional[str] = Query(None), limit: int = Query(5)):
    return call_engine("search suggestions", lambda: get_search_suggestions(q, limit))


@app.get("/search/popular")
def popular_searches(limit: int = Query(10)):
    return {"searches": call_engine("popular searches", lambda: get_popular_searches(limit))}


@app.get("/search/trending")
def recent_trending(limit: int = Query(10)):
    return {"courses": call_engine("recent trending", lambda: get_recent_trending_courses(limit))}


@app.get("/search")
def search_everything(
    q: str = Query(..., description="Search query"),
    courses_limit: int = Query(5, alias="coursesLimit"),
    mentors_limit: int = Query(3, alias="mentorsLimit"),
):
    logger.info(f"[API] Global search: q={q!r}")
    return call_engine("global search", lambda: global_search(q, courses_limit, mentors_limit))
