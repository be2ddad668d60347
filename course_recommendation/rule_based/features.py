from math import log10
from typing import Dict, Iterable, List, Optional

from ..models.data_models import Course

# Quality thresholds
HIGH_RATING = 4.5
POPULAR_STUDENTS = 1000

QUALITY_RATING_BONUS = 5.0
QUALITY_STUDENTS_BONUS = 3.0

# Static facet buckets
PRICE_FREE = "Free"
PRICE_BUCKETS = ("Under 100k", "100k - 250k", "250k - 500k", "Above 500k")
EXPERIENCE_BUCKETS = ("0-2 years", "3-5 years", "6-10 years", "10+ years")


# Popularity

def log_students(course: Course) -> float:
    # +1 keeps zero-student courses at log10(1) = 0
    return log10(max(course.total_students, 0) + 1)


def quality_bonus(course: Course) -> float:
    bonus = 0.0
    if course.average_rating >= HIGH_RATING:
        bonus += QUALITY_RATING_BONUS
    if course.total_students >= POPULAR_STUDENTS:
        bonus += QUALITY_STUDENTS_BONUS
    return bonus


def is_highly_rated(course: Course) -> bool:
    return course.average_rating >= HIGH_RATING


# Overlap

def shared_tags(course: Course, tags: Iterable[str]) -> List[str]:
    other = set(tags)
    return [t for t in course.tags if t in other]


def tag_affinity_sum(course: Course, tag_affinity: Dict[str, float]) -> float:
    return sum(tag_affinity.get(t, 0.0) for t in course.tags)


# Buckets

def price_bucket(price: Optional[float], is_free: bool = False) -> str:
    if is_free:
        return PRICE_FREE
    price = price or 0
    if price < 100_000:
        return PRICE_BUCKETS[0]
    if price < 250_000:
        return PRICE_BUCKETS[1]
    if price <= 500_000:
        return PRICE_BUCKETS[2]
    return PRICE_BUCKETS[3]


def experience_bucket(years: Optional[int]) -> str:
    years = years or 0
    if years <= 2:
        return EXPERIENCE_BUCKETS[0]
    if years <= 5:
        return EXPERIENCE_BUCKETS[1]
    if years <= 10:
        return EXPERIENCE_BUCKETS[2]
    return EXPERIENCE_BUCKETS[3]
