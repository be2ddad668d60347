from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..models.data_models import Course, ScoredCandidate, UserAffinityProfile
from .features import is_highly_rated, log_students, quality_bonus, shared_tags, tag_affinity_sum

# Weight Definitions

# personalized
W_CATEGORY_AFFINITY = 5.0
W_LEVEL_AFFINITY = 3.0
W_TAG_AFFINITY = 2.0
W_RATING = 2.0
W_POPULARITY = 3.0
W_RECENTLY_VIEWED = 10.0

# similar-to-course
W_SAME_CATEGORY = 10.0
W_SAME_LEVEL = 5.0
W_SAME_MENTOR = 8.0
W_SHARED_TAG = 3.0
SIMILAR_TOPICS_MIN_TAGS = 3

# in-category / because-you-viewed / favorite mentors
W_RATING_ONLY = 10.0

REASON_DEFAULT = "Recommended for you"
REASON_RECENTLY_VIEWED = "You recently viewed this"
REASON_INTERESTS = "Matches your interests"
REASON_HIGHLY_RATED = "Highly rated course"
REASON_SAME_MENTOR = "From the same instructor"
REASON_SIMILAR_TOPICS = "Similar topics covered"
REASON_SIMILAR_DEFAULT = "Similar course"
REASON_TRENDING = "Trending now"
REASON_BECAUSE_VIEWED = "Because you viewed similar courses"
REASON_FAVORITE_MENTOR = "From instructors you've learned with"

Scorer = Callable[[Course], Tuple[float, str]]
ReasonRule = Tuple[Callable[[Course], bool], Callable[[Course], str]]


def _category_label(course: Course) -> str:
    return course.category_name or "this category"


def pick_reason(course: Course, rules: Sequence[ReasonRule], default: str) -> str:
    """First matching rule wins."""
    for matches, reason in rules:
        if matches(course):
            return reason(course)
    return default


# Personalized

def personalized_reason_rules(profile: UserAffinityProfile) -> List[ReasonRule]:
    viewed = set(profile.recently_viewed_course_ids)
    return [
        (lambda c: c.id in viewed, lambda c: REASON_RECENTLY_VIEWED),
        (
            lambda c: any(profile.tag_affinity.get(t, 0) > 0 for t in c.tags),
            lambda c: REASON_INTERESTS,
        ),
        (
            lambda c: profile.category_affinity.get(c.category_id or "", 0) > 0,
            lambda c: f"Based on your interest in {_category_label(c)}",
        ),
        (is_highly_rated, lambda c: REASON_HIGHLY_RATED),
    ]


def personalized_scorer(profile: UserAffinityProfile) -> Scorer:
    viewed = set(profile.recently_viewed_course_ids)
    rules = personalized_reason_rules(profile)

    def score(course: Course) -> Tuple[float, str]:
        total = (
            W_CATEGORY_AFFINITY * profile.category_affinity.get(course.category_id or "", 0.0)
            + W_LEVEL_AFFINITY * profile.level_affinity.get(course.level, 0.0)
            + W_TAG_AFFINITY * tag_affinity_sum(course, profile.tag_affinity)
            + W_RATING * course.average_rating
            + W_POPULARITY * log_students(course)
        )
        if course.id in viewed:
            total += W_RECENTLY_VIEWED
        total += quality_bonus(course)
        return total, pick_reason(course, rules, REASON_DEFAULT)

    return score


# Similar to a reference course

def similar_reason_rules(reference: Course) -> List[ReasonRule]:
    return [
        (
            lambda c: bool(reference.mentor_id) and c.mentor_id == reference.mentor_id,
            lambda c: REASON_SAME_MENTOR,
        ),
        (
            lambda c: len(shared_tags(c, reference.tags)) >= SIMILAR_TOPICS_MIN_TAGS,
            lambda c: REASON_SIMILAR_TOPICS,
        ),
        (
            lambda c: bool(reference.category_id) and c.category_id == reference.category_id,
            lambda c: f"Same category: {_category_label(c)}",
        ),
        (is_highly_rated, lambda c: REASON_HIGHLY_RATED),
    ]


def similar_scorer(reference: Course) -> Scorer:
    rules = similar_reason_rules(reference)

    def score(course: Course) -> Tuple[float, str]:
        total = 0.0
        if reference.category_id and course.category_id == reference.category_id:
            total += W_SAME_CATEGORY
        if course.level == reference.level:
            total += W_SAME_LEVEL
        if reference.mentor_id and course.mentor_id == reference.mentor_id:
            total += W_SAME_MENTOR
        total += W_SHARED_TAG * len(shared_tags(course, reference.tags))
        total += W_RATING * course.average_rating + log_students(course)
        total += quality_bonus(course)
        return total, pick_reason(course, rules, REASON_SIMILAR_DEFAULT)

    return score


# Popularity-only variants

def trending_score(course: Course) -> Tuple[float, str]:
    return float(course.total_students), REASON_TRENDING


def in_category_score(course: Course) -> Tuple[float, str]:
    return (
        W_RATING_ONLY * course.average_rating + log_students(course),
        f"Popular in {_category_label(course)}",
    )


def because_viewed_score(course: Course) -> Tuple[float, str]:
    return W_RATING_ONLY * course.average_rating, REASON_BECAUSE_VIEWED


def favorite_mentor_score(course: Course) -> Tuple[float, str]:
    return W_RATING_ONLY * course.average_rating, REASON_FAVORITE_MENTOR


# Ranking

def rank(candidates: Iterable[Course], scorer: Scorer, limit: Optional[int] = None) -> List[ScoredCandidate]:
    """
    Score every candidate, sort by score descending and truncate.
    The sort is stable, so ties keep retrieval order.
    """
    scored = []
    for course in candidates:
        value, reason = scorer(course)
        scored.append(ScoredCandidate(course=course, score=value, reason=reason))
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored if limit is None else scored[:limit]
