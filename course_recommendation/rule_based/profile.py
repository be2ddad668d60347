from collections import defaultdict
from typing import Dict, Iterable, Optional

from ..models.data_models import (
    ActivityRecord,
    EnrollmentRecord,
    ReviewRecord,
    UserAffinityProfile,
    WishlistRecord,
)

# Fold weights: enrolling is a stronger signal than wishlisting
W_ENROLL_CATEGORY = 3.0
W_ENROLL_LEVEL = 3.0
W_ENROLL_TAG = 2.0

W_WISHLIST_CATEGORY = 2.0
W_WISHLIST_LEVEL = 2.0
W_WISHLIST_TAG = 1.0


def _add(target: Dict[str, float], key: Optional[str], weight: float) -> None:
    if key:
        target[key] += weight


def fold_profile(
    user_id: str,
    enrollments: Iterable[EnrollmentRecord] = (),
    reviews: Iterable[ReviewRecord] = (),
    wishlist: Iterable[WishlistRecord] = (),
    views: Iterable[ActivityRecord] = (),
    view_limit: int = 50,
) -> UserAffinityProfile:
    """
    Fold the four history signals into one affinity profile.

    `views` must already be most-recent-first; events without an entity id
    are skipped and at most `view_limit` ids are kept.
    """
    category: Dict[str, float] = defaultdict(float)
    level: Dict[str, float] = defaultdict(float)
    tags: Dict[str, float] = defaultdict(float)
    enrolled = set()

    for e in enrollments:
        enrolled.add(e.course_id)
        _add(category, e.category_id, W_ENROLL_CATEGORY)
        _add(level, e.level, W_ENROLL_LEVEL)
        for t in e.tags:
            _add(tags, t, W_ENROLL_TAG)

    for w in wishlist:
        _add(category, w.category_id, W_WISHLIST_CATEGORY)
        _add(level, w.level, W_WISHLIST_LEVEL)
        for t in w.tags:
            _add(tags, t, W_WISHLIST_TAG)

    recent = [v.entity_id for v in views if v.entity_id][:view_limit]

    return UserAffinityProfile(
        user_id=user_id,
        enrolled_course_ids=enrolled,
        category_affinity=dict(category),
        level_affinity=dict(level),
        tag_affinity=dict(tags),
        recently_viewed_course_ids=recent,
        reviewed_ratings={r.course_id: r.rating for r in reviews},
    )
