from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from typing import Dict, List

from ..data.catalog_store import CatalogStore, CourseQuery, MentorQuery
from ..models.data_models import COURSE_LEVELS, CourseFacets, FacetBucket, MentorFacets
from ..rule_based.features import (
    EXPERIENCE_BUCKETS,
    PRICE_BUCKETS,
    PRICE_FREE,
    experience_bucket,
    price_bucket,
)

logger = logging.getLogger(__name__)

UNKNOWN_CATEGORY = "Unknown"
EXPERTISE_FACET_SIZE = 20
MENTOR_FACET_SCAN_LIMIT = 1000


class FacetAggregator:
    """
    Grouped counts over a filtered universe. Callers pass the same query
    they rank with, minus pagination; sort/skip/limit here are cleared.
    """

    def __init__(self, store: CatalogStore):
        self.store = store

    # ---- courses ----
    def course_facets(self, query: CourseQuery) -> CourseFacets:
        universe = replace(query, order_by=[], skip=0, limit=None)
        return CourseFacets(
            categories=self._category_buckets(universe),
            levels=self._level_buckets(universe),
            price_ranges=self._price_buckets(universe),
        )

    def _category_buckets(self, universe: CourseQuery) -> List[FacetBucket]:
        counts = self.store.group_count_courses(universe, "categoryId")
        ids = [cid for cid in counts if cid is not None]
        names = self.store.get_category_names(ids)
        buckets = [
            FacetBucket(label=names.get(cid, UNKNOWN_CATEGORY), count=n, key=cid)
            for cid, n in counts.items()
            if cid is not None
        ]
        buckets.sort(key=lambda b: (-b.count, b.label))
        return buckets

    def _level_buckets(self, universe: CourseQuery) -> List[FacetBucket]:
        counts = self.store.group_count_courses(universe, "level")
        order = {level: i for i, level in enumerate(COURSE_LEVELS)}
        levels = sorted((lvl for lvl in counts if lvl), key=lambda lvl: (order.get(lvl, len(order)), lvl))
        return [FacetBucket(label=lvl, count=counts[lvl]) for lvl in levels]

    def _price_buckets(self, universe: CourseQuery) -> List[FacetBucket]:
        counts: Dict[str, int] = Counter()
        if universe.is_free is not False:
            counts[PRICE_FREE] = self.store.count_courses(replace(universe, is_free=True))
        if universe.is_free is not True:
            paid = self.store.group_count_courses(replace(universe, is_free=False), "price")
            for price, n in paid.items():
                counts[price_bucket(price)] += n
        return [FacetBucket(label=label, count=counts.get(label, 0)) for label in (PRICE_FREE,) + PRICE_BUCKETS]

    # ---- mentors ----
    def mentor_facets(self, query: MentorQuery) -> MentorFacets:
        universe = replace(query, order_by=[], skip=0, limit=MENTOR_FACET_SCAN_LIMIT)
        mentors = self.store.query_mentors(universe)
        if len(mentors) >= MENTOR_FACET_SCAN_LIMIT:
            logger.debug(f"[Search] mentor facets truncated at {MENTOR_FACET_SCAN_LIMIT} mentors")

        skills: Counter = Counter()
        ranges: Counter = Counter()
        for m in mentors:
            skills.update(m.expertise)
            ranges[experience_bucket(m.experience)] += 1

        # most_common keeps first-seen order among ties
        expertise = [
            FacetBucket(label=skill, count=n)
            for skill, n in skills.most_common(EXPERTISE_FACET_SIZE)
        ]
        return MentorFacets(
            expertise=expertise,
            experience_ranges=[
                FacetBucket(label=label, count=ranges.get(label, 0)) for label in EXPERIENCE_BUCKETS
            ],
        )
