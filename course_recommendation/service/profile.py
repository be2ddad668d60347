from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Optional

from ..config import EngineSettings
from ..data.catalog_store import COURSE_VIEW_ACTION, CatalogStore
from ..errors import ProfileBuildError
from ..models.data_models import UserAffinityProfile
from ..rule_based.profile import fold_profile
from .fanout import Deadline, fan_out

logger = logging.getLogger(__name__)


class ProfileAggregator:
    """
    Builds a UserAffinityProfile from four history queries run concurrently.

    A failed or timed-out branch contributes an empty signal. Only when all
    four fail does build() raise ProfileBuildError.
    """

    def __init__(
        self,
        store: CatalogStore,
        settings: Optional[EngineSettings] = None,
        executor: Optional[Executor] = None,
    ):
        self.store = store
        self.settings = settings or EngineSettings()
        self.executor = executor

    def build(self, user_id: str, deadline: Optional[Deadline] = None) -> UserAffinityProfile:
        deadline = deadline or Deadline(None)
        deadline.check("profile build")

        view_limit = self.settings.recent_view_limit
        branches = fan_out(
            {
                "enrollments": lambda: self.store.query_enrollments(user_id),
                "reviews": lambda: self.store.query_reviews(user_id),
                "wishlist": lambda: self.store.query_wishlist(user_id),
                "views": lambda: self.store.query_activity_log(
                    user_id, COURSE_VIEW_ACTION, view_limit
                ),
            },
            timeout=deadline.cap(self.settings.query_timeout_seconds),
            executor=self.executor,
        )

        failed = [name for name, b in branches.items() if not b.ok]
        for name in failed:
            err = branches[name].error
            logger.warning(
                f"[Profile] user={user_id} {name} query failed, signal dropped: "
                f"{type(err).__name__}: {err}"
            )
        if len(failed) == len(branches):
            raise ProfileBuildError(f"all profile sub-queries failed for user {user_id}")

        def signal(name: str):
            return branches[name].value if branches[name].ok else []

        profile = fold_profile(
            user_id,
            enrollments=signal("enrollments"),
            reviews=signal("reviews"),
            wishlist=signal("wishlist"),
            views=signal("views"),
            view_limit=view_limit,
        )
        logger.debug(
            f"[Profile] user={user_id} enrolled={len(profile.enrolled_course_ids)} "
            f"categories={len(profile.category_affinity)} tags={len(profile.tag_affinity)} "
            f"views={len(profile.recently_viewed_course_ids)}"
        )
        return profile
