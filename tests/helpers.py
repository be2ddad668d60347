import threading
from typing import Any, Dict, Iterable

from course_recommendation.data.catalog_store import CatalogStore

HISTORY_METHODS = ("query_enrollments", "query_reviews", "query_wishlist", "query_activity_log")


class WrappedStore(CatalogStore):
    """
    Delegates to an inner store. Method names listed in `failing` raise
    RuntimeError; every call is counted in `calls`.
    """

    def __init__(self, inner: CatalogStore, failing: Iterable[str] = ()):
        self.inner = inner
        self.failing = set(failing)
        self.calls: Dict[str, int] = {}
        self._lock = threading.Lock()

    def _call(self, name: str, *args: Any) -> Any:
        with self._lock:
            self.calls[name] = self.calls.get(name, 0) + 1
        if name in self.failing:
            raise RuntimeError(f"{name} is down")
        return getattr(self.inner, name)(*args)

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def query_courses(self, query):
        return self._call("query_courses", query)

    def count_courses(self, query):
        return self._call("count_courses", query)

    def get_course(self, course_id):
        return self._call("get_course", course_id)

    def group_count_courses(self, query, field_name):
        return self._call("group_count_courses", query, field_name)

    def get_category_names(self, category_ids):
        return self._call("get_category_names", category_ids)

    def query_enrollments(self, user_id):
        return self._call("query_enrollments", user_id)

    def query_reviews(self, user_id):
        return self._call("query_reviews", user_id)

    def query_wishlist(self, user_id):
        return self._call("query_wishlist", user_id)

    def query_activity_log(self, user_id, action, limit):
        return self._call("query_activity_log", user_id, action, limit)

    def query_mentors(self, query):
        return self._call("query_mentors", query)

    def count_mentors(self, query):
        return self._call("count_mentors", query)


def ids(results):
    """Course ids of a list of courses or scored candidates."""
    return [getattr(r, "course", r).id for r in results]
