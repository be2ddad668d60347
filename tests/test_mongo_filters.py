from datetime import datetime

from pymongo import ASCENDING, DESCENDING

from course_recommendation.data.catalog_store import CourseMatchAny, CourseQuery, MentorQuery
from course_recommendation.data.mongo_store import (
    MongoCatalogStore,
    build_course_filter,
    build_mentor_filter,
    build_sort,
)


class FakeCursor:
    def __init__(self, docs):
        self.docs = list(docs)
        self.calls = []

    def sort(self, spec, direction=None):
        self.calls.append(("sort", spec if direction is None else [(spec, direction)]))
        return self

    def skip(self, n):
        self.calls.append(("skip", n))
        return self

    def limit(self, n):
        self.calls.append(("limit", n))
        return self

    def max_time_ms(self, ms):
        self.calls.append(("max_time_ms", ms))
        return self

    def __iter__(self):
        return iter(self.docs)


class FakeCollection:
    def __init__(self, docs=()):
        self.docs = list(docs)
        self.filters = []
        self.cursor = None

    def find(self, flt=None, projection=None, **kwargs):
        self.filters.append(flt)
        self.cursor = FakeCursor(self.docs)
        return self.cursor

    def find_one(self, flt=None, **kwargs):
        self.filters.append(flt)
        return self.docs[0] if self.docs else None


class FakeDatabase(dict):
    def __missing__(self, name):
        self[name] = FakeCollection()
        return self[name]


class FakeClient:
    def __init__(self):
        self.db = FakeDatabase()

    def __getitem__(self, name):
        return self.db


COURSE_DOC = {
    "_id": "crs-1",
    "title": "Python for Beginners",
    "slug": "python-for-beginners",
    "shortDescription": "Start here",
    "level": "beginner",
    "price": 0,
    "isFree": True,
    "categoryId": "cat-data",
    "category": {"name": "Data Science", "slug": "data-science"},
    "tags": ["python", "python", "programming"],
    "mentorId": "m-1",
    "mentor": {"name": "Ana Putri", "profilePicture": "ana.png"},
    "averageRating": 4.8,
    "totalStudents": 999,
    "publishedAt": "2024-01-10T00:00:00",
}


# ------------------------------------------------------
# Filter documents
# ------------------------------------------------------
def test_course_filter_always_requires_published():
    assert build_course_filter(CourseQuery()) == {"$and": [{"status": "PUBLISHED"}]}


def test_course_filter_clauses():
    flt = build_course_filter(CourseQuery(
        exclude_ids=["a", "b"],
        category_id="cat-web",
        min_price=100,
        max_price=500,
        is_free=False,
        tags=["Python"],
        published_after=datetime(2024, 1, 1),
    ))
    clauses = flt["$and"]

    assert {"_id": {"$nin": ["a", "b"]}} in clauses
    assert {"categoryId": "cat-web"} in clauses
    assert {"price": {"$gte": 100, "$lte": 500}} in clauses
    assert {"isFree": False} in clauses
    assert {"tags": {"$in": ["python"]}} in clauses
    assert {"publishedAt": {"$gte": datetime(2024, 1, 1)}} in clauses


def test_course_text_filter_escapes_regex():
    flt = build_course_filter(CourseQuery(text="c++ basics"))
    text_clause = flt["$and"][-1]["$or"]

    assert text_clause[0] == {"title": {"$regex": r"c\+\+\ basics", "$options": "i"}}
    assert text_clause[-1] == {"tags": {"$in": ["c++", "basics"]}}


def test_empty_match_any_matches_nothing():
    flt = build_course_filter(CourseQuery(match_any=CourseMatchAny()))

    assert flt["$and"][-1] == {"_id": {"$in": []}}


def test_match_any_becomes_or_group():
    flt = build_course_filter(CourseQuery(match_any=CourseMatchAny(category_ids=["c"], tags=["t"])))

    assert flt["$and"][-1] == {"$or": [{"categoryId": {"$in": ["c"]}}, {"tags": {"$in": ["t"]}}]}


def test_mentor_filter_requires_approved_active():
    flt = build_mentor_filter(MentorQuery(expertise=["Data"], min_experience=3))

    assert flt["$and"][:2] == [{"status": "APPROVED"}, {"userStatus": "ACTIVE"}]
    assert {"expertise": {"$in": ["data"]}} in flt["$and"]
    assert {"experience": {"$gte": 3}} in flt["$and"]


def test_build_sort():
    assert build_sort([("totalStudents", "desc"), ("price", "asc")]) == [
        ("totalStudents", DESCENDING),
        ("price", ASCENDING),
    ]


# ------------------------------------------------------
# Document mapping
# ------------------------------------------------------
def test_doc_to_course_mapping():
    course = MongoCatalogStore._doc_to_course(COURSE_DOC)

    assert course.id == "crs-1"
    assert course.category_name == "Data Science"
    assert course.mentor_name == "Ana Putri"
    assert course.tags == ["python", "programming"]
    assert course.is_free is True
    assert course.published_at == datetime(2024, 1, 10)
    assert course.to_dict()["shortDescription"] == "Start here"


def test_doc_to_course_defaults():
    course = MongoCatalogStore._doc_to_course({"_id": "x"})

    assert course.title == ""
    assert course.level == "beginner"
    assert course.average_rating == 0.0
    assert course.published_at is None


def test_query_courses_applies_order_window_and_time_limit():
    client = FakeClient()
    client.db["courses"].docs = [COURSE_DOC]
    store = MongoCatalogStore(client=client, db_name="lms", max_time_ms=1500)

    courses = store.query_courses(
        CourseQuery(order_by=[("totalStudents", "desc")], skip=10, limit=5)
    )

    assert [c.id for c in courses] == ["crs-1"]
    cursor = client.db["courses"].cursor
    assert cursor.calls == [
        ("sort", [("totalStudents", DESCENDING)]),
        ("skip", 10),
        ("limit", 5),
        ("max_time_ms", 1500),
    ]


def test_get_course_missing_returns_none():
    store = MongoCatalogStore(client=FakeClient(), db_name="lms")

    assert store.get_course("nope") is None
