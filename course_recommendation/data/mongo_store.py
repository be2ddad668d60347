from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ASCENDING, DESCENDING, MongoClient

from .. import config
from ..models.data_models import (
    ActivityRecord,
    Course,
    EnrollmentRecord,
    Mentor,
    ReviewRecord,
    WishlistRecord,
    parse_datetime,
)
from .catalog_store import CatalogStore, CourseQuery, MentorQuery
from .preprocess import query_terms

logger = logging.getLogger(__name__)

COURSE_PUBLISHED = "PUBLISHED"
MENTOR_APPROVED = "APPROVED"
USER_ACTIVE = "ACTIVE"

# Global SSH tunnel (singleton)
_ssh_tunnel = None


def get_ssh_tunnel():
    """Return the shared SSH tunnel to the Mongo host, starting it if needed."""
    import paramiko
    from sshtunnel import SSHTunnelForwarder

    global _ssh_tunnel
    if _ssh_tunnel is None or not _ssh_tunnel.is_active:
        pkey = paramiko.RSAKey.from_private_key_file(str(config.MONGO_SSH_PEM))

        _ssh_tunnel = SSHTunnelForwarder(
            (config.MONGO_SSH_HOST, config.MONGO_SSH_PORT),
            ssh_username=config.MONGO_SSH_USER,
            ssh_pkey=pkey,
            # mongod listens on loopback on the remote host
            remote_bind_address=("127.0.0.1", config.MONGO_PORT),
            local_bind_address=("127.0.0.1", 0),
            allow_agent=False,
            host_pkey_directories=[],
        )
        _ssh_tunnel.start()
        logger.info(f"[Mongo] SSH tunnel up on local port {_ssh_tunnel.local_bind_port}")
    return _ssh_tunnel


def _mongo_uri() -> str:
    if config.MONGO_URI:
        return config.MONGO_URI

    host, port = config.MONGO_HOST, config.MONGO_PORT
    if config.MONGO_SSH_HOST:
        host, port = "127.0.0.1", get_ssh_tunnel().local_bind_port

    if config.MONGO_USER:
        return (
            f"mongodb://{config.MONGO_USER}:{config.MONGO_PASSWORD}"
            f"@{host}:{port}/?authSource={config.MONGO_AUTH_SOURCE}&directConnection=true"
        )
    return f"mongodb://{host}:{port}/?directConnection=true"


# ------------------------------------------------------
# CourseQuery / MentorQuery -> Mongo filter documents
# ------------------------------------------------------
def _icontains(value: str) -> Dict[str, Any]:
    return {"$regex": re.escape(value), "$options": "i"}


def build_course_filter(query: CourseQuery) -> Dict[str, Any]:
    clauses: List[Dict[str, Any]] = [{"status": COURSE_PUBLISHED}]

    id_cond: Dict[str, Any] = {}
    if query.ids is not None:
        id_cond["$in"] = list(query.ids)
    if query.exclude_ids:
        id_cond["$nin"] = list(query.exclude_ids)
    if id_cond:
        clauses.append({"_id": id_cond})

    if query.category_id:
        clauses.append({"categoryId": query.category_id})
    if query.level:
        clauses.append({"level": query.level})
    if query.mentor_ids is not None:
        clauses.append({"mentorId": {"$in": list(query.mentor_ids)}})

    price: Dict[str, Any] = {}
    if query.min_price is not None:
        price["$gte"] = query.min_price
    if query.max_price is not None:
        price["$lte"] = query.max_price
    if price:
        clauses.append({"price": price})

    if query.min_rating is not None:
        clauses.append({"averageRating": {"$gte": query.min_rating}})
    if query.is_free is not None:
        clauses.append({"isFree": query.is_free})
    if query.is_premium is not None:
        clauses.append({"isPremium": query.is_premium})
    if query.tags:
        clauses.append({"tags": {"$in": [t.lower() for t in query.tags]}})
    if query.language:
        clauses.append({"language": query.language})
    if query.published_after is not None:
        clauses.append({"publishedAt": {"$gte": query.published_after}})
    if query.title_contains:
        clauses.append({"title": _icontains(query.title_contains)})

    if query.text:
        clauses.append({
            "$or": [
                {"title": _icontains(query.text)},
                {"description": _icontains(query.text)},
                {"shortDescription": _icontains(query.text)},
                {"tags": {"$in": query_terms(query.text)}},
            ]
        })

    if query.match_any is not None:
        any_of: List[Dict[str, Any]] = []
        if query.match_any.category_ids:
            any_of.append({"categoryId": {"$in": list(query.match_any.category_ids)}})
        if query.match_any.levels:
            any_of.append({"level": {"$in": list(query.match_any.levels)}})
        if query.match_any.mentor_ids:
            any_of.append({"mentorId": {"$in": list(query.match_any.mentor_ids)}})
        if query.match_any.tags:
            any_of.append({"tags": {"$in": list(query.match_any.tags)}})
        # an empty OR-group matches nothing
        clauses.append({"$or": any_of} if any_of else {"_id": {"$in": []}})

    return {"$and": clauses}


def build_mentor_filter(query: MentorQuery) -> Dict[str, Any]:
    clauses: List[Dict[str, Any]] = [{"status": MENTOR_APPROVED}, {"userStatus": USER_ACTIVE}]

    if query.text:
        clauses.append({
            "$or": [
                {"name": _icontains(query.text)},
                {"email": _icontains(query.text)},
                {"headline": _icontains(query.text)},
                {"bio": _icontains(query.text)},
                {"expertise": {"$in": query_terms(query.text)}},
            ]
        })
    if query.name_contains:
        clauses.append({"name": _icontains(query.name_contains)})
    if query.expertise:
        clauses.append({"expertise": {"$in": [e.lower() for e in query.expertise]}})
    if query.min_rating is not None:
        clauses.append({"averageRating": {"$gte": query.min_rating}})
    if query.min_experience is not None:
        clauses.append({"experience": {"$gte": query.min_experience}})

    return {"$and": clauses}


def build_sort(order_by) -> List[tuple]:
    return [(f, DESCENDING if d == "desc" else ASCENDING) for f, d in order_by]


class MongoCatalogStore(CatalogStore):
    """
    Catalog reads backed by MongoDB.

    Collections: courses, categories, mentors, enrollments, reviews,
    wishlists, activity_logs. Course documents carry denormalized
    `category {name, slug}` and `mentor {name, profilePicture}` snippets.
    """

    def __init__(
        self,
        client: Optional[MongoClient] = None,
        db_name: Optional[str] = None,
        max_time_ms: int = 2000,
    ):
        if client is None:
            client = MongoClient(
                _mongo_uri(),
                serverSelectionTimeoutMS=30000,
                connectTimeoutMS=30000,
                socketTimeoutMS=30000,
            )

        self.client = client
        self.db = self.client[db_name or config.MONGO_DB_NAME]
        self.max_time_ms = max_time_ms

        # Collections
        self.col_courses = self.db["courses"]
        self.col_categories = self.db["categories"]
        self.col_mentors = self.db["mentors"]
        self.col_enrollments = self.db["enrollments"]
        self.col_reviews = self.db["reviews"]
        self.col_wishlists = self.db["wishlists"]
        self.col_activity_logs = self.db["activity_logs"]

    # ------------------------------------------------------
    # Document -> dataclass
    # ------------------------------------------------------
    @staticmethod
    def _doc_to_course(doc: Dict[str, Any]) -> Course:
        category = doc.get("category") or {}
        mentor = doc.get("mentor") or {}
        return Course(
            id=str(doc["_id"]),
            title=doc.get("title") or "",
            slug=doc.get("slug") or "",
            thumbnail=doc.get("thumbnail"),
            short_description=doc.get("shortDescription"),
            description=doc.get("description"),
            level=doc.get("level") or "beginner",
            price=doc.get("price") or 0,
            discount_price=doc.get("discountPrice"),
            is_free=bool(doc.get("isFree")),
            is_premium=bool(doc.get("isPremium")),
            language=doc.get("language"),
            category_id=doc.get("categoryId"),
            category_name=category.get("name"),
            category_slug=category.get("slug"),
            tags=list(doc.get("tags") or []),
            mentor_id=doc.get("mentorId"),
            mentor_name=mentor.get("name"),
            mentor_picture=mentor.get("profilePicture"),
            average_rating=float(doc.get("averageRating") or 0.0),
            total_students=int(doc.get("totalStudents") or 0),
            total_reviews=int(doc.get("totalReviews") or 0),
            total_views=int(doc.get("totalViews") or 0),
            published_at=parse_datetime(doc.get("publishedAt")),
        )

    @staticmethod
    def _doc_to_mentor(doc: Dict[str, Any]) -> Mentor:
        return Mentor(
            id=str(doc["_id"]),
            name=doc.get("name") or "",
            email=doc.get("email"),
            profile_picture=doc.get("profilePicture"),
            headline=doc.get("headline"),
            bio=doc.get("bio"),
            expertise=list(doc.get("expertise") or []),
            experience=int(doc.get("experience") or 0),
            average_rating=float(doc.get("averageRating") or 0.0),
            total_students=int(doc.get("totalStudents") or 0),
            total_courses=int(doc.get("totalCourses") or 0),
            total_reviews=int(doc.get("totalReviews") or 0),
        )

    def _bounded(self, cursor, order_by, skip: int, limit: Optional[int]):
        if order_by:
            cursor = cursor.sort(build_sort(order_by))
        if skip:
            cursor = cursor.skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)
        return cursor.max_time_ms(self.max_time_ms)

    # ------------------------------------------------------
    # Courses
    # ------------------------------------------------------
    def query_courses(self, query: CourseQuery) -> List[Course]:
        cursor = self.col_courses.find(build_course_filter(query))
        cursor = self._bounded(cursor, query.order_by, query.skip, query.limit)
        return [self._doc_to_course(d) for d in cursor]

    def count_courses(self, query: CourseQuery) -> int:
        return self.col_courses.count_documents(
            build_course_filter(query), maxTimeMS=self.max_time_ms
        )

    def get_course(self, course_id: str) -> Optional[Course]:
        doc = self.col_courses.find_one({"_id": course_id}, max_time_ms=self.max_time_ms)
        return self._doc_to_course(doc) if doc else None

    def group_count_courses(self, query: CourseQuery, field_name: str) -> Dict[Any, int]:
        pipeline = [
            {"$match": build_course_filter(query)},
            {"$group": {"_id": f"${field_name}", "count": {"$sum": 1}}},
        ]
        rows = self.col_courses.aggregate(pipeline, maxTimeMS=self.max_time_ms)
        return {row["_id"]: int(row["count"]) for row in rows}

    def get_category_names(self, category_ids: Iterable[str]) -> Dict[str, str]:
        ids = [c for c in category_ids if c]
        if not ids:
            return {}
        cursor = self.col_categories.find({"_id": {"$in": ids}}, {"name": 1})
        return {str(d["_id"]): d.get("name") for d in cursor.max_time_ms(self.max_time_ms)}

    # ------------------------------------------------------
    # User history
    # ------------------------------------------------------
    def _joined_courses(self, collection, user_id: str) -> List[Dict[str, Any]]:
        pipeline = [
            {"$match": {"userId": user_id}},
            {"$lookup": {
                "from": "courses",
                "localField": "courseId",
                "foreignField": "_id",
                "as": "course",
            }},
            {"$unwind": "$course"},
            {"$project": {
                "courseId": 1,
                "course.categoryId": 1,
                "course.level": 1,
                "course.tags": 1,
                "course.mentorId": 1,
            }},
        ]
        return list(collection.aggregate(pipeline, maxTimeMS=self.max_time_ms))

    def query_enrollments(self, user_id: str) -> List[EnrollmentRecord]:
        result = []
        for d in self._joined_courses(self.col_enrollments, user_id):
            course = d.get("course") or {}
            result.append(EnrollmentRecord(
                course_id=str(d.get("courseId")),
                category_id=course.get("categoryId"),
                level=course.get("level"),
                tags=list(course.get("tags") or []),
                mentor_id=course.get("mentorId"),
            ))
        return result

    def query_reviews(self, user_id: str) -> List[ReviewRecord]:
        cursor = self.col_reviews.find({"userId": user_id}, {"courseId": 1, "rating": 1})
        return [
            ReviewRecord(course_id=str(d.get("courseId")), rating=float(d.get("rating") or 0))
            for d in cursor.max_time_ms(self.max_time_ms)
        ]

    def query_wishlist(self, user_id: str) -> List[WishlistRecord]:
        result = []
        for d in self._joined_courses(self.col_wishlists, user_id):
            course = d.get("course") or {}
            result.append(WishlistRecord(
                course_id=str(d.get("courseId")),
                category_id=course.get("categoryId"),
                level=course.get("level"),
                tags=list(course.get("tags") or []),
            ))
        return result

    def query_activity_log(self, user_id: str, action: str, limit: int) -> List[ActivityRecord]:
        cursor = (
            self.col_activity_logs.find(
                {"userId": user_id, "action": action},
                {"entityId": 1, "createdAt": 1},
            )
            .sort("createdAt", DESCENDING)
            .limit(limit)
            .max_time_ms(self.max_time_ms)
        )
        return [
            ActivityRecord(
                entity_id=d.get("entityId"),
                created_at=parse_datetime(d.get("createdAt")),
            )
            for d in cursor
        ]

    # ------------------------------------------------------
    # Mentors
    # ------------------------------------------------------
    def query_mentors(self, query: MentorQuery) -> List[Mentor]:
        cursor = self.col_mentors.find(build_mentor_filter(query))
        cursor = self._bounded(cursor, query.order_by, query.skip, query.limit)
        return [self._doc_to_mentor(d) for d in cursor]

    def count_mentors(self, query: MentorQuery) -> int:
        return self.col_mentors.count_documents(
            build_mentor_filter(query), maxTimeMS=self.max_time_ms
        )
