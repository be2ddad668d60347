from datetime import datetime
from typing import Any, Dict, List

from ..models.data_models import Course, Mentor

CATEGORIES: Dict[str, Dict[str, str]] = {
    "cat-web": {"name": "Web Development", "slug": "web-development"},
    "cat-data": {"name": "Data Science", "slug": "data-science"},
    "cat-design": {"name": "Design", "slug": "design"},
}

_MENTOR_NAMES = {
    "m-ana": "Ana Putri",
    "m-budi": "Budi Santoso",
    "m-citra": "Citra Lestari",
    "m-dewi": "Dewi Anggraini",
}


def _course(course_id: str, title: str, category_id: str, mentor_id: str, **kwargs: Any) -> Course:
    category = CATEGORIES[category_id]
    return Course(
        id=course_id,
        title=title,
        slug=course_id.replace("crs-", ""),
        short_description=kwargs.pop("short_description", f"{title} in a nutshell."),
        description=kwargs.pop("description", f"A complete course: {title}."),
        category_id=category_id,
        category_name=category["name"],
        category_slug=category["slug"],
        mentor_id=mentor_id,
        mentor_name=_MENTOR_NAMES.get(mentor_id),
        language=kwargs.pop("language", "id"),
        **kwargs,
    )


def get_mock_courses() -> List[Course]:
    """Published fixture catalog, in natural (insertion) order."""
    return [
        _course(
            "crs-py-basics", "Python for Beginners", "cat-data", "m-ana",
            level="beginner", price=0, is_free=True, tags=["python", "programming"],
            average_rating=4.8, total_students=999, total_reviews=310, total_views=5000,
            published_at=datetime(2024, 1, 10),
        ),
        _course(
            "crs-web-html", "HTML & CSS Fundamentals", "cat-web", "m-budi",
            level="beginner", price=0, is_free=True, tags=["html", "css", "web"],
            average_rating=4.2, total_students=2500, total_reviews=640, total_views=8000,
            published_at=datetime(2023, 6, 1),
        ),
        _course(
            "crs-js-modern", "Modern JavaScript", "cat-web", "m-budi",
            level="intermediate", price=150000, tags=["javascript", "web"],
            average_rating=4.6, total_students=1800, total_reviews=420, total_views=6000,
            published_at=datetime(2024, 3, 15),
        ),
        _course(
            "crs-react", "React in Depth", "cat-web", "m-budi",
            level="advanced", price=300000, is_premium=True, tags=["javascript", "react", "web"],
            average_rating=4.4, total_students=900, total_reviews=150, total_views=4000,
            published_at=datetime(2024, 5, 20),
        ),
        _course(
            "crs-pandas", "Data Analysis with Pandas", "cat-data", "m-ana",
            level="intermediate", price=250000, tags=["python", "pandas", "data"],
            average_rating=4.7, total_students=1200, total_reviews=280, total_views=4500,
            published_at=datetime(2024, 2, 1),
        ),
        _course(
            "crs-ml", "Machine Learning Foundations", "cat-data", "m-citra",
            level="advanced", price=750000, is_premium=True,
            tags=["python", "machine-learning", "data"],
            average_rating=4.9, total_students=3200, total_reviews=900, total_views=12000,
            published_at=datetime(2023, 11, 5),
        ),
        _course(
            "crs-sql", "SQL Essentials", "cat-data", "m-citra",
            level="beginner", price=75000, tags=["sql", "data"],
            average_rating=4.1, total_students=400, total_reviews=60, total_views=1500,
            published_at=datetime(2023, 9, 9),
        ),
        _course(
            "crs-figma", "UI Design with Figma", "cat-design", "m-dewi",
            level="beginner", price=99000, tags=["figma", "ui", "design"],
            average_rating=4.5, total_students=650, total_reviews=90, total_views=2100,
            published_at=datetime(2024, 4, 2),
        ),
        _course(
            "crs-ux", "UX Research Methods", "cat-design", "m-dewi",
            level="intermediate", price=500000, tags=["ux", "research", "design"],
            average_rating=3.9, total_students=120, total_reviews=25, total_views=800,
            published_at=datetime(2024, 6, 30), language="en",
        ),
        _course(
            "crs-git", "Git & GitHub Crash Course", "cat-web", "m-budi",
            level="beginner", price=0, is_free=True, tags=["git", "tools"],
            average_rating=4.3, total_students=0, total_reviews=0, total_views=300,
            published_at=datetime(2024, 7, 1),
        ),
        _course(
            "crs-py-advanced", "Advanced Python Patterns", "cat-data", "m-ana",
            level="advanced", price=300000, tags=["python", "programming"],
            average_rating=4.0, total_students=300, total_reviews=40, total_views=900,
            published_at=datetime(2024, 8, 12),
        ),
    ]


def get_mock_draft_courses() -> List[Course]:
    """Courses that exist but are not published."""
    return [
        _course(
            "crs-rust-draft", "Rust Systems Programming", "cat-web", "m-budi",
            level="advanced", price=400000, tags=["rust", "programming"],
            average_rating=0.0, total_students=0,
        ),
    ]


def get_mock_mentors() -> List[Mentor]:
    """Approved mentors with active accounts."""
    return [
        Mentor(
            id="m-ana", name="Ana Putri", email="ana@example.com",
            headline="Python & data educator", bio="Teaching analytics for a decade.",
            expertise=["python", "data"], experience=8,
            average_rating=4.8, total_students=2500, total_courses=3, total_reviews=630,
        ),
        Mentor(
            id="m-budi", name="Budi Santoso", email="budi@example.com",
            headline="Frontend engineer", bio="Builds web apps for startups.",
            expertise=["javascript", "web", "react"], experience=5,
            average_rating=4.4, total_students=5200, total_courses=4, total_reviews=1210,
        ),
        Mentor(
            id="m-citra", name="Citra Lestari", email="citra@example.com",
            headline="ML researcher", bio="Applied machine learning lead.",
            expertise=["machine-learning", "sql", "data"], experience=12,
            average_rating=4.9, total_students=3600, total_courses=2, total_reviews=960,
        ),
        Mentor(
            id="m-dewi", name="Dewi Anggraini", email="dewi@example.com",
            headline="Product designer", bio="UI and UX for mobile products.",
            expertise=["design", "ux", "figma"], experience=2,
            average_rating=4.3, total_students=770, total_courses=2, total_reviews=115,
        ),
    ]


def get_mock_pending_mentors() -> List[Mentor]:
    """Mentors awaiting approval; never visible to search."""
    return [
        Mentor(
            id="m-eko", name="Eko Prasetyo", email="eko@example.com",
            expertise=["python"], experience=1,
        ),
    ]


def get_mock_history() -> Dict[str, Dict[str, Any]]:
    """
    Per-user history.

    - u-new: no history at all
    - u-learner: enrollments, wishlist, a review and recent views
    - u-viewer: recent views only
    """
    return {
        "u-new": {},
        "u-learner": {
            "enrollments": ["crs-py-basics", "crs-web-html"],
            "wishlist": ["crs-pandas"],
            "reviews": [("crs-py-basics", 5.0)],
            "activity": [
                # most recent last
                ("course_view", "crs-py-basics", datetime(2024, 9, 1, 10, 0)),
                ("course_view", "crs-js-modern", datetime(2024, 9, 2, 10, 0)),
                ("course_view", "crs-ml", datetime(2024, 9, 3, 10, 0)),
            ],
        },
        "u-viewer": {
            "activity": [
                ("course_view", "crs-js-modern", datetime(2024, 9, 5, 9, 30)),
            ],
        },
    }
