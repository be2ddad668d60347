from math import log10

import pytest

from course_recommendation.data.catalog_store import CourseQuery
from course_recommendation.models.data_models import Course, UserAffinityProfile
from course_recommendation.rule_based import features, scoring


def _by_id(catalog, course_id):
    return catalog.get_course(course_id)


# ------------------------------------------------------
# Feature extractors
# ------------------------------------------------------
def test_log_students_is_zero_for_empty_course():
    assert features.log_students(Course(id="c", title="t", total_students=0)) == 0.0


def test_quality_bonus_thresholds():
    assert features.quality_bonus(Course(id="a", title="a", average_rating=4.5, total_students=1000)) == 8.0
    assert features.quality_bonus(Course(id="b", title="b", average_rating=4.49, total_students=999)) == 0.0
    assert features.quality_bonus(Course(id="c", title="c", average_rating=4.8, total_students=999)) == 5.0


@pytest.mark.parametrize(
    "price,is_free,expected",
    [
        (0, True, "Free"),
        (350000, True, "Free"),
        (99999, False, "Under 100k"),
        (100000, False, "100k - 250k"),
        (249999, False, "100k - 250k"),
        (250000, False, "250k - 500k"),
        (500000, False, "250k - 500k"),
        (500001, False, "Above 500k"),
    ],
)
def test_price_bucket_boundaries(price, is_free, expected):
    assert features.price_bucket(price, is_free) == expected


@pytest.mark.parametrize(
    "years,expected",
    [(0, "0-2 years"), (2, "0-2 years"), (3, "3-5 years"), (5, "3-5 years"),
     (6, "6-10 years"), (10, "6-10 years"), (11, "10+ years")],
)
def test_experience_bucket_boundaries(years, expected):
    assert features.experience_bucket(years) == expected


def test_course_invariants_are_enforced():
    c = Course(id="x", title="x", average_rating=7.2, total_students=-4, tags=["a", "b", "a"])
    assert c.average_rating == 5.0
    assert c.total_students == 0
    assert c.tags == ["a", "b"]


# ------------------------------------------------------
# Personalized
# ------------------------------------------------------
def test_empty_profile_scores_pure_popularity(catalog):
    course = _by_id(catalog, "crs-py-basics")  # rating 4.8, 999 students
    score, reason = scoring.personalized_scorer(UserAffinityProfile(user_id="u"))(course)

    assert score == pytest.approx(4.8 * 2 + log10(1000) * 3 + 5)
    assert score == pytest.approx(23.6)
    assert reason == "Highly rated course"


def test_personalized_affinity_terms(catalog):
    course = _by_id(catalog, "crs-pandas")  # cat-data, intermediate, python/pandas/data
    profile = UserAffinityProfile(
        user_id="u",
        category_affinity={"cat-data": 2.0},
        level_affinity={"intermediate": 1.0},
        tag_affinity={"python": 3.0, "data": 1.0, "sql": 9.0},
    )
    score, _ = scoring.personalized_scorer(profile)(course)

    expected = 2.0 * 5 + 1.0 * 3 + (3.0 + 1.0) * 2 + 4.7 * 2 + log10(1201) * 3 + 5 + 3
    assert score == pytest.approx(expected)


def test_recently_viewed_adds_bonus_and_wins_reason(catalog):
    course = _by_id(catalog, "crs-sql")
    base = UserAffinityProfile(user_id="u", tag_affinity={"sql": 1.0})
    viewed = UserAffinityProfile(
        user_id="u", tag_affinity={"sql": 1.0}, recently_viewed_course_ids=["crs-sql"]
    )

    base_score, base_reason = scoring.personalized_scorer(base)(course)
    viewed_score, viewed_reason = scoring.personalized_scorer(viewed)(course)

    assert viewed_score - base_score == pytest.approx(10.0)
    assert base_reason == "Matches your interests"
    assert viewed_reason == "You recently viewed this"


def test_personalized_reason_priority(catalog):
    pandas = _by_id(catalog, "crs-pandas")
    sql = _by_id(catalog, "crs-sql")  # rating 4.1
    figma = _by_id(catalog, "crs-figma")  # rating 4.5

    category_only = UserAffinityProfile(user_id="u", category_affinity={"cat-data": 3.0})
    assert scoring.personalized_scorer(category_only)(pandas)[1] == "Based on your interest in Data Science"

    both = UserAffinityProfile(
        user_id="u", category_affinity={"cat-data": 3.0}, tag_affinity={"pandas": 1.0}
    )
    assert scoring.personalized_scorer(both)(pandas)[1] == "Matches your interests"

    empty = UserAffinityProfile(user_id="u")
    assert scoring.personalized_scorer(empty)(figma)[1] == "Highly rated course"
    assert scoring.personalized_scorer(empty)(sql)[1] == "Recommended for you"


# ------------------------------------------------------
# Similar-to-course
# ------------------------------------------------------
def test_similar_score_same_mentor_and_tags(catalog):
    reference = _by_id(catalog, "crs-py-basics")
    candidate = _by_id(catalog, "crs-py-advanced")  # same category + mentor, 2 shared tags

    score, reason = scoring.similar_scorer(reference)(candidate)

    assert score == pytest.approx(10 + 8 + 2 * 3 + 4.0 * 2 + log10(301))
    assert reason == "From the same instructor"


def test_similar_reason_priority(catalog):
    reference = _by_id(catalog, "crs-ml")  # m-citra, python/machine-learning/data
    scorer = scoring.similar_scorer(reference)

    assert scorer(_by_id(catalog, "crs-sql"))[1] == "From the same instructor"
    assert scorer(_by_id(catalog, "crs-pandas"))[1] == "Same category: Data Science"
    assert scorer(_by_id(catalog, "crs-figma"))[1] == "Highly rated course"
    assert scorer(_by_id(catalog, "crs-git"))[1] == "Similar course"

    topical = Course(
        id="x", title="x", category_id="cat-web", category_name="Web Development",
        tags=["python", "machine-learning", "data"], average_rating=3.0,
    )
    assert scorer(topical)[1] == "Similar topics covered"


# ------------------------------------------------------
# Popularity variants + ranking
# ------------------------------------------------------
def test_popularity_variants(catalog):
    git = _by_id(catalog, "crs-git")  # rating 4.3, 0 students, Web Development

    assert scoring.trending_score(_by_id(catalog, "crs-ml")) == (3200.0, "Trending now")
    assert scoring.in_category_score(git) == (pytest.approx(43.0), "Popular in Web Development")
    assert scoring.because_viewed_score(git) == (pytest.approx(43.0), "Because you viewed similar courses")
    assert scoring.favorite_mentor_score(git)[1] == "From instructors you've learned with"


def test_rank_sorts_descending_and_truncates(catalog):
    courses = catalog.query_courses(CourseQuery())
    ranked = scoring.rank(courses, scoring.trending_score, limit=4)

    assert len(ranked) == 4
    scores = [r.score for r in ranked]
    assert scores == sorted(scores, reverse=True)


def test_rank_is_stable_for_ties():
    a = Course(id="a", title="a", average_rating=4.0)
    b = Course(id="b", title="b", average_rating=4.0)
    c = Course(id="c", title="c", average_rating=4.5)

    ranked = scoring.rank([a, b, c], scoring.because_viewed_score)
    assert [r.course.id for r in ranked] == ["c", "a", "b"]
