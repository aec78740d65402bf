import pytest

from core import plagiarism_scorer as ps
from util.enums import MatchType


@pytest.mark.parametrize(
    "similarity,expected",
    [(95.0, 100.0), (92.0, 97.0), (40.0, 40.0), (85.0, 90.0), (75.0, 75.0), (60.0, 60.0), (2.0, 5.0)],
)
def test_banding_reference_points(similarity, expected):
    assert ps.plagiarism_score(similarity) == pytest.approx(expected)


def test_banding_is_monotonic():
    steps = [i / 4 for i in range(0, 401)]
    scores = [ps.plagiarism_score(s) for s in steps]
    assert all(a <= b for a, b in zip(scores, scores[1:]))


@pytest.mark.parametrize(
    "title_sim,expected",
    [(100.0, 80.0), (95.0, 80.0), (90.0, 75.0), (80.0, 70.0), (50.0, 60.0)],
)
def test_title_boost_after_banding(title_sim, expected):
    assert ps.plagiarism_score(60.0, title_sim) == pytest.approx(expected)


def test_title_boost_is_clamped():
    assert ps.plagiarism_score(93.0, 100.0) == 100.0


def test_minimum_floors():
    assert ps.apply_minimum_floors(96.0, 10.0) == 95.0
    assert ps.apply_minimum_floors(91.0, 10.0) == 90.0
    assert ps.apply_minimum_floors(81.0, 10.0) == 80.0
    assert ps.apply_minimum_floors(79.0, 10.0) == 10.0


def test_exact_title_floor():
    assert ps.exact_title_floor(40.0, 10.0) == 90.0
    assert ps.exact_title_floor(40.0, 85.0) == 95.0
    assert ps.exact_title_floor(99.0, 10.0) == 99.0


@pytest.mark.parametrize(
    "similarity,expected",
    [
        (99.0, MatchType.EXACT_MATCH),
        (80.0, MatchType.HIGH_SIMILARITY),
        (51.0, MatchType.PARTIAL_MATCH),
        (30.0, MatchType.NO_MATCH),
    ],
)
def test_match_type(similarity, expected):
    assert ps.determine_match_type(similarity) is expected
