from __future__ import annotations

import math

import pytest

from slabmetrics.modeling.grading import average, compute_grades, display_percentages, one_dec, pct_of_10
from slabmetrics.schemas import CardRecord, SideGrades


def _card(**kwargs) -> CardRecord:
    kwargs.setdefault("origin", "json")
    kwargs.setdefault("id", "c1")
    return CardRecord(**kwargs)


def test_pct_of_10_bounds_and_monotonic():
    values = [i / 10 for i in range(0, 121)]
    pcts = [pct_of_10(v) for v in values]

    assert pct_of_10(0) == 0
    assert pct_of_10(10) == 100
    assert all(0 <= p <= 100 for p in pcts)
    assert pcts == sorted(pcts)


@pytest.mark.parametrize("bad", [None, "", "abc", math.nan, math.inf])
def test_pct_of_10_non_finite_is_zero(bad):
    assert pct_of_10(bad) == 0


def test_pct_of_10_scale_and_clamp():
    assert pct_of_10(9.5) == 95
    assert pct_of_10(12) == 100
    assert pct_of_10(-3) == 0


def test_average_of_nothing_numeric_is_zero():
    assert average({}) == 0
    assert average([]) == 0
    assert average({"tl": "chipped", "tr": None}) == 0


def test_average_rounds_to_one_decimal():
    assert average([9, 9.5]) == 9.3
    assert average({"tl": 9.5, "tr": "9", "bl": None}) == 9.3
    assert average([10, 9, 9]) == 9.3


def test_one_dec_formatting():
    assert one_dec(9) == "9.0"
    assert one_dec(8.25) == "8.3"
    assert one_dec("7.04") == "7.0"
    assert one_dec(None) == ""
    assert one_dec(math.nan) == ""


def test_overall_uses_weighted_sections():
    card = _card(
        front=SideGrades(surface=9.5, centering=9.5, corners={"tl": 9.5, "tr": 9.5}, edges={"top": 9.5}),
        back=SideGrades(surface=9.0, centering=9.0, corners={"tl": 9.0}, edges={"top": 9.0}),
    )
    grades = compute_grades(card)

    assert grades.f_section == 9.5
    assert grades.b_section == 9.0
    assert grades.overall == 9.4


def test_custom_weights():
    card = _card(
        front=SideGrades(surface=10, centering=10, corners_avg=10, edges_avg=10),
        back=SideGrades(surface=6, centering=6, corners_avg=6, edges_avg=6),
        front_weight=0.5,
        back_weight=0.5,
    )
    assert compute_grades(card).overall == 8.0


def test_explicit_overall_wins():
    card = _card(
        grade_overall=7.0,
        front=SideGrades(surface=10, centering=10, corners_avg=10, edges_avg=10),
        back=SideGrades(surface=10, centering=10, corners_avg=10, edges_avg=10),
    )
    assert compute_grades(card).overall == 7.0


def test_precomputed_averages_are_used_verbatim():
    card = _card(front=SideGrades(corners={"tl": 1, "tr": 1}, corners_avg=8.75, edges={"top": 8, "left": 9}))
    grades = compute_grades(card)

    assert grades.f_corners_avg == 8.75
    assert grades.f_edges_avg == 8.5


def test_missing_subgrades_are_left_out_of_sections():
    card = _card(front=SideGrades(surface=9.0, corners={"tl": 9.0}, edges={"top": 9.0}))
    grades = compute_grades(card)

    assert grades.f_section == 9.0
    # empty corner/edge mappings average to 0 and still count
    assert grades.b_section == 0


def test_display_percentages_prefer_explicit_values():
    card = _card(
        overall_pct="95%",
        pcts={"f_surface_pct": "0.9", "b_edges_pct": "150"},
        front=SideGrades(surface=5.0, centering=8.4),
        back=SideGrades(edges_avg=7.0),
    )
    pcts = display_percentages(card, compute_grades(card))

    assert pcts["overall_pct"] == 95
    assert pcts["f_surface_pct"] == 90
    assert pcts["f_centering_pct"] == 84
    assert pcts["b_edges_pct"] == 100
    assert pcts["b_surface_pct"] == 0
    assert len(pcts) == 9


def test_overall_pct_derived_from_overall_grade():
    card = _card(grade_overall=9.45)
    assert display_percentages(card, compute_grades(card))["overall_pct"] == 95
