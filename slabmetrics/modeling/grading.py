from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Union

from slabmetrics.ingest.card_loader import to_rate_0_to_100
from slabmetrics.schemas import SIDE_PREFIX, SIDES, CardRecord, SideGrades, clamp, round_half_up


@dataclass(frozen=True)
class CardGrades:
    f_corners_avg: float
    f_edges_avg: float
    b_corners_avg: float
    b_edges_avg: float
    f_section: float
    b_section: float
    overall: float

    def corners_avg(self, side: str) -> float:
        return self.f_corners_avg if side == "front" else self.b_corners_avg

    def edges_avg(self, side: str) -> float:
        return self.f_edges_avg if side == "front" else self.b_edges_avg


def _finite(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def average(values: Union[Iterable, Mapping]) -> float:
    """Mean of the finite numbers in ``values`` (a sequence or a mapping), to one decimal; 0 when none."""
    if isinstance(values, Mapping):
        values = values.values()
    nums = [n for n in (_finite(v) for v in values) if n is not None]
    if not nums:
        return 0.0
    return round_half_up(sum(nums) / len(nums), 1)


def one_dec(value) -> str:
    num = _finite(value)
    if num is None:
        return ""
    return f"{round_half_up(num, 1):.1f}"


def pct_of_10(value) -> int:
    """Maps a 0-10 grade onto a 0-100 bar width."""
    num = _finite(value)
    if num is None:
        return 0
    return int(round_half_up(clamp(num / 10 * 100, 0, 100)))


def _side_averages(side: SideGrades) -> tuple[float, float]:
    corners = side.corners_avg if side.corners_avg is not None else average(side.corners)
    edges = side.edges_avg if side.edges_avg is not None else average(side.edges)
    return corners, edges


def compute_grades(card: CardRecord) -> CardGrades:
    f_corners, f_edges = _side_averages(card.front)
    b_corners, b_edges = _side_averages(card.back)

    f_section = average([card.front.surface, card.front.centering, f_corners, f_edges])
    b_section = average([card.back.surface, card.back.centering, b_corners, b_edges])

    if card.grade_overall is not None:
        overall = card.grade_overall
    else:
        overall = round_half_up(card.front_weight * f_section + card.back_weight * b_section, 1)

    return CardGrades(
        f_corners_avg=f_corners,
        f_edges_avg=f_edges,
        b_corners_avg=b_corners,
        b_edges_avg=b_edges,
        f_section=f_section,
        b_section=b_section,
        overall=overall,
    )


def _explicit_or_derived(explicit: Optional[str], derived) -> int:
    if explicit is not None and str(explicit).strip() != "":
        return to_rate_0_to_100(explicit)
    return pct_of_10(derived)


def display_percentages(card: CardRecord, grades: CardGrades) -> Dict[str, int]:
    """Bar and gauge widths keyed by template placeholder; explicit record values win."""
    out: Dict[str, int] = {
        "overall_pct": _explicit_or_derived(card.overall_pct, round_half_up(grades.overall, 1)),
    }
    for side in SIDES:
        p = SIDE_PREFIX[side]
        grades_side = card.side(side)
        derived = {
            "surface": grades_side.surface,
            "centering": grades_side.centering,
            "corners": grades.corners_avg(side),
            "edges": grades.edges_avg(side),
        }
        for name, value in derived.items():
            key = f"{p}_{name}_pct"
            out[key] = _explicit_or_derived(card.pcts.get(key), value)
    return out
