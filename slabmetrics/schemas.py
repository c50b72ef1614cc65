from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Dict, Optional


PLACEHOLDER_FRONT = "https://via.placeholder.com/420x588?text=Front"
PLACEHOLDER_BACK = "https://via.placeholder.com/420x588?text=Back"
DEFAULT_COMPARE_LINK = "#"
LOCAL_IMAGE_PREFIX = "/cards/"
EDGE_IMAGE_PREFIX = "/edge/"

DEFAULT_FRONT_WEIGHT = 0.8
DEFAULT_BACK_WEIGHT = 0.2

GRADING_SERVICES = ("psa", "sgc", "cgc", "bgs")
SUBGRADE_FIELDS = ("surface", "centering", "corners", "edges")
SIDES = ("front", "back")
SIDE_PREFIX = {"front": "f", "back": "b"}

ORIGIN_CSV = "csv"
ORIGIN_JSON = "json"

# wide enough for any finite float at one decimal
_WIDE = Context(prec=400)


@dataclass
class SideGrades:
    surface: Optional[float] = None
    centering: Optional[float] = None
    corners: Dict[str, float] = field(default_factory=dict)
    edges: Dict[str, float] = field(default_factory=dict)
    corners_avg: Optional[float] = None
    edges_avg: Optional[float] = None
    remarks: Dict[str, str] = field(default_factory=dict)

    def remark(self, name: str) -> str:
        return self.remarks.get(name, "") or ""


@dataclass
class CardRecord:
    origin: str
    id: str
    player: str = ""
    set: str = ""
    number: str = ""
    variant: str = ""
    serial: str = ""
    team: str = ""
    sport: str = ""
    graded_at: str = ""
    front_img: Optional[str] = None
    back_img: Optional[str] = None
    edge_img: Optional[str] = None
    compare_link: str = DEFAULT_COMPARE_LINK
    grade_overall: Optional[float] = None
    overall_pct: Optional[str] = None
    front: SideGrades = field(default_factory=SideGrades)
    back: SideGrades = field(default_factory=SideGrades)
    front_weight: float = DEFAULT_FRONT_WEIGHT
    back_weight: float = DEFAULT_BACK_WEIGHT
    pcts: Dict[str, str] = field(default_factory=dict)
    pops: Dict[str, float] = field(default_factory=dict)
    gem_rates: Dict[str, int] = field(default_factory=dict)
    compare_distribution: object = field(default_factory=dict)

    def side(self, name: str) -> SideGrades:
        return self.front if name == "front" else self.back

    @property
    def label(self) -> str:
        return self.id or "(no id)"

    @property
    def edge_image(self) -> str:
        return self.edge_img or f"{EDGE_IMAGE_PREFIX}{self.id}.jpg"


def round_half_up(value: float, digits: int = 0) -> float:
    """Rounds half away from zero on the decimal text of ``value``."""
    quant = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(float(value))).quantize(quant, rounding=ROUND_HALF_UP, context=_WIDE))


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
