from __future__ import annotations

import json
import math
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import polars as pl

from slabmetrics.schemas import (
    DEFAULT_BACK_WEIGHT,
    DEFAULT_COMPARE_LINK,
    DEFAULT_FRONT_WEIGHT,
    EDGE_IMAGE_PREFIX,
    GRADING_SERVICES,
    ORIGIN_CSV,
    ORIGIN_JSON,
    PLACEHOLDER_BACK,
    PLACEHOLDER_FRONT,
    SIDE_PREFIX,
    SIDES,
    SUBGRADE_FIELDS,
    CardRecord,
    SideGrades,
    clamp,
    round_half_up,
)


ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = ROOT / "data"
AGGREGATE_JSON_NAME = "cards.json"
PREFERRED_CSV_NAME = "slabmetrics cards sheet1.csv"
PREVIEW_CHARS = 300

_NUMBER_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_EDGE_PREFIX_RE = re.compile(r"^\.?/?edge/")


class CardDataError(ValueError):
    """The aggregate JSON file exists but cannot be parsed."""

    def __init__(self, path: Path, reason: str, preview: str):
        super().__init__(f"Failed to parse {path}: {reason}")
        self.path = path
        self.reason = reason
        self.preview = preview


def today_iso() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _leading_number(txt: str) -> Optional[float]:
    m = _NUMBER_RE.match(txt)
    if not m:
        return None
    return float(m.group(0))


def to_num_loose(value, default: float = 0) -> float:
    """Accepts "1,234" or " 1234 " and returns 1234; anything unreadable gives ``default``."""
    if value is None or value == "":
        return default
    num = _leading_number(re.sub(r"[^0-9.]", "", str(value)))
    if num is None or not math.isfinite(num):
        return default
    return num


def to_rate_0_to_100(value, default: int = 0) -> int:
    """Accepts "42%", "0.42" or "42" and returns 42, clamped to 0..100."""
    if value is None or value == "":
        return default
    raw = str(value).strip()
    had_pct = "%" in raw
    num = _leading_number(re.sub(r"[^0-9.]", "", raw))
    if num is None or not math.isfinite(num):
        return default
    if not had_pct and num <= 1:
        num = num * 100
    return int(round_half_up(clamp(num, 0, 100)))


def _to_float_or_none(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    txt = str(value).strip()
    if not txt or txt.upper() in {"N/A", "NA", "NULL", "NONE", "-"}:
        return None
    try:
        num = float(txt)
    except ValueError:
        return None
    return num if math.isfinite(num) else None


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _csv_edge_image(raw: str, card_id: str) -> str:
    if not raw:
        return f"{EDGE_IMAGE_PREFIX}{card_id}.jpg"
    if raw.startswith("/"):
        return raw
    return EDGE_IMAGE_PREFIX + _EDGE_PREFIX_RE.sub("", raw)


# ---------------------------------------------------------------- CSV


def _pick_csv(data_dir: Path) -> Optional[Path]:
    if not data_dir.is_dir():
        return None
    files = sorted(p for p in data_dir.iterdir() if p.is_file() and p.suffix.lower() == ".csv")
    if not files:
        return None
    for path in files:
        if path.name.lower() == PREFERRED_CSV_NAME:
            return path
    return files[0]


def _read_csv_rows(path: Path) -> List[Dict[str, str]]:
    try:
        df = pl.read_csv(path, infer_schema_length=0, encoding="utf8-lossy")
    except pl.exceptions.NoDataError:
        return []

    rows: List[Dict[str, str]] = []
    for r in df.iter_rows(named=True):
        row = {(k or "").strip().lstrip("\ufeff"): _text(v) for k, v in r.items()}
        if not any(row.values()):
            continue
        rows.append(row)
    return rows


def _csv_side(row: Dict[str, str], side: str) -> SideGrades:
    p = SIDE_PREFIX[side]
    return SideGrades(
        surface=_to_float_or_none(row.get(f"{p}_surface")),
        centering=_to_float_or_none(row.get(f"{p}_centering")),
        corners_avg=_to_float_or_none(row.get(f"{p}_corners_avg")),
        edges_avg=_to_float_or_none(row.get(f"{p}_edges_avg")),
        remarks={name: row.get(f"{p}_remarks_{name}", "") for name in SUBGRADE_FIELDS},
    )


def card_from_csv_row(row: Dict[str, str]) -> CardRecord:
    def g(key: str) -> str:
        return (row.get(key) or "").strip()

    card_id = g("id")

    pcts: Dict[str, str] = {}
    for side in SIDES:
        for name in SUBGRADE_FIELDS:
            key = f"{SIDE_PREFIX[side]}_{name}_pct"
            if g(key):
                pcts[key] = g(key)

    return CardRecord(
        origin=ORIGIN_CSV,
        id=card_id,
        player=g("player"),
        set=g("set"),
        number=g("number"),
        variant=g("variant"),
        serial=g("serial"),
        team=g("team"),
        sport=g("sport"),
        graded_at=g("graded_at") or today_iso(),
        front_img=g("front_img") or PLACEHOLDER_FRONT,
        back_img=g("back_img") or PLACEHOLDER_BACK,
        edge_img=_csv_edge_image(g("edge_img"), card_id),
        compare_link=g("ebay") or DEFAULT_COMPARE_LINK,
        grade_overall=_to_float_or_none(g("overall_grade")),
        overall_pct=g("overall_pct") or None,
        front=_csv_side(row, "front"),
        back=_csv_side(row, "back"),
        pcts=pcts,
        pops={svc: to_num_loose(g(f"{svc}_pop"), 0) for svc in GRADING_SERVICES},
        gem_rates={svc: to_rate_0_to_100(g(f"{svc}_gem_rate"), 0) for svc in GRADING_SERVICES},
        compare_distribution={},
    )


def load_csv_cards(data_dir: Path | None = None) -> List[CardRecord]:
    data_dir = data_dir or DATA_DIR
    path = _pick_csv(data_dir)
    if path is None:
        return []
    return [card_from_csv_row(row) for row in _read_csv_rows(path)]


# ---------------------------------------------------------------- JSON


def _measurements(value) -> Dict[str, float]:
    if not isinstance(value, dict):
        return {}
    out: Dict[str, float] = {}
    for name, raw in value.items():
        num = _to_float_or_none(raw)
        if num is not None:
            out[str(name)] = num
    return out


def _json_side(obj) -> SideGrades:
    if not isinstance(obj, dict):
        return SideGrades()

    corners = obj.get("corners")
    edges = obj.get("edges")
    corners_avg = _to_float_or_none(obj.get("corners_avg"))
    edges_avg = _to_float_or_none(obj.get("edges_avg"))
    # a bare number in place of the mapping is the average itself
    if corners_avg is None and not isinstance(corners, dict):
        corners_avg = _to_float_or_none(corners)
    if edges_avg is None and not isinstance(edges, dict):
        edges_avg = _to_float_or_none(edges)

    remarks = obj.get("remarks") if isinstance(obj.get("remarks"), dict) else {}
    return SideGrades(
        surface=_to_float_or_none(obj.get("surface")),
        centering=_to_float_or_none(obj.get("centering")),
        corners=_measurements(corners),
        edges=_measurements(edges),
        corners_avg=corners_avg,
        edges_avg=edges_avg,
        remarks={name: _text(remarks.get(name)) for name in SUBGRADE_FIELDS},
    )


def _weight(weights: dict, key: str, default: float) -> float:
    num = _to_float_or_none(weights.get(key))
    return default if num is None else num


def card_from_json(obj: dict) -> CardRecord:
    images = obj.get("images") if isinstance(obj.get("images"), dict) else {}
    links = obj.get("links") if isinstance(obj.get("links"), dict) else {}
    card_info = obj.get("card_info") if isinstance(obj.get("card_info"), dict) else {}
    subgrades = obj.get("subgrades") if isinstance(obj.get("subgrades"), dict) else {}
    weights = obj.get("weights") if isinstance(obj.get("weights"), dict) else {}
    pops = obj.get("pops") if isinstance(obj.get("pops"), dict) else {}
    gem_rates = obj.get("gemRates", obj.get("gem_rates"))
    gem_rates = gem_rates if isinstance(gem_rates, dict) else {}
    pcts = obj.get("pcts") if isinstance(obj.get("pcts"), dict) else {}
    compare = obj.get("compare") if isinstance(obj.get("compare"), dict) else {}

    overall = obj.get("grade_overall", obj.get("overall_grade"))
    overall_pct = _text(obj.get("overall_pct"))
    distribution = compare.get("distribution")

    return CardRecord(
        origin=ORIGIN_JSON,
        id=_text(obj.get("id")),
        player=_text(obj.get("player")),
        set=_text(obj.get("set")),
        number=_text(obj.get("number")),
        variant=_text(obj.get("variant")),
        serial=_text(obj.get("serial")),
        team=_text(obj.get("team")),
        sport=_text(card_info.get("sport") or obj.get("sport")),
        graded_at=_text(obj.get("graded_at")),
        front_img=_text(images.get("front") or obj.get("front_img")) or None,
        back_img=_text(images.get("back") or obj.get("back_img")) or None,
        edge_img=_text(obj.get("edge_img")) or None,
        compare_link=_text(links.get("ebay_comps") or obj.get("ebay")) or DEFAULT_COMPARE_LINK,
        grade_overall=_to_float_or_none(overall),
        overall_pct=overall_pct or None,
        front=_json_side(subgrades.get("front")),
        back=_json_side(subgrades.get("back")),
        front_weight=_weight(weights, "front", DEFAULT_FRONT_WEIGHT),
        back_weight=_weight(weights, "back", DEFAULT_BACK_WEIGHT),
        pcts={str(k): _text(v) for k, v in pcts.items() if _text(v)},
        pops={svc: to_num_loose(pops.get(svc), 0) for svc in GRADING_SERVICES},
        gem_rates={svc: to_rate_0_to_100(gem_rates.get(svc), 0) for svc in GRADING_SERVICES},
        compare_distribution=distribution if distribution is not None else {},
    )


def _as_objects(payload, source: str) -> List[dict]:
    items = payload if isinstance(payload, list) else [payload]
    out: List[dict] = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            print(f"[build] WARN: {source} entry {idx} is not an object; skipped", file=sys.stderr)
            continue
        out.append(item)
    return out


def _reject_constant(name: str):
    raise ValueError(f"non-standard JSON constant {name}")


def _parse_json(raw: bytes):
    # NaN and Infinity would be echoed into pages the browser cannot JSON.parse
    return json.loads(raw.decode("utf-8-sig"), parse_constant=_reject_constant)


def load_json_cards(data_dir: Path | None = None) -> List[CardRecord]:
    data_dir = data_dir or DATA_DIR
    aggregate = data_dir / AGGREGATE_JSON_NAME
    objects: List[dict] = []

    if aggregate.exists():
        raw = aggregate.read_bytes()
        try:
            payload = _parse_json(raw)
        except (ValueError, UnicodeDecodeError) as exc:
            preview = raw.decode("utf-8", errors="replace")[:PREVIEW_CHARS]
            raise CardDataError(aggregate, str(exc), preview) from exc
        objects = _as_objects(payload, aggregate.name)
    elif data_dir.is_dir():
        for path in sorted(data_dir.glob("*.json")):
            try:
                payload = _parse_json(path.read_bytes())
            except (ValueError, UnicodeDecodeError) as exc:
                print(f"[build] Skipping bad JSON: {path.name} {exc}", file=sys.stderr)
                continue
            objects.extend(_as_objects(payload, path.name))

    return [card_from_json(obj) for obj in objects]


def load_cards(data_dir: Path | None = None) -> List[CardRecord]:
    """CSV-derived records first, then JSON-derived records."""
    data_dir = data_dir or DATA_DIR
    return load_csv_cards(data_dir) + load_json_cards(data_dir)
