from __future__ import annotations

import html
import json
import re
from pathlib import Path
from typing import Dict, List, Mapping

from slabmetrics.ingest.card_loader import today_iso
from slabmetrics.modeling.grading import CardGrades, display_percentages, one_dec
from slabmetrics.schemas import GRADING_SERVICES, SIDE_PREFIX, SIDES, SUBGRADE_FIELDS, CardRecord


CARDS_SUBDIR = "cards"
FALLBACK_INDEX_TEMPLATE = "<!doctype html><html><body>{{cards}}</body></html>"

_PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")


def _safe(value) -> str:
    return "" if value is None else str(value)


def _count_str(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def fill_template(text: str, mapping: Mapping[str, object]) -> str:
    """Replaces every {{name}} token; unknown names become empty strings."""
    return _PLACEHOLDER_RE.sub(lambda m: _safe(mapping.get(m.group(1))), text)


def compare_json(distribution) -> str:
    # keeps a literal "</script>" inside the payload from closing the tag
    return json.dumps(distribution, ensure_ascii=False).replace("</", "<\\/")


def card_field_map(card: CardRecord, grades: CardGrades) -> Dict[str, str]:
    pcts = display_percentages(card, grades)

    fields: Dict[str, str] = {
        "id": card.id,
        "player": card.player,
        "set": card.set,
        "number": card.number,
        "variant": card.variant,
        "serial": card.serial,
        "team": card.team,
        "sport": card.sport,
        "graded_at": card.graded_at or today_iso(),
        "front_img": _safe(card.front_img),
        "back_img": _safe(card.back_img),
        "edge_img": card.edge_image,
        "ebay": card.compare_link,
        "overall_grade": one_dec(grades.overall),
        "compare_json": compare_json(card.compare_distribution),
    }

    for side in SIDES:
        p = SIDE_PREFIX[side]
        sub = card.side(side)
        fields[f"{p}_surface"] = one_dec(sub.surface)
        fields[f"{p}_centering"] = one_dec(sub.centering)
        fields[f"{p}_corners_avg"] = one_dec(grades.corners_avg(side))
        fields[f"{p}_edges_avg"] = one_dec(grades.edges_avg(side))
        for name in SUBGRADE_FIELDS:
            fields[f"{p}_remarks_{name}"] = sub.remark(name)

    for key, pct in pcts.items():
        fields[key] = str(pct)

    for svc in GRADING_SERVICES:
        fields[f"{svc}_pop"] = _count_str(card.pops.get(svc, 0))
        fields[f"{svc}_gem_rate"] = str(card.gem_rates.get(svc, 0))

    return fields


def render_card_page(template: str, card: CardRecord, grades: CardGrades) -> str:
    return fill_template(template, card_field_map(card, grades))


def card_output_path(out_dir: Path, card_id: str) -> Path:
    return out_dir / CARDS_SUBDIR / f"{card_id}.html"


def card_tile(card: CardRecord) -> dict:
    return {
        "id": card.id,
        "href": f"/{CARDS_SUBDIR}/{card.id}.html",
        "img": _safe(card.front_img),
        "player": card.player,
        "set": card.set,
        "number": card.number,
        "variant": card.variant,
        "serial": card.serial,
    }


def _tile_markup(tile: dict) -> str:
    def attr(key: str) -> str:
        return html.escape((tile.get(key) or "").lower())

    def text(key: str) -> str:
        return html.escape(tile.get(key) or "")

    return f"""
    <a class="tile reveal" href="{html.escape(tile['href'])}" data-player="{attr('player')}"
      data-set="{attr('set')}" data-number="{attr('number')}"
      data-variant="{attr('variant')}" data-serial="{attr('serial')}">
      <img class="thumb" src="{html.escape(tile['img'])}" alt="" loading="lazy">
      <div class="meta">
        <strong>{text('player')}</strong>
        <small>{text('set')} {text('number')}</small>
        <small>{text('variant')}</small>
        <small class="serial">Serial: {text('serial')}</small>
      </div>
    </a>
  """


def render_index(template: str, tiles: List[dict]) -> str:
    cards_html = "\n".join(_tile_markup(t) for t in tiles)
    return fill_template(template, {"cards": cards_html, "count": str(len(tiles))})
