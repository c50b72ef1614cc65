from __future__ import annotations

import json
from pathlib import Path

import pytest

from slabmetrics.publish.build_site import BuildPaths


CARD_TEMPLATE = (
    "<h1>{{player}}</h1>\n"
    "<p class='id'>{{id}}</p>\n"
    "<p class='grade'>{{overall_grade}} {{overall_pct}}</p>\n"
    "<p class='pop'>{{psa_pop}} {{psa_gem_rate}}</p>\n"
    "<script type=\"application/json\" id=\"compare-data\">{{compare_json}}</script>\n"
)
INDEX_TEMPLATE = "<p class='count'>{{count}}</p>\n<div>{{cards}}</div>\n"

CSV_HEADER = "id,player,set,number,variant,serial,front_img,back_img,overall_grade,psa_pop,psa_gem_rate\n"


def json_card(card_id: str, **extra) -> dict:
    card = {
        "id": card_id,
        "player": "Luka Doncic",
        "set": "2018 Panini Prizm",
        "number": "280",
        "images": {"front": f"/cards/{card_id}-front.jpg", "back": f"/cards/{card_id}-back.jpg"},
        "subgrades": {
            "front": {"surface": 9.5, "centering": 9.0, "corners": {"tl": 9.5, "tr": 9.0}, "edges": {"top": 9.5}},
            "back": {"surface": 9.0, "centering": 9.0, "corners": {"tl": 9.0}, "edges": {"top": 9.0}},
        },
    }
    card.update(extra)
    return card


@pytest.fixture
def site(tmp_path: Path) -> BuildPaths:
    paths = BuildPaths.under(tmp_path)
    paths.data_dir.mkdir()
    paths.templates_dir.mkdir()
    paths.card_template.write_text(CARD_TEMPLATE)
    paths.index_template.write_text(INDEX_TEMPLATE)
    return paths


def write_json(path: Path, payload) -> None:
    path.write_text(json.dumps(payload))
