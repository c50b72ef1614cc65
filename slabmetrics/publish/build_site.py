from __future__ import annotations

import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from slabmetrics.ingest.card_loader import load_cards
from slabmetrics.ingest.prebuild_validation import image_warnings, validate_card
from slabmetrics.modeling.grading import compute_grades
from slabmetrics.publish.render_cards import (
    FALLBACK_INDEX_TEMPLATE,
    card_output_path,
    card_tile,
    render_card_page,
    render_index,
)


ROOT = Path(__file__).resolve().parents[2]


@dataclass
class BuildPaths:
    data_dir: Path
    templates_dir: Path
    public_dir: Path
    dist_dir: Path

    @classmethod
    def under(cls, root: Path) -> "BuildPaths":
        return cls(
            data_dir=root / "data",
            templates_dir=root / "templates",
            public_dir=root / "public",
            dist_dir=root / "dist",
        )

    @property
    def card_template(self) -> Path:
        return self.templates_dir / "card.html"

    @property
    def index_template(self) -> Path:
        return self.templates_dir / "index.html"


@dataclass
class BuildSummary:
    built: int
    out_dir: Path
    skipped: List[dict] = field(default_factory=list)


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _reset_output(paths: BuildPaths) -> None:
    shutil.rmtree(paths.dist_dir, ignore_errors=True)
    paths.dist_dir.mkdir(parents=True, exist_ok=True)
    if paths.public_dir.is_dir():
        shutil.copytree(paths.public_dir, paths.dist_dir, dirs_exist_ok=True)


def build_site(paths: BuildPaths | None = None) -> BuildSummary:
    """Rebuilds dist/ from scratch: one page per valid card plus the index.

    Raises CardDataError when the aggregate JSON cannot be parsed and
    FileNotFoundError when the card template is missing; nothing is
    rendered in either case.
    """
    paths = paths or BuildPaths.under(ROOT)

    _reset_output(paths)
    cards = load_cards(paths.data_dir)

    if not paths.card_template.exists():
        raise FileNotFoundError(f"Missing template: {paths.card_template}")
    card_tpl = paths.card_template.read_text(encoding="utf-8")
    if paths.index_template.exists():
        index_tpl = paths.index_template.read_text(encoding="utf-8")
    else:
        index_tpl = FALLBACK_INDEX_TEMPLATE

    tiles: Dict[str, dict] = {}
    skipped: List[dict] = []

    for card in cards:
        errs = validate_card(card)
        if errs:
            print(f"[build] ERROR in card {card.label}: {', '.join(errs)}", file=sys.stderr)
            skipped.append({"id": card.label, "origin": card.origin, "errors": errs})
            continue
        for msg in image_warnings(card):
            print(f"[build] WARN: {msg}", file=sys.stderr)

        grades = compute_grades(card)
        _write(card_output_path(paths.dist_dir, card.id), render_card_page(card_tpl, card, grades))

        if card.id in tiles:
            print(f"[build] WARN: duplicate card id {card.id}; {card.origin} record overwrites earlier page", file=sys.stderr)
        tiles[card.id] = card_tile(card)

    _write(paths.dist_dir / "index.html", render_index(index_tpl, list(tiles.values())))

    return BuildSummary(built=len(tiles), out_dir=paths.dist_dir, skipped=skipped)
