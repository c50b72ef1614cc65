from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import List

from slabmetrics.ingest.card_loader import DATA_DIR, CardDataError, load_cards
from slabmetrics.schemas import LOCAL_IMAGE_PREFIX, ORIGIN_CSV, ORIGIN_JSON, CardRecord


_UNSAFE_ID_CHARS = ("/", "\\", "\x00")


def validate_card(card: CardRecord) -> List[str]:
    errors: List[str] = []
    if not card.id:
        errors.append("missing id")
    elif card.id in {".", ".."} or any(ch in card.id for ch in _UNSAFE_ID_CHARS):
        errors.append(f"unsafe id {card.id!r}")

    if not card.front_img or not card.back_img:
        errors.append("missing images.front/back")
    return errors


def image_warnings(card: CardRecord) -> List[str]:
    """Cosmetic image path conventions; never blocks a build."""
    warnings: List[str] = []
    for val in (card.front_img, card.back_img):
        if not val:
            continue
        if val.startswith("/") and not val.startswith(LOCAL_IMAGE_PREFIX):
            warnings.append(f'{card.label} image path "{val}" should start with "{LOCAL_IMAGE_PREFIX}..."')
        base = PurePosixPath(val).name
        if base != base.lower():
            warnings.append(f"{card.label} image filename should be lowercase: {base}")
    return warnings


def _card_checks(cards: List[CardRecord]) -> tuple[list[dict], list[dict]]:
    errors: list[dict] = []
    warnings: list[dict] = []

    invalid = []
    convention = []
    seen: dict[str, int] = {}
    for idx, card in enumerate(cards):
        problems = validate_card(card)
        if problems:
            invalid.append({"index": idx, "id": card.label, "origin": card.origin, "errors": problems})
            continue
        seen[card.id] = seen.get(card.id, 0) + 1
        for msg in image_warnings(card):
            convention.append({"id": card.id, "message": msg})

    if invalid:
        errors.append(
            {
                "category": "card_invalid",
                "message": f"{len(invalid)} cards fail minimal validation and will be skipped.",
                "sample": invalid[:30],
            }
        )

    dupes = [{"id": key, "records": count} for key, count in seen.items() if count > 1]
    if dupes:
        warnings.append(
            {
                "category": "duplicate_card_id",
                "message": f"{len(dupes)} card ids appear more than once; the last record wins.",
                "sample": dupes[:30],
            }
        )

    if convention:
        warnings.append(
            {
                "category": "image_convention",
                "message": f"{len(convention)} image references break path or casing conventions.",
                "sample": convention[:40],
            }
        )

    return errors, warnings


def run_prebuild_checks(data_dir: Path | None = None) -> dict:
    data_dir = data_dir or DATA_DIR

    try:
        cards = load_cards(data_dir)
    except CardDataError as exc:
        cards = []
        errors: list[dict] = [
            {"category": "data_unreadable", "message": str(exc), "sample": [{"preview": exc.preview}]}
        ]
        warnings: list[dict] = []
    else:
        errors, warnings = _card_checks(cards)

    return {
        "status": "fail" if errors else "pass",
        "checked_at_utc": datetime.now(timezone.utc).isoformat(),
        "paths": {"data_dir": str(data_dir)},
        "counts": {
            "cards": len(cards),
            "csv_cards": sum(1 for c in cards if c.origin == ORIGIN_CSV),
            "json_cards": sum(1 for c in cards if c.origin == ORIGIN_JSON),
            "errors": len(errors),
            "warnings": len(warnings),
        },
        "errors": errors,
        "warnings": warnings,
    }


def format_prebuild_report_md(report: dict) -> str:
    counts = report.get("counts", {})
    lines = [
        "# Card Build QA Report",
        "",
        f"- status: `{report.get('status', 'unknown')}`",
        f"- checked_at_utc: `{report.get('checked_at_utc', '')}`",
        f"- cards: `{counts.get('cards', 0)}` (csv `{counts.get('csv_cards', 0)}`, json `{counts.get('json_cards', 0)}`)",
        f"- error count: `{counts.get('errors', 0)}`",
        f"- warning count: `{counts.get('warnings', 0)}`",
        "",
    ]

    for title, entries in (("Errors", report.get("errors", [])), ("Warnings", report.get("warnings", []))):
        lines.append(f"## {title}")
        if not entries:
            lines.append("- none")
        for entry in entries:
            lines.append(f"- `{entry.get('category', '')}`: {entry.get('message', '')}")
            lines.extend(_sample_lines(entry.get("sample", [])))
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"


def _sample_lines(sample: list[dict]) -> list[str]:
    out = []
    for item in sample:
        if "id" not in item:
            continue
        if item.get("errors"):
            detail = ", ".join(item["errors"])
        elif "records" in item:
            detail = f"{item['records']} records"
        else:
            detail = item.get("message", "")
        out.append(f"  - `{item['id']}` {detail}".rstrip())
    return out
