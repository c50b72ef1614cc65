from __future__ import annotations

import json
import re

import pytest

from conftest import CSV_HEADER, json_card, write_json
from slabmetrics.ingest.card_loader import CardDataError
from slabmetrics.publish.build_site import build_site
from slabmetrics.publish.render_cards import FALLBACK_INDEX_TEMPLATE


CSV_ROW = 'csv-1,Shohei Ohtani,2018 Topps Update,US1,Base,,/cards/csv-1-front.jpg,/cards/csv-1-back.jpg,9.5,"1,234",42%\n'


def _pages(paths):
    return sorted(p.name for p in (paths.dist_dir / "cards").glob("*.html"))


def test_csv_and_json_sources_build_both(site):
    (site.data_dir / "sheet.csv").write_text(CSV_HEADER + CSV_ROW)
    write_json(site.data_dir / "cards.json", [json_card("json-1")])

    summary = build_site(site)

    assert summary.built == 2
    assert _pages(site) == ["csv-1.html", "json-1.html"]

    index = (site.dist_dir / "index.html").read_text()
    assert "<p class='count'>2</p>" in index
    assert index.index("/cards/csv-1.html") < index.index("/cards/json-1.html")

    page = (site.dist_dir / "cards" / "csv-1.html").read_text()
    assert "<p class='id'>csv-1</p>" in page
    assert "<p class='grade'>9.5 95</p>" in page
    assert "<p class='pop'>1234 42</p>" in page


def test_invalid_record_is_skipped(site, capsys):
    write_json(site.data_dir / "cards.json", [json_card("good"), {"player": "No Id", "images": {"front": "f", "back": "b"}}])

    summary = build_site(site)

    assert summary.built == 1
    assert summary.skipped[0]["id"] == "(no id)"
    assert _pages(site) == ["good.html"]
    assert "<p class='count'>1</p>" in (site.dist_dir / "index.html").read_text()
    assert "[build] ERROR in card (no id): missing id" in capsys.readouterr().err


def test_compare_distribution_survives_the_build(site):
    distribution = {"psa": {"10": 4731, "9": 5102}, "sgc": {"10": 88}}
    write_json(site.data_dir / "cards.json", json_card("cmp", compare={"distribution": distribution}))

    build_site(site)

    page = (site.dist_dir / "cards" / "cmp.html").read_text()
    payload = re.search(r'id="compare-data">(.*)</script>', page).group(1)
    assert json.loads(payload) == distribution


def test_output_dir_is_rebuilt_and_public_copied(site):
    site.dist_dir.mkdir()
    (site.dist_dir / "stale.html").write_text("old")
    (site.public_dir / "css").mkdir(parents=True)
    (site.public_dir / "css" / "site.css").write_text("body{}")
    write_json(site.data_dir / "cards.json", [json_card("a")])

    build_site(site)

    assert not (site.dist_dir / "stale.html").exists()
    assert (site.dist_dir / "css" / "site.css").read_text() == "body{}"


def test_missing_card_template_is_fatal(site):
    site.card_template.unlink()
    write_json(site.data_dir / "cards.json", [json_card("a")])

    with pytest.raises(FileNotFoundError):
        build_site(site)
    assert not (site.dist_dir / "cards").exists()


def test_missing_index_template_uses_fallback(site):
    site.index_template.unlink()
    write_json(site.data_dir / "cards.json", [json_card("a")])

    build_site(site)

    index = (site.dist_dir / "index.html").read_text()
    assert index.startswith(FALLBACK_INDEX_TEMPLATE.split("{{cards}}")[0])
    assert "/cards/a.html" in index


def test_unparsable_aggregate_aborts(site):
    (site.data_dir / "cards.json").write_text("[{")

    with pytest.raises(CardDataError):
        build_site(site)
    assert not (site.dist_dir / "index.html").exists()


def test_duplicate_id_keeps_one_page_and_tile(site, capsys):
    (site.data_dir / "sheet.csv").write_text(CSV_HEADER + CSV_ROW)
    write_json(site.data_dir / "cards.json", [json_card("csv-1", player="Later Record")])

    summary = build_site(site)

    assert summary.built == 1
    assert _pages(site) == ["csv-1.html"]
    assert "Later Record" in (site.dist_dir / "cards" / "csv-1.html").read_text()
    index = (site.dist_dir / "index.html").read_text()
    assert index.count("/cards/csv-1.html") == 1
    assert "duplicate card id csv-1" in capsys.readouterr().err


def test_image_convention_warnings_do_not_skip(site, capsys):
    write_json(site.data_dir / "cards.json", [json_card("w", images={"front": "/img/W.jpg", "back": "/cards/w.jpg"})])

    summary = build_site(site)

    assert summary.built == 1
    err = capsys.readouterr().err
    assert '[build] WARN: w image path "/img/W.jpg"' in err
    assert "image filename should be lowercase: W.jpg" in err
