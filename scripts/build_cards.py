#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from slabmetrics.ingest.card_loader import CardDataError
from slabmetrics.publish.build_site import BuildPaths, build_site


DEFAULT_PATHS = BuildPaths.under(ROOT)


def main() -> None:
    parser = argparse.ArgumentParser(description="Render one HTML page per graded card plus the card index.")
    parser.add_argument("--data", type=Path, default=DEFAULT_PATHS.data_dir)
    parser.add_argument("--templates", type=Path, default=DEFAULT_PATHS.templates_dir)
    parser.add_argument("--public", type=Path, default=DEFAULT_PATHS.public_dir)
    parser.add_argument("--out", type=Path, default=DEFAULT_PATHS.dist_dir)
    args = parser.parse_args()

    paths = BuildPaths(
        data_dir=args.data,
        templates_dir=args.templates,
        public_dir=args.public,
        dist_dir=args.out,
    )

    try:
        summary = build_site(paths)
    except CardDataError as exc:
        print(f"[build] {exc}", file=sys.stderr)
        print(f"Preview:\n{exc.preview}", file=sys.stderr)
        raise SystemExit(1)
    except FileNotFoundError as exc:
        print(f"[build] {exc}", file=sys.stderr)
        raise SystemExit(1)

    print(f"Built {summary.built} cards -> {summary.out_dir.name}/")
    if summary.skipped:
        print(f"Skipped: {len(summary.skipped)}")


if __name__ == "__main__":
    main()
