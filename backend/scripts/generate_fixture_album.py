"""Generate a deterministic fixture album and write each page's SVG.

Usage:
    python -m scripts.generate_fixture_album [output_dir]

Run from `backend/`. Outputs default to `backend/tests/artifacts/fixture_album/`
and are gitignored. The plan oracle is never called, so the output is the same
on every run.
"""

import json
import logging
import sys
from pathlib import Path
from typing import List

from domain.models import Photo
from services.album_generator import generate_album
from services.layout_catalog import get_default_catalog

ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = ROOT / "tests" / "artifacts" / "fixture_album"

LOG = logging.getLogger("generate_fixture_album")

# (width, height) pairs covering every orientation class
FIXTURE_SHAPES = [
    (4000, 6000), (6000, 4000), (3000, 3000), (2400, 3600), (5000, 2000),
    (3600, 2400), (2000, 3200), (4200, 2800), (3000, 3300), (2800, 4200),
    (6000, 4000), (3000, 4500), (4500, 3000), (2200, 3400), (3200, 3200),
    (6000, 3000), (2600, 3900),
]


def build_fixture_photos() -> List[Photo]:
    return [
        Photo(id=f"photo-{i + 1:02d}", width=w, height=h, url=f"fixtures/photo-{i + 1:02d}.jpg")
        for i, (w, h) in enumerate(FIXTURE_SHAPES)
    ]


def main():
    logging.basicConfig(level=logging.INFO)
    out_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else ARTIFACTS_DIR
    out_dir.mkdir(parents=True, exist_ok=True)

    photos = build_fixture_photos()
    result = generate_album(photos, catalog=get_default_catalog())

    summary = []
    for page in result.pages:
        svg_path = out_dir / f"{page.id}.svg"
        svg_path.write_text(page.svg_content, encoding="utf-8")
        record = page.to_dict()
        record.pop("svgContent")
        record["file"] = svg_path.name
        summary.append(record)

    album_path = out_dir / "album.json"
    with open(album_path, "w", encoding="utf-8") as fh:
        json.dump({"pages": summary, "notices": result.notices}, fh, indent=2)

    LOG.info("Wrote %s pages for %s photos to %s", len(result.pages), len(photos), out_dir)
    print(f"Album: {album_path}")


if __name__ == "__main__":
    main()
