import sys
from pathlib import Path
from typing import Dict, List, Sequence

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from domain.models import Frame, Layout, Photo  # noqa: E402
from services.layout_catalog import LayoutCatalog, load_catalog  # noqa: E402


def build_template(frame_count: int, use_paths: bool = False) -> str:
    """A minimal layout template with one pattern and one filled shape per frame."""
    patterns = "".join(
        f'<pattern id="img{n}" width="1" height="1">'
        f'<image id="photo{n}" width="1" height="1"/></pattern>'
        for n in range(1, frame_count + 1)
    )
    shapes = []
    for n in range(1, frame_count + 1):
        x = 10 * n
        if use_paths:
            shapes.append(f'<path d="M{x} 20 H{x + 50} V100 H{x} Z" fill="url(#img{n})"/>')
        else:
            shapes.append(f'<rect x="{x}" y="20" width="50" height="80" fill="url(#img{n})"/>')
    return (
        '<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" '
        'viewBox="0 0 600 800">'
        f'<defs><clipPath id="clip"><rect width="600" height="800"/></clipPath>{patterns}</defs>'
        f'<g clip-path="url(#clip)">{"".join(shapes)}</g></svg>'
    )


def build_catalog(spec: Dict[str, Sequence[float]]) -> LayoutCatalog:
    """Catalog from `{layout_name: [frame aspect ratios]}` in the given order."""
    layouts: List[Layout] = []
    templates: Dict[str, str] = {}
    for name, aspects in spec.items():
        layouts.append(Layout(
            name=name,
            frames=tuple(Frame(id=i + 1, aspect_ratio=a) for i, a in enumerate(aspects)),
        ))
        templates[name] = build_template(len(aspects))
    return LayoutCatalog(layouts, templates)


def photo(pid: str, aspect: float, height: float = 1000.0) -> Photo:
    return Photo(id=pid, width=round(aspect * height, 3), height=height)


@pytest.fixture
def catalog_factory():
    return build_catalog


@pytest.fixture
def photo_factory():
    return photo


@pytest.fixture(scope="session")
def bundled_catalog() -> LayoutCatalog:
    return load_catalog(BACKEND_ROOT / "layouts")
