"""
Layout catalog service.

Static registry of page layouts: frame metadata from `layouts.json` plus the
raw SVG template for each layout. Loaded once and never mutated.
"""
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

from domain.models import Frame, Layout
from services.svg_markup import parse_template_frames
from settings import settings

logger = logging.getLogger(__name__)

METADATA_FILENAME = "layouts.json"


class LayoutCatalog:
    """Immutable lookup of layouts and their templates, in catalog order."""

    def __init__(self, layouts: List[Layout], templates: Mapping[str, str]):
        self._layouts: Dict[str, Layout] = {}
        for layout in layouts:
            if layout.name in self._layouts:
                raise ValueError(f"Duplicate layout in catalog: {layout.name}")
            self._layouts[layout.name] = layout
        self._templates: Dict[str, str] = dict(templates)

    @classmethod
    def from_metadata(
        cls,
        metadata: Mapping[str, Mapping[str, Any]],
        templates: Mapping[str, str],
    ) -> "LayoutCatalog":
        """
        Build a catalog from `{name: {frameCount, frames: [{id, aspect_ratio}]}}`.

        Raises:
            ValueError: If frameCount disagrees with the frame list
        """
        layouts = []
        for name, entry in metadata.items():
            frames = tuple(
                Frame(id=int(f["id"]), aspect_ratio=float(f["aspect_ratio"]))
                for f in entry.get("frames", [])
            )
            declared = entry.get("frameCount", len(frames))
            if int(declared) != len(frames):
                raise ValueError(
                    f"Layout {name}: frameCount {declared} but {len(frames)} frames listed"
                )
            layouts.append(Layout(name=name, frames=frames))
        return cls(layouts, templates)

    def __contains__(self, name: object) -> bool:
        return name in self._layouts

    def __iter__(self) -> Iterator[Layout]:
        return iter(self._layouts.values())

    def __len__(self) -> int:
        return len(self._layouts)

    def names(self) -> List[str]:
        return list(self._layouts)

    def get(self, name: str) -> Optional[Layout]:
        return self._layouts.get(name)

    def require(self, name: str) -> Layout:
        layout = self._layouts.get(name)
        if layout is None:
            raise ValueError(f"Unknown layout: {name}")
        return layout

    def template(self, name: str) -> Optional[str]:
        return self._templates.get(name)

    def by_frame_count_desc(self) -> List[Layout]:
        """Largest layouts first; catalog order breaks ties."""
        return sorted(self._layouts.values(), key=lambda layout: -layout.frame_count)

    def with_frame_count(self, count: int) -> List[Layout]:
        return [layout for layout in self._layouts.values() if layout.frame_count == count]

    def to_metadata(self) -> Dict[str, Dict[str, Any]]:
        """Frame metadata in the shape sent to the plan oracle."""
        return {name: layout.to_dict() for name, layout in self._layouts.items()}


def load_catalog(layouts_dir: Optional[Path] = None) -> LayoutCatalog:
    """
    Load layout metadata and templates from a directory.

    Every template must declare a pattern for each frame in its metadata.

    Raises:
        FileNotFoundError: If metadata or a template file is missing
        ValueError: If a template disagrees with its metadata
    """
    root = Path(layouts_dir or settings.LAYOUTS_DIR)
    with open(root / METADATA_FILENAME, "r", encoding="utf-8") as fh:
        metadata = json.load(fh)

    templates: Dict[str, str] = {}
    for name, entry in metadata.items():
        template = (root / name).read_text(encoding="utf-8")
        declared = parse_template_frames(template)
        expected = sorted(int(f["id"]) for f in entry.get("frames", []))
        missing = [n for n in expected if n not in declared]
        if missing:
            raise ValueError(f"Template {name} has no pattern for frames {missing}")
        templates[name] = template

    catalog = LayoutCatalog.from_metadata(metadata, templates)
    logger.info("[catalog] loaded %s layouts from %s", len(catalog), root)
    return catalog


@lru_cache(maxsize=1)
def get_default_catalog() -> LayoutCatalog:
    """The bundled catalog, loaded once per process."""
    return load_catalog()
