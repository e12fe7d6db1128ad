"""
Page materializer service.

Turns a (layout, assignments) pair into a renderable page: namespaced
template markup with photos bound into frames, plus the frame geometry
downstream renderers need.
"""
import dataclasses
import logging
from typing import Iterable, List, Mapping, Optional

from domain.models import Assignment, Layout, Page, Photo, PlanTrace
from services.layout_catalog import LayoutCatalog
from services.svg_markup import (
    MarkupError,
    bind_images,
    count_bound_images,
    extract_frame_coordinates,
    namespace_ids,
)

logger = logging.getLogger(__name__)


def make_page_id(page_number: int) -> str:
    return f"page-{page_number}"


def create_page(
    page_number: int,
    layout_name: str,
    assignments: Iterable[Assignment],
    photo_lookup: Mapping[str, Photo],
    catalog: LayoutCatalog,
    page_id: Optional[str] = None,
) -> Optional[Page]:
    """
    Materialize a page from a layout and its frame assignments.

    The page id doubles as the namespace suffix so pages rendered side by
    side never share element ids. Returns None when the template is missing
    or markup processing fails; callers log and skip.
    """
    template = catalog.template(layout_name)
    if template is None:
        logger.warning("[materializer] no template for layout %s", layout_name)
        return None

    page_id = page_id or make_page_id(page_number)
    ordered = sorted(assignments, key=lambda a: a.frame_number)
    try:
        svg_content = namespace_ids(template, page_id)
        svg_content = bind_images(svg_content, ordered, photo_lookup)
        frame_coordinates = extract_frame_coordinates(svg_content)
    except Exception:
        logger.exception("[materializer] failed to create page %s (%s)", page_number, layout_name)
        return None

    return Page(
        id=page_id,
        page_number=page_number,
        layout_name=layout_name,
        photo_ids=[a.photo_id for a in ordered],
        svg_content=svg_content,
        frame_coordinates=frame_coordinates,
    )


def page_has_all_images(svg_content: str, expected_count: int) -> bool:
    """Check that at least `expected_count` images received a usable href."""
    try:
        return count_bound_images(svg_content) >= expected_count
    except MarkupError:
        logger.warning("[materializer] could not count images in page markup")
        return False


def materialize(
    page_number: int,
    layout: Layout,
    assignments: List[Assignment],
    photo_lookup: Mapping[str, Photo],
    catalog: LayoutCatalog,
    trace: Optional[PlanTrace] = None,
) -> Optional[Page]:
    """
    Create a page and confirm every frame of the layout got an image.

    A page that fails either step is discarded; its photos stay unused so a
    later pass can place them.
    """
    page = create_page(page_number, layout.name, assignments, photo_lookup, catalog)
    if page is None:
        if trace is not None:
            trace.add("materialize_failed", f"Page {page_number}: markup error", layout=layout.name)
        return None
    if not page_has_all_images(page.svg_content, layout.frame_count):
        logger.warning(
            "[materializer] page %s (%s) is missing image bindings, discarding",
            page_number, layout.name,
        )
        if trace is not None:
            trace.add(
                "materialize_failed",
                f"Page {page_number}: missing image bindings",
                layout=layout.name,
                photo_ids=page.photo_ids,
            )
        return None
    return page


def dedupe_pages(pages: List[Page], trace: Optional[PlanTrace] = None) -> List[Page]:
    """Drop pages whose layout and photo set repeat an earlier page."""
    seen: set[str] = set()
    unique: List[Page] = []
    for page in pages:
        signature = page.signature
        if signature in seen:
            logger.info("[materializer] skipping duplicate page %s (%s)", page.id, page.layout_name)
            if trace is not None:
                trace.add("duplicate_page", f"Dropped duplicate page {page.id}", signature=signature)
            continue
        seen.add(signature)
        unique.append(page)
    return unique


def renumber_pages(pages: List[Page]) -> List[Page]:
    """Return copies numbered 1..N in list order."""
    return [dataclasses.replace(page, page_number=index + 1) for index, page in enumerate(pages)]
