"""
Page edit operations.

Each operation takes the current page list and returns a new one; input pages
are never mutated. Touched pages are re-materialized from their layout
template rather than patched, so markup and geometry always agree with
`photo_ids`. Frame and page indices are 0-based positions.
"""
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

from domain.models import Assignment, Layout, Orientation, Page, Photo, PlanTrace
from services.album_generator import plan_pages
from services.layout_catalog import LayoutCatalog
from services.page_materializer import create_page, make_page_id, page_has_all_images, renumber_pages
from services.plan_oracle import PlanOracle

logger = logging.getLogger(__name__)


def _lookup(photos: Iterable[Photo]) -> Dict[str, Photo]:
    return {p.id: p for p in photos}


def _check_page_index(pages: Sequence[Page], index: int) -> None:
    if not 0 <= index < len(pages):
        raise IndexError(f"Page index {index} out of range (0-{len(pages) - 1})")


def _check_frame_index(page: Page, index: int, allow_end: bool = False) -> None:
    upper = len(page.photo_ids) + (1 if allow_end else 0)
    if not 0 <= index < upper:
        raise IndexError(f"Frame index {index} out of range for page {page.id}")


def rebuild_page(
    page_id: str,
    page_number: int,
    layout_name: str,
    photo_ids: Sequence[str],
    photo_lookup: Dict[str, Photo],
    catalog: LayoutCatalog,
) -> Page:
    """
    Materialize a page placing `photo_ids` into the layout's frames in order.

    Raises:
        ValueError: Unknown layout or photo, a frame-count mismatch, or
            markup that could not be built
    """
    layout = catalog.require(layout_name)
    if layout.frame_count != len(photo_ids):
        raise ValueError(
            f"Layout {layout_name} has {layout.frame_count} frames but page {page_id} "
            f"has {len(photo_ids)} photos"
        )
    unknown = [pid for pid in photo_ids if pid not in photo_lookup]
    if unknown:
        raise ValueError(f"Unknown photo ids: {unknown}")

    assignments = [
        Assignment(frame_number=frame.id, photo_id=pid)
        for frame, pid in zip(sorted(layout.frames, key=lambda f: f.id), photo_ids)
    ]
    page = create_page(page_number, layout_name, assignments, photo_lookup, catalog, page_id=page_id)
    if page is None or not page_has_all_images(page.svg_content, layout.frame_count):
        raise ValueError(f"Could not materialize page {page_id} with layout {layout_name}")
    return page


def _rebuild(page: Page, layout_name: str, photo_ids: Sequence[str], lookup: Dict[str, Photo],
             catalog: LayoutCatalog) -> Page:
    return rebuild_page(page.id, page.page_number, layout_name, photo_ids, lookup, catalog)


def swap_photos(
    pages: Sequence[Page],
    source_page: int,
    source_frame: int,
    target_page: int,
    target_frame: int,
    photos: Iterable[Photo],
    catalog: LayoutCatalog,
) -> List[Page]:
    """Swap two photos, within one page or across pages. Layouts are kept."""
    _check_page_index(pages, source_page)
    _check_page_index(pages, target_page)
    _check_frame_index(pages[source_page], source_frame)
    _check_frame_index(pages[target_page], target_frame)
    lookup = _lookup(photos)
    new_pages = list(pages)

    if source_page == target_page:
        ids = list(pages[source_page].photo_ids)
        ids[source_frame], ids[target_frame] = ids[target_frame], ids[source_frame]
        page = pages[source_page]
        new_pages[source_page] = _rebuild(page, page.layout_name, ids, lookup, catalog)
        return new_pages

    src, dst = pages[source_page], pages[target_page]
    src_ids, dst_ids = list(src.photo_ids), list(dst.photo_ids)
    src_ids[source_frame], dst_ids[target_frame] = dst_ids[target_frame], src_ids[source_frame]
    new_pages[source_page] = _rebuild(src, src.layout_name, src_ids, lookup, catalog)
    new_pages[target_page] = _rebuild(dst, dst.layout_name, dst_ids, lookup, catalog)
    return new_pages


def change_page_layout(
    pages: Sequence[Page],
    page_index: int,
    layout_name: str,
    photos: Iterable[Photo],
    catalog: LayoutCatalog,
) -> List[Page]:
    """
    Re-materialize one page with another layout of the same frame count.

    Raises:
        ValueError: Unknown layout or frame-count mismatch
    """
    _check_page_index(pages, page_index)
    page = pages[page_index]
    new_pages = list(pages)
    new_pages[page_index] = _rebuild(page, layout_name, page.photo_ids, _lookup(photos), catalog)
    return new_pages


def _orientation_match_score(photos: Sequence[Photo], layout: Layout) -> int:
    score = 0
    for photo, frame in zip(photos, layout.frames):
        photo_orientation = photo.orientation
        frame_orientation = frame.orientation
        if photo_orientation == frame_orientation:
            score += 2
        elif (photo_orientation == Orientation.SQUARE) != (frame_orientation == Orientation.SQUARE):
            score += 1
    return score


def find_best_layout(photos: Sequence[Photo], catalog: LayoutCatalog) -> Layout:
    """
    Pick the layout whose frames best match the photos' orientations in order.

    Only layouts with exactly `len(photos)` frames compete; when there are
    none, the first layout of the nearest frame count is returned.

    Raises:
        ValueError: If `photos` is empty or the catalog is empty
    """
    count = len(photos)
    if count < 1:
        raise ValueError("Cannot choose a layout for zero photos")
    if not len(catalog):
        raise ValueError("Layout catalog is empty")

    candidates = catalog.with_frame_count(count)
    if not candidates:
        counts = sorted({layout.frame_count for layout in catalog})
        nearest = min(counts, key=lambda c: abs(c - count))
        return catalog.with_frame_count(nearest)[0]

    best = candidates[0]
    best_score = -1
    for layout in candidates:
        value = _orientation_match_score(photos, layout)
        if value > best_score:
            best, best_score = layout, value
    logger.debug("[edit] selected %s for %s photos with score %s", best.name, count, best_score)
    return best


def move_photo(
    pages: Sequence[Page],
    source_page: int,
    source_frame: int,
    target_page: int,
    target_frame: int,
    photos: Iterable[Photo],
    catalog: LayoutCatalog,
) -> List[Page]:
    """
    Move one photo to another page, re-choosing both pages' layouts.

    `target_frame` may equal the target's photo count to append. A source
    page left without photos is removed and the album renumbered.

    Raises:
        ValueError: If no layout can hold the target page's new photo count
    """
    _check_page_index(pages, source_page)
    _check_page_index(pages, target_page)
    _check_frame_index(pages[source_page], source_frame)
    lookup = _lookup(photos)
    new_pages = list(pages)

    if source_page == target_page:
        page = pages[source_page]
        _check_frame_index(page, target_frame)
        ids = list(page.photo_ids)
        ids.insert(target_frame, ids.pop(source_frame))
        new_pages[source_page] = _rebuild(page, page.layout_name, ids, lookup, catalog)
        return new_pages

    src, dst = pages[source_page], pages[target_page]
    _check_frame_index(dst, target_frame, allow_end=True)
    src_ids, dst_ids = list(src.photo_ids), list(dst.photo_ids)
    dst_ids.insert(target_frame, src_ids.pop(source_frame))

    dst_photos = [lookup[pid] for pid in dst_ids if pid in lookup]
    dst_layout = find_best_layout(dst_photos, catalog)
    if dst_layout.frame_count != len(dst_ids):
        raise ValueError(f"No layout holds {len(dst_ids)} photos")
    new_pages[target_page] = _rebuild(dst, dst_layout.name, dst_ids, lookup, catalog)

    if not src_ids:
        del new_pages[source_page]
        return renumber_pages(new_pages)

    src_photos = [lookup[pid] for pid in src_ids if pid in lookup]
    src_layout = find_best_layout(src_photos, catalog)
    new_pages[source_page] = _rebuild(src, src_layout.name, src_ids, lookup, catalog)
    return new_pages


def reorder_pages(pages: Sequence[Page], from_index: int, to_index: int) -> List[Page]:
    _check_page_index(pages, from_index)
    _check_page_index(pages, to_index)
    new_pages = list(pages)
    new_pages.insert(to_index, new_pages.pop(from_index))
    return renumber_pages(new_pages)


def delete_page(pages: Sequence[Page], page_index: int) -> List[Page]:
    _check_page_index(pages, page_index)
    return renumber_pages([p for i, p in enumerate(pages) if i != page_index])


def _unique_page_id(page_number: int, taken: Set[str]) -> str:
    page_id = make_page_id(page_number)
    suffix = 1
    while page_id in taken:
        suffix += 1
        page_id = f"{make_page_id(page_number)}-{suffix}"
    taken.add(page_id)
    return page_id


def regenerate_pages(
    pages: Sequence[Page],
    page_indices: Iterable[int],
    photos: Iterable[Photo],
    catalog: LayoutCatalog,
    oracle: Optional[PlanOracle] = None,
    keep_layouts: bool = False,
    trace: Optional[PlanTrace] = None,
) -> List[Page]:
    """
    Re-plan the photos of the selected pages and splice the result back in.

    The new pages take the place of the first selected page; page ids that
    would collide with a kept page get a numeric suffix.

    Raises:
        ValueError: If no pages are selected or they hold no known photos
        EngineExhaustedError: If a photo cannot be placed at all
    """
    indices = sorted(set(page_indices))
    if not indices:
        raise ValueError("No pages selected for regeneration")
    for index in indices:
        _check_page_index(pages, index)

    lookup = _lookup(photos)
    selected = [pages[i] for i in indices]
    pool = [lookup[pid] for page in selected for pid in page.photo_ids if pid in lookup]
    if not pool:
        raise ValueError("No photos found for regeneration")

    trace = trace if trace is not None else PlanTrace()
    notices: List[str] = []
    layout_hint = [p.layout_name for p in selected] if keep_layouts else None
    planned = plan_pages(pool, catalog, oracle, trace, notices, keep_layouts=layout_hint)
    for notice in notices:
        logger.info("[edit] %s", notice)

    kept = [p for i, p in enumerate(pages) if i not in set(indices)]
    insert_at = indices[0]
    taken = {p.id for p in kept}
    fresh = [
        rebuild_page(
            _unique_page_id(insert_at + offset + 1, taken),
            insert_at + offset + 1,
            page.layout_name,
            page.photo_ids,
            lookup,
            catalog,
        )
        for offset, page in enumerate(planned)
    ]
    logger.info("[edit] regenerated %s pages into %s pages", len(selected), len(fresh))
    return renumber_pages(kept[:insert_at] + fresh + kept[insert_at:])
