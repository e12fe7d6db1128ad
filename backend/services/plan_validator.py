"""
AI plan validator and repairer.

Consumes an untrusted candidate plan, keeps only the assignments that are
safe, pads nearly-complete pages, drops the rest, and hands every photo left
over to the deterministic engine so the album still covers the whole pool.
"""
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from domain.models import (
    PORTRAIT_MAX_ASPECT, Assignment, CandidatePage, CandidatePlan, Layout, Page, Photo, PlanTrace
)
from services import aspect_fit
from services.assignment_engine import generate_pages_deterministic
from services.layout_catalog import LayoutCatalog
from services.page_materializer import dedupe_pages, materialize, renumber_pages

logger = logging.getLogger(__name__)

# Accept a page once at least 60% of its frames carry valid assignments
MIN_ACCEPT_RATIO = 0.6

# Advisory thresholds used only for diagnostics
POOR_FIT_DIFF = 0.5
FULL_LENGTH_PORTRAIT_MAX = 0.65
WIDE_FRAME_MIN = 1.0
LANDSCAPE_FRAME_WARN = 1.2


def normalize_id(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def min_valid_assignments(frame_count: int) -> int:
    # round() guards against float noise such as 5 * 0.6 = 3.0000000000000004
    return math.ceil(round(frame_count * MIN_ACCEPT_RATIO, 6))


def _reject(
    trace: PlanTrace,
    page_idx: int,
    reason: str,
    message: str,
    **data: Any,
) -> None:
    logger.warning("[validator] page %s: %s", page_idx, message)
    trace.add("assignment_rejected", message, page=page_idx, reason=reason, **data)


def validate_page_assignments(
    page_idx: int,
    candidate: CandidatePage,
    layout: Layout,
    photo_lookup: Mapping[str, Photo],
    used_ids: Set[str],
    trace: PlanTrace,
) -> List[Assignment]:
    """Filter one candidate page down to its individually valid assignments."""
    valid: List[Assignment] = []
    page_photo_ids: Set[str] = set()
    filled_frames: Set[int] = set()

    for frame in candidate.frames:
        photo_id = normalize_id(frame.image_id)
        frame_number = frame.frame_number
        photo = photo_lookup.get(photo_id)
        if photo is None:
            _reject(trace, page_idx, "unknown_photo", f"photo {photo_id} not found", photo_id=photo_id)
            continue
        if photo_id in used_ids:
            _reject(trace, page_idx, "photo_used_globally", f"photo {photo_id} already used", photo_id=photo_id)
            continue
        if photo_id in page_photo_ids:
            _reject(trace, page_idx, "photo_used_on_page", f"photo {photo_id} repeated on page", photo_id=photo_id)
            continue

        frame_data = layout.get_frame(frame_number) if isinstance(frame_number, int) else None
        if frame_data is None or frame_number > layout.frame_count:
            _reject(
                trace, page_idx, "frame_out_of_range",
                f"invalid frame number {frame_number} for {layout.name}",
                frame_number=frame_number, photo_id=photo_id,
            )
            continue
        if frame_number in filled_frames:
            _reject(
                trace, page_idx, "frame_already_filled",
                f"frame {frame_number} assigned twice",
                frame_number=frame_number, photo_id=photo_id,
            )
            continue

        reason = aspect_fit.rejection_reason(photo.aspect_ratio, frame_data.aspect_ratio)
        if reason is not None:
            _reject(
                trace, page_idx, "poor_fit",
                f"photo {photo_id} ({photo.aspect_ratio:.2f}) in frame {frame_number} "
                f"({frame_data.aspect_ratio:.2f}): {reason}",
                frame_number=frame_number, photo_id=photo_id,
            )
            continue

        valid.append(Assignment(frame_number=frame_number, photo_id=photo_id))
        page_photo_ids.add(photo_id)
        filled_frames.add(frame_number)
    return valid


def _pad_assignments(
    layout: Layout,
    valid: List[Assignment],
    photos: Sequence[Photo],
    used_ids: Set[str],
) -> Optional[List[Assignment]]:
    """Fill the empty frames with unused photos in pool order, ignoring fit."""
    filled = {a.frame_number for a in valid}
    taken = used_ids | {a.photo_id for a in valid}
    empty_frames = [f.id for f in layout.frames if f.id not in filled]
    fillers = [p for p in photos if p.id not in taken][:len(empty_frames)]
    if len(fillers) < len(empty_frames):
        return None
    padding = [
        Assignment(frame_number=frame_number, photo_id=photo.id)
        for frame_number, photo in zip(empty_frames, fillers)
    ]
    return valid + padding


def process_plan(
    plan: CandidatePlan,
    photos: Sequence[Photo],
    catalog: LayoutCatalog,
    trace: Optional[PlanTrace] = None,
) -> List[Page]:
    """
    Turn a candidate plan into final pages covering every photo.

    Raises:
        EngineExhaustedError: If the fallback pass cannot place a photo
    """
    trace = trace if trace is not None else PlanTrace()
    photo_lookup: Dict[str, Photo] = {p.id: p for p in photos}
    used_ids: Set[str] = set()
    pages: List[Page] = []
    page_number = 1

    logger.info("[validator] processing plan with %s pages for %s photos", len(plan.pages), len(photos))

    for page_idx, candidate in enumerate(plan.pages):
        layout = catalog.get(candidate.layout_to_use)
        if layout is None or catalog.template(layout.name) is None:
            logger.warning("[validator] page %s: layout %s not found, skipping", page_idx, candidate.layout_to_use)
            trace.add("page_dropped", f"Unknown layout {candidate.layout_to_use}", page=page_idx, reason="unknown_layout")
            continue

        valid = validate_page_assignments(page_idx, candidate, layout, photo_lookup, used_ids, trace)
        needed = layout.frame_count

        if len(valid) == needed:
            assignments = valid
        elif len(valid) >= min_valid_assignments(needed):
            assignments = _pad_assignments(layout, valid, photos, used_ids)
            if assignments is None:
                trace.add(
                    "page_dropped",
                    f"Page {page_idx}: not enough unused photos to pad {len(valid)}/{needed}",
                    page=page_idx, reason="insufficient_padding",
                )
                continue
            trace.add(
                "page_padded",
                f"Page {page_idx}: padded {len(valid)}/{needed} valid assignments",
                page=page_idx,
                padded_photo_ids=[a.photo_id for a in assignments[len(valid):]],
            )
        else:
            logger.warning(
                "[validator] page %s: skipped, expected %s photos, got %s valid",
                page_idx, needed, len(valid),
            )
            trace.add(
                "page_dropped",
                f"Page {page_idx}: only {len(valid)}/{needed} valid assignments",
                page=page_idx, reason="below_threshold",
                released_photo_ids=[a.photo_id for a in valid],
            )
            continue

        page = materialize(page_number, layout, assignments, photo_lookup, catalog, trace)
        if page is None:
            trace.add("page_dropped", f"Page {page_idx}: materialization failed", page=page_idx, reason="materialization")
            continue

        pages.append(page)
        used_ids.update(page.photo_ids)
        trace.add(
            "page_created",
            f"Page {page.page_number}: {page.layout_name}",
            source="plan",
            photo_ids=page.photo_ids,
        )
        page_number += 1

    leftover = [p for p in photos if p.id not in used_ids]
    logger.info(
        "[validator] plan produced %s pages using %s/%s photos; %s left for fallback",
        len(pages), len(used_ids), len(photos), len(leftover),
    )
    if leftover:
        trace.add("fallback_started", f"{len(leftover)} photos routed to the deterministic engine",
                  photo_ids=[p.id for p in leftover])
        pages.extend(generate_pages_deterministic(
            leftover, catalog, start_page_number=page_number, trace=trace,
        ))

    return renumber_pages(dedupe_pages(pages, trace))


def diagnose_plan(
    plan: CandidatePlan,
    photos: Sequence[Photo],
    catalog: LayoutCatalog,
) -> List[str]:
    """
    Human-readable warnings about a candidate plan.

    Advisory only: acceptance is decided by `process_plan`.
    """
    warnings: List[str] = []
    photo_lookup = {p.id: p for p in photos}

    for page_idx, candidate in enumerate(plan.pages):
        label = f"Page {page_idx + 1}"
        layout = catalog.get(candidate.layout_to_use)
        if layout is None:
            warnings.append(f"{label}: Layout {candidate.layout_to_use} not found")
            continue

        for frame in candidate.frames:
            photo = photo_lookup.get(normalize_id(frame.image_id))
            if photo is None:
                warnings.append(f"{label}: Photo {frame.image_id} not found")
                continue
            frame_data = layout.get_frame(frame.frame_number)
            if frame_data is None:
                warnings.append(
                    f"{label}: Frame {frame.frame_number} not found in {candidate.layout_to_use}"
                )
                continue

            photo_aspect = photo.aspect_ratio
            frame_aspect = frame_data.aspect_ratio
            diff = abs(photo_aspect - frame_aspect)
            if diff > POOR_FIT_DIFF:
                warnings.append(
                    f"{label}: Poor fit - Photo {photo.id} (aspect {photo_aspect:.2f}) "
                    f"in frame with aspect {frame_aspect:.2f} (diff: {diff:.2f})"
                )
            if photo_aspect < FULL_LENGTH_PORTRAIT_MAX and frame_aspect > WIDE_FRAME_MIN:
                warnings.append(
                    f"{label}: CRITICAL - Full-length portrait (aspect {photo_aspect:.2f}) "
                    f"in unsuitable wide frame (aspect {frame_aspect:.2f})"
                )
            if photo_aspect < PORTRAIT_MAX_ASPECT and frame_aspect > LANDSCAPE_FRAME_WARN:
                warnings.append(f"{label}: WARNING - Portrait photo in landscape frame")
    return warnings
