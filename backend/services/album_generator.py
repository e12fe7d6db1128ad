"""
Album generation orchestrator.

Chooses between the plan oracle (validated and repaired) and the
deterministic engine, and audits the result so every photo lands on exactly
one page.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from domain.models import Page, Photo, PlanTrace
from services.assignment_engine import generate_pages_deterministic
from services.layout_catalog import LayoutCatalog, get_default_catalog
from services.photo_analysis import analyze_photo_distribution, recommend_priority_layouts
from services.plan_oracle import OracleError, PlanOracle
from services.plan_validator import diagnose_plan, process_plan

logger = logging.getLogger(__name__)


@dataclass
class AlbumResult:
    pages: List[Page]
    notices: List[str] = field(default_factory=list)
    trace: PlanTrace = field(default_factory=PlanTrace)

    def to_dict(self) -> dict:
        return {
            "pages": [p.to_dict() for p in self.pages],
            "notices": list(self.notices),
            "trace": self.trace.to_list(),
        }


def unique_photos(photos: Iterable[Photo], trace: Optional[PlanTrace] = None) -> List[Photo]:
    """Keep the first photo for each id, in input order."""
    seen = set()
    result: List[Photo] = []
    for photo in photos:
        if photo.id in seen:
            if trace is not None:
                trace.add("duplicate_photo", f"Ignoring repeated photo id {photo.id}", photo_id=photo.id)
            continue
        seen.add(photo.id)
        result.append(photo)
    return result


def audit_coverage(pages: Sequence[Page], photos: Sequence[Photo], trace: PlanTrace) -> bool:
    """Record any photo that is missing from, or repeated across, the pages."""
    counts = Counter(pid for page in pages for pid in page.photo_ids)
    missing = [p.id for p in photos if p.id not in counts]
    repeated = sorted(pid for pid, n in counts.items() if n > 1)
    if missing:
        logger.error("[album] %s photos missing from album: %s", len(missing), missing)
        trace.add("coverage_error", "Photos missing from album", photo_ids=missing)
    if repeated:
        logger.error("[album] photos placed more than once: %s", repeated)
        trace.add("coverage_error", "Photos placed more than once", photo_ids=repeated)
    return not missing and not repeated


def plan_pages(
    photos: Sequence[Photo],
    catalog: LayoutCatalog,
    oracle: Optional[PlanOracle],
    trace: PlanTrace,
    notices: List[str],
    keep_layouts: Optional[Sequence[str]] = None,
) -> List[Page]:
    """
    Plan pages for `photos` with the oracle when available, else deterministically.

    Oracle failures are turned into a notice and the deterministic path.
    """
    if oracle is not None:
        hints = recommend_priority_layouts(analyze_photo_distribution(photos))
        try:
            plan = oracle.request_plan(photos, catalog, priority_layouts=hints, keep_layouts=keep_layouts)
        except OracleError as exc:
            logger.warning("[album] plan oracle failed, using deterministic layout: %s", exc)
            trace.add("oracle_failed", str(exc), error=type(exc).__name__)
            notices.append(f"AI layout planning unavailable ({exc}); used automatic layout instead.")
        else:
            for warning in diagnose_plan(plan, photos, catalog):
                logger.info("[album] plan warning: %s", warning)
                trace.add("plan_warning", warning)
            return process_plan(plan, photos, catalog, trace)

    return generate_pages_deterministic(photos, catalog, trace=trace)


def generate_album(
    photos: Iterable[Photo],
    catalog: Optional[LayoutCatalog] = None,
    oracle: Optional[PlanOracle] = None,
    trace: Optional[PlanTrace] = None,
) -> AlbumResult:
    """
    Lay out every photo onto album pages.

    Raises:
        EngineExhaustedError: If a photo cannot be placed at all
    """
    if catalog is None:
        catalog = get_default_catalog()
    trace = trace if trace is not None else PlanTrace()
    notices: List[str] = []

    pool = unique_photos(photos, trace)
    if not pool:
        return AlbumResult(pages=[], notices=notices, trace=trace)

    if oracle is None:
        notices.append("AI layout planning disabled; used automatic layout.")

    pages = plan_pages(pool, catalog, oracle, trace, notices)
    audit_coverage(pages, pool, trace)
    logger.info("[album] generated %s pages for %s photos", len(pages), len(pool))
    return AlbumResult(pages=pages, notices=notices, trace=trace)
