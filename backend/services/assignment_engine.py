"""
Deterministic assignment engine.

Greedy aspect-fit matching of photos to frames, driven over the whole layout
catalog until every photo sits on a page. This is the fallback and safety net
for AI-planned albums, so it must always terminate and never drop a photo.
"""
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Dict, Iterable, List, Optional, Sequence, Set

from domain.models import Assignment, Frame, Layout, Page, Photo, PlanTrace
from services import aspect_fit
from services.layout_catalog import LayoutCatalog
from services.page_materializer import materialize

logger = logging.getLogger(__name__)


class EngineExhaustedError(RuntimeError):
    """A photo could not be placed even in a single-frame layout."""


def assign_photos_to_frames(
    photos: Sequence[Photo],
    frames: Sequence[Frame],
    used_ids: Optional[Set[str]] = None,
) -> Optional[List[Assignment]]:
    """
    Fill every frame with a distinct unused photo, best aspect fit first.

    All non-rejected (frame, photo) pairs are scored and committed greedily
    in descending score order; ties fall back to frame order, then pool
    order. Returns None unless every frame could be filled.
    """
    used = used_ids or set()
    available = [p for p in photos if p.id not in used]
    if len(available) < len(frames):
        return None

    candidates = []
    for frame_idx, frame in enumerate(frames):
        for photo_idx, photo in enumerate(available):
            value = aspect_fit.score(photo.aspect_ratio, frame.aspect_ratio)
            if value is None:
                continue
            candidates.append((value, frame_idx, photo_idx))
    candidates.sort(key=lambda c: (-c[0], c[1], c[2]))

    assigned_frames: Set[int] = set()
    assigned_photos: Set[str] = set()
    assignments: List[Assignment] = []
    for _, frame_idx, photo_idx in candidates:
        photo = available[photo_idx]
        if frame_idx in assigned_frames or photo.id in assigned_photos:
            continue
        assignments.append(Assignment(frame_number=frames[frame_idx].id, photo_id=photo.id))
        assigned_frames.add(frame_idx)
        assigned_photos.add(photo.id)
        if len(assignments) == len(frames):
            break

    if len(assignments) != len(frames):
        return None
    return sorted(assignments, key=lambda a: a.frame_number)


class EngineState(str, Enum):
    SELECTING_LAYOUT = "selecting_layout"
    MATCHING = "matching"
    MATERIALIZING = "materializing"
    EXHAUSTED = "exhausted"


@dataclass
class _PendingPage:
    layout: Layout
    assignments: List[Assignment]
    fallback: bool = False


class DeterministicPlanner:
    """
    State machine that turns a photo pool into pages.

    SELECTING_LAYOUT spends one attempt and queues every layout that fits
    the remaining photos, largest first. MATCHING pops layouts until one can
    be filled, or falls back to a single-frame page for the first remaining
    photo. MATERIALIZING builds the page and commits its photos. Attempts are
    capped at twice the pool size; each successful attempt places at least
    one photo.
    """

    def __init__(
        self,
        photos: Iterable[Photo],
        catalog: LayoutCatalog,
        used_ids: Optional[Iterable[str]] = None,
        start_page_number: int = 1,
        trace: Optional[PlanTrace] = None,
    ):
        self.photos: List[Photo] = list(photos)
        self.catalog = catalog
        self.used_ids: Set[str] = set(used_ids or ())
        self.photo_lookup: Dict[str, Photo] = {p.id: p for p in self.photos}
        self.next_page_number = start_page_number
        self.trace = trace if trace is not None else PlanTrace()
        self.max_attempts = 2 * len(self.photos)
        self.attempts = 0
        self.pages: List[Page] = []
        self.state = EngineState.SELECTING_LAYOUT
        self.history: List[EngineState] = [self.state]
        self._queue: Deque[Layout] = deque()
        self._pending: Optional[_PendingPage] = None

    def remaining(self) -> List[Photo]:
        return [p for p in self.photos if p.id not in self.used_ids]

    def step(self) -> EngineState:
        handlers: Dict[EngineState, Callable[[], EngineState]] = {
            EngineState.SELECTING_LAYOUT: self._select_layout,
            EngineState.MATCHING: self._match,
            EngineState.MATERIALIZING: self._materialize,
        }
        handler = handlers.get(self.state)
        if handler is None:
            return self.state
        self.state = handler()
        self.history.append(self.state)
        return self.state

    def run(self) -> List[Page]:
        """
        Drive the machine to EXHAUSTED.

        Raises:
            EngineExhaustedError: If photos remain once the machine stops
        """
        while self.state != EngineState.EXHAUSTED:
            self.step()

        leftover = self.remaining()
        if leftover:
            ids = [p.id for p in leftover]
            self.trace.add("engine_exhausted", "Photos left unplaced", photo_ids=ids)
            raise EngineExhaustedError(
                f"Deterministic engine gave up after {self.attempts} attempts; "
                f"unplaced photos: {ids}"
            )

        logger.info(
            "[engine] placed %s photos on %s pages in %s attempts",
            len(self.photos), len(self.pages), self.attempts,
        )
        return self.pages

    def _select_layout(self) -> EngineState:
        remaining = self.remaining()
        if not remaining:
            return EngineState.EXHAUSTED
        if self.attempts >= self.max_attempts:
            self.trace.add("attempts_exhausted", f"Attempt limit of {self.max_attempts} used")
            return EngineState.EXHAUSTED

        self.attempts += 1
        self._queue = deque(
            layout
            for layout in self.catalog.by_frame_count_desc()
            if layout.frame_count <= len(remaining) and self.catalog.template(layout.name) is not None
        )
        logger.debug(
            "[engine] attempt %s: %s photos remaining, %s candidate layouts",
            self.attempts, len(remaining), len(self._queue),
        )
        return EngineState.MATCHING

    def _match(self) -> EngineState:
        remaining = self.remaining()
        while self._queue:
            layout = self._queue.popleft()
            assignments = assign_photos_to_frames(remaining, layout.frames, self.used_ids)
            if assignments:
                self._pending = _PendingPage(layout=layout, assignments=assignments)
                return EngineState.MATERIALIZING

        photo = remaining[0]
        layout = self._single_frame_layout(photo)
        if layout is None:
            raise EngineExhaustedError(
                f"No single-frame layout available to place photo {photo.id}"
            )
        self.trace.add(
            "single_frame_fallback",
            f"No layout matched; placing {photo.id} alone",
            layout=layout.name,
            photo_id=photo.id,
        )
        self._pending = _PendingPage(
            layout=layout,
            assignments=[Assignment(frame_number=layout.frames[0].id, photo_id=photo.id)],
            fallback=True,
        )
        return EngineState.MATERIALIZING

    def _materialize(self) -> EngineState:
        pending = self._pending
        self._pending = None
        page = materialize(
            self.next_page_number,
            pending.layout,
            pending.assignments,
            self.photo_lookup,
            self.catalog,
            self.trace,
        )
        if page is None:
            if pending.fallback:
                raise EngineExhaustedError(
                    f"Could not materialize single-frame page {pending.layout.name} "
                    f"for photo {pending.assignments[0].photo_id}"
                )
            return EngineState.MATCHING

        self.pages.append(page)
        self.used_ids.update(page.photo_ids)
        self.next_page_number += 1
        self.trace.add(
            "page_created",
            f"Page {page.page_number}: {page.layout_name}",
            source="deterministic",
            photo_ids=page.photo_ids,
        )
        return EngineState.SELECTING_LAYOUT

    def _single_frame_layout(self, photo: Photo) -> Optional[Layout]:
        """Best-fitting single-frame layout; these accept any photo."""
        candidates = [
            layout for layout in self.catalog.with_frame_count(1)
            if self.catalog.template(layout.name) is not None
        ]
        if not candidates:
            return None

        def fit(layout: Layout) -> float:
            value = aspect_fit.score(photo.aspect_ratio, layout.frames[0].aspect_ratio)
            return value if value is not None else 0.0

        return max(candidates, key=fit)


def generate_pages_deterministic(
    photos: Iterable[Photo],
    catalog: LayoutCatalog,
    used_ids: Optional[Iterable[str]] = None,
    start_page_number: int = 1,
    trace: Optional[PlanTrace] = None,
) -> List[Page]:
    """
    Place every photo not in `used_ids` onto freshly built pages.

    Raises:
        EngineExhaustedError: If the catalog cannot host a remaining photo
    """
    planner = DeterministicPlanner(
        photos,
        catalog,
        used_ids=used_ids,
        start_page_number=start_page_number,
        trace=trace,
    )
    return planner.run()
