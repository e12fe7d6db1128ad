"""
Core domain models for the photobook layout engine.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import logging


class Orientation(str, Enum):
    """Coarse shape class of a photo or frame."""
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    SQUARE = "square"


# Width / height boundaries shared by photos, frames and fit scoring.
PORTRAIT_MAX_ASPECT = 0.9
LANDSCAPE_MIN_ASPECT = 1.1


def classify_orientation(aspect: float) -> Orientation:
    """Classify an aspect ratio (width / height)."""
    if aspect < PORTRAIT_MAX_ASPECT:
        return Orientation.PORTRAIT
    if aspect > LANDSCAPE_MIN_ASPECT:
        return Orientation.LANDSCAPE
    return Orientation.SQUARE


@dataclass(frozen=True)
class Photo:
    """
    An analyzed photo ready for placement.

    Aspect ratio and orientation are always derived from width/height so they
    can never drift apart.
    """
    id: str
    width: float
    height: float
    url: str = ""
    priority: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.width or not self.height or self.width <= 0 or self.height <= 0:
            raise ValueError(f"Photo {self.id} must have positive dimensions")

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def orientation(self) -> Orientation:
        return classify_orientation(self.aspect_ratio)

    @property
    def resource_locator(self) -> str:
        """The href bound into page markup."""
        return self.url or self.id


@dataclass(frozen=True)
class Frame:
    """A single photo slot of a layout. `id` is the 1-based frame number."""
    id: int
    aspect_ratio: float

    @property
    def orientation(self) -> Orientation:
        return classify_orientation(self.aspect_ratio)


@dataclass(frozen=True)
class Layout:
    """A page template with a fixed, ordered set of frames."""
    name: str
    frames: tuple

    def __post_init__(self) -> None:
        ids = [f.id for f in self.frames]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Layout {self.name} has duplicate frame ids: {ids}")
        if any(fid < 1 for fid in ids):
            raise ValueError(f"Layout {self.name} frame ids must be 1-based: {ids}")

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def get_frame(self, frame_number: int) -> Optional[Frame]:
        for frame in self.frames:
            if frame.id == frame_number:
                return frame
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frameCount": self.frame_count,
            "frames": [{"id": f.id, "aspect_ratio": f.aspect_ratio} for f in self.frames],
        }


@dataclass(frozen=True)
class Assignment:
    """One photo placed into one frame of a page."""
    frame_number: int
    photo_id: str


@dataclass(frozen=True)
class FrameCoordinates:
    """Frame geometry extracted from materialized markup (SVG user units)."""
    frame_number: int
    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frameNumber": self.frame_number,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class Page:
    """
    A materialized album page.

    `photo_ids` is parallel to frame order and is the source of truth for
    which photos live on the page; the markup is only a rendering artifact.
    """
    id: str
    page_number: int
    layout_name: str
    photo_ids: List[str] = field(default_factory=list)
    svg_content: str = ""
    frame_coordinates: List[FrameCoordinates] = field(default_factory=list)

    @property
    def signature(self) -> str:
        return f"{self.layout_name}-{','.join(sorted(self.photo_ids))}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "pageNumber": self.page_number,
            "layoutName": self.layout_name,
            "svgContent": self.svg_content,
            "photoIds": list(self.photo_ids),
            "frameCoordinates": [c.to_dict() for c in self.frame_coordinates],
        }


# Candidate plan models (unvalidated oracle output)

@dataclass(frozen=True)
class CandidateFrame:
    frame_number: int
    image_id: str


@dataclass(frozen=True)
class CandidatePage:
    layout_to_use: str
    frames: tuple = ()


@dataclass(frozen=True)
class CandidatePlan:
    """A proposed set of pages. Never trusted until validated."""
    pages: tuple = ()


# Structured trace

@dataclass
class TraceEvent:
    kind: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "data": self.data}


_trace_logger = logging.getLogger("engine.trace")


@dataclass
class PlanTrace:
    """
    Event log passed by reference through the engine.

    Callers inspect it after a run instead of scraping log output.
    """
    events: List[TraceEvent] = field(default_factory=list)

    def add(self, kind: str, message: str, **data: Any) -> TraceEvent:
        event = TraceEvent(kind=kind, message=message, data=data)
        self.events.append(event)
        _trace_logger.debug("[%s] %s %s", kind, message, data or "")
        return event

    def of_kind(self, kind: str) -> List[TraceEvent]:
        return [e for e in self.events if e.kind == kind]

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.events]
