"""
Collection-level photo analysis.

Cheap heuristics computed from dimensions only: a priority score per photo and
a shape distribution used to hint layouts to the plan oracle.
"""
from dataclasses import asdict, dataclass
from typing import Dict, List, Sequence

import numpy as np

from domain.models import Photo

BASE_PRIORITY = 50.0
RESOLUTION_WEIGHT = 30.0
RESOLUTION_FULL_MEGAPIXELS = 12.0
UNIQUENESS_WEIGHT = 20.0
MAX_PRIORITY = 100.0

FULL_LENGTH_PORTRAIT_MAX = 0.65
REGULAR_PORTRAIT_MAX = 0.85
SQUARE_MAX = 1.15
LANDSCAPE_MAX = 1.6


def calculate_photo_priorities(photos: Sequence[Photo]) -> List[int]:
    """
    Score each photo 0-100.

    Base 50, up to +30 for resolution (full bonus at 12 MP) and up to +20 for
    how far its aspect ratio sits from the rest of the collection.
    """
    if not photos:
        return []

    widths = np.array([p.width for p in photos], dtype=float)
    heights = np.array([p.height for p in photos], dtype=float)
    aspects = widths / heights

    megapixels = widths * heights / 1_000_000
    resolution = np.minimum(megapixels / RESOLUTION_FULL_MEGAPIXELS, 1.0) * RESOLUTION_WEIGHT

    # The diagonal is zero so including each photo's own aspect is harmless
    uniqueness = np.abs(aspects[:, None] - aspects[None, :]).sum(axis=1) / len(photos)
    uniqueness_bonus = np.minimum(uniqueness * UNIQUENESS_WEIGHT, UNIQUENESS_WEIGHT)

    scores = np.minimum(BASE_PRIORITY + resolution + uniqueness_bonus, MAX_PRIORITY)
    # Round half up, not numpy's banker's rounding
    return [int(v) for v in np.floor(scores + 0.5)]


@dataclass
class PhotoDistribution:
    full_length_portraits: int = 0
    regular_portraits: int = 0
    squares: int = 0
    landscapes: int = 0
    wide_panoramics: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def analyze_photo_distribution(photos: Sequence[Photo]) -> PhotoDistribution:
    aspects = np.array([p.aspect_ratio for p in photos], dtype=float)
    return PhotoDistribution(
        full_length_portraits=int(np.sum(aspects < FULL_LENGTH_PORTRAIT_MAX)),
        regular_portraits=int(np.sum((aspects >= FULL_LENGTH_PORTRAIT_MAX) & (aspects < REGULAR_PORTRAIT_MAX))),
        squares=int(np.sum((aspects >= REGULAR_PORTRAIT_MAX) & (aspects <= SQUARE_MAX))),
        landscapes=int(np.sum((aspects > SQUARE_MAX) & (aspects <= LANDSCAPE_MAX))),
        wide_panoramics=int(np.sum(aspects > LANDSCAPE_MAX)),
    )


def recommend_priority_layouts(distribution: PhotoDistribution) -> List[str]:
    """Layout names worth favouring for this mix of shapes, most urgent first."""
    recommendations: List[str] = []

    # Full-length portraits need tall frames
    if distribution.full_length_portraits >= 3:
        recommendations += ["layout8.svg", "layout18.svg"]
    elif distribution.full_length_portraits >= 1:
        recommendations += ["layout8.svg"]

    if distribution.regular_portraits >= 5:
        recommendations += ["layout8.svg", "layout18.svg"]

    if distribution.landscapes >= 5:
        recommendations += ["layout9.svg", "layout10.svg", "layout17.svg"]

    if distribution.wide_panoramics >= 2:
        recommendations += ["layout9.svg", "layout10.svg", "layout16.svg", "layout17.svg"]

    return list(dict.fromkeys(recommendations))
