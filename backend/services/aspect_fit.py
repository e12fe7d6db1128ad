"""
Aspect-fit scoring between photos and frames.

One canonical threshold set is used by every caller: portrait below 0.9,
landscape above 1.1, square in between.
"""
from typing import Optional

from domain.models import Orientation, classify_orientation


# Beyond this absolute difference a crop is likely to cut the subject.
SEVERE_CROP_DIFF = 0.35

SAME_SIDE_BONUS = 1.15
MARGINAL_DIFF = 0.6
MARGINAL_PENALTY = 0.2
EXTREME_DIFF = 1.2
EXTREME_PENALTY = 0.05


def is_hard_reject(photo_aspect: float, frame_aspect: float) -> bool:
    """A landscape photo in a portrait frame would crop people out."""
    return (
        classify_orientation(photo_aspect) == Orientation.LANDSCAPE
        and classify_orientation(frame_aspect) == Orientation.PORTRAIT
    )


def rejection_reason(photo_aspect: float, frame_aspect: float) -> Optional[str]:
    """
    Explain why a pairing is unacceptable, or return None when it is fine.

    Used by the plan validator so trace events say what went wrong.
    """
    if is_hard_reject(photo_aspect, frame_aspect):
        return "landscape photo in portrait frame"
    photo_orientation = classify_orientation(photo_aspect)
    frame_orientation = classify_orientation(frame_aspect)
    if photo_orientation == Orientation.PORTRAIT and frame_orientation == Orientation.LANDSCAPE:
        return "portrait photo in landscape frame"
    diff = abs(photo_aspect - frame_aspect)
    if diff > SEVERE_CROP_DIFF:
        return f"aspect diff {diff:.2f} exceeds {SEVERE_CROP_DIFF}"
    return None


def is_acceptable(photo_aspect: float, frame_aspect: float) -> bool:
    return rejection_reason(photo_aspect, frame_aspect) is None


def score(photo_aspect: float, frame_aspect: float) -> Optional[float]:
    """
    Compatibility score for placing a photo in a frame; higher is better.

    Returns None for hard rejects. Marginal pairs are penalized rather than
    rejected so the matcher can still use them when nothing else fits.
    """
    if is_hard_reject(photo_aspect, frame_aspect):
        return None

    diff = abs(photo_aspect - frame_aspect)
    value = 1.0 / (1.0 + diff)

    if (photo_aspect < 1.0) == (frame_aspect < 1.0):
        value *= SAME_SIDE_BONUS

    if diff > MARGINAL_DIFF:
        value *= MARGINAL_PENALTY
    if diff > EXTREME_DIFF:
        value *= EXTREME_PENALTY
    return value

