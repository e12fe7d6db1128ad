"""
SVG markup helpers for layout templates.

Templates describe each frame as a <pattern id="imgN"> holding an <image>, and
a <rect> or <path> whose fill references that pattern. These helpers
namespace ids, bind photos into patterns and read frame geometry back out.
"""
import logging
import re
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from lxml import etree

from domain.models import Assignment, FrameCoordinates, Photo

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
XLINK_HREF = f"{{{XLINK_NS}}}href"

# Attributes that may point at another element by id
REFERENCE_ATTRS = ("href", XLINK_HREF, "clip-path", "fill", "stroke", "mask", "filter", "style")

_URL_REF_RE = re.compile(r"url\(\s*#([^)\s]+)\s*\)")
_FRAME_FILL_RE = re.compile(r"#img(\d+)")
_PATTERN_ID_RE = re.compile(r"^img(\d+)")
_PATH_TOKEN_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?|[A-Za-z]")

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=False)


class MarkupError(ValueError):
    """Raised when template markup cannot be parsed or processed."""


def _parse(svg_content: str) -> etree._Element:
    try:
        return etree.fromstring(svg_content.encode("utf-8"), parser=_PARSER)
    except etree.XMLSyntaxError as exc:
        raise MarkupError(f"Invalid SVG markup: {exc}") from exc


def _serialize(root: etree._Element) -> str:
    return etree.tostring(root, encoding="unicode")


def _local_name(el: etree._Element) -> str:
    return etree.QName(el).localname


def _iter_local(root: etree._Element, name: str) -> Iterator[etree._Element]:
    for el in root.iter(etree.Element):
        if _local_name(el) == name:
            yield el


def _image_href(el: etree._Element) -> str:
    return (el.get("href") or el.get(XLINK_HREF) or "").strip()


def namespace_ids(svg_content: str, suffix: str) -> str:
    """
    Append `_<suffix>` to every id and rewrite references to match.

    Several pages built from the same template can then share one DOM
    without their pattern or clip-path ids colliding.
    """
    root = _parse(svg_content)
    id_map: Dict[str, str] = {}
    for el in root.iter(etree.Element):
        old_id = el.get("id")
        if old_id:
            new_id = f"{old_id}_{suffix}"
            id_map[old_id] = new_id
            el.set("id", new_id)

    if not id_map:
        return _serialize(root)

    def _replace_url(match: "re.Match[str]") -> str:
        target = match.group(1)
        return f"url(#{id_map[target]})" if target in id_map else match.group(0)

    for el in root.iter(etree.Element):
        for attr in REFERENCE_ATTRS:
            value = el.get(attr)
            if not value:
                continue
            if value.startswith("#") and value[1:] in id_map:
                el.set(attr, f"#{id_map[value[1:]]}")
            elif "url(" in value:
                el.set(attr, _URL_REF_RE.sub(_replace_url, value))
    return _serialize(root)


def _find_pattern(patterns: List[etree._Element], frame_number: int) -> Optional[etree._Element]:
    prefix = f"img{frame_number}"
    for pattern in patterns:
        pid = pattern.get("id") or ""
        if pid == prefix or pid.startswith(prefix + "_"):
            return pattern
    for pattern in patterns:
        # Ignore any page namespace suffix such as "img3_page-1"
        base = (pattern.get("id") or "").split("_", 1)[0]
        if base.endswith(f"-{frame_number}"):
            return pattern
    if 1 <= frame_number <= len(patterns):
        return patterns[frame_number - 1]
    return None


def bind_images(
    svg_content: str,
    assignments: Iterable[Assignment],
    photo_lookup: Mapping[str, Photo],
) -> str:
    """Point each assigned frame's pattern image at its photo."""
    root = _parse(svg_content)
    patterns = list(_iter_local(root, "pattern"))

    for assignment in assignments:
        photo = photo_lookup.get(assignment.photo_id)
        if photo is None:
            logger.warning("[markup] photo not found: %s", assignment.photo_id)
            continue
        pattern = _find_pattern(patterns, assignment.frame_number)
        if pattern is None:
            logger.warning(
                "[markup] no pattern for frame %s (available: %s)",
                assignment.frame_number,
                [p.get("id") for p in patterns],
            )
            continue
        image_el = next(_iter_local(pattern, "image"), None)
        if image_el is None:
            logger.warning("[markup] pattern %s has no image element", pattern.get("id"))
            continue
        locator = photo.resource_locator
        image_el.set("href", locator)
        image_el.set(XLINK_HREF, locator)
        image_el.set("preserveAspectRatio", "xMidYMid slice")
    return _serialize(root)


def count_bound_images(svg_content: str) -> int:
    """Count <image> elements carrying a usable href."""
    root = _parse(svg_content)
    count = 0
    for image_el in _iter_local(root, "image"):
        href = _image_href(image_el)
        if href and href != "data:," and "undefined" not in href:
            count += 1
    return count


def parse_path_bounding_box(d: str) -> Optional[Tuple[float, float, float, float]]:
    """
    Bounding box (x, y, width, height) of a rectilinear path.

    Understands move, line, horizontal and vertical commands in absolute and
    relative form plus close-path. Returns None for anything else.
    """
    tokens = _PATH_TOKEN_RE.findall(d or "")
    if not tokens or tokens[0] not in ("M", "m"):
        return None

    xs: List[float] = []
    ys: List[float] = []
    x = y = 0.0
    start = (0.0, 0.0)
    command = ""
    i = 0
    try:
        while i < len(tokens):
            tok = tokens[i]
            if tok.isalpha():
                command = tok
                i += 1
                if command in ("Z", "z"):
                    x, y = start
                continue
            if command in ("M", "m", "L", "l"):
                dx, dy = float(tokens[i]), float(tokens[i + 1])
                i += 2
                if command.isupper():
                    x, y = dx, dy
                else:
                    x, y = x + dx, y + dy
                if command in ("M", "m"):
                    start = (x, y)
                    # Subsequent pairs after a moveto are implicit linetos
                    command = "L" if command == "M" else "l"
            elif command in ("H", "h"):
                value = float(tok)
                i += 1
                x = value if command == "H" else x + value
            elif command in ("V", "v"):
                value = float(tok)
                i += 1
                y = value if command == "V" else y + value
            else:
                return None
            xs.append(x)
            ys.append(y)
    except (IndexError, ValueError):
        return None

    if len(xs) < 2:
        return None
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    return min_x, min_y, max_x - min_x, max_y - min_y


def _float_attr(el: etree._Element, name: str) -> float:
    try:
        return float(el.get(name) or 0)
    except ValueError:
        return 0.0


def extract_frame_coordinates(svg_content: str) -> List[FrameCoordinates]:
    """Read frame boxes from rects/paths filled with an imgN pattern."""
    root = _parse(svg_content)
    coordinates: List[FrameCoordinates] = []

    for el in root.iter(etree.Element):
        tag = _local_name(el)
        if tag not in ("rect", "path"):
            continue
        fill = el.get("fill") or ""
        if not fill.startswith("url("):
            continue
        match = _FRAME_FILL_RE.search(fill)
        if not match:
            continue
        frame_number = int(match.group(1))

        if tag == "rect":
            coordinates.append(FrameCoordinates(
                frame_number=frame_number,
                x=_float_attr(el, "x"),
                y=_float_attr(el, "y"),
                width=_float_attr(el, "width"),
                height=_float_attr(el, "height"),
            ))
            continue

        bbox = parse_path_bounding_box(el.get("d") or "")
        if bbox is None:
            logger.warning("[markup] could not parse path for frame %s: %r", frame_number, el.get("d"))
            continue
        x, y, width, height = bbox
        coordinates.append(FrameCoordinates(
            frame_number=frame_number, x=x, y=y, width=width, height=height,
        ))

    return sorted(coordinates, key=lambda c: c.frame_number)


def parse_template_frames(svg_content: str) -> List[int]:
    """Frame numbers declared by the template's imgN patterns, ascending."""
    root = _parse(svg_content)
    numbers = []
    for pattern in _iter_local(root, "pattern"):
        match = _PATTERN_ID_RE.match(pattern.get("id") or "")
        if match:
            numbers.append(int(match.group(1)))
    return sorted(numbers)
