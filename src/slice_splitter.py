"""
Split an oversized layer into two halves joined by a zig-zag seam.

The cut follows a triangle wave across the part so the two halves interlock
when glued back together. Contours are clipped Sutherland-Hodgman style
against the wavy boundary, once per side.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from slice_model import (
    Axis,
    Bounds2D,
    LineSegment,
    Point2D,
    Slice,
    child_slice_id,
    unproject_point,
)

logger = logging.getLogger(__name__)


@dataclass
class SplitConfig:
    """Joint profile (mm)."""

    wavelength: float = 20.0
    amplitude: float = 4.0
    epsilon: float = 1e-5


def joint_offset(perp: float, config: Optional[SplitConfig] = None) -> float:
    """Triangle-wave offset of the seam at perpendicular coordinate *perp*."""
    if config is None:
        config = SplitConfig()
    # Python's % keeps the phase in [0, 1) for negative coordinates too.
    phase = (perp % config.wavelength) / config.wavelength
    if phase < 0.5:
        return config.amplitude * (4 * phase - 1)
    return config.amplitude * (3 - 4 * phase)


def choose_split(
    bounds: Bounds2D,
    max_width: float,
    max_height: float,
) -> Tuple[str, float]:
    """Pick the local axis ('u' or 'v') and the position of the cut.

    The dimension that alone exceeds its sheet limit is cut; when both or
    neither exceed, the longer dimension is cut. The cut is at its midpoint.
    """
    over_u = bounds.width > max_width
    over_v = bounds.height > max_height

    if over_u and not over_v:
        split_axis = "u"
    elif over_v and not over_u:
        split_axis = "v"
    else:
        split_axis = "u" if bounds.width > bounds.height else "v"

    if split_axis == "u":
        return split_axis, bounds.min_x + bounds.width / 2
    return split_axis, bounds.min_y + bounds.height / 2


def split_slice(
    slice_: Slice,
    axis: Axis,
    max_width: float,
    max_height: float,
    config: Optional[SplitConfig] = None,
) -> List[Slice]:
    """Cut *slice_* into up to two new Slices along a jointed seam.

    Args:
        slice_: The oversized layer.
        axis: Slicing axis the layer was produced with (fixes the projection).
        max_width: Usable sheet width (mm).
        max_height: Usable sheet height (mm).
        config: Joint profile.

    Returns:
        0, 1 or 2 Slices with ids derived from the parent id.
    """
    if config is None:
        config = SplitConfig()
    axis = Axis.parse(axis)

    split_axis, split_pos = choose_split(slice_.bounds, max_width, max_height)
    contours_2d = slice_.contours_2d(axis)

    halves = []
    for keep_low in (True, False):
        clipped = [
            _clip_contour(c, split_axis, split_pos, keep_low, config)
            for c in contours_2d
        ]
        halves.append([c for c in clipped if len(c) > 2])

    results: List[Slice] = []
    for suffix, contours in enumerate(halves, start=1):
        child = _build_half(slice_, axis, contours, suffix)
        if child is not None:
            results.append(child)

    logger.info(
        "Split slice %s along %s at %.2f into %d parts",
        slice_.id, split_axis, split_pos, len(results),
    )
    return results


# ─── Internal helpers ────────────────────────────────────────────────────────

def _along(p: Point2D, split_axis: str) -> Tuple[float, float]:
    """(coordinate across the seam, coordinate along the seam)."""
    if split_axis == "u":
        return p[0], p[1]
    return p[1], p[0]


def _from_along(val: float, perp: float, split_axis: str) -> Point2D:
    if split_axis == "u":
        return (val, perp)
    return (perp, val)


def _seam_crossing(
    p1: Point2D,
    p2: Point2D,
    split_axis: str,
    split_pos: float,
    config: SplitConfig,
) -> Point2D:
    """Point where edge p1-p2 meets the seam.

    The edge parameter is solved against the flat cut line, then the point is
    pushed onto the wave at its own perpendicular coordinate.
    """
    x1, y1 = _along(p1, split_axis)
    x2, y2 = _along(p2, split_axis)

    if abs(x2 - x1) < config.epsilon:
        mid = (y1 + y2) / 2
        return _from_along(split_pos + joint_offset(mid, config), mid, split_axis)

    t = (split_pos - x1) / (x2 - x1)
    t = max(0.0, min(1.0, t))
    perp = y1 + t * (y2 - y1)
    return _from_along(split_pos + joint_offset(perp, config), perp, split_axis)


def _clip_contour(
    poly: Sequence[Point2D],
    split_axis: str,
    split_pos: float,
    keep_low: bool,
    config: SplitConfig,
) -> List[Point2D]:
    def inside(p: Point2D) -> bool:
        val, perp = _along(p, split_axis)
        limit = split_pos + joint_offset(perp, config)
        return val <= limit if keep_low else val >= limit

    output: List[Point2D] = []
    n = len(poly)
    for i in range(n):
        curr = poly[i]
        prev = poly[i - 1]
        curr_in = inside(curr)
        prev_in = inside(prev)

        if prev_in and curr_in:
            output.append(curr)
        elif prev_in:
            output.append(_seam_crossing(prev, curr, split_axis, split_pos, config))
        elif curr_in:
            output.append(_seam_crossing(prev, curr, split_axis, split_pos, config))
            output.append(curr)
    return output


def _build_half(
    parent: Slice,
    axis: Axis,
    contours: List[List[Point2D]],
    suffix: int,
) -> Optional[Slice]:
    if not contours:
        return None

    bounds = Bounds2D.from_points(p for c in contours for p in c)
    if not bounds.is_finite:
        logger.warning("Discarding half %d of slice %s: non-finite bounds", suffix, parent.id)
        return None

    contours_3d = tuple(
        tuple(unproject_point(u, v, axis, parent.z_height) for u, v in c)
        for c in contours
    )
    segments = tuple(
        LineSegment(c[i], c[(i + 1) % len(c)])
        for c in contours_3d
        for i in range(len(c))
    )

    return Slice(
        id=child_slice_id(parent.id, suffix),
        z_height=parent.z_height,
        segments=segments,
        contours=contours_3d,
        bounds=bounds,
    )
