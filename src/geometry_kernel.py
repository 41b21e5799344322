"""
2D polygon helpers shared by the splitter and by sheet annotations.

Contour sets are lists of point lists. Every contour is treated as a closed
polygon and inside/outside is decided by the even-odd rule across the whole
set, so holes and islands need no winding convention.
"""
import math
from typing import List, Optional, Sequence, Tuple

from shapely.geometry import MultiLineString, Point, Polygon

from slice_model import Bounds2D, Point2D

Segment2D = Tuple[Point2D, Point2D]

PARALLEL_EPS = 1e-12
T_MERGE_EPS = 1e-4
VISUAL_CENTER_STEPS = 20


def point_in_contours(pt: Point2D, contours: Sequence[Sequence[Point2D]]) -> bool:
    """Even-odd ray cast summed over every contour."""
    x, y = pt
    inside = False
    for poly in contours:
        n = len(poly)
        j = n - 1
        for i in range(n):
            xi, yi = poly[i]
            xj, yj = poly[j]
            if (yi > y) != (yj > y):
                if x < (xj - xi) * (y - yi) / (yj - yi) + xi:
                    inside = not inside
            j = i
    return inside


def polygon_area(points: Sequence[Point2D]) -> float:
    """Unsigned area of one closed contour.

    Measuring helper for callers and tests (e.g. checking that split halves
    conserve area); the pipeline itself compares bounding-box areas only.
    """
    if len(points) < 3:
        return 0.0
    return float(Polygon(points).area)


def clip_segments_to_contours(
    lines: Sequence[Segment2D],
    contours: Sequence[Sequence[Point2D]],
) -> List[Segment2D]:
    """Keep only the pieces of *lines* that lie inside the contour set.

    Each line is cut at every crossing with a boundary edge; a piece survives
    when its midpoint is inside. One input line may produce several outputs.
    """
    edges: List[Segment2D] = []
    for c in contours:
        if len(c) < 3:
            continue
        for i in range(len(c)):
            edges.append((c[i], c[(i + 1) % len(c)]))

    output: List[Segment2D] = []
    for (x1, y1), (x2, y2) in lines:
        dx = x2 - x1
        dy = y2 - y1
        t_values = [0.0, 1.0]

        for (x3, y3), (x4, y4) in edges:
            d = dx * (y4 - y3) - dy * (x4 - x3)
            if abs(d) < PARALLEL_EPS:
                continue
            r = ((y1 - y3) * (x4 - x3) - (x1 - x3) * (y4 - y3)) / d
            s = ((y1 - y3) * dx - (x1 - x3) * dy) / d
            if 0.0 <= r <= 1.0 and 0.0 <= s <= 1.0:
                t_values.append(r)

        t_values.sort()
        unique_t = [t_values[0]]
        for t in t_values[1:]:
            if t - unique_t[-1] > T_MERGE_EPS:
                unique_t.append(t)

        for t_start, t_end in zip(unique_t, unique_t[1:]):
            if t_end - t_start < T_MERGE_EPS:
                continue
            mid_t = (t_start + t_end) / 2
            mid = (x1 + mid_t * dx, y1 + mid_t * dy)
            if point_in_contours(mid, contours):
                output.append((
                    (x1 + t_start * dx, y1 + t_start * dy),
                    (x1 + t_end * dx, y1 + t_end * dy),
                ))

    return output


def contour_boundary(contours: Sequence[Sequence[Point2D]]) -> MultiLineString:
    """Closed edge loops of the contour set; contours under 2 points are skipped."""
    loops = [list(c) + [c[0]] for c in contours if len(c) >= 2]
    return MultiLineString(loops)


def distance_to_contours(p: Point2D, contours: Sequence[Sequence[Point2D]]) -> float:
    """Smallest distance from p to any edge of the contour set."""
    return _boundary_distance(contour_boundary(contours), p)


def _boundary_distance(boundary: MultiLineString, p: Point2D) -> float:
    if boundary.is_empty:
        return math.inf
    return float(boundary.distance(Point(p)))


def visual_center(
    contours: Sequence[Sequence[Point2D]],
    bounds: Optional[Bounds2D] = None,
) -> Tuple[Point2D, float]:
    """Approximate pole of inaccessibility by grid search.

    Returns:
        ((x, y), radius) where radius is the distance to the nearest edge.
        Label and crosshair sizes derive from radius, so a mark of that size
        never crosses a cut line.
    """
    if bounds is None:
        bounds = Bounds2D.from_points(p for c in contours for p in c)

    w = bounds.width
    h = bounds.height
    cx = bounds.min_x + w / 2
    cy = bounds.min_y + h / 2
    step = min(w, h) / VISUAL_CENTER_STEPS
    if not (math.isfinite(step) and step > 0):
        return (cx, cy), 0.0

    boundary = contour_boundary(contours)
    nx = int(math.floor(w / step + 1e-9))
    ny = int(math.floor(h / step + 1e-9))

    best = (cx, cy)
    best_dist = 0.0
    for ix in range(nx + 1):
        x = bounds.min_x + ix * step
        for iy in range(ny + 1):
            y = bounds.min_y + iy * step
            if not point_in_contours((x, y), contours):
                continue
            d = _boundary_distance(boundary, (x, y))
            if d > best_dist:
                best_dist = d
                best = (x, y)

    if best_dist == 0.0:
        # Thin shapes can slip between grid samples.
        if point_in_contours((cx, cy), contours):
            return (cx, cy), _boundary_distance(boundary, (cx, cy))
        return (cx, cy), 0.0

    return best, best_dist
