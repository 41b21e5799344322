"""
Join the unordered segments of one slicing level into polylines.

Endpoints are matched through a spatial hash keyed on coordinates rounded
to the epsilon grid. Linking is greedy and deterministic: at every step the
lowest-indexed unused segment touching the trailing point wins.
"""
import logging
import math
from typing import Dict, List, Sequence, Tuple

from slice_model import LineSegment, Point3D

logger = logging.getLogger(__name__)

DEFAULT_EPSILON = 1e-5

HashKey = Tuple[int, int, int]


def _hash_point(p: Point3D, epsilon: float) -> HashKey:
    # Round half up, so keys do not depend on banker's rounding.
    return (
        math.floor(p[0] / epsilon + 0.5),
        math.floor(p[1] / epsilon + 0.5),
        math.floor(p[2] / epsilon + 0.5),
    )


def _dist_sq(a: Point3D, b: Point3D) -> float:
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    dz = a[2] - b[2]
    return dx * dx + dy * dy + dz * dz


def link_segments(
    segments: Sequence[LineSegment],
    epsilon: float = DEFAULT_EPSILON,
) -> List[List[Point3D]]:
    """Chain segments into contours.

    Each contour is grown from the end of its seed segment. A chain stops when
    nothing continues it (open chain) or when it returns to its first point
    (closed loop; the closing point is not repeated). Closure is not tagged on
    the output.

    Args:
        segments: Coplanar segments of one level, in slicer order.
        epsilon: Matching tolerance and hash grid resolution.

    Returns:
        List of point sequences.
    """
    sq_eps = epsilon * epsilon

    adjacency: Dict[HashKey, List[int]] = {}
    for idx, seg in enumerate(segments):
        adjacency.setdefault(_hash_point(seg.start, epsilon), []).append(idx)
        adjacency.setdefault(_hash_point(seg.end, epsilon), []).append(idx)

    used = set()
    contours: List[List[Point3D]] = []

    for i, seed in enumerate(segments):
        if i in used:
            continue
        used.add(i)

        contour = [seed.start, seed.end]
        current = seed.end

        while True:
            candidates = adjacency.get(_hash_point(current, epsilon))
            if not candidates:
                break

            next_point = None
            for cand_idx in candidates:
                if cand_idx in used:
                    continue
                cand = segments[cand_idx]
                if _dist_sq(cand.start, current) < sq_eps:
                    next_point = cand.end
                elif _dist_sq(cand.end, current) < sq_eps:
                    next_point = cand.start
                else:
                    continue
                used.add(cand_idx)
                break

            if next_point is None:
                break

            current = next_point
            if _dist_sq(current, contour[0]) < sq_eps:
                break
            contour.append(current)

        contours.append(contour)

    logger.debug("Linked %d segments into %d contours", len(segments), len(contours))
    return contours
