"""
Plane/triangle intersection: turn a triangle soup into per-level Slices.

The mesh is cut by ``count`` evenly spaced planes perpendicular to one axis.
Only interior levels of a (count + 1)-way split are used, so the two end
faces of the mesh never produce a layer. Levels that cross nothing are
dropped.
"""
import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from contour_linker import link_segments
from materials import MaterialSettings
from slice_model import Axis, Bounds2D, LineSegment, Point3D, Slice, project_point

logger = logging.getLogger(__name__)

EPSILON = 1e-5

ProgressCallback = Callable[[int, int], None]


@dataclass
class SliceSettings:
    """How a mesh should be cut into layers."""

    axis: Axis = Axis.Y
    mode: str = "count"  # "count" or "height"
    count: int = 20
    layer_height: float = 10.0
    sync_with_material: bool = False  # use sheet thickness as layer height
    nesting_order: str = "optimized"

    def __post_init__(self):
        self.axis = Axis.parse(self.axis)
        if self.mode not in ("count", "height"):
            raise ValueError(f"Unknown slice mode {self.mode!r}")


def resolve_slice_count(
    settings: SliceSettings,
    extent: float,
    material: Optional[MaterialSettings] = None,
) -> int:
    """Number of slicing planes for *settings* over a mesh *extent* (mm).

    In "height" mode the count is derived from the layer height, never
    fewer than two layers.
    """
    if settings.mode == "count":
        return settings.count

    layer_height = settings.layer_height
    if settings.sync_with_material and material is not None:
        layer_height = material.thickness_mm
    if layer_height <= 0:
        raise ValueError("Layer height must be greater than 0.")

    return max(2, int(math.floor(extent / layer_height - 1)))


def as_triangle_soup(positions) -> np.ndarray:
    """Copy a flat or nested position buffer into a (T, 3, 3) float array.

    A trailing partial triangle is ignored.
    """
    flat = np.array(positions, dtype=np.float64).reshape(-1)
    usable = (flat.size // 9) * 9
    return flat[:usable].reshape(-1, 3, 3)


def mesh_extent(positions, axis: Axis) -> Tuple[float, float]:
    """(min, max) of the mesh along *axis*; (0, 0) for an empty buffer."""
    tris = as_triangle_soup(positions)
    if len(tris) == 0:
        return (0.0, 0.0)
    coords = tris[:, :, Axis.parse(axis).index]
    return (float(coords.min()), float(coords.max()))


def slice_mesh(
    positions,
    axis: Axis,
    count: int,
    on_progress: Optional[ProgressCallback] = None,
) -> List[Slice]:
    """Cut a triangle soup into Slices.

    Args:
        positions: Expanded vertex positions, three vertices per triangle.
        axis: Slicing direction.
        count: Requested number of levels (>= 1).
        on_progress: Called as ``on_progress(level, count)`` once per level.

    Returns:
        One Slice per level that crosses the mesh, ids 1..count.
    """
    axis = Axis.parse(axis)
    tris = as_triangle_soup(positions)
    if count <= 0 or len(tris) == 0:
        return []

    coords = tris[:, :, axis.index]
    lo = float(coords.min())
    hi = float(coords.max())
    span = hi - lo
    if not span > 0:
        logger.info("Mesh is flat along %s; nothing to slice", axis.value)
        return []

    step = span / (count + 1)
    slices: List[Slice] = []

    for i in range(1, count + 1):
        level = lo + i * step
        dists = coords - level

        above = np.all(dists > EPSILON, axis=1)
        below = np.all(dists < -EPSILON, axis=1)
        candidates = np.nonzero(~(above | below))[0]

        segments: List[LineSegment] = []
        for t in candidates:
            seg = _intersect_triangle(tris[t].tolist(), dists[t].tolist())
            if seg is not None:
                segments.append(seg)

        if on_progress is not None:
            on_progress(i, count)

        if not segments:
            logger.debug("Level %d at %.4f crosses no triangles", i, level)
            continue

        bounds = Bounds2D.from_points(
            project_point(p, axis) for seg in segments for p in (seg.start, seg.end)
        )
        contours = link_segments(segments, EPSILON)

        slices.append(Slice(
            id=i,
            z_height=level,
            segments=tuple(segments),
            contours=tuple(tuple(c) for c in contours),
            bounds=bounds,
        ))
        logger.debug(
            "Level %d at %.4f: %d segments, %d contours",
            i, level, len(segments), len(contours),
        )

    logger.info("Sliced %d triangles into %d layers along %s",
                len(tris), len(slices), axis.value)
    return slices


# ─── Internal helpers ────────────────────────────────────────────────────────

def _intersect_triangle(
    points: Sequence[Sequence[float]],
    dists: Sequence[float],
) -> Optional[LineSegment]:
    """Segment where one triangle crosses the plane, or None.

    Coplanar and vertex-touching triangles yield other than two distinct
    points and are discarded.
    """
    hits: List[Point3D] = []

    for k in range(3):
        a, b = points[k], points[(k + 1) % 3]
        da, db = dists[k], dists[(k + 1) % 3]
        if (da > 0 and db < 0) or (da < 0 and db > 0):
            t = da / (da - db)
            hits.append((
                a[0] + (b[0] - a[0]) * t,
                a[1] + (b[1] - a[1]) * t,
                a[2] + (b[2] - a[2]) * t,
            ))

    for k in range(3):
        if abs(dists[k]) < EPSILON:
            p = points[k]
            hits.append((p[0], p[1], p[2]))

    sq_eps = EPSILON * EPSILON
    unique: List[Point3D] = []
    for p in hits:
        if not any(_dist_sq(p, q) <= sq_eps for q in unique):
            unique.append(p)

    if len(unique) != 2:
        return None
    return LineSegment(unique[0], unique[1])


def _dist_sq(a: Point3D, b: Point3D) -> float:
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    dz = a[2] - b[2]
    return dx * dx + dy * dy + dz * dz
