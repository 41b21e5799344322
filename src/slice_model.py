"""
Core records for the slicing pipeline.

A Slice is one flat layer cut from the mesh; a PlacedSlice is that layer
positioned on a Sheet by the nesting engine. All records are frozen: the
splitter and the nester build new records instead of mutating old ones.

Projection convention (used everywhere downstream):
  - slicing along Z keeps (x, y)
  - slicing along Y keeps (x, z)
  - slicing along X keeps (y, z)
"""
import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union

Point2D = Tuple[float, float]
Point3D = Tuple[float, float, float]
SliceId = Union[int, str]


class Axis(Enum):
    """Principal slicing direction."""
    X = "x"
    Y = "y"
    Z = "z"

    @classmethod
    def parse(cls, value: Union["Axis", str]) -> "Axis":
        if isinstance(value, Axis):
            return value
        return cls(str(value).strip().lower())

    @property
    def index(self) -> int:
        return {"x": 0, "y": 1, "z": 2}[self.value]


def project_point(point: Sequence[float], axis: Axis) -> Point2D:
    """Drop the axis coordinate and return (u, v) in the fixed order."""
    if axis is Axis.Z:
        return (float(point[0]), float(point[1]))
    if axis is Axis.Y:
        return (float(point[0]), float(point[2]))
    return (float(point[1]), float(point[2]))


def unproject_point(u: float, v: float, axis: Axis, height: float) -> Point3D:
    """Inverse of project_point for a point lying on the plane at *height*."""
    if axis is Axis.Z:
        return (u, v, height)
    if axis is Axis.Y:
        return (u, height, v)
    return (height, u, v)


@dataclass(frozen=True)
class LineSegment:
    start: Point3D
    end: Point3D


@dataclass(frozen=True)
class Bounds2D:
    """Axis-aligned box in projected (u, v) space."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_finite(self) -> bool:
        return all(math.isfinite(c) for c in (self.min_x, self.min_y, self.max_x, self.max_y))

    @property
    def is_valid(self) -> bool:
        """Finite with strictly positive extents (usable for nesting)."""
        w, h = self.width, self.height
        return math.isfinite(w) and math.isfinite(h) and w > 0 and h > 0

    @classmethod
    def from_points(cls, points: Iterable[Point2D]) -> "Bounds2D":
        min_x = min_y = math.inf
        max_x = max_y = -math.inf
        for x, y in points:
            min_x = min(min_x, x)
            min_y = min(min_y, y)
            max_x = max(max_x, x)
            max_y = max(max_y, y)
        return cls(min_x, min_y, max_x, max_y)

    def to_dict(self) -> dict:
        return {
            "min_x": self.min_x, "min_y": self.min_y,
            "max_x": self.max_x, "max_y": self.max_y,
            "width": self.width, "height": self.height,
        }


# ─── Slice ids ───────────────────────────────────────────────────────────────

def slice_id_key(slice_id: SliceId) -> Decimal:
    """Exact numeric sort key: 3 < "3.1" < "3.12" < "3.2" < 4."""
    return Decimal(str(slice_id))


def child_slice_id(parent: SliceId, suffix: int) -> str:
    """Id of a split half: 3 -> "3.1", "3.1" -> "3.12"."""
    text = str(parent)
    if "." in text:
        return f"{text}{suffix}"
    return f"{text}.{suffix}"


def slice_base_index(slice_id: SliceId) -> int:
    """Integer layer index a (possibly split) id descends from."""
    return int(math.floor(slice_id_key(slice_id)))


# ─── Records ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Slice:
    """One non-empty slicing level.

    Contours carry no closed/open flag; consumers treat every contour as a
    closed polygon, including open chains left by the linker.
    """
    id: SliceId
    z_height: float
    segments: Tuple[LineSegment, ...]
    contours: Tuple[Tuple[Point3D, ...], ...]
    bounds: Bounds2D

    @property
    def base_index(self) -> int:
        return slice_base_index(self.id)

    def contours_2d(self, axis: Axis) -> List[List[Point2D]]:
        return [[project_point(p, axis) for p in contour] for contour in self.contours]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "z_height": self.z_height,
            "bounds": self.bounds.to_dict(),
            "contours": [[list(p) for p in c] for c in self.contours],
            "segment_count": len(self.segments),
        }


@dataclass(frozen=True)
class PlacedSlice:
    """A Slice positioned on a sheet. rotation is 0 or pi/2 radians."""
    slice: Slice
    x: float
    y: float
    rotation: float
    sheet_id: int

    @property
    def id(self) -> SliceId:
        return self.slice.id

    @property
    def bounds(self) -> Bounds2D:
        return self.slice.bounds

    @property
    def rotated(self) -> bool:
        return self.rotation != 0

    def footprint(self, margin: float = 0.0) -> Tuple[float, float]:
        """Placed (width, height) on the sheet, including *margin*."""
        w = self.bounds.width + margin
        h = self.bounds.height + margin
        return (h, w) if self.rotated else (w, h)

    def to_sheet(self, u: float, v: float) -> Point2D:
        """Map a point from projected slice space to sheet space."""
        local_u = u - self.bounds.min_x
        local_v = v - self.bounds.min_y
        if self.rotated:
            # Quarter turn about the part centre, re-anchored at the origin.
            local_u, local_v = self.bounds.height - local_v, local_u
        return (local_u + self.x, local_v + self.y)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "rotation": self.rotation,
            "sheet_id": self.sheet_id,
            "width": self.bounds.width,
            "height": self.bounds.height,
        }


@dataclass(frozen=True)
class Sheet:
    id: int
    width: float
    height: float
    items: Tuple[PlacedSlice, ...] = ()
    unplaced: Optional[Tuple[PlacedSlice, ...]] = None

    def utilization(self, margin: float = 0.0) -> float:
        """Fraction of sheet area covered by placed part bounds (plus margin)."""
        sheet_area = self.width * self.height
        if sheet_area <= 0:
            return 0.0
        used = 0.0
        for item in self.items:
            w, h = item.footprint(margin)
            used += w * h
        return used / sheet_area

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "width": self.width,
            "height": self.height,
            "utilization": round(self.utilization(), 4),
            "items": [item.to_dict() for item in self.items],
        }
