"""
Pack slices onto rectangular sheets.

Guillotine packing with the Best-Short-Side-Fit heuristic and a 90 degree
rotation trial. Each Bin is one sheet with a list of free rectangles that
exactly partitions its unused area. Slices whose bounds cannot fit an empty
sheet in either orientation are reported as oversized, never dropped.
"""
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from materials import MaterialSettings
from slice_model import PlacedSlice, Sheet, Slice, SliceId, slice_id_key

logger = logging.getLogger(__name__)

DEFAULT_MARGIN_MM = 5.0


class NestingStrategy(Enum):
    """Order in which slices are offered to the packer."""
    OPTIMIZED = "optimized"    # largest bounding area first
    SEQUENTIAL = "sequential"  # by slice id


@dataclass
class NestingConfig:
    """Sheet size (mm) and packing policy."""

    sheet_width: float = 200.0
    sheet_height: float = 200.0
    margin: float = DEFAULT_MARGIN_MM
    strategy: NestingStrategy = NestingStrategy.OPTIMIZED

    def __post_init__(self):
        if not isinstance(self.strategy, NestingStrategy):
            self.strategy = NestingStrategy(self.strategy)

    @classmethod
    def from_material(
        cls,
        material: MaterialSettings,
        strategy: NestingStrategy = NestingStrategy.OPTIMIZED,
    ) -> "NestingConfig":
        return cls(
            sheet_width=material.width_mm,
            sheet_height=material.length_mm,
            strategy=strategy,
        )


@dataclass
class Rect:
    x: float
    y: float
    width: float
    height: float


@dataclass
class NestResult:
    sheets: List[Sheet] = field(default_factory=list)
    oversized: List[Slice] = field(default_factory=list)
    skipped: List[SliceId] = field(default_factory=list)

    @property
    def placed_count(self) -> int:
        return sum(len(s.items) for s in self.sheets)

    def to_dict(self) -> dict:
        return {
            "sheets": [s.to_dict() for s in self.sheets],
            "oversized": [
                {"id": s.id, "width": s.bounds.width, "height": s.bounds.height}
                for s in self.oversized
            ],
            "skipped": list(self.skipped),
            "placed_count": self.placed_count,
        }


class Bin:
    """One sheet being filled."""

    def __init__(self, sheet_id: int, width: float, height: float):
        self.sheet_id = sheet_id
        self.width = width
        self.height = height
        self.items: List[PlacedSlice] = []
        self.free_rects: List[Rect] = [Rect(0.0, 0.0, width, height)]

    def score(self, w: float, h: float) -> Optional[Tuple[float, float, int]]:
        """Best free rect for a (w, h) block.

        Returns:
            (short_side_fit, long_side_fit, rect_index) or None if no
            free rect is large enough. Lower scores are better.
        """
        best: Optional[Tuple[float, float, int]] = None
        for idx, rect in enumerate(self.free_rects):
            if rect.width < w or rect.height < h:
                continue
            leftover_w = abs(rect.width - w)
            leftover_h = abs(rect.height - h)
            candidate = (min(leftover_w, leftover_h), max(leftover_w, leftover_h), idx)
            if best is None or candidate[:2] < best[:2]:
                best = candidate
        return best

    def insert(self, slice_: Slice, margin: float) -> bool:
        """Place *slice_* if it fits, trying both orientations."""
        w = slice_.bounds.width + margin
        h = slice_.bounds.height + margin

        normal_fit = self.score(w, h)
        rotated_fit = self.score(h, w)

        use_rotated = False
        if normal_fit and rotated_fit:
            use_rotated = rotated_fit[:2] < normal_fit[:2]
            chosen = rotated_fit if use_rotated else normal_fit
        elif normal_fit:
            chosen = normal_fit
        elif rotated_fit:
            use_rotated = True
            chosen = rotated_fit
        else:
            return False

        rect = self.free_rects.pop(chosen[2])
        placed_w, placed_h = (h, w) if use_rotated else (w, h)

        self.items.append(PlacedSlice(
            slice=slice_,
            x=rect.x,
            y=rect.y,
            rotation=math.pi / 2 if use_rotated else 0.0,
            sheet_id=self.sheet_id,
        ))
        self.split_free_rect(rect, placed_w, placed_h)
        return True

    def split_free_rect(self, rect: Rect, w: float, h: float) -> None:
        """Guillotine-split the leftover of *rect* after carving a (w, h) block.

        The cut runs along the larger leftover dimension so the bigger
        remaining chunk stays whole.
        """
        w_rem = rect.width - w
        h_rem = rect.height - h

        if w_rem > h_rem:
            r1 = Rect(rect.x + w, rect.y, w_rem, rect.height)
            r2 = Rect(rect.x, rect.y + h, w, h_rem)
        else:
            r1 = Rect(rect.x, rect.y + h, rect.width, h_rem)
            r2 = Rect(rect.x + w, rect.y, w_rem, h)

        for r in (r1, r2):
            if r.width > 0 and r.height > 0:
                self.free_rects.append(r)

    def to_sheet(self) -> Sheet:
        return Sheet(
            id=self.sheet_id,
            width=self.width,
            height=self.height,
            items=tuple(self.items),
        )


def is_fittable(slice_: Slice, sheet_width: float, sheet_height: float, margin: float) -> bool:
    """True if the slice's bounds fit an empty sheet normally or rotated."""
    w = slice_.bounds.width
    h = slice_.bounds.height
    fits_normal = w + margin <= sheet_width and h + margin <= sheet_height
    fits_rotated = h + margin <= sheet_width and w + margin <= sheet_height
    return fits_normal or fits_rotated


def nest_slices(
    slices: Sequence[Slice],
    config: Optional[NestingConfig] = None,
) -> NestResult:
    """Pack slices onto as few sheets as the heuristic manages.

    Args:
        slices: Layers to place.
        config: Sheet size, margin and strategy.

    Returns:
        NestResult with sheets in creation order and the oversized slices.
    """
    if config is None:
        config = NestingConfig()

    result = NestResult()
    fittable: List[Slice] = []

    for s in slices:
        if not s.bounds.is_valid:
            logger.warning("Skipping slice %s with invalid bounds %s", s.id, s.bounds)
            result.skipped.append(s.id)
            continue
        if is_fittable(s, config.sheet_width, config.sheet_height, config.margin):
            fittable.append(s)
        else:
            result.oversized.append(s)

    if config.strategy is NestingStrategy.SEQUENTIAL:
        ordered = sorted(fittable, key=lambda s: slice_id_key(s.id))
    else:
        ordered = sorted(fittable, key=lambda s: s.bounds.area, reverse=True)

    bins: List[Bin] = []
    for s in ordered:
        if any(b.insert(s, config.margin) for b in bins):
            continue
        new_bin = Bin(len(bins), config.sheet_width, config.sheet_height)
        bins.append(new_bin)
        if not new_bin.insert(s, config.margin):
            bins.pop()
            logger.error(
                "Slice %s was classified fittable but does not fit an empty sheet",
                s.id,
            )
            result.oversized.append(s)

    result.sheets = [b.to_sheet() for b in bins]
    logger.info(
        "Nested %d slices on %d sheets (%d oversized, %d skipped)",
        result.placed_count, len(result.sheets), len(result.oversized), len(result.skipped),
    )
    return result
