"""
Sheet-space geometry for cutting and assembly marks.

For every placed layer this computes what a vector exporter draws: the cut
paths, score lines showing where the next layer sits (clipped to this layer
so they never run off the part), and a label with an alignment crosshair at
the layer's visual centre. Coordinates are in sheet space (mm). Nothing here
writes files.
"""
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence

from geometry_kernel import Segment2D, clip_segments_to_contours, visual_center
from slice_model import (
    Axis,
    PlacedSlice,
    Point2D,
    Sheet,
    Slice,
    SliceId,
    project_point,
    slice_id_key,
)

logger = logging.getLogger(__name__)

MAX_CROSSHAIR_MM = 5.0
MIN_FONT_SIZE_MM = 0.5
LABEL_FILL = 0.8       # share of the clear diameter a label may use
GLYPH_ASPECT = 0.6     # glyph width / font size


@dataclass
class CutPath:
    points: List[Point2D]
    closed: bool = True


@dataclass
class LabelPlacement:
    text: str
    x: float
    y: float
    radius: float
    crosshair_size: float
    font_size: Optional[float]  # None when the label would be unreadably small


@dataclass
class PartAnnotation:
    slice_id: SliceId
    cut_paths: List[CutPath] = field(default_factory=list)
    score_lines: List[Segment2D] = field(default_factory=list)
    label: Optional[LabelPlacement] = None


@dataclass
class SheetAnnotation:
    sheet_id: int
    width: float
    height: float
    parts: List[PartAnnotation] = field(default_factory=list)


def format_label(slice_id: SliceId) -> str:
    """Integer ids verbatim; split ids rounded to two decimals."""
    if isinstance(slice_id, int):
        return str(slice_id)
    value = slice_id_key(slice_id).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{value.normalize():f}"


def label_font_size(radius: float, label: str) -> float:
    """Largest font size (mm) whose label fits inside a circle of *radius*."""
    safe_diameter = radius * 2 * LABEL_FILL
    width_size = safe_diameter / (max(len(label), 1) * GLYPH_ASPECT)
    return min(safe_diameter, width_size)


def annotate_part(
    item: PlacedSlice,
    axis: Axis,
    next_layer: Sequence[Slice] = (),
) -> PartAnnotation:
    """Cut paths, score lines and label for one placed layer."""
    annotation = PartAnnotation(slice_id=item.id)
    contours_2d = item.slice.contours_2d(axis)

    for contour in contours_2d:
        annotation.cut_paths.append(
            CutPath(points=[item.to_sheet(u, v) for u, v in contour], closed=True)
        )

    if not contours_2d:
        for seg in item.slice.segments:
            s = project_point(seg.start, axis)
            e = project_point(seg.end, axis)
            annotation.cut_paths.append(
                CutPath(points=[item.to_sheet(*s), item.to_sheet(*e)], closed=False)
            )

    if contours_2d and next_layer:
        lines: List[Segment2D] = []
        for other in next_layer:
            for loop in other.contours_2d(axis):
                if len(loop) < 2:
                    continue
                for i in range(len(loop)):
                    lines.append((loop[i], loop[(i + 1) % len(loop)]))
        for start, end in clip_segments_to_contours(lines, contours_2d):
            annotation.score_lines.append((item.to_sheet(*start), item.to_sheet(*end)))

    if contours_2d:
        (cu, cv), radius = visual_center(contours_2d, item.bounds)
        cx, cy = item.to_sheet(cu, cv)
    else:
        box_w, box_h = item.footprint()
        cx = item.x + box_w / 2
        cy = item.y + box_h / 2
        radius = min(box_w, box_h) / 4

    text = format_label(item.id)
    font_size = label_font_size(radius, text)
    annotation.label = LabelPlacement(
        text=text,
        x=cx,
        y=cy,
        radius=radius,
        crosshair_size=min(MAX_CROSSHAIR_MM, radius * 0.5),
        font_size=font_size if font_size > MIN_FONT_SIZE_MM else None,
    )
    return annotation


def annotate_sheets(
    sheets: Sequence[Sheet],
    all_slices: Sequence[Slice],
    axis: Axis,
) -> List[SheetAnnotation]:
    """Annotate every placed layer on every sheet.

    Args:
        sheets: Nesting output.
        all_slices: Every current layer, used to find each layer's successor.
        axis: Slicing axis (fixes the projection).
    """
    axis = Axis.parse(axis)
    by_layer: Dict[int, List[Slice]] = {}
    for s in all_slices:
        by_layer.setdefault(s.base_index, []).append(s)

    result = []
    for sheet in sheets:
        sheet_ann = SheetAnnotation(sheet_id=sheet.id, width=sheet.width, height=sheet.height)
        for item in sheet.items:
            next_layer = by_layer.get(item.slice.base_index + 1, [])
            sheet_ann.parts.append(annotate_part(item, axis, next_layer))
        result.append(sheet_ann)

    logger.debug("Annotated %d sheets", len(result))
    return result
