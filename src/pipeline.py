"""Single-path pipeline: triangle soup -> layers -> nested sheets.

Two phases: slice and nest, then (optionally) split whatever came back
oversized and nest again. The split/re-nest step is an explicit loop with a
bounded number of rounds.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from materials import MaterialSettings
from mesh_slicer import ProgressCallback, SliceSettings, mesh_extent, resolve_slice_count, slice_mesh
from nesting import NestingConfig, NestingStrategy, NestResult, nest_slices
from slice_model import Axis, Sheet, Slice, SliceId
from slice_splitter import SplitConfig, split_slice

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    auto_split: bool = True
    max_split_rounds: int = 4
    split_clearance: float = 10.0  # subtracted from the sheet size when choosing a cut
    split: SplitConfig = field(default_factory=SplitConfig)


@dataclass
class PipelineResult:
    axis: Axis
    slice_count_requested: int
    slices: List[Slice] = field(default_factory=list)
    sheets: List[Sheet] = field(default_factory=list)
    oversized: List[Slice] = field(default_factory=list)
    skipped: List[SliceId] = field(default_factory=list)
    split_rounds: int = 0
    elapsed_s: float = 0.0

    @property
    def placed_count(self) -> int:
        return sum(len(s.items) for s in self.sheets)

    def to_dict(self) -> Dict[str, object]:
        return {
            "axis": self.axis.value,
            "slice_count_requested": self.slice_count_requested,
            "slice_count": len(self.slices),
            "split_rounds": self.split_rounds,
            "elapsed_s": round(self.elapsed_s, 3),
            "sheets": [s.to_dict() for s in self.sheets],
            "oversized": [
                {"id": s.id, "width": s.bounds.width, "height": s.bounds.height}
                for s in self.oversized
            ],
            "skipped": list(self.skipped),
        }

    def summary_markdown(self, title: str = "Layout") -> str:
        lines = [
            f"# {title}",
            "",
            f"- Axis: **{self.axis.value.upper()}**",
            f"- Layers requested: {self.slice_count_requested}",
            f"- Layers produced: {len(self.slices)}",
            f"- Sheets: {len(self.sheets)}",
            f"- Parts placed: {self.placed_count}",
            f"- Split rounds: {self.split_rounds}",
            f"- Duration: {self.elapsed_s:.2f}s",
            "",
            "## Oversized",
        ]
        if not self.oversized:
            lines.append("- None")
        else:
            for s in self.oversized:
                lines.append(
                    f"- Slice {s.id}: {s.bounds.width:.1f} x {s.bounds.height:.1f} mm"
                )
        return "\n".join(lines) + "\n"


def run_slicing_pipeline(
    positions,
    settings: Optional[SliceSettings] = None,
    material: Optional[MaterialSettings] = None,
    config: Optional[PipelineConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> PipelineResult:
    """Slice a triangle soup and lay the layers out on sheets.

    Args:
        positions: Expanded vertex positions (three per triangle).
        settings: Axis, count/height mode and nesting order.
        material: Sheet stock; sizes are converted to mm.
        config: Auto-split policy.
        on_progress: Per-level callback forwarded to the slicer.

    Returns:
        PipelineResult. Empty or flat meshes give an empty result.
    """
    if settings is None:
        settings = SliceSettings()
    if material is None:
        material = MaterialSettings()
    if config is None:
        config = PipelineConfig()

    started = time.perf_counter()
    axis = settings.axis

    lo, hi = mesh_extent(positions, axis)
    count = resolve_slice_count(settings, hi - lo, material)
    result = PipelineResult(axis=axis, slice_count_requested=count)

    logger.info("Slicing along %s into %d layers", axis.value, count)
    slices = slice_mesh(positions, axis, count, on_progress)

    nest_config = NestingConfig.from_material(material, NestingStrategy(settings.nesting_order))
    nested = nest_slices(slices, nest_config)

    max_w = nest_config.sheet_width - config.split_clearance
    max_h = nest_config.sheet_height - config.split_clearance

    while config.auto_split and nested.oversized and result.split_rounds < config.max_split_rounds:
        result.split_rounds += 1
        slices = _split_oversized(slices, nested, axis, max_w, max_h, config.split)
        nested = nest_slices(slices, nest_config)
        logger.info(
            "Split round %d: %d layers, %d still oversized",
            result.split_rounds, len(slices), len(nested.oversized),
        )

    if nested.oversized and config.auto_split:
        logger.warning(
            "%d layers still exceed the sheet after %d split rounds",
            len(nested.oversized), result.split_rounds,
        )

    result.slices = slices
    result.sheets = nested.sheets
    result.oversized = nested.oversized
    result.skipped = nested.skipped
    result.elapsed_s = time.perf_counter() - started
    return result


def _split_oversized(
    slices: List[Slice],
    nested: NestResult,
    axis: Axis,
    max_w: float,
    max_h: float,
    split_config: SplitConfig,
) -> List[Slice]:
    """Replace each oversized slice by its split halves, keeping layer order."""
    oversized_ids = {s.id for s in nested.oversized}
    updated: List[Slice] = []
    for s in slices:
        if s.id not in oversized_ids:
            updated.append(s)
            continue
        parts = split_slice(s, axis, max_w, max_h, split_config)
        if parts:
            updated.extend(parts)
        else:
            logger.warning("Slice %s could not be split; keeping it whole", s.id)
            updated.append(s)
    return updated
