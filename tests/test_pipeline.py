from __future__ import annotations

import pytest

from materials import MaterialSettings
from mesh_slicer import SliceSettings
from pipeline import PipelineConfig, run_slicing_pipeline
from slice_model import Axis


def test_cube_fits_without_splitting(cube_positions):
    settings = SliceSettings(axis="z", count=4)
    result = run_slicing_pipeline(cube_positions, settings, MaterialSettings(width=250, length=250))

    assert result.axis is Axis.Z
    assert result.slice_count_requested == 4
    assert [s.id for s in result.slices] == [1, 2, 3, 4]
    assert result.placed_count == 4
    assert result.oversized == []
    assert result.split_rounds == 0
    assert result.elapsed_s >= 0


def test_oversized_layers_are_split_in_place(long_box_positions):
    settings = SliceSettings(axis=Axis.Z, count=3)
    result = run_slicing_pipeline(long_box_positions, settings, MaterialSettings())

    assert result.split_rounds == 1
    assert result.oversized == []
    assert [s.id for s in result.slices] == ["1.1", "1.2", "2.1", "2.2", "3.1", "3.2"]
    assert result.placed_count == 6

    widths = sorted({round(s.bounds.width, 6) for s in result.slices})
    assert widths == pytest.approx([146.0, 154.0])


def test_no_auto_split_reports_oversized(long_box_positions):
    settings = SliceSettings(axis=Axis.Z, count=3)
    config = PipelineConfig(auto_split=False)
    result = run_slicing_pipeline(long_box_positions, settings, MaterialSettings(), config)

    assert result.split_rounds == 0
    assert [s.id for s in result.oversized] == [1, 2, 3]
    assert result.sheets == []


def test_split_rounds_are_bounded(long_box_positions):
    # A 40mm sheet would need many halvings; stop after two rounds.
    settings = SliceSettings(axis=Axis.Z, count=1)
    config = PipelineConfig(max_split_rounds=2)
    result = run_slicing_pipeline(long_box_positions, settings, MaterialSettings(width=40, length=40), config)

    assert result.split_rounds == 2
    assert result.oversized
    placed = result.placed_count + len(result.oversized) + len(result.skipped)
    assert placed == len(result.slices)


def test_height_mode_with_material_sync(cube_positions):
    settings = SliceSettings(axis="z", mode="height", layer_height=50, sync_with_material=True)
    material = MaterialSettings(thickness=25, width=300, length=300)
    result = run_slicing_pipeline(cube_positions, settings, material)
    # floor(100 / 25 - 1) = 3
    assert result.slice_count_requested == 3
    assert len(result.slices) == 3


def test_inch_material_is_converted(cube_positions):
    settings = SliceSettings(axis="z", count=2)
    material = MaterialSettings(width=10, length=10, unit="in")
    result = run_slicing_pipeline(cube_positions, settings, material)
    assert result.sheets[0].width == pytest.approx(254.0)
    assert result.oversized == []


def test_sequential_order_places_by_layer(cube_positions):
    settings = SliceSettings(axis="x", count=3, nesting_order="sequential")
    result = run_slicing_pipeline(cube_positions, settings, MaterialSettings(width=400, length=400))
    items = [item.id for sheet in result.sheets for item in sheet.items]
    assert items == [1, 2, 3]


def test_progress_forwarded(cube_positions):
    seen = []
    run_slicing_pipeline(
        cube_positions, SliceSettings(count=3), on_progress=lambda i, n: seen.append(i),
    )
    assert seen == [1, 2, 3]


def test_empty_mesh_gives_empty_result():
    result = run_slicing_pipeline([], SliceSettings(count=5))
    assert result.slices == []
    assert result.sheets == []
    assert result.placed_count == 0


def test_result_serializes(long_box_positions):
    result = run_slicing_pipeline(long_box_positions, SliceSettings(axis="z", count=2))
    data = result.to_dict()
    assert data["axis"] == "z"
    assert data["slice_count"] == 4
    assert data["oversized"] == []
    assert len(data["sheets"]) == len(result.sheets)

    summary = result.summary_markdown(title="Box")
    assert summary.startswith("# Box")
    assert "- Split rounds: 1" in summary
    assert "## Oversized\n- None" in summary
