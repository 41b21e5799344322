import logging
import math

import pytest

from materials import MaterialSettings
from nesting import (
    Bin,
    NestingConfig,
    NestingStrategy,
    Rect,
    is_fittable,
    nest_slices,
)
from slice_model import Bounds2D, Slice


def _all_items(result):
    return [item for sheet in result.sheets for item in sheet.items]


class TestNestSlices:
    def test_five_squares_on_two_sheets(self, make_rect_slice):
        slices = [make_rect_slice(i, 50, 50) for i in range(1, 6)]
        config = NestingConfig(sheet_width=120, sheet_height=120, margin=5)

        result = nest_slices(slices, config)

        assert len(result.sheets) == 2
        first = result.sheets[0]
        assert len(first.items) == 4
        assert [(p.x, p.y) for p in first.items] == [(0, 0), (55, 0), (0, 55), (55, 55)]
        assert all(p.rotation == 0 for p in first.items)
        assert [p.id for p in result.sheets[1].items] == [5]
        assert result.sheets[1].items[0].sheet_id == 1
        assert result.oversized == []

    def test_parts_stay_on_sheet_and_do_not_overlap(self, make_rect_slice):
        sizes = [(80, 30), (40, 60), (25, 25), (90, 20), (35, 70), (15, 45), (60, 60)]
        slices = [make_rect_slice(i, w, h) for i, (w, h) in enumerate(sizes, start=1)]
        config = NestingConfig(sheet_width=150, sheet_height=120, margin=5)

        result = nest_slices(slices, config)

        assert result.placed_count == len(slices)
        for sheet in result.sheets:
            boxes = []
            for item in sheet.items:
                w, h = item.footprint(config.margin)
                assert item.x >= 0 and item.y >= 0
                assert item.x + w <= sheet.width + 1e-9
                assert item.y + h <= sheet.height + 1e-9
                boxes.append((item.x, item.y, item.x + w, item.y + h))
            for i, a in enumerate(boxes):
                for b in boxes[i + 1:]:
                    overlap_w = min(a[2], b[2]) - max(a[0], b[0])
                    overlap_h = min(a[3], b[3]) - max(a[1], b[1])
                    assert overlap_w <= 1e-9 or overlap_h <= 1e-9

    def test_every_slice_accounted_for(self, make_rect_slice):
        slices = [make_rect_slice(1, 50, 50), make_rect_slice(2, 500, 10), make_rect_slice(3, 20, 20)]
        result = nest_slices(slices, NestingConfig(sheet_width=200, sheet_height=200))
        assert sorted(p.id for p in _all_items(result)) == [1, 3]
        assert [s.id for s in result.oversized] == [2]

    def test_rotates_when_only_rotated_fits(self, make_rect_slice):
        config = NestingConfig(sheet_width=100, sheet_height=200, margin=0)
        result = nest_slices([make_rect_slice(1, 150, 50)], config)
        item = result.sheets[0].items[0]
        assert item.rotation == pytest.approx(math.pi / 2)
        assert item.footprint() == (50, 150)

    def test_invalid_bounds_are_skipped(self, make_rect_slice):
        flat = Slice(id=7, z_height=0.0, segments=(), contours=(), bounds=Bounds2D(0, 0, 10, 0))
        empty = Slice(
            id=8, z_height=0.0, segments=(), contours=(),
            bounds=Bounds2D(math.inf, math.inf, -math.inf, -math.inf),
        )
        result = nest_slices([make_rect_slice(1, 10, 10), flat, empty])
        assert result.skipped == [7, 8]
        assert result.placed_count == 1
        assert result.oversized == []

    def test_optimized_places_largest_first(self, make_rect_slice):
        slices = [make_rect_slice(1, 10, 10), make_rect_slice(2, 80, 80), make_rect_slice(3, 40, 40)]
        result = nest_slices(slices, NestingConfig(strategy="optimized"))
        assert [p.id for p in _all_items(result)] == [2, 3, 1]

    def test_sequential_places_by_id(self, make_rect_slice):
        slices = [
            make_rect_slice(3, 40, 40),
            make_rect_slice("1.2", 10, 10),
            make_rect_slice(2, 80, 80),
            make_rect_slice("1.1", 10, 10),
        ]
        config = NestingConfig(strategy=NestingStrategy.SEQUENTIAL)
        result = nest_slices(slices, config)
        assert [p.id for p in _all_items(result)] == ["1.1", "1.2", 2, 3]

    def test_equal_area_keeps_input_order(self, make_rect_slice):
        slices = [make_rect_slice(i, 20, 20) for i in (4, 2, 9)]
        result = nest_slices(slices)
        assert [p.id for p in _all_items(result)] == [4, 2, 9]

    def test_deterministic(self, make_rect_slice):
        slices = [make_rect_slice(i, 10 + 7 * i, 60 - 3 * i) for i in range(1, 12)]
        config = NestingConfig(sheet_width=120, sheet_height=100)
        assert nest_slices(slices, config).to_dict() == nest_slices(slices, config).to_dict()

    def test_empty_input(self):
        result = nest_slices([])
        assert result.sheets == []
        assert result.placed_count == 0


class TestBin:
    def test_guillotine_split_wide_leftover(self):
        b = Bin(0, 100, 50)
        b.split_free_rect(b.free_rects.pop(), 30, 40)
        assert b.free_rects == [Rect(30, 0, 70, 50), Rect(0, 40, 30, 10)]

    def test_guillotine_split_tall_leftover(self):
        b = Bin(0, 50, 100)
        b.split_free_rect(b.free_rects.pop(), 40, 30)
        assert b.free_rects == [Rect(0, 30, 50, 70), Rect(40, 0, 10, 30)]

    def test_exact_fit_leaves_no_free_rects(self, make_rect_slice):
        b = Bin(0, 50, 50)
        assert b.insert(make_rect_slice(1, 50, 50), margin=0)
        assert b.free_rects == []
        assert not b.insert(make_rect_slice(2, 1, 1), margin=0)

    def test_score_prefers_tighter_rect(self):
        b = Bin(0, 100, 100)
        b.free_rects = [Rect(0, 0, 100, 100), Rect(0, 0, 22, 30)]
        assert b.score(20, 30) == (0, 2, 1)
        assert b.score(200, 10) is None


def test_is_fittable(make_rect_slice):
    s = make_rect_slice(1, 190, 50)
    assert is_fittable(s, 200, 200, 5)
    assert not is_fittable(s, 200, 200, 15)
    assert is_fittable(s, 60, 200, 5)


def test_config_from_material():
    config = NestingConfig.from_material(MaterialSettings(width=10, length=20, unit="in"))
    assert config.sheet_width == pytest.approx(254.0)
    assert config.sheet_height == pytest.approx(508.0)
    assert config.margin == 5.0
    assert config.strategy is NestingStrategy.OPTIMIZED


def test_slice_rejected_by_empty_sheet_goes_to_oversized(make_rect_slice, monkeypatch, caplog):
    monkeypatch.setattr(Bin, "insert", lambda self, slice_, margin: False)

    with caplog.at_level(logging.ERROR, logger="nesting"):
        result = nest_slices([make_rect_slice(1, 10, 10)])

    assert result.sheets == []
    assert [s.id for s in result.oversized] == [1]
    assert any(r.levelno == logging.ERROR for r in caplog.records)
