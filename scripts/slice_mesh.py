#!/usr/bin/env python3
"""
Slice a 3D mesh into flat layers and nest them onto material sheets.

Usage:
    python scripts/slice_mesh.py --mesh model.stl
    python scripts/slice_mesh.py --mesh model.obj --axis z --count 12 --sheet-width 300 --sheet-length 400
    python scripts/slice_mesh.py --mesh model.glb --layer-height 6 --order sequential --runs-dir out/
    python scripts/slice_mesh.py --mesh model.stl --material mdf --sync-thickness
"""
import sys
import os
import argparse
import logging
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from materials import MATERIALS, MaterialSettings
from mesh_io import load_triangle_soup, model_stats
from mesh_slicer import SliceSettings
from pipeline import PipelineConfig, run_slicing_pipeline
from run_protocol import (
    copy_input_mesh,
    layout_payload,
    manifest_payload,
    metrics_payload,
    prepare_run_dir,
    update_latest_pointer,
    write_json,
    write_text,
)
from sheet_annotations import annotate_sheets


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Slice a mesh into laser-cut layers and nest them on sheets.",
    )
    parser.add_argument("--mesh", required=True, help="Path to mesh file (STL, OBJ, GLB, PLY)")
    parser.add_argument("--name", default=None, help="Run name (default: mesh file stem)")
    parser.add_argument(
        "--axis", default="y", choices=["x", "y", "z"],
        help="Slicing axis (default: y)",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--count", type=int, default=20, help="Number of layers (default: 20)")
    mode.add_argument(
        "--layer-height", type=float, default=None,
        help="Derive the layer count from this spacing instead of --count",
    )
    mode.add_argument(
        "--sync-thickness", action="store_true",
        help="Use the sheet thickness as layer spacing instead of --count or --layer-height",
    )

    parser.add_argument(
        "--material", default=None, choices=list(MATERIALS.keys()),
        help="Stock material preset (overrides sheet size and thickness)",
    )
    parser.add_argument("--sheet-width", type=float, default=200.0, help="Sheet width (default: 200)")
    parser.add_argument("--sheet-length", type=float, default=200.0, help="Sheet length (default: 200)")
    parser.add_argument("--thickness", type=float, default=3.0, help="Sheet thickness (default: 3)")
    parser.add_argument("--unit", default="mm", choices=["mm", "in"], help="Sheet units (default: mm)")

    parser.add_argument(
        "--order", default="optimized", choices=["optimized", "sequential"],
        help="Nesting order (default: optimized)",
    )
    parser.add_argument("--no-auto-split", action="store_true", help="Report oversized layers instead of splitting")
    parser.add_argument("--max-split-rounds", type=int, default=4, help="Split/re-nest rounds (default: 4)")
    parser.add_argument("--runs-dir", default="runs", help="Root folder for run output (default: runs)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    mesh_path = os.path.abspath(args.mesh)
    if not os.path.isfile(mesh_path):
        print(f"Error: mesh file not found: {mesh_path}", file=sys.stderr)
        return 1

    if args.material:
        material = MaterialSettings.from_material(args.material)
    else:
        material = MaterialSettings(
            width=args.sheet_width,
            length=args.sheet_length,
            thickness=args.thickness,
            unit=args.unit,
        )

    use_height = args.layer_height is not None or args.sync_thickness
    settings = SliceSettings(
        axis=args.axis,
        mode="height" if use_height else "count",
        count=args.count,
        layer_height=args.layer_height if args.layer_height is not None else material.thickness_mm,
        sync_with_material=args.sync_thickness,
        nesting_order=args.order,
    )
    config = PipelineConfig(
        auto_split=not args.no_auto_split,
        max_split_rounds=args.max_split_rounds,
    )

    name = args.name or Path(mesh_path).stem
    paths = prepare_run_dir(args.runs_dir, name)
    copied = copy_input_mesh(mesh_path, paths.input_dir)

    positions = load_triangle_soup(str(copied))
    stats = model_stats(positions)
    print(f"Slicing {copied.name} ({stats.triangle_count} triangles, "
          f"{stats.dimensions[0]:.1f} x {stats.dimensions[1]:.1f} x {stats.dimensions[2]:.1f}) ...")

    def on_progress(current, total):
        logging.getLogger("slice_mesh").debug("Slicing layer %d/%d", current, total)

    result = run_slicing_pipeline(positions, settings, material, config, on_progress)
    annotations = annotate_sheets(result.sheets, result.slices, settings.axis)

    write_json(paths.layout_path, layout_payload(result, annotations))
    write_json(paths.metrics_path, metrics_payload(paths.run_id, result, stats))
    write_text(paths.summary_path, result.summary_markdown(title=f"Run {paths.run_id}"))
    write_json(paths.manifest_path, manifest_payload(paths, name, copied, settings, material))
    update_latest_pointer(args.runs_dir, paths.run_dir)

    print(f"Run ID: {paths.run_id}")
    print(f"Layers: {len(result.slices)}  Sheets: {len(result.sheets)}  "
          f"Oversized: {len(result.oversized)}")
    for sheet in result.sheets:
        print(f"  Sheet {sheet.id + 1}: {len(sheet.items)} parts, "
              f"{sheet.utilization() * 100:.0f}% used")
    return 0


if __name__ == "__main__":
    sys.exit(main())
