"""Run folders for CLI slicing jobs.

Layout of one run::

    runs/<UTC stamp>_<slug>/
        input/<mesh file>
        artifacts/layout.json
        manifest.json
        metrics.json
        summary.md
    runs/latest -> most recent run
"""

from __future__ import annotations

import json
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Sequence

from materials import MaterialSettings
from mesh_io import ModelStats
from mesh_slicer import SliceSettings
from pipeline import PipelineResult
from sheet_annotations import SheetAnnotation


@dataclass
class RunPaths:
    run_id: str
    run_dir: Path
    input_dir: Path
    artifacts_dir: Path
    layout_path: Path
    manifest_path: Path
    metrics_path: Path
    summary_path: Path


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")
    return slug or "run"


def create_run_id(name: str) -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{stamp}_{slugify(name)}"


def prepare_run_dir(runs_root: str, name: str) -> RunPaths:
    run_id = create_run_id(name)
    run_dir = Path(runs_root) / run_id
    input_dir = run_dir / "input"
    artifacts_dir = run_dir / "artifacts"
    for d in (input_dir, artifacts_dir):
        d.mkdir(parents=True, exist_ok=True)

    return RunPaths(
        run_id=run_id,
        run_dir=run_dir,
        input_dir=input_dir,
        artifacts_dir=artifacts_dir,
        layout_path=artifacts_dir / "layout.json",
        manifest_path=run_dir / "manifest.json",
        metrics_path=run_dir / "metrics.json",
        summary_path=run_dir / "summary.md",
    )


def copy_input_mesh(mesh_path: str, input_dir: Path) -> Path:
    src = Path(mesh_path)
    dst = input_dir / src.name
    if src.resolve() != dst.resolve():
        shutil.copy2(src, dst)
    return dst


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # numpy scalars fall back to float
    path.write_text(json.dumps(payload, indent=2, default=float), encoding="utf-8")


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def update_latest_pointer(runs_root: str, run_dir: Path) -> None:
    runs_path = Path(runs_root)
    latest = runs_path / "latest"

    if latest.is_symlink() or latest.is_file():
        latest.unlink()
    elif latest.exists():
        shutil.rmtree(latest)

    try:
        latest.symlink_to(os.path.relpath(run_dir, runs_path))
    except OSError:
        # No symlink support: leave a marker file with the run name instead.
        latest.mkdir(parents=True, exist_ok=True)
        (latest / "latest_run.txt").write_text(run_dir.name, encoding="utf-8")


# ─── Run payloads ────────────────────────────────────────────────────────────

def layout_payload(result: PipelineResult, annotations: Sequence[SheetAnnotation]) -> Dict[str, Any]:
    """Nesting result plus per-part label anchors, as written to layout.json."""
    payload = result.to_dict()
    payload["labels"] = [
        {
            "sheet_id": ann.sheet_id,
            "parts": [
                {
                    "id": part.slice_id,
                    "text": part.label.text if part.label else None,
                    "x": part.label.x if part.label else None,
                    "y": part.label.y if part.label else None,
                    "font_size": part.label.font_size if part.label else None,
                    "score_lines": len(part.score_lines),
                }
                for part in ann.parts
            ],
        }
        for ann in annotations
    ]
    return payload


def metrics_payload(run_id: str, result: PipelineResult, stats: ModelStats) -> Dict[str, Any]:
    return {
        "run_id": run_id,
        "elapsed_s": round(result.elapsed_s, 3),
        "model": {
            "dimensions": list(stats.dimensions),
            "bbox_volume": stats.volume,
        },
        "counts": {
            "triangles": stats.triangle_count,
            "layers_requested": result.slice_count_requested,
            "layers": len(result.slices),
            "sheets": len(result.sheets),
            "placed": result.placed_count,
            "oversized": len(result.oversized),
            "skipped": len(result.skipped),
        },
        "split_rounds": result.split_rounds,
    }


def manifest_payload(
    paths: RunPaths,
    name: str,
    input_mesh: Path,
    settings: SliceSettings,
    material: MaterialSettings,
) -> Dict[str, Any]:
    return {
        "run_id": paths.run_id,
        "name": name,
        "input_mesh": str(input_mesh),
        "created_utc": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "settings": {
            "axis": settings.axis.value,
            "mode": settings.mode,
            "count": settings.count,
            "layer_height": settings.layer_height,
            "sync_with_material": settings.sync_with_material,
            "nesting_order": settings.nesting_order,
        },
        "material": {
            "width": material.width,
            "length": material.length,
            "thickness": material.thickness,
            "unit": material.unit,
        },
        "artifacts": {
            "layout": str(paths.layout_path),
            "metrics": str(paths.metrics_path),
            "summary": str(paths.summary_path),
        },
    }
