from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import trimesh

from mesh_io import load_mesh, load_triangle_soup, mesh_to_triangle_soup, model_stats


def test_load_mesh_reads_stl(box_mesh_file: str):
    mesh = load_mesh(box_mesh_file)
    assert isinstance(mesh, trimesh.Trimesh)
    assert len(mesh.faces) == 12


def test_load_mesh_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_mesh(str(tmp_path / "nope.stl"))


def test_load_mesh_flattens_scene(tmp_path: Path):
    a = trimesh.creation.box(extents=[10, 10, 10])
    b = trimesh.creation.box(extents=[10, 10, 10])
    b.apply_translation([30, 0, 0])
    scene = trimesh.Scene([a, b])
    path = tmp_path / "pair.glb"
    scene.export(str(path))

    mesh = load_mesh(str(path))
    assert len(mesh.faces) == 24
    assert mesh.extents[0] == pytest.approx(40.0)


def test_triangle_soup_shape(box_mesh_file: str):
    tris = load_triangle_soup(box_mesh_file)
    assert tris.shape == (12, 3, 3)
    assert tris.dtype == np.float64


def test_mesh_to_triangle_soup_matches_faces(cube_mesh):
    tris = mesh_to_triangle_soup(cube_mesh)
    np.testing.assert_allclose(tris[0], cube_mesh.vertices[cube_mesh.faces[0]])


def test_model_stats(cube_positions):
    stats = model_stats(cube_positions)
    assert stats.dimensions == pytest.approx((100.0, 100.0, 100.0))
    assert stats.volume == pytest.approx(1e6)
    assert stats.triangle_count == 12


def test_model_stats_empty():
    stats = model_stats([])
    assert stats.dimensions == (0.0, 0.0, 0.0)
    assert stats.triangle_count == 0
