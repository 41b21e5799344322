"""
Shared test fixtures for the slicing and nesting pipeline tests.
"""
import sys
from pathlib import Path

import numpy as np
import pytest
import trimesh

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from slice_model import Bounds2D, LineSegment, Slice


def rect_slice(slice_id, width, height, z=0.0, origin=(0.0, 0.0)):
    """A Z-axis Slice whose single contour is a width x height rectangle."""
    x0, y0 = origin
    corners = [
        (x0, y0, z),
        (x0 + width, y0, z),
        (x0 + width, y0 + height, z),
        (x0, y0 + height, z),
    ]
    segments = tuple(LineSegment(corners[i], corners[(i + 1) % 4]) for i in range(4))
    return Slice(
        id=slice_id,
        z_height=z,
        segments=segments,
        contours=(tuple(corners),),
        bounds=Bounds2D(x0, y0, x0 + width, y0 + height),
    )


@pytest.fixture
def make_rect_slice():
    return rect_slice


@pytest.fixture
def cube_mesh():
    """A 100x100x100mm cube spanning [0, 100] on every axis."""
    mesh = trimesh.creation.box(extents=[100, 100, 100])
    mesh.apply_translation([50, 50, 50])
    return mesh


@pytest.fixture
def cube_positions(cube_mesh):
    return np.array(cube_mesh.triangles, dtype=np.float64)


@pytest.fixture
def long_box_positions():
    """A 300x100x100mm box; its Z layers are too wide for a 200mm sheet."""
    mesh = trimesh.creation.box(extents=[300, 100, 100])
    mesh.apply_translation([150, 50, 50])
    return np.array(mesh.triangles, dtype=np.float64)


@pytest.fixture
def cylinder_positions():
    """A cylinder mesh (height=200, radius=50) standing on z=0."""
    mesh = trimesh.creation.cylinder(radius=50, height=200, sections=32)
    mesh.apply_translation([0, 0, 100])
    return np.array(mesh.triangles, dtype=np.float64)


@pytest.fixture
def square_contours():
    return [[(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]]


@pytest.fixture
def box_mesh_file(cube_mesh, tmp_path):
    path = tmp_path / "box.stl"
    cube_mesh.export(str(path))
    return str(path)
