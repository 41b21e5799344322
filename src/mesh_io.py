"""
Mesh loading for the slicing pipeline.

Reads STL/OBJ/GLB/PLY with trimesh and hands the core an expanded triangle
soup (three vertices per triangle, no shared indices).
"""
import logging
import os
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import trimesh

from mesh_slicer import as_triangle_soup

logger = logging.getLogger(__name__)


@dataclass
class ModelStats:
    dimensions: Tuple[float, float, float]
    volume: float  # bounding-box volume
    triangle_count: int


def load_mesh(filepath: str) -> trimesh.Trimesh:
    """Load a mesh file as a single Trimesh.

    Scenes are flattened with their transforms applied; if that yields no
    faces the largest geometry is used instead.
    """
    if not os.path.isfile(filepath):
        raise FileNotFoundError(f"Mesh file not found: {filepath}")

    scene_or_mesh = trimesh.load(filepath)

    if isinstance(scene_or_mesh, trimesh.Scene):
        mesh = scene_or_mesh.to_mesh()
        if not isinstance(mesh, trimesh.Trimesh) or len(mesh.faces) == 0:
            meshes = [
                g for g in scene_or_mesh.geometry.values()
                if isinstance(g, trimesh.Trimesh)
            ]
            if not meshes:
                raise ValueError(f"No triangle meshes found in {filepath}")
            mesh = max(meshes, key=lambda m: len(m.faces))
    elif isinstance(scene_or_mesh, trimesh.Trimesh):
        mesh = scene_or_mesh
    else:
        raise ValueError(
            f"Unsupported type from trimesh.load: {type(scene_or_mesh)}"
        )

    if len(mesh.faces) == 0:
        raise ValueError(f"Mesh has no faces: {filepath}")

    logger.info("Loaded %s: %d faces", filepath, len(mesh.faces))
    return mesh


def mesh_to_triangle_soup(mesh: trimesh.Trimesh) -> np.ndarray:
    """(T, 3, 3) array of triangle vertex positions."""
    return np.array(mesh.triangles, dtype=np.float64)


def load_triangle_soup(filepath: str) -> np.ndarray:
    return mesh_to_triangle_soup(load_mesh(filepath))


def model_stats(positions) -> ModelStats:
    """Bounding dimensions and triangle count of a triangle soup."""
    tris = as_triangle_soup(positions)
    if len(tris) == 0:
        return ModelStats(dimensions=(0.0, 0.0, 0.0), volume=0.0, triangle_count=0)
    pts = tris.reshape(-1, 3)
    size = pts.max(axis=0) - pts.min(axis=0)
    dims = (float(size[0]), float(size[1]), float(size[2]))
    return ModelStats(
        dimensions=dims,
        volume=dims[0] * dims[1] * dims[2],
        triangle_count=len(tris),
    )
