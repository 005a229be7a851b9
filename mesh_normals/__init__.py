"""Robust vertex, face and corner normals for halfedge polygon meshes."""

from .normals import (
    compute_corner_normal,
    compute_corner_normals,
    compute_face_normal,
    compute_face_normals,
    compute_vertex_normal,
    compute_vertex_normals,
)
from .surface_mesh import SurfaceMesh, TopologyError

__all__ = [
    "normals",
    "parameters",
    "pipeline",
    "shapes",
    "surface_mesh",
    "vec3",
    "SurfaceMesh",
    "TopologyError",
    "compute_vertex_normal",
    "compute_face_normal",
    "compute_corner_normal",
    "compute_vertex_normals",
    "compute_face_normals",
    "compute_corner_normals",
]
