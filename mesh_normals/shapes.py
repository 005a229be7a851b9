"""Factory for simple closed and open test surfaces.

All faces are oriented counter-clockwise when seen from outside, so face
normals point away from the solid. The icosahedron is oriented with a vertex
on the +Z axis to keep vertex numbering reproducible.
"""

from __future__ import annotations

from math import acos, cos, pi, sin, sqrt
from typing import List, Sequence, Tuple

from . import vec3 as v3
from .surface_mesh import SurfaceMesh
from .vec3 import Vector3

__all__ = [
    "tetrahedron",
    "hexahedron",
    "octahedron",
    "icosahedron",
    "plane",
    "cone",
    "cylinder",
]

Polygon = Tuple[int, ...]


def tetrahedron() -> SurfaceMesh:
    """Regular tetrahedron inscribed in the unit sphere."""

    a = 1.0 / 3.0
    b = sqrt(8.0 / 9.0)
    c = sqrt(2.0 / 9.0)
    d = sqrt(2.0 / 3.0)
    points: List[Vector3] = [
        (0.0, 0.0, 1.0),
        (-c, d, -a),
        (-c, -d, -a),
        (b, 0.0, -a),
    ]
    faces: List[Polygon] = [(0, 1, 2), (0, 2, 3), (0, 3, 1), (3, 2, 1)]
    return SurfaceMesh.from_polygons(points, faces)


def hexahedron() -> SurfaceMesh:
    """Axis-aligned cube with quad faces, inscribed in the unit sphere."""

    a = 1.0 / sqrt(3.0)
    points: List[Vector3] = [
        (-a, -a, -a),
        (a, -a, -a),
        (a, a, -a),
        (-a, a, -a),
        (-a, -a, a),
        (a, -a, a),
        (a, a, a),
        (-a, a, a),
    ]
    faces: List[Polygon] = [
        (3, 2, 1, 0),
        (2, 6, 5, 1),
        (5, 6, 7, 4),
        (0, 4, 7, 3),
        (3, 7, 6, 2),
        (1, 5, 4, 0),
    ]
    return SurfaceMesh.from_polygons(points, faces)


def octahedron() -> SurfaceMesh:
    """Regular octahedron with vertices on the coordinate axes."""

    points: List[Vector3] = [
        (1.0, 0.0, 0.0),
        (-1.0, 0.0, 0.0),
        (0.0, 1.0, 0.0),
        (0.0, -1.0, 0.0),
        (0.0, 0.0, 1.0),
        (0.0, 0.0, -1.0),
    ]
    faces: List[Polygon] = []
    # One face per octant; swap the last two corners when the octant is mirrored.
    for sx in (1, -1):
        for sy in (1, -1):
            for sz in (1, -1):
                x = 0 if sx > 0 else 1
                y = 2 if sy > 0 else 3
                z = 4 if sz > 0 else 5
                faces.append((x, y, z) if sx * sy * sz > 0 else (x, z, y))
    return SurfaceMesh.from_polygons(points, faces)


def icosahedron(radius: float = 1.0) -> SurfaceMesh:
    """Icosahedron with circumscribed *radius* and one vertex on +Z."""

    phi = (1 + sqrt(5)) / 2
    raw_nodes: List[Vector3] = [
        (-1.0, phi, 0.0),
        (1.0, phi, 0.0),
        (-1.0, -phi, 0.0),
        (1.0, -phi, 0.0),
        (0.0, -1.0, phi),
        (0.0, 1.0, phi),
        (0.0, -1.0, -phi),
        (0.0, 1.0, -phi),
        (phi, 0.0, -1.0),
        (phi, 0.0, 1.0),
        (-phi, 0.0, -1.0),
        (-phi, 0.0, 1.0),
    ]
    nodes = [v3.scale(v3.normalize(p), radius) for p in raw_nodes]
    nodes = _rotate_to_vertex_up(nodes, vertex_index=5)

    faces: List[Polygon] = [
        (0, 11, 5),
        (0, 5, 1),
        (0, 1, 7),
        (0, 7, 10),
        (0, 10, 11),
        (1, 5, 9),
        (5, 11, 4),
        (11, 10, 2),
        (10, 7, 6),
        (7, 1, 8),
        (3, 9, 4),
        (3, 4, 2),
        (3, 2, 6),
        (3, 6, 8),
        (3, 8, 9),
        (4, 9, 5),
        (2, 4, 11),
        (6, 2, 10),
        (8, 6, 7),
        (9, 8, 1),
    ]
    return SurfaceMesh.from_polygons(nodes, faces)


def plane(resolution: int = 4) -> SurfaceMesh:
    """Open unit square in the XY plane split into ``resolution**2`` quads."""

    if resolution < 1:
        raise ValueError("Plane resolution must be at least 1")

    step = 1.0 / resolution
    points = [
        (i * step, j * step, 0.0)
        for j in range(resolution + 1)
        for i in range(resolution + 1)
    ]
    row = resolution + 1
    faces: List[Polygon] = []
    for j in range(resolution):
        for i in range(resolution):
            v = j * row + i
            faces.append((v, v + 1, v + row + 1, v + row))
    return SurfaceMesh.from_polygons(points, faces)


def cone(n_subdivisions: int = 30, radius: float = 1.0, height: float = 2.5) -> SurfaceMesh:
    """Cone with a polygonal base at z=0 and its apex at ``(0, 0, height)``."""

    if n_subdivisions < 3:
        raise ValueError("Cone needs at least three subdivisions")

    points = _circle(n_subdivisions, radius, 0.0)
    apex = len(points)
    points.append((0.0, 0.0, height))

    faces: List[Polygon] = [
        (i, (i + 1) % n_subdivisions, apex) for i in range(n_subdivisions)
    ]
    faces.append(tuple(reversed(range(n_subdivisions))))
    return SurfaceMesh.from_polygons(points, faces)


def cylinder(n_subdivisions: int = 30, radius: float = 1.0, height: float = 2.5) -> SurfaceMesh:
    """Closed cylinder with quad sides and polygonal caps at z=0 and z=height."""

    if n_subdivisions < 3:
        raise ValueError("Cylinder needs at least three subdivisions")

    n = n_subdivisions
    points = _circle(n, radius, 0.0) + _circle(n, radius, height)

    faces: List[Polygon] = []
    for i in range(n):
        j = (i + 1) % n
        faces.append((i, j, n + j, n + i))
    faces.append(tuple(reversed(range(n))))
    faces.append(tuple(range(n, 2 * n)))
    return SurfaceMesh.from_polygons(points, faces)


def _circle(count: int, radius: float, z: float) -> List[Vector3]:
    return [
        (radius * cos(2 * pi * i / count), radius * sin(2 * pi * i / count), z)
        for i in range(count)
    ]


def _rotate_to_vertex_up(nodes: Sequence[Vector3], vertex_index: int) -> List[Vector3]:
    v = v3.normalize(nodes[vertex_index])
    zhat: Vector3 = (0.0, 0.0, 1.0)

    d = v3.dot(v, zhat)
    if d >= 1.0 - 1e-12:
        return list(nodes)
    if d <= -1.0 + 1e-12:
        return [(x, -y, -z) for (x, y, z) in nodes]

    axis = v3.normalize(v3.cross(v, zhat))
    angle = acos(v3.clamp_cos(d))
    return [_rotate_axis_angle(p, axis, angle) for p in nodes]


def _rotate_axis_angle(vec: Vector3, axis_unit: Vector3, angle_rad: float) -> Vector3:
    # Rodrigues' rotation formula.
    c = cos(angle_rad)
    s = sin(angle_rad)
    k = v3.dot(axis_unit, vec) * (1.0 - c)
    return v3.add(
        v3.add(v3.scale(vec, c), v3.scale(v3.cross(axis_unit, vec), s)),
        v3.scale(axis_unit, k),
    )
