"""Vertex, face and corner normals for halfedge meshes.

Every routine is robust rather than maximally accurate: degenerate
configurations (isolated vertices, zero-area faces, coincident points,
boundary corners) yield the zero vector, never NaN or infinity.

Two guards carry that guarantee and must not be loosened:

* a cosine is clamped to [-1, 1] before it reaches ``acos``;
* a contribution is skipped when its denominator is at or below
  :data:`~mesh_normals.vec3.FLT_MIN` instead of being divided by.

Known limit: the guards cover underflow only. Edge lengths beyond roughly
1e75 overflow the squared lengths and cross products to infinity, after
which the results can be the zero vector or NaN. Rescale such meshes before
computing normals.
"""

from __future__ import annotations

import logging
import math
from typing import Dict

from .surface_mesh import Face, Halfedge, SurfaceMesh, Vertex
from .vec3 import FLT_MIN, ZERO, Normal, Point, add, clamp_cos, cross, dot, norm, normalize, scale, sub

__all__ = [
    "FLAT_CREASE_ANGLE",
    "SMOOTH_CREASE_ANGLE",
    "MIN_CREASE_ANGLE",
    "compute_vertex_normal",
    "compute_face_normal",
    "compute_corner_normal",
    "compute_vertex_normals",
    "compute_face_normals",
    "compute_corner_normals",
]

# Crease angles in degrees.
FLAT_CREASE_ANGLE = 0.01
SMOOTH_CREASE_ANGLE = 179.0
MIN_CREASE_ANGLE = 0.001


def _corner_contribution(p1: Point, p2: Point) -> Normal | None:
    """Unit normal of the corner spanned by *p1*, *p2* scaled by its angle."""

    denom = math.sqrt(dot(p1, p1) * dot(p2, p2))
    if denom <= FLT_MIN:
        return None
    angle = math.acos(clamp_cos(dot(p1, p2) / denom))

    n = cross(p1, p2)
    length = norm(n)
    if length <= FLT_MIN:
        return None
    return scale(n, angle / length)


def compute_vertex_normal(mesh: SurfaceMesh, v: Vertex) -> Normal:
    """Angle-weighted average of the normals of the faces around *v*."""

    ring = mesh.halfedges_around_vertex(v)
    if not ring:
        return ZERO

    p0 = mesh.position(v)
    nn = ZERO
    for h in ring:
        if mesh.is_boundary(h):
            continue
        p1 = sub(mesh.position(mesh.to_vertex(h)), p0)
        p2 = sub(mesh.position(mesh.from_vertex(mesh.prev_halfedge(h))), p0)
        n = _corner_contribution(p1, p2)
        if n is not None:
            nn = add(nn, n)
    return normalize(nn)


def compute_face_normal(mesh: SurfaceMesh, f: Face) -> Normal:
    """Normal of face *f*; polygons use the summed cross products of all corners."""

    points = [mesh.position(v) for v in mesh.vertices_around_face(f)]
    count = len(points)
    if count < 3:
        return ZERO

    if count == 3:
        p0, p1, p2 = points
        return normalize(cross(sub(p2, p1), sub(p0, p1)))

    n = ZERO
    for i in range(count):
        p0 = points[i]
        p1 = points[(i + 1) % count]
        p2 = points[(i + 2) % count]
        n = add(n, cross(sub(p2, p1), sub(p0, p1)))
    return normalize(n)


def compute_corner_normal(mesh: SurfaceMesh, h: Halfedge, crease_angle: float) -> Normal:
    """Normal for the corner at ``to_vertex(h)`` inside the face of *h*.

    Faces around the corner vertex contribute only when their normal is
    within *crease_angle* degrees of the normal of *h*'s own face. Each
    candidate is compared with that fixed face, not with the faces accepted
    before it, so a gradual bend is not followed across several faces.

    Every path, including the smooth shortcut above 179 degrees, uses the
    corner vertex ``to_vertex(h)``. Implementations that take the vertex
    normal of the origin vertex in that shortcut return the normal of a
    different vertex there.
    """

    if crease_angle < FLAT_CREASE_ANGLE:
        f = mesh.face(h)
        return ZERO if f is None else compute_face_normal(mesh, f)
    if crease_angle > SMOOTH_CREASE_ANGLE:
        return compute_vertex_normal(mesh, mesh.to_vertex(h))

    crease_angle = max(crease_angle, MIN_CREASE_ANGLE)
    cos_crease_angle = math.cos(math.radians(crease_angle))

    if mesh.is_boundary(h):
        return ZERO

    v0 = mesh.to_vertex(h)
    p0 = mesh.position(v0)
    start = mesh.next_halfedge(h)

    p1 = sub(mesh.position(mesh.to_vertex(start)), p0)
    p2 = sub(mesh.position(mesh.from_vertex(h)), p0)
    nf = normalize(cross(p1, p2))

    # Walking the outgoing ring from next(h) visits the same corners, in the
    # same order, as stepping h <- opposite(next(h)) around v0.
    nn = ZERO
    for out in mesh.halfedges_around_vertex(v0, start=start):
        if mesh.is_boundary(out):
            continue
        p1 = sub(mesh.position(mesh.to_vertex(out)), p0)
        p2 = sub(mesh.position(mesh.from_vertex(mesh.prev_halfedge(out))), p0)

        n = cross(p1, p2)
        length = norm(n)
        if length <= FLT_MIN:
            continue
        n = scale(n, 1.0 / length)

        if dot(n, nf) < cos_crease_angle:
            continue

        denom = math.sqrt(dot(p1, p1) * dot(p2, p2))
        if denom <= FLT_MIN:
            continue
        angle = math.acos(clamp_cos(dot(p1, p2) / denom))
        nn = add(nn, scale(n, angle))

    return normalize(nn)


def compute_vertex_normals(mesh: SurfaceMesh) -> Dict[Vertex, Normal]:
    """Store the normal of every vertex in ``mesh.vertex_normals``."""

    vnormal = mesh.vertex_normal_attribute()
    for v in mesh.vertices():
        vnormal[v] = compute_vertex_normal(mesh, v)
    logging.debug("Computed %d vertex normals", mesh.n_vertices)
    return vnormal


def compute_face_normals(mesh: SurfaceMesh) -> Dict[Face, Normal]:
    """Store the normal of every face in ``mesh.face_normals``."""

    fnormal = mesh.face_normal_attribute()
    for f in mesh.faces():
        fnormal[f] = compute_face_normal(mesh, f)
    logging.debug("Computed %d face normals", mesh.n_faces)
    return fnormal


def compute_corner_normals(mesh: SurfaceMesh, crease_angle: float) -> Dict[Halfedge, Normal]:
    """Store a corner normal for every face halfedge in ``mesh.halfedge_normals``.

    Boundary halfedges have no corner and get no entry.
    """

    hnormal = mesh.halfedge_normal_attribute()
    count = 0
    for h in mesh.halfedges():
        if mesh.is_boundary(h):
            continue
        hnormal[h] = compute_corner_normal(mesh, h, crease_angle)
        count += 1
    logging.debug("Computed %d corner normals (crease angle %.2f deg)", count, crease_angle)
    return hnormal
