import math

import pytest

from conftest import assert_vec_close, is_unit_or_zero
from mesh_normals import normals, shapes
from mesh_normals import vec3 as v3
from mesh_normals.surface_mesh import SurfaceMesh
from mesh_normals.vec3 import ZERO


def _single_face(points) -> SurfaceMesh:
    return SurfaceMesh.from_polygons(points, [tuple(range(len(points)))])


# ---------------------------------------------------------------------------
# Face normals
# ---------------------------------------------------------------------------


def test_triangle_normal_matches_cross_product():
    a, b, c = (0.2, -1.0, 0.5), (1.5, 0.3, -0.2), (-0.4, 0.9, 1.1)
    expected = v3.normalize(v3.cross(v3.sub(c, b), v3.sub(a, b)))

    assert_vec_close(normals.compute_face_normal(_single_face([a, b, c]), 0), expected)
    # Cyclic relabeling keeps the normal, reversed winding flips it.
    assert_vec_close(normals.compute_face_normal(_single_face([b, c, a]), 0), expected)
    assert_vec_close(normals.compute_face_normal(_single_face([c, a, b]), 0), expected)
    assert_vec_close(normals.compute_face_normal(_single_face([c, b, a]), 0), v3.negate(expected))


def test_planar_polygon_matches_triangle_fan():
    # Regular pentagon in a tilted plane.
    u = v3.normalize((1.0, 0.0, 1.0))
    w = (0.0, 1.0, 0.0)
    center = (0.5, -2.0, 3.0)
    points = [
        v3.add(center, v3.add(v3.scale(u, math.cos(t)), v3.scale(w, math.sin(t))))
        for t in (2 * math.pi * k / 5 for k in range(5))
    ]

    fan = ZERO
    for i in range(1, len(points) - 1):
        fan = v3.add(fan, v3.cross(v3.sub(points[i], points[0]), v3.sub(points[i + 1], points[0])))

    n = normals.compute_face_normal(_single_face(points), 0)
    assert_vec_close(n, v3.normalize(fan))
    assert_vec_close(n, v3.normalize(v3.cross(u, w)))


def test_non_planar_quad_has_unit_normal():
    points = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.2), (1.0, 1.0, 0.0), (0.0, 1.0, 0.3)]
    n = normals.compute_face_normal(_single_face(points), 0)
    assert math.isclose(v3.norm(n), 1.0)
    assert n[2] > 0.9


def test_cube_face_normals_are_axis_aligned(cube):
    found = sorted(
        tuple(round(c) for c in normals.compute_face_normal(cube, f)) for f in cube.faces()
    )
    assert found == sorted(
        [(1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0), (0, 0, 1), (0, 0, -1)]
    )


def test_collinear_triangle_has_zero_normal():
    mesh = _single_face([(0.0, 0.0, 0.0), (1.0, 1.0, 1.0), (2.0, 2.0, 2.0)])
    assert normals.compute_face_normal(mesh, 0) == ZERO


def test_coincident_polygon_has_zero_normal():
    mesh = _single_face([(1.0, 2.0, 3.0)] * 4)
    assert normals.compute_face_normal(mesh, 0) == ZERO


# ---------------------------------------------------------------------------
# Vertex normals
# ---------------------------------------------------------------------------


def test_cube_vertex_normals_point_along_diagonals(cube):
    for v in cube.vertices():
        expected = v3.normalize(tuple(math.copysign(1.0, c) for c in cube.position(v)))
        assert_vec_close(normals.compute_vertex_normal(cube, v), expected)


@pytest.mark.parametrize("factory", [shapes.octahedron, shapes.icosahedron, shapes.tetrahedron])
def test_platonic_vertex_normals_are_radial(factory):
    mesh = factory()
    for v in mesh.vertices():
        assert_vec_close(normals.compute_vertex_normal(mesh, v), v3.normalize(mesh.position(v)))


def test_boundary_halfedges_are_skipped_on_open_plane():
    mesh = shapes.plane(3)
    for v in mesh.vertices():
        assert_vec_close(normals.compute_vertex_normal(mesh, v), (0.0, 0.0, 1.0))


def test_cone_apex_normal_points_up():
    mesh = shapes.cone(12, radius=1.0, height=2.0)
    apex = mesh.n_vertices - 1
    assert_vec_close(normals.compute_vertex_normal(mesh, apex), (0.0, 0.0, 1.0))


def test_vertex_normal_weights_faces_by_corner_angle():
    # Open fan around the origin: a 90 degree corner in z=0 and a 45 degree
    # corner in x=0. Weights follow the angles, not the face areas.
    points = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 10.0, 10.0)]
    mesh = SurfaceMesh.from_polygons(points, [(0, 1, 2), (0, 2, 3)])
    expected = v3.normalize(
        v3.add(v3.scale((0.0, 0.0, 1.0), math.pi / 2), v3.scale((1.0, 0.0, 0.0), math.pi / 4))
    )
    assert_vec_close(normals.compute_vertex_normal(mesh, 0), expected)


def test_degenerate_mesh_vertex_normals(degenerate_mesh):
    up = (0.0, 0.0, 1.0)
    assert_vec_close(normals.compute_vertex_normal(degenerate_mesh, 0), up)
    assert_vec_close(normals.compute_vertex_normal(degenerate_mesh, 1), up)
    assert_vec_close(normals.compute_vertex_normal(degenerate_mesh, 2), up)
    # Only corner of vertex 3 has a zero-length edge.
    assert normals.compute_vertex_normal(degenerate_mesh, 3) == ZERO
    # Isolated vertex.
    assert normals.compute_vertex_normal(degenerate_mesh, 4) == ZERO
    assert normals.compute_face_normal(degenerate_mesh, 1) == ZERO


@pytest.mark.parametrize(
    "factory",
    [shapes.tetrahedron, shapes.hexahedron, shapes.octahedron, shapes.icosahedron,
     shapes.plane, shapes.cone, shapes.cylinder],
)
def test_all_normals_are_unit_or_zero(factory):
    mesh = factory()
    for v in mesh.vertices():
        assert is_unit_or_zero(normals.compute_vertex_normal(mesh, v))
    for f in mesh.faces():
        assert is_unit_or_zero(normals.compute_face_normal(mesh, f))
    for h in mesh.halfedges():
        for angle in (0.0, 30.0, 90.0, 180.0):
            assert is_unit_or_zero(normals.compute_corner_normal(mesh, h, angle))


def test_degenerate_mesh_normals_are_unit_or_zero(degenerate_mesh):
    for v in degenerate_mesh.vertices():
        assert is_unit_or_zero(normals.compute_vertex_normal(degenerate_mesh, v))
    for f in degenerate_mesh.faces():
        assert is_unit_or_zero(normals.compute_face_normal(degenerate_mesh, f))
    for h in degenerate_mesh.halfedges():
        for angle in (0.0, 0.005, 45.0, 179.5):
            assert is_unit_or_zero(normals.compute_corner_normal(degenerate_mesh, h, angle))


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("s", [1e-60, 1e60])
def test_extreme_scale_triangle_has_unit_normals(s):
    # At 1e-60 the squared lengths are around 1e-120: far below any
    # "reasonable" epsilon, still far above FLT_MIN, so nothing may be dropped.
    mesh = _single_face([(0.0, 0.0, 0.0), (s, 0.0, 0.0), (0.0, s, 0.0)])
    up = (0.0, 0.0, 1.0)
    assert_vec_close(normals.compute_face_normal(mesh, 0), up)
    for v in mesh.vertices():
        assert_vec_close(normals.compute_vertex_normal(mesh, v), up)
    for h in mesh.halfedges():
        if mesh.is_boundary(h):
            continue
        for angle in (0.0, 30.0, 90.0, 180.0):
            assert_vec_close(normals.compute_corner_normal(mesh, h, angle), up)


def _overshooting_collinear_pair():
    """Parallel edge vectors whose computed cosine rounds to above 1."""
    for i in range(1, 400):
        p = (0.1 * i, 0.3, 0.7 + 0.01 * i)
        for k in (3.0, 7.0, 0.3):
            q = v3.scale(p, k)
            if v3.dot(p, q) / math.sqrt(v3.dot(p, p) * v3.dot(q, q)) > 1.0:
                return p, q
    return None


def test_collinear_corner_cosine_is_clamped():
    pair = _overshooting_collinear_pair()
    assert pair is not None
    p, q = pair
    apex = (0.0, 0.0, 1.0)
    # Face 0 has a zero-angle corner at vertex 0, face 1 is a proper triangle.
    mesh = SurfaceMesh.from_polygons([(0.0, 0.0, 0.0), p, q, apex], [(0, 1, 2), (0, 2, 3)])

    assert_vec_close(normals.compute_vertex_normal(mesh, 0), v3.normalize(v3.cross(q, apex)))
    for f in mesh.faces():
        assert is_unit_or_zero(normals.compute_face_normal(mesh, f))
    for h in mesh.halfedges():
        for angle in (0.0, 30.0, 90.0, 180.0):
            assert is_unit_or_zero(normals.compute_corner_normal(mesh, h, angle))


def test_vertex_shared_by_two_fans_has_normals():
    points = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (-1.0, 0.0, 0.0), (0.0, -1.0, 0.0)]
    mesh = SurfaceMesh.from_polygons(points, [(0, 1, 2), (0, 3, 4)])
    up = (0.0, 0.0, 1.0)
    for v in mesh.vertices():
        assert_vec_close(normals.compute_vertex_normal(mesh, v), up)
    for h, n in normals.compute_corner_normals(mesh, 45.0).items():
        assert_vec_close(n, up)


# ---------------------------------------------------------------------------
# Corner normals
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("factory", [shapes.hexahedron, shapes.icosahedron, shapes.cylinder])
def test_zero_crease_angle_gives_face_normal(factory):
    mesh = factory()
    for h in mesh.halfedges():
        f = mesh.face(h)
        if f is None:
            continue
        assert normals.compute_corner_normal(mesh, h, 0.0) == normals.compute_face_normal(mesh, f)


@pytest.mark.parametrize("factory", [shapes.hexahedron, shapes.icosahedron, shapes.cylinder])
def test_straight_crease_angle_gives_vertex_normal(factory):
    mesh = factory()
    for h in mesh.halfedges():
        expected = normals.compute_vertex_normal(mesh, mesh.to_vertex(h))
        assert normals.compute_corner_normal(mesh, h, 180.0) == expected


def test_cube_sharp_crease_keeps_faces_flat(cube):
    for h in cube.halfedges():
        expected = normals.compute_face_normal(cube, cube.face(h))
        assert_vec_close(normals.compute_corner_normal(cube, h, 45.0), expected)


def test_cube_wide_crease_smooths_corners(cube):
    for h in cube.halfedges():
        expected = normals.compute_vertex_normal(cube, cube.to_vertex(h))
        assert_vec_close(normals.compute_corner_normal(cube, h, 100.0), expected)


def test_icosahedron_crease_threshold():
    # Adjacent icosahedron face normals are about 41.8 degrees apart.
    mesh = shapes.icosahedron()
    for h in mesh.halfedges():
        flat = normals.compute_face_normal(mesh, mesh.face(h))
        smooth = normals.compute_vertex_normal(mesh, mesh.to_vertex(h))
        assert_vec_close(normals.compute_corner_normal(mesh, h, 30.0), flat)
        assert_vec_close(normals.compute_corner_normal(mesh, h, 90.0), smooth)


def test_corner_on_boundary_halfedge_is_zero():
    mesh = shapes.plane(2)
    for h in mesh.halfedges():
        if mesh.is_boundary(h):
            assert normals.compute_corner_normal(mesh, h, 60.0) == ZERO
            assert normals.compute_corner_normal(mesh, h, 0.0) == ZERO
        else:
            assert_vec_close(normals.compute_corner_normal(mesh, h, 60.0), (0.0, 0.0, 1.0))


def test_crease_compares_against_own_face_only():
    # Three faces around the origin. Each neighbour is ~22 degrees from the
    # previous one, but the third face is ~31 degrees from the first.
    h_tilt = 0.404
    g_tilt = 0.45
    points = [
        (0.0, 0.0, 0.0),
        (1.0, 0.0, 0.0),
        (0.0, 1.0, 0.0),
        (-1.0, 0.0, h_tilt),
        (0.0, -1.0, g_tilt),
    ]
    mesh = SurfaceMesh.from_polygons(points, [(0, 1, 2), (0, 2, 3), (0, 3, 4)])
    p1, p2, p3 = points[1], points[2], points[3]

    n_a = v3.normalize(v3.cross(p1, p2))
    n_b = v3.normalize(v3.cross(p2, p3))
    expected = v3.normalize(
        v3.add(
            v3.scale(n_a, v3.angle_between(p1, p2)),
            v3.scale(n_b, v3.angle_between(p2, p3)),
        )
    )

    corner = mesh.find_halfedge(2, 0)
    assert mesh.face(corner) == 0
    result = normals.compute_corner_normal(mesh, corner, 30.0)
    assert_vec_close(result, expected)

    smooth = normals.compute_vertex_normal(mesh, 0)
    assert not all(math.isclose(a, b, abs_tol=1e-6) for a, b in zip(result, smooth))


# ---------------------------------------------------------------------------
# Batch drivers
# ---------------------------------------------------------------------------


def test_batch_vertex_normals_match_single_element(cube):
    assert cube.vertex_normals is None
    result = normals.compute_vertex_normals(cube)
    assert result is cube.vertex_normals
    assert len(result) == cube.n_vertices
    for v in cube.vertices():
        assert result[v] == normals.compute_vertex_normal(cube, v)


def test_batch_face_normals_match_single_element():
    mesh = shapes.cylinder(8)
    result = normals.compute_face_normals(mesh)
    assert result is mesh.face_normals
    assert len(result) == mesh.n_faces
    for f in mesh.faces():
        assert result[f] == normals.compute_face_normal(mesh, f)


def test_batch_drivers_are_idempotent(degenerate_mesh):
    first_v = dict(normals.compute_vertex_normals(degenerate_mesh))
    first_f = dict(normals.compute_face_normals(degenerate_mesh))
    attr = degenerate_mesh.vertex_normals
    assert normals.compute_vertex_normals(degenerate_mesh) == first_v
    assert normals.compute_face_normals(degenerate_mesh) == first_f
    assert degenerate_mesh.vertex_normals is attr


def test_batch_corner_normals_cover_face_halfedges():
    mesh = shapes.plane(3)
    result = normals.compute_corner_normals(mesh, 45.0)
    assert result is mesh.halfedge_normals
    assert len(result) == 4 * 9
    for h, n in result.items():
        assert not mesh.is_boundary(h)
        assert n == normals.compute_corner_normal(mesh, h, 45.0)
