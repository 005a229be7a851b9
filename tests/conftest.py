from __future__ import annotations

import math
import sys
from pathlib import Path

import pytest

# Ensure repo root is importable when running pytest from any CWD.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from mesh_normals import shapes  # noqa: E402
from mesh_normals.surface_mesh import SurfaceMesh  # noqa: E402
from mesh_normals.vec3 import ZERO, is_finite, norm  # noqa: E402


def is_unit_or_zero(n) -> bool:
    """True when *n* is finite and either exactly zero or unit length."""
    if not is_finite(n):
        return False
    return n == ZERO or math.isclose(norm(n), 1.0, abs_tol=1e-9)


def assert_vec_close(a, b, tol: float = 1e-9) -> None:
    assert all(math.isclose(x, y, abs_tol=tol) for x, y in zip(a, b)), f"{a} != {b}"


@pytest.fixture
def cube() -> SurfaceMesh:
    return shapes.hexahedron()


@pytest.fixture
def degenerate_mesh() -> SurfaceMesh:
    """One proper triangle, one zero-area triangle and an isolated vertex.

    Vertex 3 duplicates the position of vertex 1, so face 1 has no area.
    Vertex 4 is not referenced by any face.
    """
    points = [
        (0.0, 0.0, 0.0),
        (1.0, 0.0, 0.0),
        (0.0, 1.0, 0.0),
        (1.0, 0.0, 0.0),
        (5.0, 5.0, 5.0),
    ]
    return SurfaceMesh.from_polygons(points, [(0, 1, 2), (1, 3, 2)])
