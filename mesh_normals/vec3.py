"""3-component vector algebra shared by the mesh and normal modules.

All functions operate on ``Vector3 = Tuple[float, float, float]`` values.
``Point`` and ``Normal`` are aliases of the same representation; a normal is
expected to be unit length or exactly :data:`ZERO` ("undefined").

Near-zero guards compare against :data:`FLT_MIN`, the smallest positive
normalised double, so only true underflow is rejected.
"""

from __future__ import annotations

import math
import sys
from typing import Tuple

__all__ = [
    "Vector3",
    "Point",
    "Normal",
    "ZERO",
    "FLT_MIN",
    "norm",
    "sqrnorm",
    "normalize",
    "dot",
    "cross",
    "sub",
    "add",
    "scale",
    "negate",
    "clamp_cos",
    "angle_between",
    "is_finite",
]

Vector3 = Tuple[float, float, float]
Point = Vector3
Normal = Vector3

ZERO: Vector3 = (0.0, 0.0, 0.0)

FLT_MIN: float = sys.float_info.min


def sqrnorm(v: Vector3) -> float:
    return v[0] * v[0] + v[1] * v[1] + v[2] * v[2]


def norm(v: Vector3) -> float:
    """Euclidean length of *v*."""
    return math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def normalize(v: Vector3) -> Vector3:
    """Unit vector in the direction of *v*, or (0,0,0) if its length underflows."""
    n = norm(v)
    if n <= FLT_MIN:
        return ZERO
    return (v[0] / n, v[1] / n, v[2] / n)


def dot(a: Vector3, b: Vector3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def cross(a: Vector3, b: Vector3) -> Vector3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def sub(a: Vector3, b: Vector3) -> Vector3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def add(a: Vector3, b: Vector3) -> Vector3:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def scale(v: Vector3, s: float) -> Vector3:
    return (v[0] * s, v[1] * s, v[2] * s)


def negate(v: Vector3) -> Vector3:
    return (-v[0], -v[1], -v[2])


def clamp_cos(c: float) -> float:
    """Clamp a cosine into [-1, 1] so rounding overshoot never reaches acos."""
    if c < -1.0:
        return -1.0
    if c > 1.0:
        return 1.0
    return c


def angle_between(a: Vector3, b: Vector3) -> float:
    """Angle in radians between two vectors, 0.0 if either one is degenerate."""
    denom = math.sqrt(sqrnorm(a) * sqrnorm(b))
    if denom <= FLT_MIN:
        return 0.0
    return math.acos(clamp_cos(dot(a, b) / denom))


def is_finite(v: Vector3) -> bool:
    return math.isfinite(v[0]) and math.isfinite(v[1]) and math.isfinite(v[2])
