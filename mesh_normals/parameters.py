"""Parameter handling for batch normal computation.

Parameters are resolved in two layers ordered from lowest to highest
precedence:

1. JSON file — persistent project configuration.
2. Programmatic overrides — runtime tweaks from the calling application.

Unknown keys raise :class:`KeyError`; out-of-range values raise
:class:`ValueError` from :meth:`NormalParameters.validate`.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Mapping
import json
import logging

__all__ = [
    "NormalParameters",
    "load_json_config",
    "apply_overrides",
    "load_parameters",
]


@dataclass(slots=True)
class NormalParameters:
    """Which normal attributes to compute and how corners are shaded."""

    compute_vertex_normals: bool = True
    compute_face_normals: bool = True
    compute_corner_normals: bool = False
    # Faces meeting at a sharper angle than this are shaded as a hard edge.
    crease_angle_deg: float = 180.0
    # Run the connectivity/degeneracy report before and after computing.
    check_mesh: bool = True

    def validate(self) -> None:
        angle = self.crease_angle_deg
        if isinstance(angle, bool) or not isinstance(angle, (int, float)):
            raise ValueError("'crease_angle_deg' must be a number")
        if not 0.0 <= self.crease_angle_deg <= 180.0:
            raise ValueError("Crease angle must be within [0, 180] degrees")
        for name in (
            "compute_vertex_normals",
            "compute_face_normals",
            "compute_corner_normals",
            "check_mesh",
        ):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"'{name}' must be a boolean")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NormalParameters":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise KeyError(f"Unknown parameter(s): {', '.join(unknown)}")
        merged = {**asdict(cls()), **data}
        angle = merged["crease_angle_deg"]
        if isinstance(angle, bool):
            raise ValueError("'crease_angle_deg' must be a number")
        try:
            merged["crease_angle_deg"] = float(angle)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"'crease_angle_deg' must be a number, got {angle!r}") from exc
        params = cls(**merged)
        params.validate()
        return params


def load_json_config(path: Path | str | None) -> Dict[str, Any]:
    """Load the JSON config file or return an empty dict if no path is given."""

    if path is None:
        return {}
    json_path = Path(path)
    if not json_path.exists():
        raise FileNotFoundError(f"Config file not found: {json_path}")
    data = json.loads(json_path.read_text(encoding="utf-8"))
    if not isinstance(data, Mapping):
        raise ValueError("Top-level JSON config must be an object")
    return dict(data)


def apply_overrides(base: NormalParameters, overrides: Mapping[str, Any]) -> NormalParameters:
    """Return a copy of ``base`` with overrides applied."""

    merged = base.to_dict()
    for key, value in overrides.items():
        if key not in merged:
            raise KeyError(f"Unknown parameter '{key}'")
        merged[key] = value
    return NormalParameters.from_dict(merged)


def load_parameters(
    config_path: Path | str | None,
    overrides: Mapping[str, Any] | None = None,
) -> NormalParameters:
    """Load parameters using the JSON → overrides precedence chain."""

    data = load_json_config(config_path)
    params = NormalParameters.from_dict(data)
    if overrides:
        params = apply_overrides(params, overrides)
    logging.debug("Normal parameters: %s", params.to_dict())
    return params
