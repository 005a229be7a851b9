"""Pipeline for filling the normal attributes of a mesh.

Each step receives a shared ``PipelineContext`` and declares its own
``should_run`` predicate, so the runner skips attributes the parameters do
not ask for.

Usage::

    from mesh_normals.pipeline import NormalsPipeline, PipelineContext

    ctx = PipelineContext(mesh=mesh, params=NormalParameters(crease_angle_deg=30))
    NormalsPipeline().run(ctx)

Exceptions raised by the normal routines are not caught here; a run either
completes for every element or aborts.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from . import normals
from .parameters import NormalParameters
from .surface_mesh import SurfaceMesh
from .vec3 import ZERO

__all__ = [
    "PipelineContext",
    "PipelineStep",
    "NormalsPipeline",
    "MeshCheckStep",
    "FaceNormalsStep",
    "VertexNormalsStep",
    "CornerNormalsStep",
    "NormalReportStep",
    "check_mesh",
    "undefined_normals",
    "default_steps",
    "update_normals",
]


# ---------------------------------------------------------------------------
# Pipeline context — shared state between steps
# ---------------------------------------------------------------------------


@dataclass
class PipelineContext:
    """Mutable state bag passed through every pipeline step."""

    mesh: SurfaceMesh
    params: NormalParameters = field(default_factory=NormalParameters)

    # Populated by MeshCheckStep.
    check: Dict[str, Any] = field(default_factory=dict)
    # Populated by NormalReportStep: attribute name -> count of zero normals.
    undefined: Dict[str, int] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Step base class
# ---------------------------------------------------------------------------


class PipelineStep(ABC):
    """A single composable stage of the normals pipeline."""

    name: str = "unnamed"

    def should_run(self, ctx: PipelineContext) -> bool:
        """Return ``False`` to skip this step for the current context."""
        return True

    @abstractmethod
    def execute(self, ctx: PipelineContext) -> None:
        """Perform the step's work, mutating *ctx* as needed."""
        ...


# ---------------------------------------------------------------------------
# Concrete steps
# ---------------------------------------------------------------------------


class MeshCheckStep(PipelineStep):
    """Report isolated vertices, boundary edges and degenerate faces."""

    name = "mesh_check"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.params.check_mesh

    def execute(self, ctx: PipelineContext) -> None:
        logging.info("Mesh summary: %s", ctx.mesh.summary())
        ctx.check = check_mesh(ctx.mesh)
        _log_check_report(ctx.check)


class FaceNormalsStep(PipelineStep):
    name = "face_normals"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.params.compute_face_normals

    def execute(self, ctx: PipelineContext) -> None:
        normals.compute_face_normals(ctx.mesh)


class VertexNormalsStep(PipelineStep):
    name = "vertex_normals"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.params.compute_vertex_normals

    def execute(self, ctx: PipelineContext) -> None:
        normals.compute_vertex_normals(ctx.mesh)


class CornerNormalsStep(PipelineStep):
    """Per-halfedge normals honouring the configured crease angle."""

    name = "corner_normals"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.params.compute_corner_normals

    def execute(self, ctx: PipelineContext) -> None:
        normals.compute_corner_normals(ctx.mesh, ctx.params.crease_angle_deg)


class NormalReportStep(PipelineStep):
    """Count elements whose normal came out undefined (zero)."""

    name = "normal_report"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.params.check_mesh

    def execute(self, ctx: PipelineContext) -> None:
        ctx.undefined = undefined_normals(ctx.mesh)
        for attribute, count in ctx.undefined.items():
            if count:
                logging.warning("%d %s are undefined (zero vector)", count, attribute)


# ---------------------------------------------------------------------------
# Pipeline orchestrator
# ---------------------------------------------------------------------------


def default_steps() -> List[PipelineStep]:
    """Return the standard ordered list of pipeline steps."""
    return [
        MeshCheckStep(),
        FaceNormalsStep(),
        VertexNormalsStep(),
        CornerNormalsStep(),
        NormalReportStep(),
    ]


class NormalsPipeline:
    """Runs the normal computation steps in order.

    Users can supply a custom step list to re-order, insert, or remove stages.
    """

    def __init__(self, steps: List[PipelineStep] | None = None) -> None:
        self.steps = steps if steps is not None else default_steps()

    def run(self, ctx: PipelineContext) -> None:
        """Execute all enabled steps in order."""
        ctx.params.validate()
        for step in self.steps:
            if step.should_run(ctx):
                logging.info("[pipeline] %s", step.name)
                step.execute(ctx)

    def insert_before(self, reference_name: str, step: PipelineStep) -> None:
        """Insert *step* immediately before the step named *reference_name*."""
        for i, existing in enumerate(self.steps):
            if existing.name == reference_name:
                self.steps.insert(i, step)
                return
        self.steps.append(step)

    def insert_after(self, reference_name: str, step: PipelineStep) -> None:
        """Insert *step* immediately after the step named *reference_name*."""
        for i, existing in enumerate(self.steps):
            if existing.name == reference_name:
                self.steps.insert(i + 1, step)
                return
        self.steps.append(step)

    def remove(self, step_name: str) -> None:
        """Remove the step with the given name, if present."""
        self.steps = [s for s in self.steps if s.name != step_name]

    def replace(self, step_name: str, new_step: PipelineStep) -> None:
        """Replace an existing step with *new_step*."""
        for i, existing in enumerate(self.steps):
            if existing.name == step_name:
                self.steps[i] = new_step
                return
        self.steps.append(new_step)


def update_normals(mesh: SurfaceMesh, params: NormalParameters | None = None) -> PipelineContext:
    """Compute every normal attribute *params* asks for and return the context."""

    ctx = PipelineContext(mesh=mesh, params=params or NormalParameters())
    NormalsPipeline().run(ctx)
    return ctx


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def check_mesh(mesh: SurfaceMesh) -> Dict[str, Any]:
    """Collect the elements for which normals will be undefined or partial."""

    isolated = [int(v) for v in mesh.vertices() if mesh.is_isolated(v)]
    boundary = sum(1 for h in mesh.halfedges() if mesh.is_boundary(h))
    polygons = [int(f) for f in mesh.faces() if len(mesh.vertices_around_face(f)) != 3]
    degenerate = [
        int(f) for f in mesh.faces() if normals.compute_face_normal(mesh, f) == ZERO
    ]
    return {
        "isolated_vertices": isolated,
        "boundary_halfedges": boundary,
        "polygon_faces": polygons,
        "degenerate_faces": degenerate,
        "closed": boundary == 0,
    }


def undefined_normals(mesh: SurfaceMesh) -> Dict[str, int]:
    """Count zero vectors in each attached normal attribute."""

    report: Dict[str, int] = {}
    for attribute, values in (
        ("vertex normals", mesh.vertex_normals),
        ("face normals", mesh.face_normals),
        ("corner normals", mesh.halfedge_normals),
    ):
        if values is not None:
            report[attribute] = sum(1 for n in values.values() if n == ZERO)
    return report


def _log_check_report(report: Dict[str, Any]) -> None:
    isolated = report.get("isolated_vertices", [])
    if isolated:
        logging.warning("%d isolated vertices (sample: %s)", len(isolated), isolated[:5])
    boundary = report.get("boundary_halfedges", 0)
    if boundary:
        logging.info("Open surface: %d boundary halfedges", boundary)
    polygons = report.get("polygon_faces", [])
    if polygons:
        logging.info("%d non-triangular faces", len(polygons))
    degenerate = report.get("degenerate_faces", [])
    if degenerate:
        logging.warning("%d degenerate faces (sample: %s)", len(degenerate), degenerate[:5])
