"""Index-based halfedge mesh for polygonal surfaces.

Every edge is stored as two halfedges with consecutive indices, so the
opposite of ``h`` is always ``h ^ 1``. A halfedge with no incident face is a
boundary halfedge; boundary halfedges are chained around each hole through
``next``/``prev`` just like face halfedges.

Faces can be added one at a time. A vertex may join several open fans of
faces (two triangles touching at a corner, or a partially built mesh); the
boundary loop then passes through it once per fan and its ring visits the
fans one after another. A face that would close a fan around a vertex that
has other faces as well is rejected by ``add_face``. Linking of the boundary
loops and the per-vertex ring cache are rebuilt lazily on the first
connectivity query that follows a modification.

Normal attributes are plain dictionaries owned by the mesh
(``vertex_normals``, ``face_normals``, ``halfedge_normals``). They stay
``None`` until attached through the ``*_normal_attribute()`` helpers.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, NewType, Optional, Sequence, Tuple

from .vec3 import Normal, Point

__all__ = [
    "Vertex",
    "Halfedge",
    "Edge",
    "Face",
    "TopologyError",
    "SurfaceMesh",
]

Vertex = NewType("Vertex", int)
Halfedge = NewType("Halfedge", int)
Edge = NewType("Edge", int)
Face = NewType("Face", int)


class TopologyError(ValueError):
    """Raised when faces would make the mesh non-manifold or are malformed."""


class SurfaceMesh:
    """Halfedge connectivity plus vertex positions and normal attributes."""

    def __init__(self) -> None:
        self.points: List[Point] = []

        self._vertex_halfedge: List[Optional[int]] = []
        self._to: List[int] = []
        self._next: List[Optional[int]] = []
        self._prev: List[Optional[int]] = []
        self._halfedge_face: List[Optional[int]] = []
        self._face_halfedge: List[int] = []
        self._outgoing: List[List[int]] = []

        # (from, to) -> halfedge
        self._directed: Dict[Tuple[int, int], int] = {}

        self._rings: List[Tuple[Halfedge, ...]] = []
        self._dirty = False

        self.vertex_normals: Dict[Vertex, Normal] | None = None
        self.face_normals: Dict[Face, Normal] | None = None
        self.halfedge_normals: Dict[Halfedge, Normal] | None = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_polygons(
        cls, points: Iterable[Sequence[float]], faces: Iterable[Sequence[int]]
    ) -> "SurfaceMesh":
        """Build a mesh from a point list and 0-based polygon index lists."""

        mesh = cls()
        for p in points:
            mesh.add_vertex(p)
        for face in faces:
            mesh.add_face(face)
        return mesh

    def add_vertex(self, point: Sequence[float]) -> Vertex:
        x, y, z = point
        self.points.append((float(x), float(y), float(z)))
        self._vertex_halfedge.append(None)
        self._outgoing.append([])
        self._dirty = True
        return Vertex(len(self.points) - 1)

    def add_triangle(self, v0: int, v1: int, v2: int) -> Face:
        return self.add_face((v0, v1, v2))

    def add_quad(self, v0: int, v1: int, v2: int, v3: int) -> Face:
        return self.add_face((v0, v1, v2, v3))

    def add_face(self, vertices: Sequence[int]) -> Face:
        """Add a polygon given by its vertices in counter-clockwise order."""

        loop_vertices = [int(v) for v in vertices]
        n = len(loop_vertices)
        if n < 3:
            raise TopologyError("Face needs at least three vertices")
        if len(set(loop_vertices)) != n:
            raise TopologyError("Face contains duplicate vertices")
        for v in loop_vertices:
            if not 0 <= v < len(self.points):
                raise IndexError(f"Vertex {v} does not exist")

        # Dry run so a rejected face leaves the mesh untouched.
        for k in range(n):
            a, b = loop_vertices[k], loop_vertices[(k + 1) % n]
            h = self._directed.get((a, b))
            if h is not None and self._halfedge_face[h] is not None:
                raise TopologyError(f"Edge ({a}, {b}) is non-manifold")

        n_halfedges = len(self._to)
        loop = [
            self._find_or_create_halfedge(loop_vertices[k], loop_vertices[(k + 1) % n])
            for k in range(n)
        ]

        f = len(self._face_halfedge)
        self._face_halfedge.append(loop[0])
        for k, h in enumerate(loop):
            nxt = loop[(k + 1) % n]
            self._halfedge_face[h] = f
            self._next[h] = nxt
            self._prev[nxt] = h

        self._dirty = True

        # Several open fans may meet at a vertex while the mesh is being built,
        # a closed fan next to anything else may not.
        try:
            for v in loop_vertices:
                self._vertex_fans(v)
        except TopologyError:
            self._remove_last_face(loop_vertices, n_halfedges)
            raise
        return Face(f)

    def _find_or_create_halfedge(self, a: int, b: int) -> int:
        h = self._directed.get((a, b))
        if h is not None:
            return h
        h = len(self._to)
        self._to.extend((b, a))
        self._next.extend((None, None))
        self._prev.extend((None, None))
        self._halfedge_face.extend((None, None))
        self._directed[(a, b)] = h
        self._directed[(b, a)] = h + 1
        self._outgoing[a].append(h)
        self._outgoing[b].append(h + 1)
        return h

    def _remove_last_face(self, loop_vertices: Sequence[int], n_halfedges: int) -> None:
        """Undo the most recent ``add_face``; halfedges from *n_halfedges* on are new."""

        f = len(self._face_halfedge) - 1
        for h in range(len(self._to)):
            if self._halfedge_face[h] == f:
                self._halfedge_face[h] = None
        self._face_halfedge.pop()

        for h in range(n_halfedges, len(self._to), 2):
            a, b = self._to[h + 1], self._to[h]
            del self._directed[(a, b)]
            del self._directed[(b, a)]
        for v in loop_vertices:
            self._outgoing[v] = [h for h in self._outgoing[v] if h < n_halfedges]
        del self._to[n_halfedges:]
        del self._next[n_halfedges:]
        del self._prev[n_halfedges:]
        del self._halfedge_face[n_halfedges:]

    def _vertex_fans(self, v: int) -> List[List[int]]:
        """Outgoing halfedges of *v* grouped into clockwise fans.

        An interior vertex has a single closed fan. A boundary vertex has one
        open fan per boundary halfedge leaving it, each running from that
        boundary halfedge to the outgoing halfedge whose opposite is boundary.
        Only ``next`` of face halfedges is followed, so the result does not
        depend on how the boundary loops are currently linked.
        """

        outgoing = self._outgoing[v]
        if not outgoing:
            return []
        starts = [h for h in outgoing if self._halfedge_face[h] is None]
        fans: List[List[int]] = []
        if not starts:
            start = outgoing[0]
            fan = [start]
            h = self._next[start ^ 1]
            while h != start and len(fan) < len(outgoing):
                fan.append(h)
                h = self._next[h ^ 1]
            fans.append(fan)
        for start in starts:
            fan = [start]
            h = start
            while self._halfedge_face[h ^ 1] is not None:
                h = self._next[h ^ 1]
                fan.append(h)
            fans.append(fan)
        # A closed fan next to any other halfedge can never be repaired by
        # adding faces: every edge in it already has two.
        if sum(len(fan) for fan in fans) != len(outgoing):
            raise TopologyError(f"Vertex {v} is non-manifold")
        return fans

    def _update_connectivity(self) -> None:
        """Link boundary loops, pick vertex halfedges and cache vertex rings."""

        rings: List[Tuple[Halfedge, ...]] = []
        for v in range(len(self.points)):
            fans = self._vertex_fans(v)
            if not fans:
                self._vertex_halfedge[v] = None
                rings.append(())
                continue
            if self._halfedge_face[fans[0][0]] is None:
                # The boundary halfedge entering the end of one fan continues
                # at the boundary halfedge leaving the start of the next one.
                for i, fan in enumerate(fans):
                    incoming = fan[-1] ^ 1
                    nxt = fans[(i + 1) % len(fans)][0]
                    self._next[incoming] = nxt
                    self._prev[nxt] = incoming
            ring = [Halfedge(h) for fan in fans for h in fan]
            self._vertex_halfedge[v] = ring[0]
            rings.append(tuple(ring))

        self._rings = rings
        self._dirty = False

    def _ensure(self) -> None:
        if self._dirty:
            self._update_connectivity()

    # ------------------------------------------------------------------
    # Element access
    # ------------------------------------------------------------------

    @property
    def n_vertices(self) -> int:
        return len(self.points)

    @property
    def n_halfedges(self) -> int:
        return len(self._to)

    @property
    def n_edges(self) -> int:
        return len(self._to) // 2

    @property
    def n_faces(self) -> int:
        return len(self._face_halfedge)

    def vertices(self) -> Iterator[Vertex]:
        return (Vertex(i) for i in range(len(self.points)))

    def halfedges(self) -> Iterator[Halfedge]:
        return (Halfedge(i) for i in range(len(self._to)))

    def faces(self) -> Iterator[Face]:
        return (Face(i) for i in range(len(self._face_halfedge)))

    def position(self, v: Vertex) -> Point:
        return self.points[v]

    def summary(self) -> str:
        return f"{self.n_vertices} vertices / {self.n_edges} edges / {self.n_faces} faces"

    # ------------------------------------------------------------------
    # Connectivity queries
    # ------------------------------------------------------------------

    def to_vertex(self, h: Halfedge) -> Vertex:
        return Vertex(self._to[h])

    def from_vertex(self, h: Halfedge) -> Vertex:
        return Vertex(self._to[h ^ 1])

    def opposite_halfedge(self, h: Halfedge) -> Halfedge:
        return Halfedge(h ^ 1)

    def next_halfedge(self, h: Halfedge) -> Halfedge:
        self._ensure()
        return Halfedge(self._next[h])

    def prev_halfedge(self, h: Halfedge) -> Halfedge:
        self._ensure()
        return Halfedge(self._prev[h])

    def cw_rotated_halfedge(self, h: Halfedge) -> Halfedge:
        """Next outgoing halfedge clockwise around ``from_vertex(h)``."""
        return self.next_halfedge(Halfedge(h ^ 1))

    def ccw_rotated_halfedge(self, h: Halfedge) -> Halfedge:
        """Next outgoing halfedge counter-clockwise around ``from_vertex(h)``."""
        return Halfedge(self.prev_halfedge(h) ^ 1)

    def edge(self, h: Halfedge) -> Edge:
        return Edge(h >> 1)

    def edge_halfedge(self, e: Edge, i: int = 0) -> Halfedge:
        return Halfedge((e << 1) + i)

    def face(self, h: Halfedge) -> Face | None:
        f = self._halfedge_face[h]
        return None if f is None else Face(f)

    def face_halfedge(self, f: Face) -> Halfedge:
        return Halfedge(self._face_halfedge[f])

    def vertex_halfedge(self, v: Vertex) -> Halfedge | None:
        """An outgoing halfedge of *v* (a boundary one if there is any)."""
        self._ensure()
        h = self._vertex_halfedge[v]
        return None if h is None else Halfedge(h)

    def find_halfedge(self, start: Vertex, end: Vertex) -> Halfedge | None:
        h = self._directed.get((int(start), int(end)))
        return None if h is None else Halfedge(h)

    def is_boundary(self, h: Halfedge) -> bool:
        return self._halfedge_face[h] is None

    def is_boundary_vertex(self, v: Vertex) -> bool:
        h = self.vertex_halfedge(v)
        return h is not None and self._halfedge_face[h] is None

    def is_isolated(self, v: Vertex) -> bool:
        return self.vertex_halfedge(v) is None

    def valence(self, v: Vertex) -> int:
        self._ensure()
        return len(self._rings[v])

    def is_closed(self) -> bool:
        return all(f is not None for f in self._halfedge_face)

    def is_triangle_mesh(self) -> bool:
        return all(len(self.halfedges_around_face(f)) == 3 for f in self.faces())

    def halfedges_around_vertex(
        self, v: Vertex, start: Halfedge | None = None
    ) -> Tuple[Halfedge, ...]:
        """Outgoing halfedges of *v* in clockwise order.

        The ring is cached per vertex. With *start* (an outgoing halfedge of
        *v*) the same cyclic order is returned beginning at *start*.
        """
        self._ensure()
        ring = self._rings[v]
        if start is None or not ring or ring[0] == start:
            return ring
        i = ring.index(start)
        return ring[i:] + ring[:i]

    def halfedges_around_face(self, f: Face) -> List[Halfedge]:
        start = self._face_halfedge[f]
        loop = [Halfedge(start)]
        h = self._next[start]
        while h != start:
            loop.append(Halfedge(h))
            h = self._next[h]
        return loop

    def vertices_around_face(self, f: Face) -> List[Vertex]:
        return [Vertex(self._to[h]) for h in self.halfedges_around_face(f)]

    # ------------------------------------------------------------------
    # Normal attributes
    # ------------------------------------------------------------------

    def vertex_normal_attribute(self) -> Dict[Vertex, Normal]:
        if self.vertex_normals is None:
            self.vertex_normals = {}
        return self.vertex_normals

    def face_normal_attribute(self) -> Dict[Face, Normal]:
        if self.face_normals is None:
            self.face_normals = {}
        return self.face_normals

    def halfedge_normal_attribute(self) -> Dict[Halfedge, Normal]:
        if self.halfedge_normals is None:
            self.halfedge_normals = {}
        return self.halfedge_normals
