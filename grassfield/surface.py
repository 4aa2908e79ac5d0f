"""Baking of triangle-list meshes into chunked, sampleable surfaces."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterator, Sequence

from grassfield.vecmath import Vec2, Vec3

Coord = tuple[int, int]

_U32_MAX = 2**32 - 1
_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


def _dimension(value: float) -> int:
    """Ceil a span ratio to a chunk count of at least one, saturating like a u32 cast."""
    if math.isnan(value):
        return 1
    if math.isinf(value):
        return _U32_MAX if value > 0 else 1
    return min(max(math.ceil(value), 1), _U32_MAX)


def _floor_i32(value: float) -> int:
    if math.isnan(value):
        return 0
    if math.isinf(value):
        return _I32_MAX if value > 0 else _I32_MIN
    return min(max(math.floor(value), _I32_MIN), _I32_MAX)


@dataclass
class SurfaceMesh:
    """Vertex data of a source mesh that grass can grow on.

    ``indices`` may be omitted, in which case vertices are taken three at a time.
    Only triangle lists can be baked.
    """

    positions: Sequence[Vec3]
    normals: Sequence[Vec3] | None = None
    uvs: Sequence[Vec2] | None = None
    indices: Sequence[int] | None = None
    triangle_list: bool = True


def plane_mesh(size_x: float, size_z: float, subdivisions: int = 0) -> SurfaceMesh:
    """A flat, up-facing plane centred on the origin, split into a regular grid."""
    if subdivisions < 0:
        raise ValueError(f"subdivisions must not be negative, got {subdivisions}")
    count = subdivisions + 2
    steps = count - 1

    positions: list[Vec3] = []
    uvs: list[Vec2] = []
    for z in range(count):
        tz = z / steps
        for x in range(count):
            tx = x / steps
            positions.append(Vec3((tx - 0.5) * size_x, 0.0, (tz - 0.5) * size_z))
            uvs.append(Vec2(tx, tz))

    indices: list[int] = []
    for z in range(steps):
        for x in range(steps):
            quad = z * count + x
            indices.extend(
                (quad + count + 1, quad + 1, quad + count, quad, quad + count, quad + 1)
            )

    return SurfaceMesh(positions, [Vec3.Y] * len(positions), uvs, indices)


@dataclass(frozen=True)
class SurfaceTriangle:
    positions: tuple[Vec3, Vec3, Vec3]
    normals: tuple[Vec3, Vec3, Vec3]
    uvs: tuple[Vec2, Vec2, Vec2]
    area: float

    def sample_point(self, barycentric: Vec3) -> Vec3:
        a, b, c = self.positions
        return a * barycentric.x + b * barycentric.y + c * barycentric.z

    def sample_normal(self, barycentric: Vec3) -> Vec3:
        a, b, c = self.normals
        return (a * barycentric.x + b * barycentric.y + c * barycentric.z).normalize_or_zero()

    def sample_uv(self, barycentric: Vec3) -> Vec2:
        a, b, c = self.uvs
        return a * barycentric.x + b * barycentric.y + c * barycentric.z


@dataclass(frozen=True)
class ChunkLayout:
    """A regular grid of chunks over an XZ rectangle."""

    min: Vec2
    max: Vec2
    chunk_size: Vec2
    dims: tuple[int, int]

    @classmethod
    def from_bounds(cls, aabb_min: Vec3, aabb_max: Vec3, chunk_size: Vec2) -> ChunkLayout:
        low = aabb_min.xz()
        high = aabb_max.xz()
        span = (high - low).max(Vec2.splat(0.001))
        size = chunk_size.max(Vec2.splat(0.001))
        dims = (_dimension(span.x / size.x), _dimension(span.y / size.y))
        return cls(low, high, size, dims)

    def coord_of_local_point(self, point: Vec2) -> Coord:
        relative = point - self.min
        return (
            _floor_i32(relative.x / self.chunk_size.x),
            _floor_i32(relative.y / self.chunk_size.y),
        )

    def contains_coord(self, coord: Coord) -> bool:
        x, y = coord
        return 0 <= x < self.dims[0] and 0 <= y < self.dims[1]

    def bounds_for_coord(self, coord: Coord) -> tuple[Vec2, Vec2]:
        x, y = coord
        low = self.min + Vec2(x * self.chunk_size.x, y * self.chunk_size.y)
        return low, (low + self.chunk_size).min(self.max)

    def center_for_coord(self, coord: Coord) -> Vec3:
        low, high = self.bounds_for_coord(coord)
        center = (low + high) * 0.5
        return Vec3(center.x, 0.0, center.y)

    def uv_of_local_point(self, point: Vec2) -> Vec2:
        span = (self.max - self.min).max(Vec2.splat(0.001))
        return ((point - self.min) / span).clamp(Vec2.ZERO, Vec2.ONE)

    def coords(self) -> Iterator[Coord]:
        """Every chunk coordinate, row by row."""
        for y in range(self.dims[1]):
            for x in range(self.dims[0]):
                yield (x, y)


@dataclass
class SurfaceBake:
    """A mesh surface split into triangles and indexed by the chunks each one touches."""

    layout: ChunkLayout
    triangles: list[SurfaceTriangle] = field(default_factory=list)
    chunk_triangles: dict[Coord, list[int]] = field(default_factory=dict)

    def triangle_indices(self, coord: Coord) -> list[int]:
        return self.chunk_triangles.get(coord, [])


def _bounds(positions: Sequence[Vec3]) -> tuple[Vec3, Vec3]:
    low = Vec3.splat(math.inf)
    high = Vec3.splat(-math.inf)
    for position in positions:
        low = low.min(position)
        high = high.max(position)
    return low, high


def bake_mesh_surface(mesh: SurfaceMesh, chunk_size: Vec2) -> SurfaceBake | None:
    """Bake a triangle-list mesh; returns None for any other topology."""
    if not mesh.triangle_list:
        return None

    positions = mesh.positions
    layout = ChunkLayout.from_bounds(*_bounds(positions), chunk_size)
    indices = list(mesh.indices) if mesh.indices is not None else list(range(len(positions)))

    bake = SurfaceBake(layout)
    corners = iter(indices)
    for a, b, c in zip(corners, corners, corners):
        pa, pb, pc = positions[a], positions[b], positions[c]
        cross = (pb - pa).cross(pc - pa)
        area = 0.5 * cross.length()
        if area <= 0.000_001:
            continue
        face_normal = cross.normalize_or_zero()

        if mesh.normals is not None:
            normals = tuple(mesh.normals[i].normalize_or_zero() for i in (a, b, c))
        else:
            normals = (face_normal, face_normal, face_normal)
        if mesh.uvs is not None:
            uvs = tuple(mesh.uvs[i] for i in (a, b, c))
        else:
            uvs = (Vec2.ZERO, Vec2.ZERO, Vec2.ZERO)

        triangle = SurfaceTriangle((pa, pb, pc), normals, uvs, area)
        tri_index = len(bake.triangles)
        min_x, min_y = layout.coord_of_local_point(pa.xz().min(pb.xz()).min(pc.xz()))
        max_x, max_y = layout.coord_of_local_point(pa.xz().max(pb.xz()).max(pc.xz()))
        for y in range(min_y, max_y + 1):
            for x in range(min_x, max_x + 1):
                if layout.contains_coord((x, y)):
                    bake.chunk_triangles.setdefault((x, y), []).append(tri_index)
        bake.triangles.append(triangle)

    return bake