"""Chunk planning for grass patches: surfaces, chunk grids, seeds and wind resolution."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Hashable, Optional, Sequence

from grassfield.resources import GrassWind, GrassWindBridge
from grassfield.surface import ChunkLayout, Coord, SurfaceBake, SurfaceMesh, bake_mesh_surface
from grassfield.vecmath import Transform, Vec2, Vec3
from grassfield.wind import WindConfig, WindZoneSnapshot, sample_wind_with_zones

_U64_MASK = (1 << 64) - 1


@dataclass
class GrassChunking:
    """Size of the chunks a patch is split into, in local XZ units."""

    chunk_size: Vec2 = field(default_factory=lambda: Vec2.splat(4.0))


@dataclass
class GrassPatch:
    """A region that grows grass.

    ``surface`` is None for a flat patch of ``half_size``; otherwise it is the key
    of the mesh source the grass grows on.
    """

    surface: Optional[Hashable] = None
    half_size: Vec2 = field(default_factory=lambda: Vec2.splat(4.0))
    chunking: GrassChunking = field(default_factory=GrassChunking)
    density_scale: float = 1.0
    seed: int = 0


@dataclass(frozen=True)
class SurfaceChunk:
    coord: Coord
    min: Vec2
    max: Vec2
    center: Vec3


@dataclass
class SurfaceBuildPlan:
    """Chunks to scatter over, with the surface they lie on.

    Planar plans carry ``patch_half_size``; mesh plans carry ``bake`` and the
    key of their source.
    """

    surface_transform: Transform
    chunks: list[SurfaceChunk]
    source_entity: Optional[Hashable] = None
    patch_half_size: Optional[Vec2] = None
    bake: Optional[SurfaceBake] = None


def _chunk_count(span: float, size: float) -> int:
    ratio = span / max(size, 0.001)
    if math.isnan(ratio):
        return 1
    return max(math.ceil(ratio), 1)


def planar_layout(half_size: Vec2, chunk_size: Vec2) -> ChunkLayout:
    """The chunk grid covering a flat patch centred on its origin."""
    dims = (
        _chunk_count(half_size.x * 2.0, chunk_size.x),
        _chunk_count(half_size.y * 2.0, chunk_size.y),
    )
    return ChunkLayout(-half_size, half_size, chunk_size.max(Vec2.splat(0.001)), dims)


def _layout_chunks(layout: ChunkLayout) -> list[SurfaceChunk]:
    chunks = []
    for coord in layout.coords():
        low, high = layout.bounds_for_coord(coord)
        chunks.append(SurfaceChunk(coord, low, high, layout.center_for_coord(coord)))
    return chunks


def build_surface_plan(
    patch: GrassPatch,
    patch_transform: Transform,
    source_mesh: Optional[SurfaceMesh],
    source_transform: Optional[Transform],
) -> Optional[SurfaceBuildPlan]:
    """Plan the chunks of a patch; None when its mesh source is missing or unusable."""
    if patch.surface is None:
        layout = planar_layout(patch.half_size, patch.chunking.chunk_size)
        return SurfaceBuildPlan(
            surface_transform=patch_transform,
            chunks=_layout_chunks(layout),
            patch_half_size=patch.half_size,
        )

    if source_mesh is None or source_transform is None:
        return None
    bake = bake_mesh_surface(source_mesh, patch.chunking.chunk_size)
    if bake is None:
        return None
    return SurfaceBuildPlan(
        surface_transform=source_transform,
        chunks=_layout_chunks(bake.layout),
        source_entity=patch.surface,
        bake=bake,
    )


def chunk_seed(seed: int, coord_x: int, coord_y: int, lod_index: int, archetype_index: int) -> int:
    """Mix a patch seed with chunk, LOD and archetype indices into a 64-bit seed."""
    value = seed & _U64_MASK
    value ^= ((coord_x & _U64_MASK) << 32) & _U64_MASK
    value ^= coord_y & _U64_MASK
    value ^= lod_index & _U64_MASK
    value ^= archetype_index & _U64_MASK
    return value


def chunk_local_transform(
    patch_transform: Transform, surface_transform: Transform, center_local: Vec3
) -> Transform:
    """Transform of a chunk relative to its patch, given its centre on the surface."""
    world_from_chunk = surface_transform.mul_transform(Transform(translation=center_local))
    return patch_transform.inverse().mul_transform(world_from_chunk)


def resolve_grass_wind(
    fallback_wind: GrassWind,
    wind_bridge: GrassWindBridge,
    wind_config: Optional[WindConfig],
    zone_snapshots: Sequence[WindZoneSnapshot],
    sample_point: Vec3,
    time_secs: float,
) -> GrassWind:
    """Grass wind at a point: world wind through the bridge, or the fallback settings."""
    if wind_config is None or not wind_bridge.enabled:
        return dataclasses.replace(fallback_wind)
    sample = sample_wind_with_zones(sample_point, time_secs, wind_config, zone_snapshots)
    return fallback_wind.resolved_from_world_sample(wind_bridge, sample)