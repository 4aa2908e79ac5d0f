"""Generation of grass chunks for a patch and per-frame material refresh."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Optional, Sequence

from grassfield.lod import VisibilityRange, resolve_lod_bands
from grassfield.materials import GrassMaterial, GrassMaterialUniform, InteractionMapRegion, build_material
from grassfield.mesh import ChunkMesh, build_chunk_mesh
from grassfield.plan import (
    GrassPatch,
    build_surface_plan,
    chunk_local_transform,
    chunk_seed,
    resolve_grass_wind,
)
from grassfield.resources import GrassInteractionSample, GrassWind, GrassWindBridge
from grassfield.scatter import GrassConfig, mesh_chunk_samples, planar_chunk_samples
from grassfield.surface import SurfaceMesh
from grassfield.vecmath import Transform, Vec2, Vec3
from grassfield.wind import WindConfig, WindZoneSnapshot

Color = tuple[float, float, float]


@dataclass
class GrassInteractionZone:
    """A body that bends and flattens nearby grass."""

    radius: float = 1.0
    bend_strength: float = 1.0
    flatten_strength: float = 0.5
    falloff: float = 0.5


@dataclass
class GrassChunk:
    """One generated chunk: its mesh, material and placement.

    ``transform`` is relative to the patch, ``global_transform`` is in world space.
    ``visible`` reflects whether a view currently sees the chunk.
    """

    name: str
    patch: Hashable
    source_entity: Optional[Hashable]
    center_local: Vec3
    size_local: Vec2
    lod_index: int
    blade_count: int
    mesh: ChunkMesh
    material: GrassMaterial
    transform: Transform
    global_transform: Transform
    visibility_range: VisibilityRange
    cast_shadows: bool = False
    visible: bool = False


@dataclass
class GrassPatchState:
    """Runtime bookkeeping of a patch: whether to rebuild and what was generated."""

    dirty: bool = True
    generated_chunks: list[GrassChunk] = field(default_factory=list)


def collect_interaction_zones(
    zones: Iterable[tuple[GrassInteractionZone, Transform]],
) -> list[GrassInteractionSample]:
    """Resolve interaction zones at their world positions."""
    return [
        GrassInteractionSample(
            center=transform.translation,
            radius=max(zone.radius, 0.0),
            bend_strength=zone.bend_strength,
            flatten_strength=zone.flatten_strength,
            falloff=max(zone.falloff, 0.01),
        )
        for zone, transform in zones
    ]


def generate_patch_chunks(
    patch_id: Hashable,
    patch: GrassPatch,
    config: GrassConfig,
    patch_transform: Transform,
    source_mesh: Optional[SurfaceMesh],
    source_transform: Optional[Transform],
    wind: GrassWind,
    bridge: GrassWindBridge,
    wind_config: Optional[WindConfig],
    zone_snapshots: Sequence[WindZoneSnapshot],
    interactions: Sequence[GrassInteractionSample],
    interaction_map: Optional[InteractionMapRegion],
    interaction_map_texture: Optional[str],
    time_secs: float,
) -> list[GrassChunk]:
    """Scatter, mesh and shade every chunk of a patch for each archetype and LOD band."""
    plan = build_surface_plan(patch, patch_transform, source_mesh, source_transform)
    if plan is None:
        return []

    lods = resolve_lod_bands(config.lod)
    chunks: list[GrassChunk] = []
    for archetype_index, archetype in enumerate(config.archetypes):
        if archetype.weight <= 0.0:
            continue
        for lod in lods:
            for chunk in plan.chunks:
                seed = chunk_seed(patch.seed, chunk.coord[0], chunk.coord[1], lod.index, archetype_index)
                if plan.bake is None:
                    samples = planar_chunk_samples(
                        plan.patch_half_size,
                        chunk.min,
                        chunk.max,
                        patch.density_scale,
                        config,
                        archetype,
                        lod.band,
                        None,
                        [],
                        True,
                        plan.surface_transform,
                        seed,
                    )
                else:
                    samples = mesh_chunk_samples(
                        plan.bake.triangle_indices(chunk.coord),
                        plan.bake,
                        patch.density_scale,
                        config,
                        archetype,
                        lod.band,
                        None,
                        [],
                        plan.surface_transform,
                        seed,
                    )
                if not samples:
                    continue

                mesh = build_chunk_mesh(samples, archetype, config, lod.band.segments, chunk.center)
                if mesh is None:
                    continue

                world_center = plan.surface_transform.transform_point(
                    chunk.center + Vec3.Y * bridge.sample_height_offset
                )
                resolved = resolve_grass_wind(
                    wind, bridge, wind_config, zone_snapshots, world_center, time_secs
                )
                material = build_material(
                    archetype, resolved, interactions, interaction_map, interaction_map_texture
                )
                chunks.append(
                    GrassChunk(
                        name=f"Grass Chunk / {patch_id} / LOD {lod.index} / {archetype.debug_name}",
                        patch=patch_id,
                        source_entity=plan.source_entity,
                        center_local=chunk.center,
                        size_local=chunk.max - chunk.min,
                        lod_index=lod.index,
                        blade_count=len(samples),
                        mesh=mesh,
                        material=material,
                        transform=chunk_local_transform(
                            patch_transform, plan.surface_transform, chunk.center
                        ),
                        global_transform=plan.surface_transform.mul_transform(
                            Transform(translation=chunk.center)
                        ),
                        visibility_range=dataclasses.replace(lod.visibility_range),
                        cast_shadows=config.cast_shadows,
                    )
                )
    return chunks


def refresh_material_uniforms(
    chunks: Iterable[GrassChunk],
    wind: GrassWind,
    bridge: GrassWindBridge,
    wind_config: Optional[WindConfig],
    zone_snapshots: Sequence[WindZoneSnapshot],
    interactions: Sequence[GrassInteractionSample],
    interaction_map: Optional[InteractionMapRegion],
    interaction_map_texture: Optional[str],
    time_secs: float,
) -> int:
    """Update the uniforms of visible chunks' materials, each shared material once.

    Returns the number of materials updated.
    """
    updated: set[int] = set()
    for chunk in chunks:
        if not chunk.visible:
            continue
        material = chunk.material
        if id(material) in updated:
            continue
        updated.add(id(material))

        sample_point = chunk.global_transform.translation + Vec3.Y * max(
            bridge.sample_height_offset, 0.0
        )
        resolved = resolve_grass_wind(
            wind, bridge, wind_config, zone_snapshots, sample_point, time_secs
        )
        material.uniform = GrassMaterialUniform.from_wind_and_zones(
            resolved, interactions, interaction_map
        )
        if interaction_map_texture is not None:
            material.interaction_map = interaction_map_texture
    return len(updated)


def lod_color(index: int) -> Color:
    """Debug colour (sRGB) for a LOD band."""
    if index == 0:
        return (0.22, 0.78, 0.35)
    if index == 1:
        return (0.92, 0.78, 0.28)
    return (0.88, 0.42, 0.18)