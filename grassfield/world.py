"""A self-contained grass runtime: patches, surfaces, rebuilds, diagnostics and debug shapes."""

from __future__ import annotations

import copy
import enum
import itertools
from dataclasses import dataclass, field
from typing import Callable, Hashable, NamedTuple, Optional

from grassfield.materials import InteractionMapRegion
from grassfield.plan import GrassPatch, chunk_local_transform
from grassfield.resources import (
    GrassDebugSettings,
    GrassDiagnostics,
    GrassInteractionSample,
    GrassPatchDiagnostics,
    GrassWind,
    GrassWindBridge,
)
from grassfield.runtime import (
    GrassChunk,
    GrassInteractionZone,
    GrassPatchState,
    collect_interaction_zones,
    generate_patch_chunks,
    lod_color,
    refresh_material_uniforms,
)
from grassfield.scatter import GrassConfig
from grassfield.surface import SurfaceMesh
from grassfield.vecmath import Transform, Vec3
from grassfield.wind import WindConfig, WindZone, world_wind_snapshots

_PATCH_BOUNDS_COLOR = (0.2, 0.8, 0.3)
_CHUNK_BOUNDS_COLOR = (0.78, 0.82, 0.88)
_INTERACTION_COLOR = (0.85, 0.65, 0.15)


class GrassSystems(enum.Enum):
    """Stages of one grass update, in the order they run."""

    PREPARE = "prepare"
    SCATTER = "scatter"
    UPLOAD = "upload"
    ANIMATE = "animate"
    DEBUG = "debug"


@dataclass(frozen=True)
class GrassRebuildRequest:
    """Asks for the chunks of one patch to be regenerated on the next update."""

    patch: int


@dataclass
class _PatchEntry:
    name: str
    patch: GrassPatch
    config: GrassConfig
    transform: Transform
    state: GrassPatchState = field(default_factory=GrassPatchState)
    chunk_ids: list[int] = field(default_factory=list)


class _DebugShape(NamedTuple):
    """A debug primitive: a ``"cube"`` or a ``"circle"`` (centre in translation, radius in scale)."""

    kind: str
    transform: Transform
    color: tuple[float, float, float]


class GrassWorld:
    """Holds grass patches and their surfaces and keeps generated chunks up to date."""

    def __init__(self) -> None:
        self.active = False
        self.wind = GrassWind()
        self.wind_bridge = GrassWindBridge()
        self.wind_config: Optional[WindConfig] = None
        self.wind_zones: list[tuple[WindZone, Transform]] = []
        self.interaction_zones: list[tuple[GrassInteractionZone, Transform]] = []
        self.interaction_map: Optional[InteractionMapRegion] = None
        self.interaction_map_texture: Optional[str] = None
        self.debug = GrassDebugSettings()
        self.diagnostics = GrassDiagnostics()
        self.patches: dict[int, _PatchEntry] = {}
        self.chunks: dict[int, GrassChunk] = {}
        self._surfaces: dict[Hashable, tuple[SurfaceMesh, Transform]] = {}
        self._changed_surfaces: set[Hashable] = set()
        self._requests: list[GrassRebuildRequest] = []
        self._interaction_samples: list[GrassInteractionSample] = []
        self._ids = itertools.count()
        self._last_uniform_inputs: Optional[tuple] = None

    # -- scene editing -------------------------------------------------

    def add_patch(
        self,
        name: Optional[str] = None,
        patch: Optional[GrassPatch] = None,
        config: Optional[GrassConfig] = None,
        transform: Optional[Transform] = None,
    ) -> int:
        """Add a patch and return its id; it is built on the next active update."""
        patch_id = next(self._ids)
        self.patches[patch_id] = _PatchEntry(
            name=name if name is not None else f"Patch {patch_id}",
            patch=patch if patch is not None else GrassPatch(),
            config=config if config is not None else GrassConfig(),
            transform=transform if transform is not None else Transform(),
        )
        return patch_id

    def set_surface(
        self, key: Hashable, mesh: SurfaceMesh, transform: Optional[Transform] = None
    ) -> None:
        """Set or replace the mesh source stored under ``key``."""
        self._surfaces[key] = (mesh, transform if transform is not None else Transform())
        self._changed_surfaces.add(key)

    def remove_surface(self, key: Hashable) -> None:
        """Remove a mesh source; raises KeyError if there is none under ``key``."""
        del self._surfaces[key]
        self._changed_surfaces.discard(key)

    def request_rebuild(self, patch_id: int) -> None:
        """Queue a rebuild; requests for unknown patches are ignored when processed."""
        self._requests.append(GrassRebuildRequest(patch_id))

    # -- activation ----------------------------------------------------

    def activate(self) -> None:
        self.active = True
        for entry in self.patches.values():
            entry.state.dirty = True

    def deactivate(self) -> None:
        """Despawn every generated chunk and stop updating."""
        self.active = False
        self.chunks.clear()
        for entry in self.patches.values():
            entry.chunk_ids.clear()
            entry.state.generated_chunks.clear()
            entry.state.dirty = True

    # -- update --------------------------------------------------------

    def update(self, time_secs: float = 0.0) -> None:
        """Run every stage once, then publish diagnostics; does nothing while inactive."""
        if not self.active:
            return
        stages: dict[GrassSystems, Callable[[float], None]] = {
            GrassSystems.PREPARE: self._prepare,
            GrassSystems.SCATTER: self._rebuild_dirty_patches,
            GrassSystems.ANIMATE: self._animate,
        }
        for stage in GrassSystems:
            handler = stages.get(stage)
            if handler is not None:
                handler(time_secs)
        self.publish_diagnostics()

    def _prepare(self, _time_secs: float) -> None:
        for request in self._requests:
            entry = self.patches.get(request.patch)
            if entry is not None:
                entry.state.dirty = True
        self._requests.clear()

        for entry in self.patches.values():
            key = entry.patch.surface
            if key is None:
                continue
            missing = key not in self._surfaces
            if key in self._changed_surfaces or (missing and entry.state.generated_chunks):
                entry.state.dirty = True
        self._changed_surfaces.clear()

        self._interaction_samples = collect_interaction_zones(self.interaction_zones)

    def _rebuild_dirty_patches(self, time_secs: float) -> None:
        snapshots = world_wind_snapshots(self.wind_zones)
        for patch_id, entry in self.patches.items():
            if not entry.state.dirty:
                continue
            self._clear_patch(entry)

            source = self._surfaces.get(entry.patch.surface) if entry.patch.surface is not None else None
            source_mesh, source_transform = source if source is not None else (None, None)
            generated = generate_patch_chunks(
                patch_id,
                entry.patch,
                entry.config,
                entry.transform,
                source_mesh,
                source_transform,
                self.wind,
                self.wind_bridge,
                self.wind_config,
                snapshots,
                self._interaction_samples,
                self.interaction_map,
                self.interaction_map_texture,
                time_secs,
            )
            for chunk in generated:
                chunk_id = next(self._ids)
                self.chunks[chunk_id] = chunk
                entry.chunk_ids.append(chunk_id)
            entry.state.generated_chunks = generated
            entry.state.dirty = False

    def _clear_patch(self, entry: _PatchEntry) -> None:
        for chunk_id in entry.chunk_ids:
            self.chunks.pop(chunk_id, None)
        entry.chunk_ids.clear()
        entry.state.generated_chunks.clear()

    def _animate(self, time_secs: float) -> None:
        self._sync_chunk_transforms()
        self._sync_material_uniforms(time_secs)

    def _sync_chunk_transforms(self) -> None:
        for chunk in self.chunks.values():
            entry = self.patches.get(chunk.patch)
            if entry is None:
                continue
            if chunk.source_entity is None:
                chunk.global_transform = entry.transform.mul_transform(chunk.transform)
                continue
            source = self._surfaces.get(chunk.source_entity)
            if source is None:
                continue
            surface_transform = source[1]
            chunk.transform = chunk_local_transform(
                entry.transform, surface_transform, chunk.center_local
            )
            chunk.global_transform = surface_transform.mul_transform(
                Transform(translation=chunk.center_local)
            )

    def _sync_material_uniforms(self, time_secs: float) -> None:
        inputs = copy.deepcopy(
            (
                self.wind,
                self.wind_bridge,
                self.wind_config,
                self._interaction_samples,
                self.interaction_map,
                self.interaction_map_texture,
            )
        )
        changed = inputs != self._last_uniform_inputs
        self._last_uniform_inputs = inputs
        if not changed and not self.wind_zones:
            return
        refresh_material_uniforms(
            self.chunks.values(),
            self.wind,
            self.wind_bridge,
            self.wind_config,
            world_wind_snapshots(self.wind_zones),
            self._interaction_samples,
            self.interaction_map,
            self.interaction_map_texture,
            time_secs,
        )

    # -- queries -------------------------------------------------------

    def set_chunk_visible(self, chunk_id: int, visible: bool) -> None:
        """Record whether a view sees a chunk; raises KeyError for unknown chunks."""
        self.chunks[chunk_id].visible = visible

    def children(self, patch_id: int) -> list[int]:
        """Ids of the chunks generated for a patch; raises KeyError for unknown patches."""
        return list(self.patches[patch_id].chunk_ids)

    def publish_diagnostics(self) -> GrassDiagnostics:
        """Refresh and return the diagnostics; left unchanged while inactive."""
        diagnostics = self.diagnostics
        if not self.active:
            return diagnostics

        chunks = list(self.chunks.values())
        visible = [chunk for chunk in chunks if chunk.visible]
        diagnostics.runtime_active = self.active
        diagnostics.active_patches = len(self.patches)
        diagnostics.active_chunks = len(chunks)
        diagnostics.active_blades = sum(chunk.blade_count for chunk in chunks)
        diagnostics.visible_chunks = len(visible)
        diagnostics.visible_blades = sum(chunk.blade_count for chunk in visible)
        diagnostics.interaction_zones = len(self._interaction_samples)
        diagnostics.using_world_wind = self.wind_bridge.enabled and self.wind_config is not None
        diagnostics.wind_zone_count = len(self.wind_zones)

        entries = []
        for patch_id, entry in self.patches.items():
            report = GrassPatchDiagnostics()
            report.entity = patch_id
            report.name = entry.name
            report.dirty = entry.state.dirty
            for chunk_id in entry.chunk_ids:
                chunk = self.chunks[chunk_id]
                report.record_chunk(chunk.lod_index, chunk.blade_count, chunk.visible)
            entries.append(report)
        diagnostics.patches = entries
        return diagnostics

    def debug_shapes(self) -> list[_DebugShape]:
        """Debug cubes and circles selected by ``debug``; empty while inactive."""
        if not self.active:
            return []
        shapes: list[_DebugShape] = []

        if self.debug.draw_patch_bounds:
            for entry in self.patches.values():
                if entry.patch.surface is not None:
                    continue
                half = entry.patch.half_size
                size = entry.transform.scale * Vec3(half.x * 2.0, 0.02, half.y * 2.0)
                box = Transform(entry.transform.translation, entry.transform.rotation, size)
                shapes.append(_DebugShape("cube", box, _PATCH_BOUNDS_COLOR))

        if self.debug.draw_chunk_bounds:
            for chunk in self.chunks.values():
                placement = chunk.global_transform
                size = placement.scale * Vec3(
                    max(chunk.size_local.x, 0.05), 0.02, max(chunk.size_local.y, 0.05)
                )
                color = lod_color(chunk.lod_index) if self.debug.draw_lod_colors else _CHUNK_BOUNDS_COLOR
                box = Transform(placement.translation, placement.rotation, size)
                shapes.append(_DebugShape("cube", box, color))

        if self.debug.draw_interaction_zones:
            for zone in self._interaction_samples:
                circle = Transform(translation=zone.center, scale=Vec3.splat(zone.radius))
                shapes.append(_DebugShape("circle", circle, _INTERACTION_COLOR))

        return shapes