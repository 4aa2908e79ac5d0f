"""Shared grass settings, wind bridging and diagnostics records."""

from __future__ import annotations

from dataclasses import dataclass, field

from grassfield.vecmath import F32_EPSILON, Vec2, Vec3
from grassfield.wind import WindSample


@dataclass
class GrassWindBridge:
    """How strongly a world wind sample drives the grass wind response."""

    enabled: bool = True
    sample_height_offset: float = 0.35
    sway_strength_scale: float = 1.35
    sway_frequency_from_turbulence: float = 0.9
    sway_speed_from_speed: float = 0.18
    gust_strength_scale: float = 0.28
    gust_frequency_from_turbulence: float = 0.45
    gust_speed_from_speed: float = 0.08
    flutter_strength_scale: float = 0.2
    flutter_speed_from_speed: float = 0.15


@dataclass
class GrassWind:
    """Wind parameters fed to grass materials; neutral by default."""

    direction: Vec2 = field(default_factory=Vec2)
    sway_strength: float = 0.0
    sway_frequency: float = 0.25
    sway_speed: float = 0.35
    gust_strength: float = 0.0
    gust_frequency: float = 0.12
    gust_speed: float = 0.08
    flutter_strength: float = 0.0
    flutter_speed: float = 2.5

    def resolved_from_world_sample(self, bridge: GrassWindBridge, sample: WindSample) -> GrassWind:
        """Combine these settings with a world wind sample through the bridge scales."""
        planar = sample.direction.xz()
        if planar.length_squared() <= F32_EPSILON:
            direction = self.direction.normalize_or_zero()
        else:
            direction = planar.normalize_or_zero()

        speed = max(sample.speed, 0.0)
        turbulence = max(sample.turbulence_strength, 0.0)
        return GrassWind(
            direction=direction,
            sway_strength=max(self.sway_strength, 0.0)
            * (1.0 + max(sample.sway_factor, 0.0) * max(bridge.sway_strength_scale, 0.0)),
            sway_frequency=max(self.sway_frequency, 0.0)
            + turbulence * max(bridge.sway_frequency_from_turbulence, 0.0),
            sway_speed=max(self.sway_speed, 0.0) + speed * max(bridge.sway_speed_from_speed, 0.0),
            gust_strength=max(self.gust_strength, 0.0)
            + max(sample.gust_factor, 0.0) * max(bridge.gust_strength_scale, 0.0),
            gust_frequency=max(self.gust_frequency, 0.0)
            + turbulence * max(bridge.gust_frequency_from_turbulence, 0.0),
            gust_speed=max(self.gust_speed, 0.0) + speed * max(bridge.gust_speed_from_speed, 0.0),
            flutter_strength=max(self.flutter_strength, 0.0)
            + max(sample.flutter_factor, 0.0) * max(bridge.flutter_strength_scale, 0.0),
            flutter_speed=max(self.flutter_speed, 0.0)
            + speed * max(bridge.flutter_speed_from_speed, 0.0),
        )


@dataclass
class GrassDebugSettings:
    draw_patch_bounds: bool = False
    draw_chunk_bounds: bool = False
    draw_lod_colors: bool = False
    draw_interaction_zones: bool = False


@dataclass
class GrassPatchDiagnostics:
    """Chunk and blade counts for one patch, overall and per LOD band."""

    entity: int | None = None
    name: str = ""
    chunk_count: int = 0
    blade_count: int = 0
    visible_chunk_count: int = 0
    visible_blade_count: int = 0
    lod_chunk_counts: list[int] = field(default_factory=list)
    lod_blade_counts: list[int] = field(default_factory=list)
    visible_lod_chunk_counts: list[int] = field(default_factory=list)
    visible_lod_blade_counts: list[int] = field(default_factory=list)
    dirty: bool = False

    def record_chunk(self, lod_index: int, blade_count: int, visible: bool) -> None:
        """Count one chunk, growing the per-LOD lists as needed."""
        if lod_index < 0:
            raise ValueError(f"LOD index must not be negative, got {lod_index}")
        missing = lod_index + 1 - len(self.lod_chunk_counts)
        if missing > 0:
            for counts in (
                self.lod_chunk_counts,
                self.lod_blade_counts,
                self.visible_lod_chunk_counts,
                self.visible_lod_blade_counts,
            ):
                counts.extend([0] * missing)

        self.chunk_count += 1
        self.blade_count += blade_count
        self.lod_chunk_counts[lod_index] += 1
        self.lod_blade_counts[lod_index] += blade_count
        if visible:
            self.visible_chunk_count += 1
            self.visible_blade_count += blade_count
            self.visible_lod_chunk_counts[lod_index] += 1
            self.visible_lod_blade_counts[lod_index] += blade_count


@dataclass
class GrassDiagnostics:
    runtime_active: bool = False
    active_patches: int = 0
    active_chunks: int = 0
    active_blades: int = 0
    visible_chunks: int = 0
    visible_blades: int = 0
    interaction_zones: int = 0
    using_world_wind: bool = False
    wind_zone_count: int = 0
    patches: list[GrassPatchDiagnostics] = field(default_factory=list)


@dataclass(frozen=True)
class GrassInteractionSample:
    """A resolved interaction zone in world space."""

    center: Vec3 = field(default_factory=Vec3)
    radius: float = 0.0
    bend_strength: float = 0.0
    flatten_strength: float = 0.0
    falloff: float = 0.0