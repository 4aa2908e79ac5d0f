"""Grass material parameters and the wind/interaction uniform block."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from grassfield.resources import GrassInteractionSample, GrassWind
from grassfield.scatter import GrassArchetype
from grassfield.vecmath import Vec2

ATTRIBUTE_GRASS_ROOT_PHASE = ("GrassRootPhase", 918_230_411)
"""Name and id of the per-vertex root position and phase attribute."""
ATTRIBUTE_GRASS_VARIATION = ("GrassVariation", 918_230_412)
"""Name and id of the per-vertex variation attribute."""

MAX_INTERACTION_ZONES = 4

Vec4 = tuple[float, float, float, float]
_ZERO4: Vec4 = (0.0, 0.0, 0.0, 0.0)


def _zero_zones() -> tuple[Vec4, ...]:
    return (_ZERO4,) * MAX_INTERACTION_ZONES


@dataclass(frozen=True)
class InteractionMapRegion:
    """A square world-space region covered by the interaction map."""

    center: Vec2 = field(default_factory=Vec2)
    half_extent: float = 1.0
    enabled: bool = True


@dataclass
class GrassMaterialUniform:
    """Wind and interaction parameters uploaded to the grass vertex shader.

    ``interaction_map_region`` holds the map centre in x/y and the inverse of
    its full extent in z/w.
    """

    wind_direction: Vec2 = field(default_factory=Vec2)
    sway_strength: float = 0.0
    sway_frequency: float = 0.25
    sway_speed: float = 0.35
    gust_strength: float = 0.0
    gust_frequency: float = 0.12
    gust_speed: float = 0.08
    flutter_strength: float = 0.0
    flutter_speed: float = 2.5
    interaction_count: int = 0
    interaction_map_active: int = 0
    interaction_map_region: Vec4 = _ZERO4
    zone_centers_radius: tuple[Vec4, ...] = field(default_factory=_zero_zones)
    zone_behavior: tuple[Vec4, ...] = field(default_factory=_zero_zones)

    @classmethod
    def from_wind_and_zones(
        cls,
        wind: GrassWind,
        zones: Sequence[GrassInteractionSample],
        interaction_map: Optional[InteractionMapRegion],
    ) -> GrassMaterialUniform:
        used = list(zones[:MAX_INTERACTION_ZONES])
        padding = [_ZERO4] * (MAX_INTERACTION_ZONES - len(used))
        centers = tuple(
            (zone.center.x, zone.center.y, zone.center.z, zone.radius) for zone in used
        ) + tuple(padding)
        behavior = tuple(
            (zone.bend_strength, zone.flatten_strength, zone.falloff, 0.0) for zone in used
        ) + tuple(padding)

        if interaction_map is not None and interaction_map.enabled:
            inv_extent = 1.0 / max(interaction_map.half_extent * 2.0, 0.001)
            map_active = 1
            region = (
                interaction_map.center.x,
                interaction_map.center.y,
                inv_extent,
                inv_extent,
            )
        else:
            map_active = 0
            region = _ZERO4

        return cls(
            wind_direction=wind.direction.normalize_or_zero(),
            sway_strength=wind.sway_strength,
            sway_frequency=wind.sway_frequency,
            sway_speed=wind.sway_speed,
            gust_strength=wind.gust_strength,
            gust_frequency=wind.gust_frequency,
            gust_speed=wind.gust_speed,
            flutter_strength=wind.flutter_strength,
            flutter_speed=wind.flutter_speed,
            interaction_count=len(used),
            interaction_map_active=map_active,
            interaction_map_region=region,
            zone_centers_radius=centers,
            zone_behavior=behavior,
        )


@dataclass(frozen=True)
class AlphaMode:
    """Opaque when ``cutoff`` is None, otherwise alpha-masked at ``cutoff``."""

    cutoff: Optional[float] = None

    @classmethod
    def opaque(cls) -> AlphaMode:
        return cls(None)

    @classmethod
    def mask(cls, cutoff: float) -> AlphaMode:
        return cls(cutoff)

    @property
    def is_mask(self) -> bool:
        return self.cutoff is not None


@dataclass
class GrassMaterial:
    """Surface shading parameters plus the grass uniform block."""

    base_color: Vec4 = (1.0, 1.0, 1.0, 1.0)
    perceptual_roughness: float = 0.5
    reflectance: float = 0.5
    diffuse_transmission: float = 0.0
    cull_mode: Optional[str] = None
    double_sided: bool = True
    base_color_texture: Optional[str] = None
    alpha_mode: AlphaMode = field(default_factory=AlphaMode.opaque)
    uniform: GrassMaterialUniform = field(default_factory=GrassMaterialUniform)
    interaction_map: Optional[str] = None


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def build_material(
    archetype: GrassArchetype,
    wind: GrassWind,
    zones: Sequence[GrassInteractionSample],
    interaction_map: Optional[InteractionMapRegion],
    interaction_map_texture: Optional[str],
) -> GrassMaterial:
    """Material for one archetype with the current wind and interaction state."""
    if archetype.blade_texture is not None:
        alpha_mode = AlphaMode.mask(_clamp(archetype.alpha_cutoff, 0.01, 1.0))
    elif archetype.tip_alpha < 1.0:
        # Clip only the faded tip; most of the blade stays visible.
        alpha_mode = AlphaMode.mask(_clamp(archetype.tip_alpha * 0.5, 0.01, 0.99))
    else:
        alpha_mode = AlphaMode.opaque()

    return GrassMaterial(
        base_color=(1.0, 1.0, 1.0, 1.0),
        perceptual_roughness=_clamp(archetype.roughness, 0.089, 1.0),
        reflectance=_clamp(archetype.reflectance, 0.0, 1.0),
        diffuse_transmission=_clamp(archetype.diffuse_transmission, 0.0, 1.0),
        cull_mode=None,
        double_sided=True,
        base_color_texture=archetype.blade_texture,
        alpha_mode=alpha_mode,
        uniform=GrassMaterialUniform.from_wind_and_zones(wind, zones, interaction_map),
        interaction_map=interaction_map_texture,
    )