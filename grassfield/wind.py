"""World wind configuration, wind zones and zone-blended wind sampling."""

from __future__ import annotations

import dataclasses
import enum
import math
from dataclasses import dataclass, field
from typing import Iterable, Union

from grassfield.vecmath import F32_EPSILON, Quat, Transform, Vec3


@dataclass
class WindConfig:
    """Global wind settings; defaults match the breezy profile."""

    direction: Vec3 = field(default_factory=lambda: Vec3(1.0, 0.0, 0.18))
    speed: float = 2.2
    sway_factor: float = 0.55
    gust_factor: float = 0.22
    turbulence_strength: float = 0.28
    flutter_factor: float = 0.12


class WindProfile(enum.Enum):
    CALM = "calm"
    BREEZY = "breezy"
    GALE = "gale"
    STORM = "storm"

    def config(self) -> WindConfig:
        if self is WindProfile.CALM:
            return WindConfig(Vec3(1.0, 0.0, 0.0), 0.4, 0.15, 0.05, 0.08, 0.03)
        if self is WindProfile.BREEZY:
            return WindConfig(Vec3(1.0, 0.0, 0.18), 2.2, 0.55, 0.22, 0.28, 0.12)
        if self is WindProfile.GALE:
            return WindConfig(Vec3(1.0, 0.0, 0.24), 5.0, 0.95, 0.55, 0.6, 0.32)
        return WindConfig(Vec3(0.92, 0.0, 0.38), 8.5, 1.35, 0.95, 0.95, 0.5)


@dataclass
class WindSample:
    direction: Vec3 = field(default_factory=Vec3)
    speed: float = 0.0
    sway_factor: float = 0.0
    gust_factor: float = 0.0
    turbulence_strength: float = 0.0
    flutter_factor: float = 0.0


class WindBlendMode(enum.Enum):
    OVERRIDE = "override"
    ADDITIVE = "additive"
    MAX = "max"


class WindZoneFalloff(enum.Enum):
    CONSTANT = "constant"
    LINEAR = "linear"
    SMOOTH_STEP = "smooth_step"


@dataclass(frozen=True)
class SphereShape:
    radius: float = 1.0


@dataclass(frozen=True)
class BoxShape:
    half_extents: Vec3


WindZoneShape = Union[SphereShape, BoxShape]


@dataclass
class WindZone:
    shape: WindZoneShape = field(default_factory=SphereShape)
    falloff: WindZoneFalloff = WindZoneFalloff.SMOOTH_STEP
    blend_mode: WindBlendMode = WindBlendMode.OVERRIDE
    direction: Vec3 = field(default_factory=lambda: Vec3.X)
    speed: float = 1.0
    intensity: float = 1.0
    turbulence_multiplier: float = 1.0
    gust_multiplier: float = 1.0
    priority: int = 0


@dataclass
class WindZoneSnapshot:
    """A wind zone frozen together with its world placement."""

    zone: WindZone
    translation: Vec3
    rotation: Quat


def snapshot_zone(zone: WindZone, transform: Transform) -> WindZoneSnapshot:
    return WindZoneSnapshot(dataclasses.replace(zone), transform.translation, transform.rotation)


def world_wind_snapshots(zones: Iterable[tuple[WindZone, Transform]]) -> list[WindZoneSnapshot]:
    """Snapshot zones and order them by descending priority, keeping ties in input order."""
    snapshots = [snapshot_zone(zone, transform) for zone, transform in zones]
    return sorted(snapshots, key=lambda snapshot: -snapshot.zone.priority)


def base_sample(config: WindConfig) -> WindSample:
    return WindSample(
        direction=config.direction.normalize_or_zero(),
        speed=max(config.speed, 0.0),
        sway_factor=max(config.sway_factor, 0.0),
        gust_factor=max(config.gust_factor, 0.0),
        turbulence_strength=max(config.turbulence_strength, 0.0),
        flutter_factor=max(config.flutter_factor, 0.0),
    )


def blend_sample(
    base: WindSample, zone: WindSample, blend_mode: WindBlendMode, influence: float
) -> WindSample:
    mix = min(max(influence, 0.0), 1.0)
    if blend_mode is WindBlendMode.OVERRIDE:

        def towards(a: float, b: float) -> float:
            return a + (b - a) * mix

        return WindSample(
            direction=base.direction.lerp(zone.direction, mix).normalize_or_zero(),
            speed=towards(base.speed, zone.speed),
            sway_factor=towards(base.sway_factor, zone.sway_factor),
            gust_factor=towards(base.gust_factor, zone.gust_factor),
            turbulence_strength=towards(base.turbulence_strength, zone.turbulence_strength),
            flutter_factor=towards(base.flutter_factor, zone.flutter_factor),
        )
    if blend_mode is WindBlendMode.ADDITIVE:
        return WindSample(
            direction=(base.direction + zone.direction * mix).normalize_or_zero(),
            speed=base.speed + zone.speed * mix,
            sway_factor=base.sway_factor + zone.sway_factor * mix,
            gust_factor=base.gust_factor + zone.gust_factor * mix,
            turbulence_strength=base.turbulence_strength + zone.turbulence_strength * mix,
            flutter_factor=base.flutter_factor + zone.flutter_factor * mix,
        )
    return WindSample(
        direction=zone.direction if zone.speed > base.speed else base.direction,
        speed=max(base.speed, zone.speed * mix),
        sway_factor=max(base.sway_factor, zone.sway_factor * mix),
        gust_factor=max(base.gust_factor, zone.gust_factor * mix),
        turbulence_strength=max(base.turbulence_strength, zone.turbulence_strength * mix),
        flutter_factor=max(base.flutter_factor, zone.flutter_factor * mix),
    )


def zone_influence(snapshot: WindZoneSnapshot, sample_point: Vec3) -> float:
    """Weight in [0, 1] with which a zone affects the given world point."""
    local = snapshot.rotation.inverse().rotate(sample_point - snapshot.translation)
    shape = snapshot.zone.shape
    if isinstance(shape, SphereShape):
        if shape.radius <= F32_EPSILON:
            return 0.0
        normalized_distance = local.length() / shape.radius
    else:
        extents = shape.half_extents.max(Vec3.splat(F32_EPSILON))
        normalized_distance = (local.abs() / extents).max_element()

    if normalized_distance >= 1.0:
        return 0.0

    linear = 1.0 - min(max(normalized_distance, 0.0), 1.0)
    falloff = snapshot.zone.falloff
    if falloff is WindZoneFalloff.CONSTANT:
        return 1.0
    if falloff is WindZoneFalloff.LINEAR:
        return linear
    return linear * linear * (3.0 - 2.0 * linear)


def sample_wind_with_zones(
    sample_point: Vec3,
    time_secs: float,
    config: WindConfig,
    zones: Iterable[WindZoneSnapshot],
) -> WindSample:
    """Sample the world wind at a point, blending in every zone that covers it."""
    sample = base_sample(config)

    for snapshot in zones:
        influence = zone_influence(snapshot, sample_point)
        if influence <= 0.0:
            continue

        zone = snapshot.zone
        turbulence = max(zone.turbulence_multiplier, 0.0)
        zone_sample = base_sample(
            WindConfig(
                direction=zone.direction,
                speed=max(zone.speed, 0.0),
                sway_factor=config.sway_factor * max(zone.intensity, 0.0),
                gust_factor=config.gust_factor * max(zone.gust_multiplier, 0.0),
                turbulence_strength=config.turbulence_strength * turbulence,
                flutter_factor=config.flutter_factor * turbulence,
            )
        )

        # A small animated pulse keeps moving zones lively.
        pulse = 0.85 + 0.15 * math.sin(time_secs * 0.9 + snapshot.translation.x * 0.1)
        zone_sample.speed *= pulse
        zone_sample.sway_factor *= pulse
        zone_sample.gust_factor *= pulse

        sample = blend_sample(sample, zone_sample, zone.blend_mode, influence)

    sample.direction = sample.direction.normalize_or_zero()
    return sample