"""Deterministic placement of grass blades over planar and mesh surfaces."""

from __future__ import annotations

import enum
import itertools
import math
import struct
from dataclasses import dataclass, field
from typing import Optional, Sequence

from grassfield.lod import LodBand, LodConfig
from grassfield.surface import SurfaceBake, SurfaceTriangle
from grassfield.vecmath import F32_EPSILON, Transform, Vec2, Vec3

_U64_MASK = (1 << 64) - 1
_TAU = math.tau


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


class DeterministicRng:
    """Xorshift64 generator; identical seeds give identical streams."""

    def __init__(self, seed: int) -> None:
        self._state = max(seed & _U64_MASK, 1)

    def next_u64(self) -> int:
        state = self._state
        state ^= (state << 13) & _U64_MASK
        state ^= state >> 7
        state ^= (state << 17) & _U64_MASK
        self._state = state
        return state

    def next_f32(self) -> float:
        """A single-precision value in [0, 1]."""
        return _f32(float(self.next_u64()) / float(_U64_MASK))

    def range_f32(self, low: float, high: float) -> float:
        return low + (high - low) * self.next_f32()


class TextureChannel(enum.Enum):
    RED = "red"
    GREEN = "green"
    BLUE = "blue"
    ALPHA = "alpha"
    LUMINANCE = "luminance"


class DensityBlendMode(enum.Enum):
    MULTIPLY = "multiply"
    MIN = "min"
    MAX = "max"
    ADD = "add"


class DensityMapMode(enum.Enum):
    SURFACE_UV = "surface_uv"
    PATCH_UV = "patch_uv"


class BladeShape(enum.Enum):
    STRIP = "strip"
    CROSS_BILLBOARD = "cross_billboard"
    FLAT_CARD = "flat_card"
    SINGLE_TRIANGLE = "single_triangle"


class NormalSource(enum.Enum):
    BLADE_FACING = "blade_facing"
    GROUND_NORMAL = "ground_normal"


@dataclass
class DensityImage:
    """An RGBA8 image, row-major; ``data`` is None while the image is not loaded."""

    width: int
    height: int
    data: Optional[bytes] = None


@dataclass
class DensityMap:
    image: str = ""
    channel: TextureChannel = TextureChannel.RED
    invert: bool = False
    mode: DensityMapMode = DensityMapMode.PATCH_UV


@dataclass
class DensityLayer:
    image: str = ""
    channel: TextureChannel = TextureChannel.RED
    invert: bool = False
    blend: DensityBlendMode = DensityBlendMode.MULTIPLY


@dataclass
class ExclusionZone:
    center: Vec3 = field(default_factory=Vec3)
    radius: float = 1.0
    falloff: float = 0.0


@dataclass
class ScatterFilter:
    slope_range_degrees: Optional[tuple[float, float]] = None
    altitude_range: Optional[tuple[float, float]] = None
    exclusion_zones: list[ExclusionZone] = field(default_factory=list)


@dataclass
class GrassArchetype:
    """Look and size ranges of one kind of blade; colours are linear RGBA."""

    debug_name: str = "Grass"
    weight: float = 1.0
    blade_height: tuple[float, float] = (0.35, 0.75)
    blade_width: tuple[float, float] = (0.03, 0.06)
    forward_curve: tuple[float, float] = (0.02, 0.12)
    lean: tuple[float, float] = (0.0, 0.15)
    stiffness: tuple[float, float] = (0.6, 1.0)
    interaction_strength: tuple[float, float] = (0.6, 1.0)
    color_variation: float = 0.08
    root_color: tuple[float, float, float, float] = (0.05, 0.18, 0.03, 1.0)
    tip_color: tuple[float, float, float, float] = (0.35, 0.6, 0.15, 1.0)
    roughness: float = 0.85
    reflectance: float = 0.25
    diffuse_transmission: float = 0.35
    blade_texture: Optional[str] = None
    alpha_cutoff: float = 0.5
    tip_alpha: float = 1.0
    blade_shape: BladeShape = BladeShape.STRIP
    normal_source: NormalSource = NormalSource.BLADE_FACING


@dataclass
class GrassConfig:
    archetypes: list[GrassArchetype] = field(default_factory=lambda: [GrassArchetype()])
    density_per_square_unit: float = 8.0
    max_blades_per_chunk: int = 2048
    align_to_surface: float = 0.65
    cast_shadows: bool = False
    lod: LodConfig = field(default_factory=LodConfig)
    density_map: Optional[DensityMap] = None
    density_layers: list[DensityLayer] = field(default_factory=list)
    scatter_filter: ScatterFilter = field(default_factory=ScatterFilter)


@dataclass(frozen=True)
class BladePoint:
    position_local: Vec3
    normal_local: Vec3
    uv: Vec2


@dataclass(frozen=True)
class BladeSample:
    root_local: Vec3
    normal_local: Vec3
    yaw: float
    height: float
    width: float
    forward_curve: float
    lean: float
    stiffness: float
    interaction_strength: float
    phase: float
    color_variation: float


def sample_density_image(
    image: DensityImage, uv: Vec2, channel: TextureChannel, invert: bool
) -> float:
    """Nearest-pixel density in [0, 1]; unreadable images count as fully dense."""
    if image.width == 0 or image.height == 0 or image.data is None:
        return 1.0

    uv = uv.clamp(Vec2.ZERO, Vec2.ONE)
    x = round(uv.x * max(image.width - 1, 0))
    y = round(uv.y * max(image.height - 1, 0))
    pixel = (y * image.width + x) * 4
    data = image.data
    if pixel + 3 >= len(data):
        return 1.0

    red, green, blue, alpha = (value / 255.0 for value in data[pixel : pixel + 4])
    if channel is TextureChannel.RED:
        value = red
    elif channel is TextureChannel.GREEN:
        value = green
    elif channel is TextureChannel.BLUE:
        value = blue
    elif channel is TextureChannel.ALPHA:
        value = alpha
    else:
        value = red * 0.2126 + green * 0.7152 + blue * 0.0722
    value = _f32(value)
    return 1.0 - value if invert else value


def blend_density(running: float, layer: float, mode: DensityBlendMode) -> float:
    if mode is DensityBlendMode.MULTIPLY:
        return running * layer
    if mode is DensityBlendMode.MIN:
        return min(running, layer)
    if mode is DensityBlendMode.MAX:
        return max(running, layer)
    return min(max(running + layer - 1.0, 0.0), 1.0)


def passes_density(
    config: GrassConfig,
    density_image: Optional[DensityImage],
    density_layer_images: Sequence[Optional[DensityImage]],
    sample_uv: Optional[Vec2],
    threshold: float,
) -> bool:
    """Composite the density map and layers at ``sample_uv`` and compare with ``threshold``."""
    density = 1.0
    density_map = config.density_map
    if density_map is not None and density_image is not None and sample_uv is not None:
        density = sample_density_image(
            density_image, sample_uv, density_map.channel, density_map.invert
        )

    for layer, layer_image in zip(config.density_layers, density_layer_images):
        if layer_image is None or sample_uv is None:
            continue
        value = sample_density_image(layer_image, sample_uv, layer.channel, layer.invert)
        density = blend_density(density, value, layer.blend)

    return threshold <= density


def passes_scatter_filter(
    scatter_filter: ScatterFilter, point: BladePoint, surface_transform: Transform
) -> bool:
    """Apply slope, altitude and exclusion-zone rules in world space."""
    world_pos = surface_transform.transform_point(point.position_local)
    world_normal = surface_transform.rotation.rotate(point.normal_local).normalize_or_zero()

    if scatter_filter.slope_range_degrees is not None:
        min_deg, max_deg = scatter_filter.slope_range_degrees
        cos_angle = min(max(world_normal.dot(Vec3.Y), -1.0), 1.0)
        slope = math.degrees(math.acos(cos_angle))
        if slope < min_deg or slope > max_deg:
            return False

    if scatter_filter.altitude_range is not None:
        min_y, max_y = scatter_filter.altitude_range
        if world_pos.y < min_y or world_pos.y > max_y:
            return False

    for zone in scatter_filter.exclusion_zones:
        distance = world_pos.distance(zone.center)
        if distance < zone.radius:
            return False
        if zone.falloff > 0.0 and distance < zone.radius + zone.falloff:
            # Survival within the falloff band uses a position hash as its threshold.
            t = (distance - zone.radius) / zone.falloff
            wave = abs(math.sin(world_pos.x * 12.9898 + world_pos.z * 78.233))
            if wave - math.floor(wave) > t:
                return False

    return True


def _target_count(
    area: float,
    config: GrassConfig,
    patch_density_scale: float,
    lod: LodBand,
    archetype: GrassArchetype,
) -> int:
    density = (
        config.density_per_square_unit
        * max(patch_density_scale, 0.0)
        * lod.density_scale
        * max(archetype.weight, 0.0)
    )
    value = area * density
    if math.isnan(value):
        return 0
    value = min(max(value, 0.0), float(config.max_blades_per_chunk))
    return int(math.floor(value + 0.5))


def _blade_sample_from_point(
    point: BladePoint, archetype: GrassArchetype, rng: DeterministicRng
) -> BladeSample:
    yaw = rng.range_f32(0.0, _TAU)
    height = rng.range_f32(*archetype.blade_height)
    width = rng.range_f32(*archetype.blade_width)
    forward_curve = rng.range_f32(*archetype.forward_curve)
    lean = rng.range_f32(*archetype.lean)
    stiffness = rng.range_f32(*archetype.stiffness)
    interaction_strength = rng.range_f32(*archetype.interaction_strength)
    phase = rng.next_f32() * _TAU
    color_variation = rng.range_f32(-archetype.color_variation, archetype.color_variation)
    return BladeSample(
        root_local=point.position_local,
        normal_local=point.normal_local.normalize_or_zero(),
        yaw=yaw,
        height=height,
        width=width,
        forward_curve=forward_curve,
        lean=lean,
        stiffness=stiffness,
        interaction_strength=interaction_strength,
        phase=phase,
        color_variation=color_variation,
    )


def planar_chunk_samples(
    patch_half_size: Vec2,
    chunk_min: Vec2,
    chunk_max: Vec2,
    patch_density_scale: float,
    config: GrassConfig,
    archetype: GrassArchetype,
    lod: LodBand,
    density_image: Optional[DensityImage],
    density_layer_images: Sequence[Optional[DensityImage]],
    planar: bool,
    surface_transform: Transform,
    seed: int,
) -> list[BladeSample]:
    """Jittered-grid blades over one rectangular chunk of a flat patch."""
    area = (chunk_max - chunk_min).max(Vec2.ZERO)
    area_sq = area.x * area.y
    if area_sq <= F32_EPSILON:
        return []

    target = _target_count(area_sq, config, patch_density_scale, lod, archetype)
    if target == 0:
        return []

    aspect = 1.0 if abs(area.y) <= 0.001 else area.x / area.y
    cols = max(math.ceil(math.sqrt(target * aspect)), 1)
    rows = max(-(-target // cols), 1)
    cell = Vec2(area.x / cols, area.y / rows)

    rng = DeterministicRng(seed)
    samples: list[BladeSample] = []
    for row, col in itertools.product(range(rows), range(cols)):
        if len(samples) >= target:
            break

        local = Vec2(
            chunk_min.x + (col + rng.next_f32()) * cell.x,
            chunk_min.y + (row + rng.next_f32()) * cell.y,
        )
        density_uv = None
        if planar:
            density_uv = Vec2(
                (local.x + patch_half_size.x) / max(patch_half_size.x * 2.0, 0.001),
                (local.y + patch_half_size.y) / max(patch_half_size.y * 2.0, 0.001),
            )
        threshold = rng.next_f32()
        if not passes_density(config, density_image, density_layer_images, density_uv, threshold):
            continue

        point = BladePoint(
            position_local=Vec3(local.x, 0.0, local.y),
            normal_local=Vec3.Y,
            uv=density_uv if density_uv is not None else Vec2.ZERO,
        )
        if not passes_scatter_filter(config.scatter_filter, point, surface_transform):
            continue

        samples.append(_blade_sample_from_point(point, archetype, rng))

    return samples


def _pick_triangle(
    triangles: Sequence[SurfaceTriangle], total_area: float, rng: DeterministicRng
) -> Optional[SurfaceTriangle]:
    remaining = rng.range_f32(0.0, total_area)
    for triangle in triangles:
        remaining -= triangle.area
        if remaining <= 0.0:
            return triangle
    return triangles[-1] if triangles else None


def _random_barycentric(rng: DeterministicRng) -> Vec3:
    a = rng.next_f32()
    b = rng.next_f32()
    sqrt_a = math.sqrt(a)
    return Vec3(1.0 - sqrt_a, sqrt_a * (1.0 - b), sqrt_a * b)


def mesh_chunk_samples(
    chunk_triangle_indices: Sequence[int],
    surface: SurfaceBake,
    patch_density_scale: float,
    config: GrassConfig,
    archetype: GrassArchetype,
    lod: LodBand,
    density_image: Optional[DensityImage],
    density_layer_images: Sequence[Optional[DensityImage]],
    surface_transform: Transform,
    seed: int,
) -> list[BladeSample]:
    """Area-weighted random blades over the triangles of one chunk of a baked mesh."""
    count = len(surface.triangles)
    triangles = [surface.triangles[index] for index in chunk_triangle_indices if 0 <= index < count]
    total_area = sum(triangle.area for triangle in triangles)
    if total_area <= F32_EPSILON:
        return []

    target = _target_count(total_area, config, patch_density_scale, lod, archetype)
    if target == 0:
        return []

    rng = DeterministicRng(seed)
    samples: list[BladeSample] = []
    for _ in range(max(target * 4, 16)):
        if len(samples) >= target:
            break
        triangle = _pick_triangle(triangles, total_area, rng)
        if triangle is None:
            break
        barycentric = _random_barycentric(rng)
        point = BladePoint(
            position_local=triangle.sample_point(barycentric),
            normal_local=triangle.sample_normal(barycentric),
            uv=triangle.sample_uv(barycentric),
        )

        density_uv = None
        if config.density_map is not None:
            if config.density_map.mode is DensityMapMode.SURFACE_UV:
                density_uv = point.uv
            else:
                density_uv = surface.layout.uv_of_local_point(point.position_local.xz())

        threshold = rng.next_f32()
        if not passes_density(config, density_image, density_layer_images, density_uv, threshold):
            continue
        if not passes_scatter_filter(config.scatter_filter, point, surface_transform):
            continue
        samples.append(_blade_sample_from_point(point, archetype, rng))

    return samples