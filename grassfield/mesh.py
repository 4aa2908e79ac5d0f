"""Blade geometry: turns scattered blade samples into one chunk mesh."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Sequence

from grassfield.scatter import (
    BladeSample,
    BladeShape,
    GrassArchetype,
    GrassConfig,
    NormalSource,
)
from grassfield.vecmath import Quat, Vec3

Color = tuple[float, float, float, float]


class BladeBasis(NamedTuple):
    """Orthonormal frame of a single blade."""

    up: Vec3
    facing: Vec3
    right: Vec3
    forward: Vec3


@dataclass
class ChunkMesh:
    """Triangle-list vertex streams of one grass chunk.

    ``root_phase`` holds the blade root (relative to the chunk centre) and its
    phase; ``variation`` holds stiffness, interaction strength, colour
    variation and lean.
    """

    positions: list[tuple[float, float, float]] = field(default_factory=list)
    normals: list[tuple[float, float, float]] = field(default_factory=list)
    uvs: list[tuple[float, float]] = field(default_factory=list)
    colors: list[Color] = field(default_factory=list)
    root_phase: list[tuple[float, float, float, float]] = field(default_factory=list)
    variation: list[tuple[float, float, float, float]] = field(default_factory=list)
    indices: list[int] = field(default_factory=list)

    def vertex_count(self) -> int:
        return len(self.positions)

    def _push_vertex(
        self,
        position: Vec3,
        normal: Vec3,
        uv: tuple[float, float],
        color: Color,
        root_phase: tuple[float, float, float, float],
        variation: tuple[float, float, float, float],
    ) -> None:
        self.positions.append(position.to_tuple())
        self.normals.append(normal.to_tuple())
        self.uvs.append(uv)
        self.colors.append(color)
        self.root_phase.append(root_phase)
        self.variation.append(variation)


def blade_basis(sample: BladeSample, align_to_surface: float) -> BladeBasis:
    """Up, facing, right and forward directions of a blade."""
    align = min(max(align_to_surface, 0.0), 1.0)
    up = Vec3.Y.lerp(sample.normal_local, align).normalize_or_zero()
    facing = Quat.from_rotation_y(sample.yaw).rotate(Vec3.Z)
    right = up.cross(facing).normalize_or_zero()
    forward = right.cross(up).normalize_or_zero()
    return BladeBasis(up, facing, right, forward)


def compute_normal(archetype: GrassArchetype, forward: Vec3, up: Vec3) -> Vec3:
    if archetype.normal_source is NormalSource.GROUND_NORMAL:
        # Ground normals give flat, unified shading across all blades.
        return up.normalize_or_zero()
    return forward.normalize_or_zero()


def vary_color(color: Color, offset: float) -> Color:
    """Shift a linear colour by ``offset``, weighted towards red, clamped to [0, 1]."""
    red, green, blue, alpha = color

    def clamp(value: float) -> float:
        return min(max(value, 0.0), 1.0)

    return (
        clamp(red + offset),
        clamp(green + offset * 0.5),
        clamp(blue + offset * 0.25),
        alpha,
    )


def lerp_linear_alpha(a: Color, b: Color, t: float, tip_alpha: float) -> Color:
    """Blend colours by ``t`` while alpha fades from 1 towards ``tip_alpha``."""
    alpha = 1.0 + (min(max(tip_alpha, 0.0), 1.0) - 1.0) * t
    return (
        a[0] + (b[0] - a[0]) * t,
        a[1] + (b[1] - a[1]) * t,
        a[2] + (b[2] - a[2]) * t,
        alpha,
    )


class _BladeAttributes(NamedTuple):
    basis: BladeBasis
    normal: Vec3
    root_color: Color
    tip_color: Color
    root_phase: tuple[float, float, float, float]
    variation: tuple[float, float, float, float]


def _blade_attributes(
    sample: BladeSample, archetype: GrassArchetype, align_to_surface: float, chunk_center: Vec3
) -> _BladeAttributes:
    basis = blade_basis(sample, align_to_surface)
    root = sample.root_local - chunk_center
    return _BladeAttributes(
        basis=basis,
        normal=compute_normal(archetype, basis.forward, basis.up),
        root_color=vary_color(archetype.root_color, sample.color_variation),
        tip_color=vary_color(archetype.tip_color, sample.color_variation * 0.6),
        root_phase=(root.x, root.y, root.z, sample.phase),
        variation=(
            sample.stiffness,
            sample.interaction_strength,
            sample.color_variation,
            sample.lean,
        ),
    )


def _append_strip_blade(
    mesh: ChunkMesh,
    sample: BladeSample,
    archetype: GrassArchetype,
    align_to_surface: float,
    chunk_center: Vec3,
    segments: int,
) -> None:
    """Multi-segment tapered strip."""
    base_index = mesh.vertex_count()
    attrs = _blade_attributes(sample, archetype, align_to_surface, chunk_center)
    up, _, right, forward = attrs.basis

    for step in range(segments + 1):
        t = step / segments
        center = (
            sample.root_local
            + up * (sample.height * t)
            + forward * (sample.forward_curve * t * t)
            + forward * (sample.lean * sample.height * t * t)
        )
        width = sample.width * (1.0 - t) ** 0.75
        color = lerp_linear_alpha(attrs.root_color, attrs.tip_color, t, archetype.tip_alpha)
        for side, u in ((-1.0, 0.0), (1.0, 1.0)):
            position = center + right * (side * width * 0.5) - chunk_center
            mesh._push_vertex(
                position, attrs.normal, (u, t), color, attrs.root_phase, attrs.variation
            )

    for step in range(segments):
        row = base_index + step * 2
        mesh.indices.extend((row, row + 1, row + 2, row + 1, row + 3, row + 2))


def _append_flat_card(
    mesh: ChunkMesh,
    sample: BladeSample,
    archetype: GrassArchetype,
    align_to_surface: float,
    chunk_center: Vec3,
) -> None:
    """A single quad narrowing towards the tip."""
    base_index = mesh.vertex_count()
    attrs = _blade_attributes(sample, archetype, align_to_surface, chunk_center)
    up, _, right, _ = attrs.basis

    half = sample.width * 0.5
    tip_center = sample.root_local + up * sample.height
    corners = (
        (sample.root_local - right * half - chunk_center, 0.0, (0.0, 0.0)),
        (sample.root_local + right * half - chunk_center, 0.0, (1.0, 0.0)),
        (tip_center - right * (half * 0.2) - chunk_center, 1.0, (0.0, 1.0)),
        (tip_center + right * (half * 0.2) - chunk_center, 1.0, (1.0, 1.0)),
    )
    for position, t, uv in corners:
        color = lerp_linear_alpha(attrs.root_color, attrs.tip_color, t, archetype.tip_alpha)
        mesh._push_vertex(position, attrs.normal, uv, color, attrs.root_phase, attrs.variation)

    mesh.indices.extend(
        (base_index, base_index + 1, base_index + 2, base_index + 1, base_index + 3, base_index + 2)
    )


def _append_single_triangle(
    mesh: ChunkMesh,
    sample: BladeSample,
    archetype: GrassArchetype,
    align_to_surface: float,
    chunk_center: Vec3,
) -> None:
    """A single triangle tapering to a point."""
    base_index = mesh.vertex_count()
    attrs = _blade_attributes(sample, archetype, align_to_surface, chunk_center)
    up, _, right, _ = attrs.basis

    half = sample.width * 0.5
    corners = (
        (sample.root_local - right * half - chunk_center, 0.0, (0.0, 0.0)),
        (sample.root_local + right * half - chunk_center, 0.0, (1.0, 0.0)),
        (sample.root_local + up * sample.height - chunk_center, 1.0, (0.5, 1.0)),
    )
    for position, t, uv in corners:
        color = lerp_linear_alpha(attrs.root_color, attrs.tip_color, t, archetype.tip_alpha)
        mesh._push_vertex(position, attrs.normal, uv, color, attrs.root_phase, attrs.variation)

    mesh.indices.extend((base_index, base_index + 1, base_index + 2))


def build_chunk_mesh(
    samples: Sequence[BladeSample],
    archetype: GrassArchetype,
    config: GrassConfig,
    segments: int,
    chunk_center: Vec3,
) -> Optional[ChunkMesh]:
    """Build the mesh for a chunk's blades; None when there is nothing to draw."""
    if not samples or segments < 1:
        return None

    mesh = ChunkMesh()
    align = config.align_to_surface
    shape = archetype.blade_shape
    for sample in samples:
        if shape is BladeShape.STRIP:
            _append_strip_blade(mesh, sample, archetype, align, chunk_center, segments)
        elif shape is BladeShape.CROSS_BILLBOARD:
            _append_strip_blade(mesh, sample, archetype, align, chunk_center, segments)
            rotated = dataclasses.replace(sample, yaw=sample.yaw + math.pi / 2.0)
            _append_strip_blade(mesh, rotated, archetype, align, chunk_center, segments)
        elif shape is BladeShape.FLAT_CARD:
            _append_flat_card(mesh, sample, archetype, align, chunk_center)
        else:
            _append_single_triangle(mesh, sample, archetype, align, chunk_center)

    if not mesh.positions:
        return None
    return mesh