import math

import pytest

from grassfield.mesh import (
    ChunkMesh,
    blade_basis,
    build_chunk_mesh,
    compute_normal,
    lerp_linear_alpha,
    vary_color,
)
from grassfield.scatter import (
    BladeSample,
    BladeShape,
    GrassArchetype,
    GrassConfig,
    NormalSource,
    planar_chunk_samples,
)
from grassfield.vecmath import Transform, Vec2, Vec3


def make_sample(**overrides):
    values = dict(
        root_local=Vec3(1.0, 0.0, 2.0),
        normal_local=Vec3.Y,
        yaw=0.0,
        height=0.5,
        width=0.04,
        forward_curve=0.05,
        lean=0.1,
        stiffness=0.8,
        interaction_strength=0.7,
        phase=1.5,
        color_variation=0.0,
    )
    values.update(overrides)
    return BladeSample(**values)


def test_strip_blade_produces_visible_mesh():
    config = GrassConfig()
    archetype = GrassArchetype()
    lod = config.lod.bands[0]
    samples = planar_chunk_samples(
        Vec2.splat(4.0),
        Vec2(-2.0, -2.0),
        Vec2(2.0, 2.0),
        1.0,
        config,
        archetype,
        lod,
        None,
        [],
        True,
        Transform(),
        42,
    )
    assert samples, "should have samples"

    mesh = build_chunk_mesh(samples, archetype, config, 6, Vec3.ZERO)
    assert mesh is not None
    assert mesh.vertex_count() > 0
    assert any(position[1] > 0.1 for position in mesh.positions)


def test_empty_samples_or_zero_segments_build_nothing():
    config = GrassConfig()
    archetype = GrassArchetype()
    assert build_chunk_mesh([], archetype, config, 4, Vec3.ZERO) is None
    assert build_chunk_mesh([make_sample()], archetype, config, 0, Vec3.ZERO) is None


@pytest.mark.parametrize(
    "shape, vertices, index_count",
    [
        (BladeShape.STRIP, 8, 18),
        (BladeShape.CROSS_BILLBOARD, 16, 36),
        (BladeShape.FLAT_CARD, 4, 6),
        (BladeShape.SINGLE_TRIANGLE, 3, 3),
    ],
)
def test_vertex_and_index_counts_per_shape(shape, vertices, index_count):
    archetype = GrassArchetype(blade_shape=shape)
    mesh = build_chunk_mesh([make_sample()], archetype, GrassConfig(), 3, Vec3.ZERO)
    assert mesh.vertex_count() == vertices
    assert len(mesh.indices) == index_count
    assert max(mesh.indices) == vertices - 1
    streams = (mesh.normals, mesh.uvs, mesh.colors, mesh.root_phase, mesh.variation)
    assert all(len(stream) == vertices for stream in streams)


def test_indices_offset_for_multiple_blades():
    archetype = GrassArchetype(blade_shape=BladeShape.SINGLE_TRIANGLE)
    mesh = build_chunk_mesh([make_sample(), make_sample()], archetype, GrassConfig(), 2, Vec3.ZERO)
    assert mesh.indices == [0, 1, 2, 3, 4, 5]


def test_positions_and_roots_are_relative_to_chunk_center():
    center = Vec3(1.0, 0.0, 2.0)
    sample = make_sample()
    mesh = build_chunk_mesh([sample], GrassArchetype(), GrassConfig(), 2, center)
    assert mesh.root_phase[0] == (0.0, 0.0, 0.0, sample.phase)
    assert mesh.variation[0] == (
        sample.stiffness,
        sample.interaction_strength,
        sample.color_variation,
        sample.lean,
    )
    # With yaw 0 and an upright normal the blade's right axis is +X.
    left = mesh.positions[0]
    right = mesh.positions[1]
    assert left[0] == pytest.approx(-sample.width * 0.5)
    assert right[0] == pytest.approx(sample.width * 0.5)
    assert left[2] == pytest.approx(0.0)


def test_strip_tip_collapses_to_zero_width_at_height():
    sample = make_sample(lean=0.0, forward_curve=0.0)
    mesh = build_chunk_mesh([sample], GrassArchetype(), GrassConfig(), 4, Vec3.ZERO)
    tip_left, tip_right = mesh.positions[-2], mesh.positions[-1]
    assert tip_left == pytest.approx(tip_right)
    assert tip_left[1] == pytest.approx(sample.height)
    assert mesh.uvs[-1] == (1.0, 1.0)


def test_tip_alpha_fades_vertex_alpha():
    archetype = GrassArchetype(tip_alpha=0.25)
    mesh = build_chunk_mesh([make_sample()], archetype, GrassConfig(), 2, Vec3.ZERO)
    assert mesh.colors[0][3] == pytest.approx(1.0)
    assert mesh.colors[-1][3] == pytest.approx(0.25)


def test_blade_basis_is_orthonormal():
    sample = make_sample(yaw=0.7, normal_local=Vec3(0.3, 1.0, -0.2).normalize_or_zero())
    basis = blade_basis(sample, 0.65)
    for axis in (basis.up, basis.right, basis.forward):
        assert axis.length() == pytest.approx(1.0)
    assert basis.up.dot(basis.right) == pytest.approx(0.0, abs=1e-9)
    assert basis.up.dot(basis.forward) == pytest.approx(0.0, abs=1e-9)
    assert basis.right.dot(basis.forward) == pytest.approx(0.0, abs=1e-9)


def test_blade_basis_ignores_normal_when_alignment_is_zero():
    sample = make_sample(normal_local=Vec3.X)
    basis = blade_basis(sample, 0.0)
    assert basis.up == Vec3.Y


def test_compute_normal_follows_source():
    up = Vec3(0.0, 2.0, 0.0)
    forward = Vec3(0.0, 0.0, 3.0)
    facing = compute_normal(GrassArchetype(normal_source=NormalSource.BLADE_FACING), forward, up)
    ground = compute_normal(GrassArchetype(normal_source=NormalSource.GROUND_NORMAL), forward, up)
    assert facing == Vec3.Z
    assert ground == Vec3.Y


def test_vary_color_clamps_and_keeps_alpha():
    assert vary_color((0.9, 0.5, 0.2, 0.4), 0.5) == pytest.approx((1.0, 0.75, 0.325, 0.4))
    assert vary_color((0.1, 0.1, 0.1, 1.0), -1.0)[:3] == (0.0, 0.0, 0.0)
    assert vary_color((0.3, 0.4, 0.5, 1.0), 0.0) == (0.3, 0.4, 0.5, 1.0)


def test_lerp_linear_alpha_endpoints():
    a = (0.1, 0.2, 0.3, 1.0)
    b = (0.5, 0.6, 0.7, 1.0)
    assert lerp_linear_alpha(a, b, 0.0, 0.3) == pytest.approx((0.1, 0.2, 0.3, 1.0))
    assert lerp_linear_alpha(a, b, 1.0, 0.3) == pytest.approx((0.5, 0.6, 0.7, 0.3))
    assert lerp_linear_alpha(a, b, 1.0, 5.0)[3] == pytest.approx(1.0)


def test_chunk_mesh_vertex_count_starts_at_zero():
    mesh = ChunkMesh()
    assert mesh.vertex_count() == 0