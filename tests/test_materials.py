import pytest

from grassfield.materials import (
    MAX_INTERACTION_ZONES,
    AlphaMode,
    GrassMaterialUniform,
    InteractionMapRegion,
    build_material,
)
from grassfield.resources import GrassInteractionSample, GrassWind
from grassfield.scatter import GrassArchetype
from grassfield.vecmath import Vec2, Vec3


def make_zone(index):
    return GrassInteractionSample(
        center=Vec3(float(index), 1.0, -float(index)),
        radius=2.0 + index,
        bend_strength=0.5,
        flatten_strength=0.25,
        falloff=0.75,
    )


def test_default_uniform_matches_default_wind():
    from_default = GrassMaterialUniform.from_wind_and_zones(GrassWind(), [], None)
    assert from_default == GrassMaterialUniform()


def test_zones_are_truncated_to_maximum():
    zones = [make_zone(i) for i in range(MAX_INTERACTION_ZONES + 2)]
    uniform = GrassMaterialUniform.from_wind_and_zones(GrassWind(), zones, None)
    assert uniform.interaction_count == MAX_INTERACTION_ZONES
    assert len(uniform.zone_centers_radius) == MAX_INTERACTION_ZONES
    assert uniform.zone_centers_radius[-1] == (3.0, 1.0, -3.0, 5.0)


def test_unused_zone_slots_are_zero():
    uniform = GrassMaterialUniform.from_wind_and_zones(GrassWind(), [make_zone(1)], None)
    assert uniform.interaction_count == 1
    assert uniform.zone_centers_radius[0] == (1.0, 1.0, -1.0, 3.0)
    assert uniform.zone_behavior[0] == (0.5, 0.25, 0.75, 0.0)
    assert all(slot == (0.0, 0.0, 0.0, 0.0) for slot in uniform.zone_centers_radius[1:])
    assert all(slot == (0.0, 0.0, 0.0, 0.0) for slot in uniform.zone_behavior[1:])


def test_wind_direction_is_normalized_and_values_copied():
    wind = GrassWind(direction=Vec2(3.0, 4.0), sway_strength=0.4, flutter_speed=3.0)
    uniform = GrassMaterialUniform.from_wind_and_zones(wind, [], None)
    assert uniform.wind_direction.length() == pytest.approx(1.0)
    assert uniform.wind_direction.x * 4.0 == pytest.approx(uniform.wind_direction.y * 3.0)
    assert uniform.sway_strength == wind.sway_strength
    assert uniform.flutter_speed == wind.flutter_speed


def test_enabled_interaction_map_sets_region():
    region = InteractionMapRegion(center=Vec2(5.0, -3.0), half_extent=8.0, enabled=True)
    uniform = GrassMaterialUniform.from_wind_and_zones(GrassWind(), [], region)
    assert uniform.interaction_map_active == 1
    cx, cy, inv_x, inv_y = uniform.interaction_map_region
    assert (cx, cy) == (5.0, -3.0)
    assert inv_x == inv_y
    assert inv_x * region.half_extent * 2.0 == pytest.approx(1.0)


def test_disabled_or_missing_interaction_map_is_inactive():
    region = InteractionMapRegion(center=Vec2(5.0, -3.0), half_extent=8.0, enabled=False)
    for interaction_map in (region, None):
        uniform = GrassMaterialUniform.from_wind_and_zones(GrassWind(), [], interaction_map)
        assert uniform.interaction_map_active == 0
        assert uniform.interaction_map_region == (0.0, 0.0, 0.0, 0.0)


def test_opaque_archetype_builds_double_sided_material():
    archetype = GrassArchetype(roughness=0.7, reflectance=0.3, diffuse_transmission=0.4)
    material = build_material(archetype, GrassWind(), [], None, None)
    assert material.alpha_mode == AlphaMode.opaque()
    assert not material.alpha_mode.is_mask
    assert material.double_sided
    assert material.cull_mode is None
    assert material.perceptual_roughness == 0.7
    assert material.reflectance == 0.3
    assert material.diffuse_transmission == 0.4


def test_material_parameters_are_clamped():
    archetype = GrassArchetype(roughness=0.0, reflectance=2.0, diffuse_transmission=-1.0)
    material = build_material(archetype, GrassWind(), [], None, None)
    assert material.perceptual_roughness == 0.089
    assert material.reflectance == 1.0
    assert material.diffuse_transmission == 0.0


def test_blade_texture_uses_alpha_cutoff_mask():
    archetype = GrassArchetype(blade_texture="blade.png", alpha_cutoff=0.5, tip_alpha=0.2)
    material = build_material(archetype, GrassWind(), [], None, None)
    assert material.base_color_texture == "blade.png"
    assert material.alpha_mode == AlphaMode.mask(0.5)


def test_tip_alpha_masks_with_clamped_cutoff():
    archetype = GrassArchetype(tip_alpha=0.01)
    material = build_material(archetype, GrassWind(), [], None, None)
    assert material.alpha_mode.is_mask
    assert material.alpha_mode.cutoff == 0.01


def test_material_carries_uniform_and_map_texture():
    zones = [make_zone(0)]
    region = InteractionMapRegion(center=Vec2(1.0, 2.0), half_extent=4.0)
    material = build_material(GrassArchetype(), GrassWind(), zones, region, "interaction.png")
    assert material.interaction_map == "interaction.png"
    assert material.uniform == GrassMaterialUniform.from_wind_and_zones(
        GrassWind(), zones, region
    )
    assert material.uniform.interaction_count == 1