import pytest

from grassfield.plan import GrassChunking, GrassPatch
from grassfield.runtime import GrassInteractionZone
from grassfield.scatter import GrassConfig
from grassfield.surface import plane_mesh
from grassfield.vecmath import Transform, Vec2, Vec3
from grassfield.world import GrassRebuildRequest, GrassWorld


def _active_world():
    world = GrassWorld()
    patch_id = world.add_patch("Patch", GrassPatch(), GrassConfig())
    world.activate()
    world.update()
    return world, patch_id


def _patch_diagnostics(world, name):
    matches = [entry for entry in world.diagnostics.patches if entry.name == name]
    assert matches, f"missing diagnostics for {name}"
    return matches[0]


def test_world_starts_with_default_resources():
    world = GrassWorld()
    assert world.wind.sway_frequency == 0.25
    assert world.diagnostics.runtime_active is False


def test_activate_marks_runtime_active():
    world, _ = _active_world()
    assert world.active is True
    assert world.diagnostics.runtime_active is True
    assert world.diagnostics.active_patches == 1


def test_patch_alone_gets_default_config():
    world = GrassWorld()
    patch_id = world.add_patch("Lonely", GrassPatch())
    assert world.patches[patch_id].config == GrassConfig()


def test_unnamed_patch_is_named_after_its_id():
    world = GrassWorld()
    patch_id = world.add_patch()
    assert world.patches[patch_id].name == f"Patch {patch_id}"


def test_generated_chunks_start_invisible():
    world, patch_id = _active_world()
    children = world.children(patch_id)
    assert children
    assert all(world.chunks[chunk_id].visible is False for chunk_id in children)
    assert world.diagnostics.visible_chunks == 0


def test_nothing_generated_before_activation():
    world = GrassWorld()
    patch_id = world.add_patch("Patch")
    world.update()
    assert world.children(patch_id) == []


def test_deactivate_cleans_up_generated_children():
    world, patch_id = _active_world()
    assert len(world.children(patch_id)) > 0
    world.deactivate()
    assert world.children(patch_id) == []
    assert world.chunks == {}


def test_rebuild_request_respawns_children():
    world = GrassWorld()
    patch_id = world.add_patch("Rebuild Patch")
    world.activate()
    world.update()
    initial = world.children(patch_id)
    world.request_rebuild(patch_id)
    world.update()
    rebuilt = world.children(patch_id)
    assert initial and rebuilt
    assert set(initial).isdisjoint(rebuilt)


def test_rebuild_request_for_unknown_patch_is_ignored():
    world, patch_id = _active_world()
    before = world.children(patch_id)
    world.request_rebuild(9999)
    world.update()
    assert world.children(patch_id) == before


def test_rebuild_request_message_holds_patch():
    assert GrassRebuildRequest(3).patch == 3


def test_mesh_surface_rebuilds_when_source_mesh_changes():
    world = GrassWorld()
    world.set_surface("source", plane_mesh(8.0, 8.0, 0))
    world.add_patch(
        "Mesh Patch",
        GrassPatch(surface="source", chunking=GrassChunking(chunk_size=Vec2.splat(4.0))),
        GrassConfig(density_per_square_unit=3.0, max_blades_per_chunk=2500),
    )
    world.activate()
    world.update()
    initial = _patch_diagnostics(world, "Mesh Patch").blade_count

    world.set_surface("source", plane_mesh(2.0, 2.0, 0))
    world.update()
    rebuilt = _patch_diagnostics(world, "Mesh Patch").blade_count
    assert initial > 0
    assert rebuilt < initial


def test_removing_surface_clears_mesh_patch():
    world = GrassWorld()
    world.set_surface("source", plane_mesh(4.0, 4.0, 0))
    patch_id = world.add_patch("Mesh Patch", GrassPatch(surface="source"))
    world.activate()
    world.update()
    assert world.children(patch_id)
    world.remove_surface("source")
    world.update()
    assert world.children(patch_id) == []


def test_remove_unknown_surface_raises():
    with pytest.raises(KeyError):
        GrassWorld().remove_surface("nothing")


def test_children_of_unknown_patch_raises():
    with pytest.raises(KeyError):
        GrassWorld().children(42)


def test_set_chunk_visible_updates_diagnostics():
    world, patch_id = _active_world()
    chunk_id = world.children(patch_id)[0]
    world.set_chunk_visible(chunk_id, True)
    diagnostics = world.publish_diagnostics()
    assert diagnostics.visible_chunks == 1
    assert diagnostics.visible_blades == world.chunks[chunk_id].blade_count


def test_set_chunk_visible_unknown_raises():
    with pytest.raises(KeyError):
        GrassWorld().set_chunk_visible(5, True)


def test_patch_diagnostics_sum_matches_totals():
    world, patch_id = _active_world()
    report = _patch_diagnostics(world, "Patch")
    assert report.chunk_count == len(world.children(patch_id))
    assert sum(report.lod_chunk_counts) == report.chunk_count
    assert sum(report.lod_blade_counts) == report.blade_count
    assert world.diagnostics.active_blades == report.blade_count


def test_interaction_zones_are_counted():
    world = GrassWorld()
    world.add_patch("Patch")
    world.interaction_zones.append(
        (GrassInteractionZone(radius=2.0), Transform(translation=Vec3(1.0, 0.0, 0.0)))
    )
    world.activate()
    world.update()
    assert world.diagnostics.interaction_zones == 1


def test_debug_patch_bounds_shape():
    world, _ = _active_world()
    world.debug.draw_patch_bounds = True
    shapes = world.debug_shapes()
    assert len(shapes) == 1
    assert shapes[0].kind == "cube"
    assert shapes[0].transform.scale == Vec3(8.0, 0.02, 8.0)
    assert shapes[0].color == (0.2, 0.8, 0.3)


def test_debug_chunk_bounds_one_per_chunk():
    world, patch_id = _active_world()
    world.debug.draw_chunk_bounds = True
    world.debug.draw_lod_colors = True
    shapes = world.debug_shapes()
    assert len(shapes) == len(world.children(patch_id))
    assert {shape.color for shape in shapes} <= {
        (0.22, 0.78, 0.35),
        (0.92, 0.78, 0.28),
        (0.88, 0.42, 0.18),
    }


def test_debug_shapes_empty_when_inactive():
    world = GrassWorld()
    world.add_patch("Patch")
    world.debug.draw_patch_bounds = True
    assert world.debug_shapes() == []