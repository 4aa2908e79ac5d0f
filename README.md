# grassfield

Procedural grass for 3D scenes, written in pure Python with no third-party
dependencies. You give it a planar patch or a triangle-mesh surface. It then
does four things:

- decides where the blades go,
- builds a mesh for each chunk of blades,
- works out the wind each chunk feels,
- reports how much grass it produced.

The output is plain data: vertex lists, material parameters and counts.
Another program can then draw it.

## What it does

- **Chunked scattering.** A patch is split into a grid of chunks.
  - The grid comes from `surface.ChunkLayout`, `plan.planar_layout` and
    `plan.build_surface_plan`.
  - Planar patches get blades on a jittered grid
    (`scatter.planar_chunk_samples`).
  - Mesh surfaces get blades placed at random across the triangles, weighted
    by triangle area (`scatter.mesh_chunk_samples`).
  - Mesh surfaces are first baked with `surface.bake_mesh_surface`. This
    turns a `SurfaceMesh` into a `SurfaceBake`, which indexes every triangle
    by the chunks it overlaps. Only triangle lists can be baked.
    `surface.plane_mesh` builds a flat, subdivided test plane.
- **Deterministic output.** Scattering uses `scatter.DeterministicRng`, a
  xorshift64 generator, so the same seed always gives the same blades.
  `plan.chunk_seed` mixes the patch seed with the chunk coordinate, the LOD
  index and the archetype index, so each of these gets its own seed.
- **Density control.** `GrassConfig.density_per_square_unit` sets how many
  blades each chunk gets. Three other values scale it:
  - the patch's `density_scale`,
  - the band's `density_scale`,
  - the archetype's `weight`.

  `max_blades_per_chunk` caps the count. When you call the scatter functions
  yourself, you can also pass a primary `DensityMap` and any number of
  `DensityLayer`s:
  - Each map or layer reads one `TextureChannel` of an RGBA8 `DensityImage`,
    and can be inverted.
  - Layers are combined with a `DensityBlendMode`: multiply, min, max or add.
  - On mesh surfaces, a density map is sampled in surface UVs or in patch UVs,
    as set by `DensityMapMode`.
- **Placement filters.** A `ScatterFilter` limits blades by slope (degrees
  from world up) and by world altitude. `ExclusionZone`s remove blades near a
  point. An optional soft edge lets blades thin out towards the zone.
- **Blade meshes.** `mesh.build_chunk_mesh` turns samples into a
  `ChunkMesh`. A blade takes one of four `BladeShape`s:
  - a tapered strip with several segments,
  - a cross billboard (two strips at right angles),
  - a flat card,
  - a single triangle.

  Each vertex stores a position, a normal, a UV and a colour. The colour runs
  from the root colour to the tip colour, and the alpha fades towards
  `tip_alpha`. Each vertex also stores its root position and phase, and a
  variation vector of stiffness, interaction strength, colour variation and
  lean. `NormalSource` decides how blades are shaded: along the blade's
  facing, or with the ground normal.
- **Wind.**
  - `wind.WindConfig` describes the global wind. `WindProfile` gives four
    presets: calm, breezy, gale and storm.
  - A `WindZone` changes the wind locally. It has a `SphereShape` or
    `BoxShape`, a `WindZoneFalloff` and a `WindBlendMode`.
  - `wind.sample_wind_with_zones` returns a `WindSample` at a point. Zones
    are applied in the order given. `wind.world_wind_snapshots` sorts them
    by descending priority.
  - `resources.GrassWind.resolved_from_world_sample` maps a sample onto the
    sway, gust and flutter values of the grass material. It uses the scales
    in a `GrassWindBridge`.
  - `plan.resolve_grass_wind` returns the fallback `GrassWind` unchanged in
    two cases: when no world wind is configured, and when the bridge is
    disabled.
- **LOD bands.** `lod.resolve_lod_bands` pairs each `LodBand` with a
  `VisibilityRange`. A band fades in over the same distance where the
  previous band fades out. If no bands are configured, one default band is
  used.
- **Materials.** `materials.build_material` produces a `GrassMaterial`.
  - The roughness, reflectance and transmission values are clamped.
  - An archetype with a blade texture gets an alpha mask, and so does one
    with `tip_alpha` below 1.
  - The material carries a `GrassMaterialUniform` built by
    `GrassMaterialUniform.from_wind_and_zones`. It holds the wind values, up
    to `MAX_INTERACTION_ZONES` (4) interaction zones and an optional
    `InteractionMapRegion`.

## Using the runtime

`world.GrassWorld` holds patches and surfaces and keeps the generated chunks
up to date. It is used like this:

1. Add patches with `add_patch(name, patch, config, transform)`, which
   returns a patch id.
   - A `plan.GrassPatch` with `surface=None` is a flat patch of `half_size`.
   - Otherwise `surface` is the key of a mesh source.
2. Register mesh sources with `set_surface(key, mesh, transform)`.
3. Call `activate()`. Every patch is then marked dirty.
4. Call `update(time_secs)` once per frame. Each call does the following:
   - applies pending rebuild requests and surface changes,
   - collects interaction zones,
   - rebuilds dirty patches,
   - updates chunk transforms and material uniforms,
   - publishes diagnostics.

   While the world is inactive, `update` does nothing.
5. Read the counts from `publish_diagnostics()` or from the `diagnostics`
   attribute. They are a `GrassDiagnostics` with one `GrassPatchDiagnostics`
   per patch, including counts for each LOD band.
6. Call `deactivate()` to drop all generated chunks.

You can change the world's settings through its attributes:

- `wind`, `wind_bridge` and `wind_config`,
- `wind_zones`: a list of `(WindZone, Transform)` pairs,
- `interaction_zones`: a list of `(GrassInteractionZone, Transform)` pairs,
- `interaction_map` and `interaction_map_texture`,
- `debug`: a `GrassDebugSettings`.

Other calls:

- `children(patch_id)` lists the ids of a patch's generated chunks. The chunks
  themselves are in `chunks`, as `runtime.GrassChunk` records.
- `request_rebuild(patch_id)` queues a `GrassRebuildRequest`. The next
  `update` then regenerates that patch with new chunk ids.
- A mesh patch is rebuilt on the next update when its surface is replaced
  with `set_surface`. It is also rebuilt when its surface is removed with
  `remove_surface` while it still has chunks.
- `set_chunk_visible(chunk_id, visible)` records whether a view sees a chunk.
  Chunks start out not visible. The visible counts in diagnostics depend on
  this flag. Material uniforms are refreshed only for visible chunks.
- `debug_shapes()` returns outlines as cubes and circles, each with a colour.
  It covers patch bounds, chunk bounds and interaction zones, as enabled in
  `debug`. Chunk bounds can be coloured by LOD band.

`GrassSystems` names the stages of an update in order:

1. prepare
2. scatter
3. upload
4. animate
5. debug

Only prepare, scatter and animate do any work inside `update`. Debug
output comes from calling `debug_shapes()`.

## Using the pieces directly

You can call every stage on its own, without the runtime:

| Module | What it holds |
|---|---|
| `vecmath` | `Vec2`, `Vec3`, `Quat` and `Transform` |
| `surface` | surface baking and chunk layouts |
| `scatter` | blade placement, density maps and filters |
| `mesh` | blade geometry |
| `wind` | wind sampling |
| `lod` | LOD visibility ranges |
| `materials` | material building |
| `plan` | surface plans, chunk seeds, chunk transforms and wind resolution |
| `runtime` | per-patch chunk generation (`generate_patch_chunks`) and uniform refresh (`refresh_material_uniforms`) |

## What it does not do

- It draws nothing. It does not upload meshes or materials to a GPU, and it
  includes no shaders. Meshes and materials are plain data.
- It does not load images. `GrassWorld` and `runtime.generate_patch_chunks`
  do not apply density maps or density layers. To use density images, call
  `scatter.planar_chunk_samples` or `scatter.mesh_chunk_samples` yourself and
  pass in `DensityImage` data.
- It does not render or fill in the interaction map texture.
  `InteractionMapRegion` only describes the region, and the texture is only
  passed along by name.
- It does not work out visibility. Visibility comes from outside, through
  `set_chunk_visible`.
- It has no command-line tool.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```