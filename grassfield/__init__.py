"""Procedural grass: chunked blade scattering, chunk meshes, wind sampling, LOD bands and diagnostics."""

__version__ = "0.1.0"

__all__ = [
    "lod",
    "materials",
    "mesh",
    "plan",
    "resources",
    "runtime",
    "scatter",
    "surface",
    "vecmath",
    "wind",
    "world",
]