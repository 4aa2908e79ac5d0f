[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "grassfield"
version = "0.1.0"
description = "Grass and low-lying foliage generation: chunked blade scattering, patch meshes, wind sampling, LOD bands and diagnostics"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "grass",
    "foliage",
    "scatter",
    "procedural",
    "wind",
    "lod",
    "mesh",
    "3d",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: 3D Rendering",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["grassfield"]

[tool.hatch.build.targets.sdist]
include = ["grassfield", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
