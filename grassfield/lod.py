"""Level-of-detail bands and their visibility ranges."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field


@dataclass
class LodBand:
    """One detail level: drawn up to ``max_distance``, cross-fading over ``fade_distance``."""

    max_distance: float = 30.0
    fade_distance: float = 5.0
    density_scale: float = 1.0
    segments: int = 4


def _default_bands() -> list[LodBand]:
    return [
        LodBand(max_distance=18.0, fade_distance=4.0, density_scale=1.0, segments=5),
        LodBand(max_distance=40.0, fade_distance=6.0, density_scale=0.55, segments=3),
        LodBand(max_distance=80.0, fade_distance=8.0, density_scale=0.25, segments=1),
    ]


@dataclass
class LodConfig:
    bands: list[LodBand] = field(default_factory=_default_bands)


@dataclass(frozen=True)
class VisibilityRange:
    """Distance margins over which a band fades in and out, as (start, end) pairs."""

    start_margin: tuple[float, float]
    end_margin: tuple[float, float]
    use_aabb: bool = False


@dataclass
class SelectedLodBand:
    index: int
    band: LodBand
    visibility_range: VisibilityRange


def visibility_range_for_band(bands: list[LodBand], index: int) -> VisibilityRange:
    band = bands[index]
    fade = max(band.fade_distance, 0.0)
    if index == 0:
        start = 0.0
        start_fade = 0.0
    else:
        start = bands[index - 1].max_distance
        start_fade = max(start - fade, 0.0)
    return VisibilityRange(
        start_margin=(start_fade, start),
        end_margin=(band.max_distance, band.max_distance + fade),
        use_aabb=False,
    )


def resolve_lod_bands(config: LodConfig) -> list[SelectedLodBand]:
    """Pair every configured band with its visibility range; fall back to one default band."""
    if not config.bands:
        fallback = [LodBand()]
        return [SelectedLodBand(0, LodBand(), visibility_range_for_band(fallback, 0))]
    return [
        SelectedLodBand(index, dataclasses.replace(band), visibility_range_for_band(config.bands, index))
        for index, band in enumerate(config.bands)
    ]