"""Group reconciled tracks into harmonic, tempo-banded playlist specifications."""

from collections import Counter
from typing import Dict, Iterable, List, Tuple

from .camelot import is_compatible
from .config import DEFAULT_CONFIG, HarmonizerConfig
from .models import PlaylistSpec, ReconciledFeature

BANDS = ("slow", "medium", "fast")
UNKNOWN = "Unknown"


def tempo_band(tempo: float, config: HarmonizerConfig = None) -> str:
    """Classify a tempo as slow (<100), medium (100-129) or fast (>=130 BPM)."""
    cfg = config or DEFAULT_CONFIG
    if tempo < cfg.slow_tempo_limit:
        return "slow"
    if tempo < cfg.fast_tempo_limit:
        return "medium"
    return "fast"


def partition_by_wheel(
    features: Iterable[ReconciledFeature],
) -> Dict[str, List[ReconciledFeature]]:
    """Partition features by Camelot notation, in order of first appearance."""
    groups: Dict[str, List[ReconciledFeature]] = {}
    for feature in features:
        groups.setdefault(feature.wheel_str, []).append(feature)
    return groups


def _format_bpm(tempo: float) -> str:
    return f"{tempo:g}"


def build_playlist_spec(
    wheel_key: str, band: str, features: List[ReconciledFeature]
) -> PlaylistSpec:
    """Name and describe one harmonic playlist. ``features`` must be sorted by tempo."""
    first = features[0]
    low, high = features[0].tempo, features[-1].tempo
    return PlaylistSpec(
        key=f"{wheel_key}-{band}",
        wheel=first.wheel,
        band=band,
        name=f"{wheel_key} {band.upper()} ({first.key_name})",
        description=(
            f"DJ Mix Ready • Key: {wheel_key} ({first.key_name}) • "
            f"BPM: {_format_bpm(low)}-{_format_bpm(high)} • {len(features)} tracks"
        ),
        features=tuple(features),
    )


def group(
    features: Iterable[ReconciledFeature], config: HarmonizerConfig = None
) -> Dict[str, PlaylistSpec]:
    """Bucket features by wheel position, then by tempo band.

    Wheel positions with fewer than ``min_group_tracks`` tracks (and the
    Unknown position) are dropped, as are bands with fewer than
    ``min_band_tracks`` tracks. The returned mapping keeps discovery order:
    wheel positions as first seen, then slow, medium, fast.
    """
    cfg = config or DEFAULT_CONFIG
    playlists: Dict[str, PlaylistSpec] = {}

    for wheel_key, members in partition_by_wheel(features).items():
        if wheel_key == UNKNOWN or len(members) < cfg.min_group_tracks:
            continue

        ordered = sorted(members, key=lambda f: f.tempo)
        bands: Dict[str, List[ReconciledFeature]] = {band: [] for band in BANDS}
        for feature in ordered:
            bands[tempo_band(feature.tempo, cfg)].append(feature)

        for band in BANDS:
            if len(bands[band]) < cfg.min_band_tracks:
                continue
            spec = build_playlist_spec(wheel_key, band, bands[band])
            playlists[spec.key] = spec

    return playlists


def key_distribution(features: Iterable[ReconciledFeature]) -> List[Tuple[str, int]]:
    """Wheel positions ranked by how many tracks landed on them."""
    return Counter(f.wheel_str for f in features).most_common()


def mix_targets(spec: PlaylistSpec, playlists: Dict[str, PlaylistSpec]) -> List[str]:
    """Keys of other playlists in the same tempo band that mix with ``spec``."""
    return [
        key
        for key, other in playlists.items()
        if key != spec.key and other.band == spec.band and is_compatible(spec.wheel, other.wheel)
    ]
