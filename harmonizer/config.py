"""Configuration for Harmonizer analysis and grouping parameters."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class HarmonizerConfig:
    """Configuration for audio-feature reconciliation and playlist grouping."""

    # Source credentials
    lastfm_api_key: Optional[str] = None
    user_agent: str = "spotify-harmonizer/0.1.0"

    # Per-source lookup timeouts (seconds)
    lastfm_timeout: float = 5.0
    acousticbrainz_timeout: float = 10.0
    estimate_timeout: float = 8.0
    # Stages inside the AcousticBrainz lookup, each within the overall bound
    musicbrainz_timeout: float = 5.0
    lowlevel_timeout: float = 3.0

    # AcousticBrainz candidate search
    musicbrainz_search_limit: int = 5
    acousticbrainz_candidate_limit: int = 3

    # Confidence weights per source
    tag_weight: float = 0.2
    analysis_weight: float = 0.8
    estimate_weight: float = 0.3

    # Tracks at or below this confidence are dropped
    min_confidence: float = 0.2

    # Defaults applied to unresolved features
    default_tempo: float = 120.0
    default_energy: float = 0.5
    default_danceability: float = 0.5

    # Pause between tracks in a batch (seconds)
    cooldown: float = 0.2

    # Harmonic grouping
    slow_tempo_limit: float = 100.0
    fast_tempo_limit: float = 130.0
    min_group_tracks: int = 3
    min_band_tracks: int = 2


# Default configuration instance
DEFAULT_CONFIG = HarmonizerConfig()
