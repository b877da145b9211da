"""Merge partial results from the feature sources into one ReconciledFeature."""

import math
from typing import Optional

from .camelot import compatibility_set, key_name, parse_note, parse_scale, wheel_position
from .config import DEFAULT_CONFIG, HarmonizerConfig
from .models import ReconciledFeature, SourceResult, SourceSuccess, Track


def _succeeded(result: Optional[SourceResult]) -> Optional[SourceSuccess]:
    return result if isinstance(result, SourceSuccess) else None


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def round_half_up(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


def reconcile(
    tags: Optional[SourceResult],
    analysis: Optional[SourceResult],
    estimate: Optional[SourceResult],
    track: Optional[Track] = None,
    config: HarmonizerConfig = None,
) -> ReconciledFeature:
    """Priority-merge the three source results for one track.

    Args:
        tags: Result of the tag source (energy estimate only).
        analysis: Result of the audio-analysis source, trusted first.
        estimate: Result of the template estimator, used only for a missing tempo.
        track: The track the results describe.
        config: Weights and defaults. Uses DEFAULT_CONFIG if not provided.

    Returns:
        ReconciledFeature with confidence = contributed weight / successful sources.
    """
    cfg = config or DEFAULT_CONFIG
    tag_ok, analysis_ok, estimate_ok = _succeeded(tags), _succeeded(analysis), _succeeded(estimate)

    tempo = None
    pitch_class = None
    major = None
    energy = None
    danceability = None
    weight = 0.0

    if analysis_ok:
        if analysis_ok.tempo:
            tempo = round_half_up(analysis_ok.tempo)
            weight += cfg.analysis_weight
        pitch_class = parse_note(analysis_ok.key)
        if pitch_class is not None:
            major = parse_scale(analysis_ok.scale)
        if analysis_ok.energy is not None:
            energy = _clamp(analysis_ok.energy)
        if analysis_ok.danceability is not None:
            danceability = _clamp(analysis_ok.danceability)

    if estimate_ok and tempo is None:
        if estimate_ok.tempo:
            tempo = estimate_ok.tempo
            weight += cfg.estimate_weight
        if pitch_class is None:
            pitch_class = parse_note(estimate_ok.key)
            major = parse_scale(estimate_ok.scale) if pitch_class is not None else None

    if tag_ok and energy is None and tag_ok.energy is not None:
        energy = _clamp(tag_ok.energy)
        weight += cfg.tag_weight

    succeeded = [r for r in (tag_ok, analysis_ok, estimate_ok) if r is not None]
    confidence = weight / len(succeeded) if succeeded else 0.0

    wheel = None
    compatible = ()
    if pitch_class is not None and major is not None:
        wheel = wheel_position(pitch_class, major)
        compatible = tuple(compatibility_set(wheel))

    return ReconciledFeature(
        tempo=tempo if tempo is not None else cfg.default_tempo,
        pitch_class=pitch_class,
        major=major,
        wheel=wheel,
        energy=energy if energy is not None else cfg.default_energy,
        danceability=danceability if danceability is not None else cfg.default_danceability,
        confidence=min(1.0, confidence),
        sources=tuple(r.source for r in succeeded),
        compatible=compatible,
        key_name=key_name(pitch_class, major),
        track=track,
    )


def is_accepted(feature: ReconciledFeature, config: HarmonizerConfig = None) -> bool:
    """A feature is kept only when its confidence is strictly above the threshold."""
    cfg = config or DEFAULT_CONFIG
    return feature.confidence > cfg.min_confidence
