"""Sequential batch analysis of tracks across the feature sources."""

import asyncio
from collections import Counter
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import aiohttp

from .config import DEFAULT_CONFIG, HarmonizerConfig
from .exceptions import TrackAnalysisError
from .logging_config import get_logger
from .models import ProgressEvent, ReconciledFeature, Track
from .reconciler import is_accepted, reconcile
from .sources import FeatureSource, default_sources

logger = get_logger(__name__)

ProgressCallback = Callable[[float, str], None]


class FeatureAnalyzer:
    """Resolves tempo, key and energy for tracks using three feature sources."""

    def __init__(
        self, config: HarmonizerConfig = None, sources: Optional[Sequence[FeatureSource]] = None
    ):
        """Initialize analyzer with configuration.

        Args:
            config: Analysis configuration. Uses DEFAULT_CONFIG if not provided.
            sources: Exactly three sources in (tags, analysis, estimate) order.
                Defaults to Last.fm, AcousticBrainz and the genre estimator.
        """
        self.config = config or DEFAULT_CONFIG
        self.sources = list(sources) if sources is not None else default_sources(self.config)
        if len(self.sources) != 3:
            raise ValueError(f"Expected 3 feature sources, got {len(self.sources)}")

    def create_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(headers={"User-Agent": self.config.user_agent})

    async def analyze_track(
        self, session: aiohttp.ClientSession, track: Track
    ) -> ReconciledFeature:
        """Query all sources concurrently for one track and reconcile the results.

        Waits for every source to settle. An unexpected exception from a source
        is raised as TrackAnalysisError only after the others have finished.

        Raises:
            TrackAnalysisError: If a source failed in an unexpected way.
        """
        outcomes = await asyncio.gather(
            *(source.lookup(session, track.primary_artist, track.name) for source in self.sources),
            return_exceptions=True,
        )

        results = []
        for source, outcome in zip(self.sources, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                raise TrackAnalysisError(f"{source.name}: {outcome}") from outcome
            results.append(outcome)

        tags, analysis, estimate = results
        return reconcile(tags, analysis, estimate, track=track, config=self.config)

    def start_batch(self, tracks: Iterable[Track]) -> "BatchRun":
        """Prepare a batch run; iterate it to drive the analysis."""
        return BatchRun(self, list(tracks))

    async def analyze_batch(
        self, tracks: Iterable[Track], on_progress: Optional[ProgressCallback] = None
    ) -> List[ReconciledFeature]:
        """Analyze tracks one at a time and return those above the confidence threshold.

        Args:
            tracks: Tracks to analyze, processed in order.
            on_progress: Called with (percent_complete, status_text) as each
                track is dispatched.

        Returns:
            Accepted features; may be shorter than the input.
        """
        run = self.start_batch(tracks)
        async for event in run:
            if on_progress:
                on_progress(event.percent, event.status)
        return run.features


class BatchRun:
    """A single pass over a track list.

    Iterating yields one ProgressEvent per track, as that track is dispatched.
    Accepted features accumulate in ``features``; tracks whose analysis raised
    are collected in ``skipped``. A run can only be iterated once.
    """

    def __init__(self, analyzer: FeatureAnalyzer, tracks: List[Track]):
        self.analyzer = analyzer
        self.tracks = tracks
        self.features: List[ReconciledFeature] = []
        self.rejected: List[ReconciledFeature] = []
        self.skipped: List[Track] = []
        self.started = False
        self.finished = False

    def __aiter__(self):
        if self.started:
            raise RuntimeError("Batch run has already been started")
        self.started = True
        return self._run()

    async def _run(self):
        cfg = self.analyzer.config
        total = len(self.tracks)

        async with self.analyzer.create_session() as session:
            for index, track in enumerate(self.tracks):
                if index > 0 and cfg.cooldown > 0:
                    await asyncio.sleep(cfg.cooldown)

                yield ProgressEvent(
                    index=index, total=total, status=f"Analyzing: {track.name}", track=track
                )

                try:
                    feature = await self.analyzer.analyze_track(session, track)
                except Exception as e:
                    logger.warning("Failed to analyze %s: %s", track.display_name, e)
                    self.skipped.append(track)
                    continue

                if is_accepted(feature, cfg):
                    self.features.append(feature)
                else:
                    logger.debug(
                        "Dropping %s (confidence %.2f)", track.display_name, feature.confidence
                    )
                    self.rejected.append(feature)

        self.finished = True
        logger.info("Analyzed %d/%d tracks", len(self.features), total)


def source_statistics(features: Iterable[ReconciledFeature]) -> Dict[str, int]:
    """Count how many features each source contributed to, most used first."""
    counts = Counter(source for f in features for source in f.sources)
    return dict(counts.most_common())

