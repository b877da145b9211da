"""Tests for sequential batch analysis."""

import asyncio
import dataclasses

import pytest
from conftest import FakeResponse, FakeSession, FakeSource, make_track

from harmonizer.batch import FeatureAnalyzer, source_statistics
from harmonizer.config import DEFAULT_CONFIG
from harmonizer.exceptions import TrackAnalysisError
from harmonizer.models import SourceFailure, SourceSuccess
from harmonizer.reconciler import reconcile
from harmonizer.sources import LASTFM_URL, GenreEstimateSource, LastFmSource

ANALYSIS = SourceSuccess(source="acousticbrainz", tempo=124.0, key="A", scale="minor")
ESTIMATE = SourceSuccess(source="estimate", tempo=128.0, key="C", scale="major")
TAGS = SourceSuccess(source="lastfm", energy=0.6)


def _sources(failing=(), errors=None):
    """Three fake sources; tracks named in ``failing`` fail everywhere."""
    fail = {name: None for name in failing}
    return [
        FakeSource("lastfm", results=dict(fail), default=TAGS),
        FakeSource("acousticbrainz", results=dict(fail), default=ANALYSIS, errors=errors),
        FakeSource("estimate", results=dict(fail), default=ESTIMATE),
    ]


class TestAnalyzeTrack:
    @pytest.mark.asyncio
    async def test_fans_out_to_all_sources(self, fast_config):
        sources = _sources()
        analyzer = FeatureAnalyzer(fast_config, sources=sources)
        track = make_track(1, name="Track One", artist="Someone")
        feature = await analyzer.analyze_track(None, track)
        assert feature.tempo == 124
        assert feature.wheel_str == "8A"
        assert feature.track is track
        for source in sources:
            assert source.calls == [("Someone", "Track One")]

    @pytest.mark.asyncio
    async def test_unexpected_error_raised_after_all_settle(self, fast_config):
        sources = _sources(errors={"Song 1": KeyError("rhythm")})
        analyzer = FeatureAnalyzer(fast_config, sources=sources)
        with pytest.raises(TrackAnalysisError):
            await analyzer.analyze_track(None, make_track(1))
        assert sources[0].calls and sources[2].calls

    @pytest.mark.asyncio
    async def test_sources_run_concurrently(self, fast_config):
        log = []
        sources = [
            FakeSource("lastfm", default=TAGS, delay=0.2, log=log),
            FakeSource("acousticbrainz", default=ANALYSIS, delay=0.2, log=log),
            FakeSource("estimate", default=ESTIMATE, delay=0.2, log=log),
        ]
        analyzer = FeatureAnalyzer(fast_config, sources=sources)
        loop = asyncio.get_running_loop()

        started = loop.time()
        await analyzer.analyze_track(None, make_track(1))
        elapsed = loop.time() - started

        # All three are in flight before any finishes
        assert [event for event, _, _ in log[:3]] == ["start"] * 3
        assert elapsed < 0.5

    @pytest.mark.asyncio
    async def test_empty_source_body_does_not_fail_track(self):
        config = dataclasses.replace(DEFAULT_CONFIG, lastfm_api_key="key", cooldown=0.0)
        session = FakeSession({LASTFM_URL: FakeResponse(payload=None)})
        sources = [
            LastFmSource(config),
            FakeSource("acousticbrainz"),
            GenreEstimateSource(config),
        ]
        feature = await FeatureAnalyzer(config, sources=sources).analyze_track(
            session, make_track(1)
        )
        assert feature.sources == ("estimate",)
        assert feature.confidence == pytest.approx(0.3)

    def test_requires_three_sources(self, fast_config):
        with pytest.raises(ValueError):
            FeatureAnalyzer(fast_config, sources=_sources()[:2])


class TestAnalyzeBatch:
    @pytest.mark.asyncio
    async def test_every_third_track_failing_is_dropped(self, fast_config):
        tracks = [make_track(i) for i in range(9)]
        failing = [t.name for i, t in enumerate(tracks) if i % 3 == 2]
        analyzer = FeatureAnalyzer(fast_config, sources=_sources(failing=failing))

        features = await analyzer.analyze_batch(tracks)

        assert len(features) == 6
        assert len(features) < len(tracks)
        assert all(f.track.name not in failing for f in features)

    @pytest.mark.asyncio
    async def test_results_keep_input_order(self, fast_config):
        tracks = [make_track(i) for i in range(4)]
        analyzer = FeatureAnalyzer(fast_config, sources=_sources())
        features = await analyzer.analyze_batch(tracks)
        assert [f.track.id for f in features] == [t.id for t in tracks]

    @pytest.mark.asyncio
    async def test_progress_reported_on_dispatch(self, fast_config):
        tracks = [make_track(i) for i in range(4)]
        analyzer = FeatureAnalyzer(fast_config, sources=_sources())
        calls = []

        await analyzer.analyze_batch(tracks, lambda pct, status: calls.append((pct, status)))

        assert calls == [
            (0.0, "Analyzing: Song 0"),
            (25.0, "Analyzing: Song 1"),
            (50.0, "Analyzing: Song 2"),
            (75.0, "Analyzing: Song 3"),
        ]

    @pytest.mark.asyncio
    async def test_analysis_error_skips_track(self, fast_config):
        tracks = [make_track(i) for i in range(3)]
        analyzer = FeatureAnalyzer(
            fast_config, sources=_sources(errors={"Song 1": RuntimeError("bad payload")})
        )
        run = analyzer.start_batch(tracks)
        events = [event async for event in run]

        assert len(events) == 3
        assert [f.track.name for f in run.features] == ["Song 0", "Song 2"]
        assert [t.name for t in run.skipped] == ["Song 1"]
        assert run.finished

    @pytest.mark.asyncio
    async def test_low_confidence_tracks_rejected(self, fast_config):
        # Only the tag source answers: confidence 0.2, not above the threshold
        sources = [
            FakeSource("lastfm", default=TAGS),
            FakeSource("acousticbrainz"),
            FakeSource("estimate"),
        ]
        run = FeatureAnalyzer(fast_config, sources=sources).start_batch([make_track(0)])
        async for _ in run:
            pass
        assert run.features == []
        assert len(run.rejected) == 1

    @pytest.mark.asyncio
    async def test_run_is_not_restartable(self, fast_config):
        run = FeatureAnalyzer(fast_config, sources=_sources()).start_batch([make_track(0)])
        async for _ in run:
            pass
        with pytest.raises(RuntimeError):
            async for _ in run:
                pass

    @pytest.mark.asyncio
    async def test_empty_batch(self, fast_config):
        analyzer = FeatureAnalyzer(fast_config, sources=_sources())
        assert await analyzer.analyze_batch([]) == []

    @pytest.mark.asyncio
    async def test_tracks_do_not_overlap(self, fast_config):
        log = []
        sources = [
            FakeSource("lastfm", default=TAGS, delay=0.01, log=log),
            FakeSource("acousticbrainz", default=ANALYSIS, delay=0.03, log=log),
            FakeSource("estimate", default=ESTIMATE, delay=0.02, log=log),
        ]
        tracks = [make_track(i) for i in range(3)]
        await FeatureAnalyzer(fast_config, sources=sources).analyze_batch(tracks)

        # Each track's six entries are contiguous and in input order
        assert [track for _, _, track in log] == [
            t.name for t in tracks for _ in range(6)
        ]

    @pytest.mark.asyncio
    async def test_cooldown_only_between_tracks(self, monkeypatch):
        config = dataclasses.replace(DEFAULT_CONFIG, cooldown=0.5)
        sleeps = []

        async def fake_sleep(delay, *args, **kwargs):
            sleeps.append(delay)

        monkeypatch.setattr("harmonizer.batch.asyncio.sleep", fake_sleep)
        tracks = [make_track(i) for i in range(4)]
        await FeatureAnalyzer(config, sources=_sources()).analyze_batch(tracks)

        assert [d for d in sleeps if d == 0.5] == [0.5] * 3

    @pytest.mark.asyncio
    async def test_single_track_has_no_cooldown(self, monkeypatch):
        config = dataclasses.replace(DEFAULT_CONFIG, cooldown=0.5)
        sleeps = []

        async def fake_sleep(delay, *args, **kwargs):
            sleeps.append(delay)

        monkeypatch.setattr("harmonizer.batch.asyncio.sleep", fake_sleep)
        await FeatureAnalyzer(config, sources=_sources()).analyze_batch([make_track(0)])

        assert 0.5 not in sleeps


class TestSourceStatistics:
    def test_counts_contributing_sources(self):
        failure = SourceFailure(source="lastfm", reason="no key")
        features = [
            reconcile(failure, ANALYSIS, ESTIMATE),
            reconcile(TAGS, ANALYSIS, ESTIMATE),
            reconcile(failure, SourceFailure(source="acousticbrainz", reason="x"), ESTIMATE),
        ]
        assert source_statistics(features) == {"estimate": 3, "acousticbrainz": 2, "lastfm": 1}
