"""Shared fixtures and test doubles."""

import asyncio
import dataclasses

import pytest

from harmonizer.config import DEFAULT_CONFIG
from harmonizer.models import ReconciledFeature, SourceFailure, SourceSuccess, Track
from harmonizer.sources import FeatureSource


def make_track(n, name=None, artist="Test Artist"):
    return Track(
        id=f"track{n}",
        name=name or f"Song {n}",
        uri=f"spotify:track:track{n}",
        artists=[artist],
        artist_ids=[f"artist{n}"],
    )


def make_feature(tempo, wheel=None, key_name="C Major", n=0, confidence=0.8):
    return ReconciledFeature(
        tempo=tempo,
        pitch_class=None,
        major=None,
        wheel=wheel,
        energy=0.5,
        danceability=0.5,
        confidence=confidence,
        sources=("acousticbrainz",),
        key_name=key_name,
        track=make_track(n),
    )


class FakeResponse:
    def __init__(self, status=200, payload=None, delay=0.0):
        self.status = status
        self.payload = payload
        self.delay = delay

    async def __aenter__(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        return self

    async def __aexit__(self, *exc):
        return False

    async def json(self, content_type=None):
        return self.payload


class FakeSession:
    """Maps URLs to FakeResponses (or exceptions) and records requests."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def get(self, url, params=None):
        self.requests.append((url, params))
        route = self.routes.get(url, FakeResponse(status=404, payload={}))
        if isinstance(route, Exception):
            raise route
        return route


class FakeSource(FeatureSource):
    """Source returning canned results keyed by track name."""

    def __init__(self, name, results=None, default=None, errors=None, delay=0.0, log=None):
        super().__init__(DEFAULT_CONFIG)
        self.name = name
        self.results = results or {}
        self.default = default
        self.errors = errors or {}
        self.delay = delay
        # Shared list of ("start" | "end", source name, track) entries
        self.log = log if log is not None else []
        self.calls = []

    async def lookup(self, session, artist, track):
        self.calls.append((artist, track))
        self.log.append(("start", self.name, track))
        if self.delay:
            await asyncio.sleep(self.delay)
        self.log.append(("end", self.name, track))
        if track in self.errors:
            raise self.errors[track]
        result = self.results.get(track, self.default)
        if result is None:
            return SourceFailure(source=self.name, reason="no match")
        return result


@pytest.fixture
def fast_config():
    """Default configuration without the inter-track cooldown."""
    return dataclasses.replace(DEFAULT_CONFIG, cooldown=0.0)


@pytest.fixture
def analysis_success():
    return SourceSuccess(
        source="acousticbrainz",
        tempo=127.6,
        key="C",
        scale="major",
        energy=0.7,
        danceability=0.9,
    )
