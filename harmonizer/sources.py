"""Audio-feature sources queried for each track.

Each source looks up one (artist, track) pair and returns either a
``SourceSuccess`` with whatever partial features it found or a
``SourceFailure``. Sources never raise for expected problems (missing
credentials, HTTP errors, timeouts, no match); only genuinely unexpected
errors escape ``FeatureSource.lookup``.
"""

import asyncio
import hashlib
from typing import Any, Dict, List, Optional

import aiohttp

from .camelot import KEY_NAMES
from .config import DEFAULT_CONFIG, HarmonizerConfig
from .exceptions import SourceError, SourceLookupError, SourceUnavailableError
from .logging_config import get_logger
from .models import SourceFailure, SourceResult, SourceSuccess

logger = get_logger(__name__)

LASTFM_URL = "https://ws.audioscrobbler.com/2.0/"
MUSICBRAINZ_URL = "https://musicbrainz.org/ws/2/recording/"
ACOUSTICBRAINZ_URL = "https://acousticbrainz.org/api/v1/"

HIGH_ENERGY_TAGS = ("electronic", "dance", "house", "techno", "dubstep", "drum and bass", "hardcore")
MEDIUM_ENERGY_TAGS = ("rock", "pop", "indie", "alternative")
LOW_ENERGY_TAGS = ("ambient", "classical", "folk", "acoustic", "chill")

# (genre, lowest BPM, number of BPM values in range)
GENRE_TEMPLATES = (
    ("house", 120, 8),
    ("techno", 125, 10),
    ("trance", 128, 8),
    ("drum and bass", 170, 10),
    ("dubstep", 140, 10),
)


def estimate_energy_from_tags(tags: List[Dict[str, Any]]) -> float:
    """Estimate energy (0-1) from Last.fm tag names via keyword buckets."""
    names = [str(tag.get("name") or "").lower() for tag in tags if isinstance(tag, dict)]

    def matches(keywords):
        return any(keyword in name for name in names for keyword in keywords)

    if matches(HIGH_ENERGY_TAGS):
        return 0.8
    if matches(MEDIUM_ENERGY_TAGS):
        return 0.6
    if matches(LOW_ENERGY_TAGS):
        return 0.3
    return 0.5


async def fetch_json(
    session: aiohttp.ClientSession, url: str, params: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """GET a URL and decode its JSON object body.

    Raises:
        SourceLookupError: On a non-200 status or a body that is not a JSON object.
    """
    async with session.get(url, params=params) as resp:
        if resp.status != 200:
            raise SourceLookupError(f"HTTP {resp.status} from {url}")
        data = await resp.json(content_type=None)
    if not isinstance(data, dict):
        raise SourceLookupError(f"invalid response from {url}: expected a JSON object")
    return data


class FeatureSource:
    """Base class for a timeout-bounded audio-feature lookup."""

    name = "source"

    def __init__(self, config: HarmonizerConfig = None):
        self.config = config or DEFAULT_CONFIG

    @property
    def timeout(self) -> float:
        raise NotImplementedError

    async def fetch(self, session: aiohttp.ClientSession, artist: str, track: str) -> SourceSuccess:
        """Perform the lookup. Raises SourceError subclasses for expected failures."""
        raise NotImplementedError

    async def lookup(self, session: aiohttp.ClientSession, artist: str, track: str) -> SourceResult:
        """Run ``fetch`` under this source's timeout and fold failures into a result."""
        try:
            return await asyncio.wait_for(self.fetch(session, artist, track), self.timeout)
        except asyncio.TimeoutError:
            reason = f"timeout after {self.timeout:g}s"
        except SourceError as e:
            reason = str(e)
        except aiohttp.ClientError as e:
            reason = f"network error: {e}"
        except ValueError as e:
            reason = f"invalid response: {e}"
        logger.debug("%s failed for %s - %s: %s", self.name, artist, track, reason)
        return SourceFailure(source=self.name, reason=reason)


class LastFmSource(FeatureSource):
    """Last.fm track info; contributes only a tag-based energy estimate."""

    name = "lastfm"

    @property
    def timeout(self) -> float:
        return self.config.lastfm_timeout

    async def fetch(self, session, artist, track):
        if not self.config.lastfm_api_key:
            raise SourceUnavailableError("Last.fm API key not configured")

        data = await fetch_json(
            session,
            LASTFM_URL,
            {
                "method": "track.getinfo",
                "api_key": self.config.lastfm_api_key,
                "artist": artist,
                "track": track,
                "format": "json",
            },
        )
        if data.get("error"):
            raise SourceLookupError(f"Last.fm error: {data.get('message', data['error'])}")

        info = data.get("track") or {}
        tags = (info.get("toptags") or {}).get("tag") or []
        if isinstance(tags, dict):
            # A single tag comes back as an object rather than a list
            tags = [tags]

        return SourceSuccess(
            source=self.name,
            energy=estimate_energy_from_tags(tags),
            metadata={
                "tags": [t.get("name") for t in tags if isinstance(t, dict)],
                "listeners": _to_int(info.get("listeners")),
                "playcount": _to_int(info.get("playcount")),
            },
        )


class AcousticBrainzSource(FeatureSource):
    """MusicBrainz recording search followed by AcousticBrainz low-level descriptors."""

    name = "acousticbrainz"

    @property
    def timeout(self) -> float:
        return self.config.acousticbrainz_timeout

    async def fetch(self, session, artist, track):
        try:
            recordings = await asyncio.wait_for(
                self._search_recordings(session, artist, track), self.config.musicbrainz_timeout
            )
        except asyncio.TimeoutError:
            raise SourceLookupError(
                f"MusicBrainz search timed out after {self.config.musicbrainz_timeout:g}s"
            )
        if not recordings:
            raise SourceLookupError("Track not found in MusicBrainz")

        timed_out = 0
        for recording in recordings[: self.config.acousticbrainz_candidate_limit]:
            mbid = recording.get("id")
            if not mbid:
                continue
            try:
                data = await asyncio.wait_for(
                    fetch_json(session, f"{ACOUSTICBRAINZ_URL}{mbid}/low-level"),
                    self.config.lowlevel_timeout,
                )
            except asyncio.TimeoutError:
                logger.debug("AcousticBrainz timed out for recording %s", mbid)
                timed_out += 1
                continue
            except (SourceLookupError, aiohttp.ClientError, ValueError) as e:
                logger.debug("No AcousticBrainz data for recording %s: %s", mbid, e)
                continue
            if data.get("error"):
                continue
            return self._parse_low_level(recording, data)

        if timed_out:
            raise SourceLookupError(
                f"AcousticBrainz low-level fetch timed out after "
                f"{self.config.lowlevel_timeout:g}s for {timed_out} recording(s)"
            )
        raise SourceLookupError("No audio analysis data found")

    async def _search_recordings(self, session, artist, track) -> List[Dict[str, Any]]:
        data = await fetch_json(
            session,
            MUSICBRAINZ_URL,
            {
                "query": f'artist:"{artist}" AND recording:"{track}"',
                "fmt": "json",
                "limit": self.config.musicbrainz_search_limit,
            },
        )
        return data.get("recordings") or []

    def _parse_low_level(self, recording: Dict[str, Any], data: Dict[str, Any]) -> SourceSuccess:
        rhythm = data.get("rhythm") or {}
        tonal = data.get("tonal") or {}
        lowlevel = data.get("lowlevel") or {}
        credits = recording.get("artist-credit") or [{}]

        return SourceSuccess(
            source=self.name,
            tempo=rhythm.get("bpm") or None,
            key=tonal.get("key_key"),
            scale=tonal.get("key_scale"),
            energy=(lowlevel.get("spectral_energy") or {}).get("mean") or None,
            danceability=rhythm.get("danceability") or None,
            metadata={
                "mbid": recording.get("id"),
                "title": recording.get("title"),
                "artist": credits[0].get("name"),
                "duration": ((data.get("metadata") or {}).get("audio_properties") or {}).get(
                    "length"
                ),
            },
        )


class GenreEstimateSource(FeatureSource):
    """Low-trust fallback that guesses tempo and key from electronic genre templates.

    There is no remote data behind this source. The guess is derived from a
    hash of the normalized artist and title, so the same track always gets the
    same estimate.
    """

    name = "estimate"

    @property
    def timeout(self) -> float:
        return self.config.estimate_timeout

    async def fetch(self, session, artist, track):
        return estimate_from_templates(artist, track)


def estimate_from_templates(artist: str, track: str) -> SourceSuccess:
    """Deterministic genre-template estimate for a track."""
    seed = f"{artist.strip().lower()}\x00{track.strip().lower()}".encode("utf-8")
    digest = hashlib.sha256(seed).digest()

    genre, low_bpm, span = GENRE_TEMPLATES[digest[0] % len(GENRE_TEMPLATES)]
    note = KEY_NAMES[digest[2] % 12].split("/")[0]

    return SourceSuccess(
        source=GenreEstimateSource.name,
        tempo=float(low_bpm + digest[1] % span),
        key=note,
        scale="major" if digest[3] % 2 else "minor",
        metadata={"genre": genre, "estimated": True},
    )


def default_sources(config: HarmonizerConfig = None) -> List[FeatureSource]:
    """The three standard sources in reconciliation order (tags, analysis, estimate)."""
    config = config or DEFAULT_CONFIG
    return [LastFmSource(config), AcousticBrainzSource(config), GenreEstimateSource(config)]


def _to_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
