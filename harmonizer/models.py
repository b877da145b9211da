"""Domain models for Harmonizer."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class WheelPosition:
    """A Camelot wheel position such as 8B (C major) or 8A (A minor)."""

    slot: int  # 1-12
    major: bool  # B = major, A = minor

    def __post_init__(self):
        if not 1 <= self.slot <= 12:
            raise ValueError(f"Wheel slot must be between 1 and 12, got {self.slot}")

    @property
    def letter(self) -> str:
        return "B" if self.major else "A"

    def __str__(self) -> str:
        return f"{self.slot}{self.letter}"


@dataclass
class Track:
    """A track from the listener's Spotify library."""

    id: str
    name: str
    uri: str
    artists: List[str] = field(default_factory=list)
    artist_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]]) -> Optional["Track"]:
        """Build a Track from a Spotify track object.

        Returns None for local files, podcast episodes and other items that
        cannot be added to a playlist by id.
        """
        if not data or not data.get("id") or data.get("type", "track") != "track":
            return None
        artists = data.get("artists") or []
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            uri=data.get("uri") or f"spotify:track:{data['id']}",
            artists=[a.get("name") or "" for a in artists],
            artist_ids=[a["id"] for a in artists if a.get("id")],
        )

    @property
    def primary_artist(self) -> str:
        return self.artists[0] if self.artists else ""

    @property
    def display_name(self) -> str:
        """Get display name for the track."""
        if self.artists:
            return f"{', '.join(self.artists)} - {self.name}"
        return self.name


@dataclass(frozen=True)
class SourceSuccess:
    """Partial audio features returned by one source.

    Every feature field is optional; a success may carry no features at all.
    Keys and scales are kept in the source's own notation (note names such as
    "C#" or "Db", scales "major"/"minor") until reconciliation.
    """

    source: str
    tempo: Optional[float] = None
    key: Optional[str] = None
    scale: Optional[str] = None
    energy: Optional[float] = None
    danceability: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SourceFailure:
    """A source lookup that failed (missing credential, error, timeout, no match)."""

    source: str
    reason: str


SourceResult = Union[SourceSuccess, SourceFailure]


@dataclass(frozen=True)
class ReconciledFeature:
    """Merged audio features for one analyzed track."""

    tempo: float  # BPM
    pitch_class: Optional[int]  # 0-11, None if unresolved
    major: Optional[bool]  # None if unresolved
    wheel: Optional[WheelPosition]  # None means "Unknown"
    energy: float  # 0-1
    danceability: float  # 0-1
    confidence: float  # 0-1
    sources: Tuple[str, ...] = ()
    compatible: Tuple[WheelPosition, ...] = ()
    key_name: str = "Unknown"
    track: Optional[Track] = None

    @property
    def wheel_str(self) -> str:
        """Camelot notation, or "Unknown" when the key is unresolved."""
        return str(self.wheel) if self.wheel else "Unknown"

    @property
    def tempo_str(self) -> str:
        return f"{self.tempo:g}"


@dataclass(frozen=True)
class PlaylistSpec:
    """A harmonic playlist ready to be created: one wheel position, one tempo band."""

    key: str  # group key, e.g. "8B-slow"
    wheel: WheelPosition
    band: str  # slow, medium, fast
    name: str
    description: str
    features: Tuple[ReconciledFeature, ...]

    @property
    def tempo_range(self) -> Tuple[float, float]:
        return self.features[0].tempo, self.features[-1].tempo

    @property
    def uris(self) -> List[str]:
        return [f.track.uri for f in self.features if f.track is not None]


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted once per track when its analysis is dispatched."""

    index: int  # 0-based position in the batch
    total: int
    status: str
    track: Optional[Track] = None

    @property
    def percent(self) -> float:
        return (self.index / self.total) * 100 if self.total else 100.0
