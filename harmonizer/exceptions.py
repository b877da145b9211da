"""Custom exceptions for Harmonizer."""


class SourceError(Exception):
    """Raised when a feature source cannot produce a result for a track."""

    pass


class SourceUnavailableError(SourceError):
    """Raised when a feature source is not configured (e.g. missing API key)."""

    pass


class SourceLookupError(SourceError):
    """Raised when a remote lookup fails or finds no usable match."""

    pass


class TrackAnalysisError(Exception):
    """Raised when analyzing a single track fails unexpectedly."""

    pass


class SpotifyError(Exception):
    """Raised when authorization or a Spotify Web API call fails."""

    pass


class LibraryEmptyError(SpotifyError):
    """Raised when the listener's library has no usable tracks."""

    pass
