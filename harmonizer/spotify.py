"""Spotify Web API access for the playlist tools."""

from typing import Any, Callable, Dict, Iterator, List, Optional

import spotipy
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from .exceptions import SpotifyError
from .logging_config import get_logger
from .models import Track

logger = get_logger(__name__)

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
SCOPES = (
    "user-top-read playlist-modify-public playlist-modify-private "
    "user-read-recently-played user-library-read"
)

PAGE_SIZE = 50
ARTIST_CHUNK = 50
PLAYLIST_ADD_CHUNK = 100


def chunked(items: List[Any], size: int) -> Iterator[List[Any]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


class SpotifyLibrary:
    """Read the listener's library and write playlists through spotipy."""

    def __init__(self, client: spotipy.Spotify):
        self.client = client
        self._user_id: Optional[str] = None

    @classmethod
    def connect(
        cls,
        client_id: Optional[str],
        client_secret: Optional[str],
        redirect_uri: str = DEFAULT_REDIRECT_URI,
        scope: str = SCOPES,
    ) -> "SpotifyLibrary":
        """Authorize with the authorization-code flow.

        spotipy opens the browser and runs the local callback server on the
        redirect URI's port.

        Raises:
            SpotifyError: If credentials are missing or authorization fails.
        """
        if not client_id or not client_secret:
            raise SpotifyError(
                "SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET are required. "
                "Add them to your .env file or pass --client-id/--client-secret."
            )
        auth_manager = SpotifyOAuth(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            scope=scope,
        )
        library = cls(spotipy.Spotify(auth_manager=auth_manager))
        library.user_id  # authorize now so failures surface before any work
        return library

    def _call(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return fn(*args, **kwargs)
        except spotipy.SpotifyException as e:
            raise SpotifyError(f"Spotify API request failed: {e.msg or e}") from e
        except SpotifyOauthError as e:
            raise SpotifyError(f"Spotify authorization failed: {e}") from e

    @property
    def user_id(self) -> str:
        if self._user_id is None:
            self._user_id = self._call(self.client.current_user)["id"]
        return self._user_id

    def _paginate(self, fn: Callable[..., Dict[str, Any]], *args) -> Iterator[Dict[str, Any]]:
        offset = 0
        while True:
            page = self._call(fn, *args, limit=PAGE_SIZE, offset=offset)
            items = (page or {}).get("items") or []
            yield from items
            if len(items) < PAGE_SIZE or not page.get("next"):
                break
            offset += PAGE_SIZE

    def saved_tracks(self) -> List[Track]:
        """All playable tracks in the listener's Liked Songs."""
        tracks = []
        for item in self._paginate(self.client.current_user_saved_tracks):
            track = Track.from_api(item.get("track"))
            if track:
                tracks.append(track)
        logger.info("Fetched %d saved tracks", len(tracks))
        return tracks

    def top_tracks(self, time_range: str = "long_term", limit: int = 50) -> List[Track]:
        """The listener's most played tracks."""
        page = self._call(self.client.current_user_top_tracks, limit=limit, time_range=time_range)
        return [t for t in (Track.from_api(i) for i in page.get("items") or []) if t]

    def owned_playlists(self) -> List[Dict[str, Any]]:
        """Playlists the listener owns (followed playlists are skipped)."""
        return [
            p
            for p in self._paginate(self.client.current_user_playlists)
            if (p.get("owner") or {}).get("id") == self.user_id
        ]

    def playlist_tracks(self, playlist_id: str) -> List[Track]:
        tracks = []
        for item in self._paginate(self.client.playlist_items, playlist_id):
            track = Track.from_api(item.get("track"))
            if track:
                tracks.append(track)
        return tracks

    def artist_genres(self, artist_ids: List[str]) -> Dict[str, List[str]]:
        """Map artist id -> genre list, looked up in chunks of 50."""
        genres = {}
        for chunk in chunked(artist_ids, ARTIST_CHUNK):
            response = self._call(self.client.artists, chunk)
            for artist in response.get("artists") or []:
                if artist and artist.get("genres"):
                    genres[artist["id"]] = artist["genres"]
        return genres

    def create_playlist(self, name: str, description: str, uris: List[str]) -> Dict[str, Any]:
        """Create a private playlist and add tracks in chunks of 100."""
        playlist = self._call(
            self.client.user_playlist_create,
            self.user_id,
            name,
            public=False,
            description=description,
        )
        for chunk in chunked(uris, PLAYLIST_ADD_CHUNK):
            self._call(self.client.playlist_add_items, playlist["id"], chunk)
        logger.info("Created playlist %s with %d tracks", name, len(uris))
        return playlist


def playlist_url(playlist_id: str) -> str:
    return f"https://open.spotify.com/playlist/{playlist_id}"
