"""Organize a library into playlists by artist genre."""

from typing import Dict, Iterable, List, Tuple

from .models import Track

UNKNOWN_GENRE = "unknown"

# Checked in order; the first bucket whose keyword appears in the genre wins
GENRE_BUCKETS = (
    (("rock", "metal"), "rock-metal"),
    (("pop",), "pop"),
    (("hip hop", "rap"), "hip-hop-rap"),
    (("electronic", "edm", "house", "techno"), "electronic"),
    (("jazz",), "jazz"),
    (("classical",), "classical"),
    (("country",), "country"),
    (("folk",), "folk"),
    (("blues",), "blues"),
    (("reggae",), "reggae"),
    (("latin", "latino"), "latin"),
    (("indie",), "indie"),
    (("alternative",), "alternative"),
    (("funk", "soul", "r&b"), "funk-soul-rnb"),
)


def normalize_genre(genre: str) -> str:
    """Fold a Spotify micro-genre into a broad bucket."""
    normalized = genre.lower()
    for keywords, bucket in GENRE_BUCKETS:
        if any(keyword in normalized for keyword in keywords):
            return bucket
    return normalized


def unique_tracks(tracks: Iterable[Track]) -> List[Track]:
    """Drop repeated track ids, keeping the first occurrence."""
    seen = set()
    unique = []
    for track in tracks:
        if track.id in seen:
            continue
        seen.add(track.id)
        unique.append(track)
    return unique


def categorize_by_genre(
    tracks: Iterable[Track], artist_genres: Dict[str, List[str]]
) -> Dict[str, List[Track]]:
    """Assign each unique track to every normalized genre of any of its artists."""
    genre_map: Dict[str, List[Track]] = {}
    for track in unique_tracks(tracks):
        genres = set()
        for artist_id in track.artist_ids:
            genres.update(normalize_genre(g) for g in artist_genres.get(artist_id, []))
        if not genres:
            genres.add(UNKNOWN_GENRE)
        for genre in sorted(genres):
            genre_map.setdefault(genre, []).append(track)
    return genre_map


def select_genres(
    genre_map: Dict[str, List[Track]], min_tracks: int = 3
) -> List[Tuple[str, List[Track]]]:
    """Genres with at least ``min_tracks`` tracks, largest first."""
    kept = [(genre, tracks) for genre, tracks in genre_map.items() if len(tracks) >= min_tracks]
    return sorted(kept, key=lambda item: len(item[1]), reverse=True)


def playlist_title(genre: str) -> str:
    """Display title for a genre bucket, e.g. "rock-metal" -> "Rock & metal"."""
    return genre[:1].upper() + genre[1:].replace("-", " & ")
