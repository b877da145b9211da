"""Command-line interface for the Harmonizer playlist tools."""

import asyncio
import dataclasses
import json
import sys

import click
from dotenv import load_dotenv
from rich.console import Console

from .batch import BatchRun, FeatureAnalyzer, source_statistics
from .config import DEFAULT_CONFIG
from .exceptions import LibraryEmptyError, SpotifyError
from .genres import categorize_by_genre, playlist_title, select_genres
from .camelot import compatibility_set, key_for_position, key_name, parse_wheel
from .grouper import BANDS, group, key_distribution, mix_targets
from .logging_config import setup_logging
from .reporting import AnalysisProgress, playlist_table
from .spotify import DEFAULT_REDIRECT_URI, SpotifyLibrary, playlist_url


def format_track_line(index, track):
    """Format a numbered track listing line, e.g. "1. Song by Artist"."""
    return f"{index}. {track.name} by {', '.join(track.artists) or 'Unknown'}"


def format_counts(title, counts, limit=None):
    """Format a "<label>: <n> tracks" block under a heading.

    Args:
        title: Heading line.
        counts: Iterable of (label, count) pairs, already ordered.
        limit: Show at most this many rows.

    Returns:
        str: Formatted block.
    """
    lines = [title]
    for i, (label, count) in enumerate(counts):
        if limit is not None and i >= limit:
            break
        lines.append(f"   {label}: {count} tracks")
    return "\n".join(lines)


def _feature_dict(feature):
    """Convert a reconciled feature to a JSON-serializable dict."""
    track = feature.track
    return {
        "name": track.name if track else None,
        "artists": track.artists if track else [],
        "uri": track.uri if track else None,
        "bpm": feature.tempo,
        "key": feature.key_name,
        "camelot": feature.wheel_str,
        "energy": feature.energy,
        "danceability": feature.danceability,
        "confidence": feature.confidence,
        "sources": list(feature.sources),
    }


def _playlist_dict(spec, playlists, created=None):
    """Convert a playlist spec (and its created playlist, if any) to a dict."""
    low, high = spec.tempo_range
    return {
        "key": spec.key,
        "name": spec.name,
        "description": spec.description,
        "camelot": str(spec.wheel),
        "band": spec.band,
        "bpm_range": [low, high],
        "harmonic_keys": [str(p) for p in spec.features[0].compatible],
        "mixes_into": mix_targets(spec, playlists),
        "tracks": [_feature_dict(f) for f in spec.features],
        "id": created["id"] if created else None,
        "url": playlist_url(created["id"]) if created else None,
    }


def _connect(ctx):
    """Return the Spotify library for this invocation, authorizing on first use."""
    obj = ctx.find_object(dict)
    if obj.get("library") is None:
        obj["library"] = SpotifyLibrary.connect(
            obj.get("client_id"), obj.get("client_secret"), obj.get("redirect_uri")
        )
        click.echo("Authorization successful!", err=True)
    return obj["library"]


def _fail(message):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


async def _run_batch(analyzer, tracks, show_progress):
    """Drive a batch run to completion, optionally with a progress bar."""
    run: BatchRun = analyzer.start_batch(tracks)
    if show_progress:
        with AnalysisProgress(total=len(tracks)) as progress:
            async for event in run:
                progress.update(event)
    else:
        async for _ in run:
            pass
    return run


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--client-id", envvar="SPOTIFY_CLIENT_ID", help="Spotify application client ID")
@click.option(
    "--client-secret", envvar="SPOTIFY_CLIENT_SECRET", help="Spotify application client secret"
)
@click.option(
    "--redirect-uri",
    envvar="SPOTIFY_REDIRECT_URI",
    default=DEFAULT_REDIRECT_URI,
    show_default=True,
    help="OAuth callback URI registered for the application",
)
@click.pass_context
def cli(ctx, verbose, client_id, client_secret, redirect_uri):
    """Harmonizer - playlists from your Spotify library."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["client_id"] = client_id
    ctx.obj["client_secret"] = client_secret
    ctx.obj["redirect_uri"] = redirect_uri


@cli.command()
@click.option("--limit", type=click.IntRange(min=1), help="Analyze only the first N saved tracks")
@click.option("--dry-run", is_flag=True, help="Show the playlists without creating them")
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json"]))
@click.option("--lastfm-api-key", envvar="LASTFM_API_KEY", help="Last.fm API key (optional)")
@click.pass_context
def harmonize(ctx, limit, dry_run, output_format, lastfm_api_key):
    """Create DJ-ready playlists grouped by Camelot key and tempo.

    Resolves tempo and key for every saved track from several metadata
    sources, groups tracks sharing a Camelot wheel position, splits each group
    into slow/medium/fast tempo bands and creates one private playlist per band.

    Example:
        harmonizer harmonize --limit 200 --dry-run
    """
    text = output_format == "text"
    config = dataclasses.replace(DEFAULT_CONFIG, lastfm_api_key=lastfm_api_key)

    try:
        library = _connect(ctx)
        tracks = library.saved_tracks()
        if not tracks:
            raise LibraryEmptyError("No saved tracks found in your library.")
        if limit:
            tracks = tracks[:limit]

        analyzer = FeatureAnalyzer(config)
        if text:
            click.echo(f"Analyzing audio features for {len(tracks)} tracks...")
        run = asyncio.run(_run_batch(analyzer, tracks, show_progress=text))
        features = run.features

        playlists = group(features, config)

        created = {}
        if not dry_run:
            for key, spec in playlists.items():
                if text:
                    click.echo(f"Creating: {spec.name}")
                created[key] = library.create_playlist(spec.name, spec.description, spec.uris)
    except SpotifyError as e:
        _fail(e)

    if output_format == "json":
        output = {
            "total": len(tracks),
            "analyzed": len(features),
            "skipped": len(run.skipped),
            "sources": source_statistics(features),
            "keys": dict(key_distribution(features)),
            "playlists": [_playlist_dict(s, playlists, created.get(k)) for k, s in playlists.items()],
        }
        click.echo(json.dumps(output, indent=2))
        return

    click.echo(f"Successfully analyzed {len(features)}/{len(tracks)} tracks")
    if run.skipped:
        click.echo(f"Skipped {len(run.skipped)} tracks after analysis errors")
    click.echo()
    click.echo(format_counts("Data sources used:", source_statistics(features).items()))
    click.echo()
    click.echo(format_counts("Top Camelot keys:", key_distribution(features), limit=10))
    click.echo()

    if not playlists:
        click.echo("No key groups with enough tracks for a playlist")
        return

    click.echo(f"Found {len(playlists)} mix-ready playlists:")
    Console().print(playlist_table(playlists.values()))

    if dry_run:
        click.echo("Dry run: no playlists were created")
        return

    click.echo(f"\nSuccessfully created {len(created)} DJ playlists!")
    for band in BANDS:
        in_band = [(k, s) for k, s in playlists.items() if s.band == band]
        if not in_band:
            continue
        click.echo(f"\n   {band.upper()} BPM:")
        for key, spec in in_band:
            click.echo(f"   {spec.name} ({len(spec.features)} tracks)")
            click.echo(f"      {playlist_url(created[key]['id'])}")


@cli.command("top-tracks")
@click.option(
    "--time-range",
    default="long_term",
    type=click.Choice(["short_term", "medium_term", "long_term"]),
    show_default=True,
)
@click.option("--limit", default=50, type=click.IntRange(1, 50), show_default=True)
@click.option("--dry-run", is_flag=True, help="List the tracks without creating a playlist")
@click.pass_context
def top_tracks(ctx, time_range, limit, dry_run):
    """Create a playlist of your most played tracks.

    Example:
        harmonizer top-tracks --time-range medium_term
    """
    try:
        library = _connect(ctx)
        tracks = library.top_tracks(time_range=time_range, limit=limit)
        if not tracks:
            raise LibraryEmptyError("Could not fetch top tracks. Please try again.")

        click.echo(f"Found {len(tracks)} top tracks:")
        for i, track in enumerate(tracks, 1):
            click.echo(format_track_line(i, track))

        if dry_run:
            return

        playlist = library.create_playlist(
            f"My Top {len(tracks)} Tracks",
            f"My top {len(tracks)} most played tracks",
            [t.uri for t in tracks],
        )
    except SpotifyError as e:
        _fail(e)

    click.echo("\nPlaylist created successfully!")
    click.echo(f"Name: {playlist['name']}")
    click.echo(f"URL: {playlist_url(playlist['id'])}")


@cli.command()
@click.option("--min-tracks", default=3, type=click.IntRange(min=1), show_default=True)
@click.option("--dry-run", is_flag=True, help="Show the genres without creating playlists")
@click.pass_context
def genres(ctx, min_tracks, dry_run):
    """Organize your library and playlists into one playlist per genre.

    Example:
        harmonizer genres --min-tracks 10
    """
    try:
        library = _connect(ctx)
        tracks = library.saved_tracks()
        for playlist in library.owned_playlists():
            tracks.extend(library.playlist_tracks(playlist["id"]))
        if not tracks:
            raise LibraryEmptyError("No tracks found in your library or playlists.")

        artist_ids = list(dict.fromkeys(a for t in tracks for a in t.artist_ids))
        click.echo(f"Fetching genre information for {len(artist_ids)} unique artists...")
        genre_map = categorize_by_genre(tracks, library.artist_genres(artist_ids))
        selected = select_genres(genre_map, min_tracks)

        click.echo(
            format_counts(
                f"Found {len(selected)} genres with at least {min_tracks} tracks:",
                [(genre, len(members)) for genre, members in selected],
            )
        )
        if dry_run:
            return

        created = []
        for genre, members in selected:
            title = playlist_title(genre)
            playlist = library.create_playlist(title, title, [t.uri for t in members])
            created.append((playlist, len(members)))
    except SpotifyError as e:
        _fail(e)

    click.echo(f"\nSuccessfully created {len(created)} genre playlists!")
    for playlist, count in created:
        click.echo(f"   {playlist['name']} ({count} tracks)")
        click.echo(f"      {playlist_url(playlist['id'])}")


@cli.command()
@click.argument("position")
def wheel(position):
    """Show the Camelot keys that mix harmonically with POSITION.

    Example:
        harmonizer wheel 8B
    """
    parsed = parse_wheel(position)
    if parsed is None:
        _fail(f"Not a Camelot key: {position!r} (expected e.g. 8B or 11A)")

    click.echo(f"{parsed} ({key_name(*key_for_position(parsed))}) mixes with:")
    for target in compatibility_set(parsed)[1:]:
        click.echo(f"   {target} ({key_name(*key_for_position(target))})")


def main():
    """Console entry point: load .env before click resolves envvar options."""
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
