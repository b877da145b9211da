"""Rich terminal rendering for batch progress and playlist summaries."""

from typing import Iterable, Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from .models import PlaylistSpec, ProgressEvent

BAND_COLORS = {"slow": "blue", "medium": "green", "fast": "red"}


class AnalysisProgress:
    """Progress bar for a batch run, drawn on stderr.

    Usage:
        with AnalysisProgress(total=len(tracks)) as progress:
            async for event in run:
                progress.update(event)
    """

    def __init__(self, total: int, console: Optional[Console] = None):
        self.total = total
        self.console = console or Console(stderr=True)
        self.progress = Progress(
            TextColumn("[bold cyan]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("{task.fields[status]}", style="dim"),
            console=self.console,
            transient=True,
        )
        self.task_id = None

    def __enter__(self):
        self.progress.start()
        self.task_id = self.progress.add_task("Analyzing", total=self.total or 1, status="")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.progress.update(self.task_id, completed=self.total or 1)
        self.progress.stop()
        return False

    def update(self, event: ProgressEvent):
        """Advance to the dispatched track; the bar shows the dispatch percentage."""
        self.progress.update(self.task_id, completed=event.index, status=event.status[:60])


def playlist_table(specs: Iterable[PlaylistSpec]) -> Table:
    """Summary table of harmonic playlists, colored by tempo band."""
    table = Table(title="Harmonic playlists", show_lines=False)
    table.add_column("Key", style="bold")
    table.add_column("Band")
    table.add_column("BPM", justify="right")
    table.add_column("Tracks", justify="right")
    table.add_column("Mixes with", style="dim")

    for spec in specs:
        low, high = spec.tempo_range
        color = BAND_COLORS.get(spec.band, "white")
        compatible = spec.features[0].compatible[1:]
        table.add_row(
            f"{spec.wheel} ({spec.features[0].key_name})",
            f"[{color}]{spec.band}[/{color}]",
            f"{low:g}-{high:g}",
            str(len(spec.features)),
            ", ".join(str(p) for p in compatible),
        )
    return table
