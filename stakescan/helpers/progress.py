"""Shared progress bar utilities for Rich console displays."""

from collections.abc import Callable, Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)


def create_standard_progress(
    console: Console | None = None, *, expand: bool = False
) -> Progress:
    """Create a standard progress bar with time remaining estimation.

    Use this for chunked scans where the number of chunks is known upfront.

    Args:
        console: Rich console instance (optional)
        expand: Whether to expand the progress bar to full width

    Returns:
        Configured Progress instance with spinner, description, bar,
        M of N counter, elapsed and remaining time
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        TextColumn("•"),
        TimeRemainingColumn(),
        console=console,
        expand=expand,
    )


@contextmanager
def track_chunks(
    description: str,
    console: Console | None = None,
) -> Iterator[Callable[[int, int, int], None]]:
    """Yield a chunk callback that drives a progress bar.

    The callback has the scanner's ``on_chunk(done, total, events)`` shape.
    The bar total is set lazily on the first call since the block range is
    only known once the scan has started.

    Example:
        ```python
        with track_chunks("Scanning staking contract") as on_chunk:
            report = await scanner.scan_chunks(contract, 0, latest, on_chunk=on_chunk)
        ```
    """
    progress = create_standard_progress(console)

    with progress:
        task_id: TaskID = progress.add_task(description, total=None)

        def on_chunk(done: int, total: int, events: int) -> None:
            progress.update(
                task_id,
                completed=done,
                total=total,
                description=f"{description} [{events} events]",
            )

        yield on_chunk


__all__ = [
    "create_standard_progress",
    "track_chunks",
]
