"""
Manages a Rich progress display for the parts of a download session.
"""

import asyncio

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)


class ProgressManager:
    """Shows one progress bar per part being transferred."""

    def __init__(self, console: Console, dry_run: bool = False):
        self.console = console
        self.dry_run = dry_run

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            "•",
            TimeRemainingColumn(),
            console=console,
            transient=False,
        )
        self._started = False
        self._descriptions: dict[TaskID, str] = {}

    def add_part_task(self, description: str, total_size: int | None) -> TaskID | None:
        if self.dry_run:
            return None
        if len(description) > 50:
            description = "…" + description[-49:]
        task_id = self.progress.add_task(
            description, total=total_size or None, start=True
        )
        self._descriptions[task_id] = description
        return task_id

    def update_task_progress(self, task_id: TaskID | None, completed: int):
        if task_id is not None and not self.dry_run:
            self.progress.update(task_id, completed=completed)

    def finish_task(self, task_id: TaskID | None, success: bool = True):
        if task_id is None or self.dry_run:
            return
        if not success:
            description = self._descriptions.get(task_id, "")
            self.progress.update(task_id, description=f"[red]✗[/red] {description}")
        self.progress.stop_task(task_id)

    async def __aenter__(self):
        if not self.dry_run:
            self.progress.start()
            self._started = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._started:
            await asyncio.sleep(0.1)
            self.progress.stop()
            self._started = False
