"""Progress subscriber: drains the progress channel into a rich progress bar."""

from __future__ import annotations

import logging
from threading import Thread

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from utils.fan_out import ProgressChannel

LOGGER = logging.getLogger("bank_informer.progress")


class ProgressSubscriber(Thread):
    """Sole consumer of a ``ProgressChannel``.

    Runs until the channel is closed. Callers close the channel after the
    last round and ``join()`` before printing anything else, so the bar never
    interleaves with report output.
    """

    def __init__(
        self,
        channel: ProgressChannel,
        total: int,
        console: Console | None = None,
        *,
        enabled: bool = True,
    ) -> None:
        super().__init__(name="bank-informer-progress", daemon=True)
        self.channel = channel
        self.total = total
        self.console = console or Console(stderr=True)
        self.enabled = enabled
        self.received: list[str] = []

    def run(self) -> None:
        if not self.enabled:
            for token in self.channel:
                self.received.append(token)
            return

        progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(bar_width=60),
            TaskProgressColumn(),
            console=self.console,
            transient=False,
        )
        with progress:
            task_id = progress.add_task("📡 Fetching data", total=self.total)
            for token in self.channel:
                self.received.append(token)
                progress.update(
                    task_id,
                    advance=1,
                    description=f"📡 Fetching data for {token:>5}",
                )
            if len(self.received) >= self.total:
                progress.update(
                    task_id,
                    completed=self.total,
                    description="🚀 Successfully fetched all data!",
                )
        LOGGER.debug("Progress subscriber received %d tokens", len(self.received))
