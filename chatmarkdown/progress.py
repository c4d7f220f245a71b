"""console feedback while a batch of messages is rendered."""

from typing import Any, Optional, Union

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    TaskID,
    TextColumn,
)


class ProgressHandler:  # pylint: disable=too-few-public-methods
    """
    reports rendering progress on stderr.

    With show_progress, a spinner covers file discovery and a bar counts
    rendered messages. Otherwise each written file is announced, unless quiet.
    Errors are printed in every mode.
    """

    def __init__(self, quiet: bool = False, show_progress: bool = False) -> None:
        self.quiet = quiet
        self.show_progress = show_progress
        self._console = Console(stderr=True)
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None

    def __enter__(self) -> "ProgressHandler":
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self._stop()

    def _stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None

    def _start(
        self, *columns: Union[str, ProgressColumn], description: str, **task: Any
    ) -> None:
        self._stop()
        self._progress = Progress(*columns, console=self._console, transient=True)
        self._progress.start()
        self._task_id = self._progress.add_task(description, **task)

    def start_discovery(self) -> None:
        """shows a spinner while message files are collected."""
        if not self.show_progress:
            return

        self._start(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            description="Discovering messages...",
            total=None,
        )

    def set_total(self, total: int) -> None:
        """replaces the spinner with a bar over the message count."""
        if not self.show_progress:
            return

        self._start(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("- {task.fields[name]}"),
            description="Rendering",
            total=total,
            name="",
        )

    def update(self, name: str) -> None:
        """counts one rendered message and shows its name."""
        if not self.show_progress or self._progress is None or self._task_id is None:
            return

        self._progress.update(self._task_id, advance=1, name=name)

    def log_error(self, message: str) -> None:
        """reports a failed file, even in quiet mode."""
        self._console.print(f"[red]ERROR:[/red] {message}")

    def log_info(self, message: str) -> None:
        """announces a written file when neither quiet nor showing a bar."""
        if self.quiet or self.show_progress:
            return

        self._console.print(message)

    def finish(self, rendered: int, failed: int) -> None:
        """clears the bar and prints the rendered/failed counts unless quiet."""
        self._stop()

        if self.quiet:
            return

        self._console.print(
            f"Processed {rendered + failed} message(s): "
            f"{rendered} rendered, {failed} failed"
        )
