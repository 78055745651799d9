"""Run coordinator for mirrorall.

Sequences one mirroring run: list repositories, estimate their size, hand one
task per repository to the scheduler, then report the outcome of every task.
"""

import time
from typing import Callable

from rich.console import Console
from rich.markup import escape

from ..crawler.github_client import RepositoryLister
from ..crawler.models import (
    MirrorOutcome,
    MirrorStrategy,
    RepositoryDescriptor,
    RunSummary,
)
from ..crawler.repo_manager import RepoMirror
from .scheduler import MirrorScheduler, MirrorTask


def estimate_size_mb(repos: list[RepositoryDescriptor]) -> int:
    """Total repository size in megabytes, rounded to the nearest integer."""
    return round(sum(r.size_kb for r in repos) / 1024)


class RunCoordinator:
    """Ties listing, scheduling and reporting together.

    Usage::

        coordinator = RunCoordinator(lister, RepoMirror(out_dir), MirrorScheduler(4))
        summary = coordinator.run()

    Listing errors propagate out of :meth:`run` before any repository is
    touched; per-repository failures end up in the summary.
    """

    def __init__(
        self,
        lister: RepositoryLister,
        mirror: RepoMirror,
        scheduler: MirrorScheduler,
        console: Console | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.lister = lister
        self.mirror = mirror
        self.scheduler = scheduler
        self.console = console or Console()
        self.clock = clock

    def list_only(self) -> list[RepositoryDescriptor]:
        """Discover repositories and print them without mirroring."""
        repos = self.lister.list_all()
        self.console.print(
            f"[bold]Found {len(repos)} repositories "
            f"(~{estimate_size_mb(repos)} MB)[/bold]"
        )
        for repo in repos:
            self.console.print(f"  {repo.full_name} ({repo.size_kb} KB)")
        return repos

    def run(self) -> RunSummary:
        """Execute a full mirroring run and return its summary."""
        started = self.clock()

        repos = self.lister.list_all()
        size_mb = estimate_size_mb(repos)
        self.console.print(
            f"[bold]Found {len(repos)} repositories, ~{size_mb} MB to mirror "
            f"into {self.mirror.base_path}[/bold]"
        )

        tasks = [self._task_for(repo) for repo in repos]
        outcomes = self.scheduler.run(
            tasks,
            on_start=self.scheduler.on_start or self._report_start,
            on_complete=self.scheduler.on_complete or self._report_complete,
        )

        summary = RunSummary(
            total_repositories=len(repos),
            total_size_mb=size_mb,
            elapsed_seconds=self.clock() - started,
            failures=[o for o in outcomes if not o.ok],
            outcomes=outcomes,
        )
        self.report(summary)
        return summary

    def report(self, summary: RunSummary) -> None:
        """Print the end-of-run summary; elapsed time is always the last line."""
        self.console.print(
            f"\n[bold]Mirrored {summary.total_repositories - summary.failed}/"
            f"{summary.total_repositories} repositories[/bold] "
            f"({summary.cloned} cloned, {summary.fetched} fetched, "
            f"{summary.failed} failed)"
        )
        if summary.failures:
            self.console.print("[red]Failed repositories:[/red]")
            for outcome in summary.failures:
                self.console.print(
                    f"  [red]✗[/red] {outcome.full_name}: {escape(str(outcome.error))}"
                )
        self.console.print(f"Finished in {summary.elapsed_seconds:.1f} seconds")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _task_for(self, repo: RepositoryDescriptor) -> MirrorTask:
        target = self.mirror.target_path(repo)
        return MirrorTask(
            full_name=repo.full_name,
            action=lambda: self.mirror.mirror(repo.full_name, target),
        )

    def _report_start(self, task: MirrorTask) -> None:
        self.console.print(f"  [blue]→[/blue] {task.full_name}")

    def _report_complete(self, outcome: MirrorOutcome) -> None:
        if outcome.ok:
            verb = "cloned" if outcome.strategy is MirrorStrategy.CLONED else "fetched"
            self.console.print(f"  [green]✓[/green] {outcome.full_name} ({verb})")
        else:
            self.console.print(
                f"  [red]✗[/red] {outcome.full_name}: {escape(str(outcome.error))}"
            )
