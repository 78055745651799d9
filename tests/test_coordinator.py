"""Tests for the run coordinator."""

import io
from itertools import count

import pytest
from rich.console import Console

from mirrorall.crawler.models import RepositoryDescriptor
from mirrorall.crawler.repo_manager import RepoMirror, is_bare_repository
from mirrorall.errors import AuthError, CloneFailed
from mirrorall.pipeline.coordinator import RunCoordinator, estimate_size_mb
from mirrorall.pipeline.scheduler import MirrorScheduler


class StubLister:
    def __init__(self, repos=None, error=None):
        self.repos = repos or []
        self.error = error
        self.calls = 0

    def list_all(self):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.repos)


def _console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None)


def _coordinator(lister, base_path, max_concurrency=2, clock=None):
    kwargs = {"clock": clock} if clock else {}
    return RunCoordinator(
        lister=lister,
        mirror=RepoMirror(base_path),
        scheduler=MirrorScheduler(max_concurrency),
        console=_console(),
        **kwargs,
    )


def test_estimate_size_rounds_to_nearest_megabyte(sample_repos):
    assert estimate_size_mb(sample_repos) == 1
    assert estimate_size_mb([]) == 0
    big = [RepositoryDescriptor("acme/big", "big", 5 * 1024 + 300)]
    assert estimate_size_mb(big) == 5


def test_run_mirrors_every_repository(tmp_path, fake_git, sample_repos):
    coordinator = _coordinator(StubLister(sample_repos), tmp_path)

    summary = coordinator.run()

    assert summary.total_repositories == 3
    assert summary.total_size_mb == 1
    assert summary.failures == []
    assert summary.cloned == 3
    for name in ("alpha", "beta", "gamma"):
        assert is_bare_repository(tmp_path / f"{name}.git")


def test_second_run_fetches_existing_mirrors(tmp_path, fake_git, sample_repos):
    lister = StubLister(sample_repos)

    _coordinator(lister, tmp_path).run()
    summary = _coordinator(lister, tmp_path).run()

    assert summary.fetched == 3
    assert summary.cloned == 0


def test_failures_are_reported_not_raised(tmp_path, fake_git, sample_repos):
    fake_git.fail["clone"] = 128
    coordinator = _coordinator(StubLister(sample_repos), tmp_path)

    summary = coordinator.run()

    assert summary.failed == 3
    assert {o.full_name for o in summary.failures} == {
        "acme/alpha",
        "acme/beta",
        "acme/gamma",
    }
    assert all(isinstance(o.error, CloneFailed) for o in summary.failures)
    output = coordinator.console.file.getvalue()
    assert "Failed repositories" in output
    assert output.rstrip().splitlines()[-1].startswith("Finished in")


def test_auth_error_aborts_before_mirroring(tmp_path, fake_git):
    coordinator = _coordinator(StubLister(error=AuthError(401)), tmp_path)

    with pytest.raises(AuthError):
        coordinator.run()

    assert fake_git.calls == []
    assert "Finished in" not in coordinator.console.file.getvalue()


def test_elapsed_time_uses_clock(tmp_path, fake_git, sample_repos):
    ticks = count(start=100.0, step=2.5)
    coordinator = _coordinator(
        StubLister(sample_repos), tmp_path, clock=lambda: next(ticks)
    )

    summary = coordinator.run()

    assert summary.elapsed_seconds == 2.5


def test_list_only_does_not_mirror(tmp_path, fake_git, sample_repos):
    coordinator = _coordinator(StubLister(sample_repos), tmp_path)

    repos = coordinator.list_only()

    assert repos == sample_repos
    assert fake_git.calls == []
    assert "acme/beta" in coordinator.console.file.getvalue()


def test_summary_to_dict(tmp_path, fake_git, sample_repos):
    summary = _coordinator(StubLister(sample_repos), tmp_path).run()

    data = summary.to_dict()
    assert data["total_repositories"] == 3
    assert data["cloned"] == 3
    assert data["failures"] == []


def test_shared_scheduler_reports_to_each_coordinator(tmp_path, fake_git):
    scheduler = MirrorScheduler(2)
    first = RunCoordinator(
        StubLister([RepositoryDescriptor("acme/one", "one")]),
        RepoMirror(tmp_path / "a"),
        scheduler,
        console=_console(),
    )
    second = RunCoordinator(
        StubLister([RepositoryDescriptor("acme/two", "two")]),
        RepoMirror(tmp_path / "b"),
        scheduler,
        console=_console(),
    )

    first.run()
    second.run()

    assert scheduler.on_start is None and scheduler.on_complete is None
    assert "acme/one (cloned)" in first.console.file.getvalue()
    assert "acme/two" not in first.console.file.getvalue()
    assert "acme/two" in second.console.file.getvalue()
