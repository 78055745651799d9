"""Bare mirror cloning and fetching."""

import logging
import shutil
import subprocess
from pathlib import Path

from ..errors import CloneFailed, FetchFailed, MirrorFailed
from .models import MirrorOutcome, MirrorStrategy, RepositoryDescriptor

logger = logging.getLogger(__name__)

DEFAULT_CLONE_URL_TEMPLATE = "git@{host}:{full_name}.git"


def is_bare_repository(path: Path) -> bool:
    """Check whether *path* looks like a usable bare git store."""
    return path.is_dir() and (path / "HEAD").is_file() and (path / "objects").is_dir()


def is_partial_mirror(path: Path) -> bool:
    """Check whether *path* is an empty directory or the remains of a bare clone.

    Working-tree checkouts (anything holding `.git`) never qualify.
    """
    if not path.is_dir() or (path / ".git").exists():
        return False
    markers = ("HEAD", "objects", "refs", "config", "packed-refs")
    return not any(path.iterdir()) or any((path / m).exists() for m in markers)


class RepoMirror:
    """Keeps local bare mirrors of remote repositories up to date."""

    def __init__(
        self,
        base_path: Path | str,
        clone_url_template: str = DEFAULT_CLONE_URL_TEMPLATE,
        host: str = "github.com",
        timeout: float | None = None,
    ):
        self.base_path = Path(base_path)
        self.clone_url_template = clone_url_template
        self.host = host
        self.timeout = timeout

    def target_path(self, repo: RepositoryDescriptor) -> Path:
        """Get local mirror path for a repository."""
        return self.base_path / f"{repo.name}.git"

    def clone_url(self, full_name: str) -> str:
        return self.clone_url_template.format(host=self.host, full_name=full_name)

    def mirror_repo(self, repo: RepositoryDescriptor) -> MirrorOutcome:
        """Mirror a single repository into its target path."""
        return self.mirror(repo.full_name, self.target_path(repo))

    def mirror(self, full_name: str, target_path: Path) -> MirrorOutcome:
        """Clone *full_name* into *target_path*, or fetch if a mirror exists.

        Failures of the git process are returned in the outcome, never raised.
        """
        target_path = Path(target_path)

        if is_bare_repository(target_path):
            strategy = MirrorStrategy.FETCHED
            error = self._fetch(full_name, target_path)
        else:
            strategy = MirrorStrategy.CLONED
            error = self._prepare_clone(full_name, target_path)
            if error is None:
                error = self._clone(full_name, target_path)

        return MirrorOutcome(full_name=full_name, strategy=strategy, error=error)

    def _prepare_clone(self, full_name: str, target_path: Path) -> CloneFailed | None:
        """Make room for a fresh clone at *target_path*."""
        try:
            if target_path.exists():
                if not is_partial_mirror(target_path):
                    return CloneFailed(
                        full_name, None, f"{target_path} exists and is not a bare mirror"
                    )
                logger.warning("%s is an incomplete mirror, re-cloning", target_path)
                shutil.rmtree(target_path)
            target_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return CloneFailed(full_name, None, str(e))
        return None

    def _clone(self, full_name: str, target_path: Path) -> CloneFailed | None:
        cmd = ["git", "clone", "--mirror", self.clone_url(full_name), str(target_path)]
        return self._git(cmd, full_name, CloneFailed)

    def _fetch(self, full_name: str, target_path: Path) -> FetchFailed | None:
        # Tags are fetched separately; a plain fetch does not always bring them.
        error = self._git(
            ["git", "-C", str(target_path), "fetch", "--all"], full_name, FetchFailed
        )
        if error is not None:
            return error
        return self._git(
            ["git", "-C", str(target_path), "fetch", "--all", "--tags"],
            full_name,
            FetchFailed,
        )

    def _git(
        self,
        cmd: list[str],
        full_name: str,
        failure: type[MirrorFailed],
    ) -> MirrorFailed | None:
        """Run one git command, returning the failure instead of raising."""
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return failure(full_name, None, f"timed out after {self.timeout}s")
        except OSError as e:
            return failure(full_name, None, str(e))

        if result.returncode != 0:
            return failure(full_name, result.returncode, result.stderr or "")
        return None
