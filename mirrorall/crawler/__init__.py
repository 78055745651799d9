"""Repository discovery and mirroring module."""

from .models import MirrorOutcome, MirrorStrategy, RepositoryDescriptor, RunSummary
from .github_client import RepositoryLister
from .repo_manager import RepoMirror

__all__ = [
    "MirrorOutcome",
    "MirrorStrategy",
    "RepositoryDescriptor",
    "RunSummary",
    "RepositoryLister",
    "RepoMirror",
]
