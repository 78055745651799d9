"""Shared data models for repository discovery and mirroring."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class RepositoryDescriptor:
    """Repository metadata as returned by the listing endpoint."""
    full_name: str
    name: str
    size_kb: int = 0

    @classmethod
    def from_payload(cls, payload: dict) -> "RepositoryDescriptor":
        """Create a descriptor from one object of the listing response."""
        full_name = payload["full_name"]
        if not isinstance(full_name, str) or not full_name:
            raise ValueError(f"invalid full_name {full_name!r}")
        name = payload.get("name") or full_name.rsplit("/", 1)[-1]
        if not isinstance(name, str) or name in ("", ".", "..") or "/" in name:
            raise ValueError(f"invalid name {name!r} for {full_name}")
        try:
            size = int(payload.get("size") or 0)
        except (TypeError, ValueError):
            size = 0
        return cls(full_name=full_name, name=name, size_kb=max(size, 0))


class MirrorStrategy(str, Enum):
    """How a repository was brought up to date."""

    CLONED = "cloned"
    FETCHED = "fetched"


@dataclass(frozen=True)
class MirrorOutcome:
    """Result of mirroring a single repository.

    ``strategy`` is None only when the worker failed before deciding
    between clone and fetch.
    """
    full_name: str
    strategy: MirrorStrategy | None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunSummary:
    """Aggregate result of one mirroring run."""
    total_repositories: int
    total_size_mb: int
    elapsed_seconds: float
    failures: list[MirrorOutcome] = field(default_factory=list)
    outcomes: list[MirrorOutcome] = field(default_factory=list)

    @property
    def cloned(self) -> int:
        return sum(
            1 for o in self.outcomes if o.ok and o.strategy is MirrorStrategy.CLONED
        )

    @property
    def fetched(self) -> int:
        return sum(
            1 for o in self.outcomes if o.ok and o.strategy is MirrorStrategy.FETCHED
        )

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_dict(self) -> dict:
        """Convert the summary to a plain dictionary."""
        return {
            "total_repositories": self.total_repositories,
            "total_size_mb": self.total_size_mb,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "cloned": self.cloned,
            "fetched": self.fetched,
            "failed": self.failed,
            "failures": [
                {"full_name": o.full_name, "error": str(o.error)}
                for o in self.failures
            ],
        }
