"""Exception hierarchy for mirrorall.

Listing errors are fatal and abort a run before any mirroring starts.
Mirror errors are stored in per-repository outcomes and never raised out of
the worker pool.
"""


class MirrorAllError(Exception):
    """Base class for every error raised by mirrorall."""


class ListingError(MirrorAllError):
    """The repository listing could not be completed."""


class AuthError(ListingError):
    """The listing endpoint rejected the credentials (401/403)."""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(message or f"Authentication failed (HTTP {status_code})")


class NetworkError(ListingError):
    """The listing endpoint could not be reached."""


class ApiError(ListingError):
    """The listing endpoint answered with an unexpected response."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class MirrorFailed(MirrorAllError):
    """A git invocation for one repository failed."""

    action = "mirror"

    def __init__(self, full_name: str, returncode: int | None, stderr: str = ""):
        self.full_name = full_name
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr.splitlines()[-1] if self.stderr else "no output"
        if returncode is None:
            super().__init__(f"{self.action} of {full_name} failed: {detail}")
        else:
            super().__init__(
                f"{self.action} of {full_name} failed (exit {returncode}): {detail}"
            )


class CloneFailed(MirrorFailed):
    action = "clone"


class FetchFailed(MirrorFailed):
    action = "fetch"


class WorkerFault(MirrorAllError):
    """A worker raised an exception that the mirror operation did not capture."""

    def __init__(self, full_name: str, cause: BaseException):
        self.full_name = full_name
        self.cause = cause
        super().__init__(f"worker for {full_name} crashed: {cause!r}")
