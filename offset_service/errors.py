"""
Exception types shared by the offset service.

Single operations (create a project, analyze a project, fetch a report) raise
these. Aggregating operations (batch sync, consistency checks) catch them and
report the outcome in a result object instead.
"""


class ProjectValidationError(ValueError):
    """Input rejected before any network call (bad UUID, bad coordinates)."""


class PrimaryStoreError(RuntimeError):
    """The primary (Supabase) store refused or failed a request."""


class RemoteServiceError(RuntimeError):
    """Error response from the analysis backend."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransientRemoteError(RemoteServiceError):
    """5xx, 429 or client-side timeout. Safe to retry."""


class PermanentRemoteError(RemoteServiceError):
    """4xx other than 429. Retrying will not help."""


class ConflictError(PermanentRemoteError):
    """409: the backend already holds a record with this id."""


class ProjectSyncError(RuntimeError):
    """A project could not be mirrored to the analysis backend."""


class AnalysisError(RuntimeError):
    """Neither project analysis nor the satellite fallback produced a result."""
