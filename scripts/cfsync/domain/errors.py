"""
Domain Layer — Errors
---------------------
Every failure the sync can report. Infrastructure raises these; the
application layer decides which ones are recoverable.

The "project exists but is not connected to GitHub" gate is NOT an
exception: it needs an operator's decision, so it terminates the process
instead (see ProjectReconciler).
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for every error raised by cfsync."""
    pass


class ConfigError(SyncError):
    """cloudflare.json is missing, unreadable, or malformed."""
    pass


class CloudflareAPIError(SyncError):
    """
    The Cloudflare API rejected a call.

    `errors` keeps the structured error list from the response envelope
    so callers can report it unchanged.
    """

    def __init__(self, status_code: int, message: str, errors: list | None = None) -> None:
        self.status_code = status_code
        self.errors      = errors or []
        super().__init__(message)


class ProjectNotFoundError(CloudflareAPIError):
    """The requested Pages project does not exist (HTTP 404)."""
    pass


class BuildFailedError(SyncError):
    """A local build command exited non-zero."""

    def __init__(self, command: str, returncode: int) -> None:
        self.command    = command
        self.returncode = returncode
        super().__init__(f"Build command {command!r} exited with status {returncode}")
