"""Exception hierarchy shared across the Yappli sync pipeline."""

from __future__ import annotations


class YappliSyncError(Exception):
    """Base class for failures that are isolated to a single entry or step."""


class FetchError(YappliSyncError):
    """Raised when a feed document cannot be retrieved or does not match the expected shape."""


class ResolutionError(YappliSyncError):
    """Raised when an entry lacks the link, title, or thumbnail needed to continue."""


class UntrustedSourceError(YappliSyncError):
    """Raised when a manifest URL points outside the allow-listed CDN."""


class DownloadError(YappliSyncError):
    """Raised when streaming a manifest to disk fails."""


class TranscodeError(YappliSyncError):
    """Raised when the external transcoder exits with a failure."""


class CredentialError(YappliSyncError):
    """Raised when OAuth credentials cannot be loaded or exchanged."""


class LedgerError(YappliSyncError):
    """Raised when the upload ledger file cannot be read or written."""
