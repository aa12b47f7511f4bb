"""Error taxonomy shared by the stores and the collaborator adapters."""

from certtrack.config import sanitize_error


class CertTrackError(Exception):
    """Base class for errors whose message is safe to show to the user."""


class AuthError(CertTrackError):
    """No authenticated session where one is required, or the identity provider refused."""


class RemoteError(CertTrackError):
    """Query or mutation failure from the relational store, including timeouts and network failures."""


class ValidationError(CertTrackError):
    """Input rejected at the call boundary, before any remote call."""


class StorageError(RemoteError):
    """Blob upload, download, signing or removal failure."""


def describe_error(error: BaseException, fallback: str) -> str:
    """Human-readable message for a store's error field."""
    if isinstance(error, CertTrackError):
        return str(error) or fallback
    return sanitize_error(error, generic_message=fallback)  # type: ignore[arg-type]
