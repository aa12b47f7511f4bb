"""Adapters for the external collaborators."""

from certtrack.services.checkout import CheckoutClient
from certtrack.services.identity import GoTrueIdentityClient, IdentityProvider
from certtrack.services.remote import Order, RemoteStore, SqlRemoteStore, Where
from certtrack.services.storage import BlobStorage, S3BlobStorage

__all__ = [
    "BlobStorage",
    "CheckoutClient",
    "GoTrueIdentityClient",
    "IdentityProvider",
    "Order",
    "RemoteStore",
    "S3BlobStorage",
    "SqlRemoteStore",
    "Where",
]
