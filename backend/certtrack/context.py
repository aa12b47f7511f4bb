"""
Store wiring.

Stores are plain instances created once per application and passed to
whatever renders them. There are no module-level singletons; tests build a
context from fakes with `build_context`.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from certtrack.config import Settings, get_settings
from certtrack.db.session import get_session_factory
from certtrack.logging_config import configure_logging
from certtrack.services.checkout import CheckoutClient
from certtrack.services.identity import GoTrueIdentityClient, IdentityProvider
from certtrack.services.remote import RemoteStore, SqlRemoteStore
from certtrack.services.storage import BlobStorage, S3BlobStorage
from certtrack.stores.activity import ActivityStore
from certtrack.stores.auth import AuthStore
from certtrack.stores.deadlines import DeadlineStore
from certtrack.stores.documents import DocumentStore
from certtrack.stores.local_documents import LocalDocumentStore
from certtrack.stores.progress import ProgressStore
from certtrack.stores.saos import SAOStore
from certtrack.stores.search import SearchStore
from certtrack.stores.skills import SkillsStore

logger = logging.getLogger(__name__)


@dataclass
class StoreContext:
    identity: IdentityProvider
    remote: RemoteStore
    blobs: BlobStorage
    skills: SkillsStore
    saos: SAOStore
    documents: DocumentStore
    deadlines: DeadlineStore
    progress: ProgressStore
    search: SearchStore
    activity: ActivityStore
    local_documents: LocalDocumentStore
    auth: AuthStore
    checkout: CheckoutClient | None = None

    async def aclose(self) -> None:
        """Detach the auth store and close the HTTP clients this context owns."""
        self.auth.close()
        for client in (self.identity, self.checkout):
            aclose = getattr(client, "aclose", None)
            if aclose is not None:
                await aclose()


def build_context(
    identity: IdentityProvider,
    remote: RemoteStore,
    blobs: BlobStorage,
    *,
    local_documents_path: Path | None = None,
    checkout: CheckoutClient | None = None,
    timeout: float | None = None,
    signed_url_ttl_seconds: int | None = None,
) -> StoreContext:
    """Wire every store to the given collaborators."""
    skills = SkillsStore(identity, remote, timeout=timeout)
    saos = SAOStore(identity, remote, timeout=timeout)
    documents = DocumentStore(
        identity, remote, blobs, timeout=timeout, signed_url_ttl_seconds=signed_url_ttl_seconds
    )
    deadlines = DeadlineStore(identity, remote, timeout=timeout)
    progress = ProgressStore(identity, remote, skills, timeout=timeout)
    search = SearchStore(identity, remote, timeout=timeout)
    activity = ActivityStore(identity, remote, timeout=timeout)
    local_documents = LocalDocumentStore(local_documents_path)

    # Everything tied to the signed-in account; the local collection is not
    user_stores = [skills, saos, documents, deadlines, progress, search, activity]
    auth = AuthStore(identity, remote, user_stores, timeout=timeout)

    return StoreContext(
        identity=identity,
        remote=remote,
        blobs=blobs,
        skills=skills,
        saos=saos,
        documents=documents,
        deadlines=deadlines,
        progress=progress,
        search=search,
        activity=activity,
        local_documents=local_documents,
        auth=auth,
        checkout=checkout,
    )


def create_context(settings: Settings | None = None) -> StoreContext:
    """Build the production context from settings."""
    settings = settings or get_settings()
    configure_logging(settings)
    logger.info("Starting %s (%s)", settings.app_name, settings.environment)

    return build_context(
        GoTrueIdentityClient(settings),
        SqlRemoteStore(get_session_factory()),
        S3BlobStorage(settings),
        local_documents_path=settings.local_documents_path,
        checkout=CheckoutClient(settings),
        timeout=settings.remote_timeout_seconds,
        signed_url_ttl_seconds=settings.signed_url_ttl_seconds,
    )
