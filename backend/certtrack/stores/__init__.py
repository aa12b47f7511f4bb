"""Observable state stores."""

from certtrack.stores.activity import ActivityStore
from certtrack.stores.auth import AuthStore
from certtrack.stores.base import RemoteBackedStore, Store
from certtrack.stores.deadlines import DeadlineStore
from certtrack.stores.documents import DocumentStore
from certtrack.stores.local_documents import LocalDocumentStore
from certtrack.stores.progress import ProgressStore
from certtrack.stores.saos import SAOStore
from certtrack.stores.search import SearchStore
from certtrack.stores.skills import SkillsStore

__all__ = [
    "ActivityStore",
    "AuthStore",
    "DeadlineStore",
    "DocumentStore",
    "LocalDocumentStore",
    "ProgressStore",
    "RemoteBackedStore",
    "SAOStore",
    "SearchStore",
    "SkillsStore",
    "Store",
]
