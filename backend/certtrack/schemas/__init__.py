"""Pydantic schemas for store state, remote rows and view models."""

from certtrack.schemas.activity import Activity
from certtrack.schemas.auth import AuthSession, SessionUser, SignUpRequest, UserAttributes
from certtrack.schemas.deadlines import (
    Deadline,
    DeadlineCreate,
    DeadlinePriority,
    DeadlineType,
    DeadlineUpdate,
)
from certtrack.schemas.documents import (
    BlobPayload,
    Document,
    DocumentCreate,
    DocumentStatus,
    DocumentUpdate,
    LocalDocument,
    LocalDocumentUpdate,
)
from certtrack.schemas.progress import ProgressSnapshot
from certtrack.schemas.saos import SAO, SAORow, SAOSkillLinkRow, SAOWrite
from certtrack.schemas.search import SAOSearchResult, SearchResult, SkillSearchResult
from certtrack.schemas.skills import Category, Skill, SkillStatus, UserSkillRecord

__all__ = [
    # Activity
    "Activity",
    # Auth
    "AuthSession",
    "SessionUser",
    "SignUpRequest",
    "UserAttributes",
    # Deadlines
    "Deadline",
    "DeadlineCreate",
    "DeadlinePriority",
    "DeadlineType",
    "DeadlineUpdate",
    # Documents
    "BlobPayload",
    "Document",
    "DocumentCreate",
    "DocumentStatus",
    "DocumentUpdate",
    "LocalDocument",
    "LocalDocumentUpdate",
    # Progress
    "ProgressSnapshot",
    # SAOs
    "SAO",
    "SAORow",
    "SAOSkillLinkRow",
    "SAOWrite",
    # Search
    "SAOSearchResult",
    "SearchResult",
    "SkillSearchResult",
    # Skills
    "Category",
    "Skill",
    "SkillStatus",
    "UserSkillRecord",
]
