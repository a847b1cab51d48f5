from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, TypedDict

from .lifecycle import TypoStatus


# PUBLIC_INTERFACE
class WorkspaceRole(str, Enum):
    """Role of a principal within one workspace, as reported by the role provider."""

    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    NONE = "NONE"


# PUBLIC_INTERFACE
class TypoEntity(TypedDict):
    """
    A lightweight domain model representing a reported typo for non-ORM
    storage backends.

    Fields:
    - id: Unique integer identifier, assigned on creation
    - workspace_id: Owning workspace; never changes after creation
    - status: Current lifecycle status, changed only through the lifecycle engine
    - page_url: Page of the tracked site where the typo was found
    - report_text: The text containing the typo
    - suggested_fix: Optional correction proposed by the reporter
    - context_before / context_after: Optional text surrounding the typo
    - reporter_name: Optional display name of the reporter
    - created_at: Creation timestamp (datetime)
    - updated_at: Last status change timestamp (datetime)
    """

    id: int
    workspace_id: int
    status: TypoStatus
    page_url: str
    report_text: str
    suggested_fix: Optional[str]
    context_before: Optional[str]
    context_after: Optional[str]
    reporter_name: Optional[str]
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class WorkspaceSettingsEntity(TypedDict):
    """
    Per-workspace settings row (1:1 with a workspace).

    Fields:
    - id: Settings identifier, used as the Basic auth username by external clients
    - workspace_id: Owning workspace
    - api_access_token: Opaque 128-bit token in canonical UUID string form
    """

    id: int
    workspace_id: int
    api_access_token: str
