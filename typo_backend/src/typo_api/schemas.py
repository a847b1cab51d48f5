from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .lifecycle import TypoEvent, TypoStatus


def _strip_required(value: str, field: str, max_length: int) -> str:
    if value is None:
        raise ValueError(f"{field} is required")
    s = value.strip()
    if not (1 <= len(s) <= max_length):
        raise ValueError(f"{field} length must be between 1 and {max_length} characters")
    return s


def _strip_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    s = value.strip()
    return s or None


# PUBLIC_INTERFACE
class TypoReport(BaseModel):
    """
    Schema for a new typo report submitted by a contributor.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "page_url": "https://example.com/docs/intro",
                "report_text": "recieve",
                "suggested_fix": "receive",
                "context_before": "You will ",
                "context_after": " an email shortly.",
                "reporter_name": "Alice",
            }
        }
    )

    page_url: str = Field(..., description="URL of the page where the typo was found", min_length=1, max_length=2048)
    report_text: str = Field(..., description="Text containing the typo", min_length=1, max_length=1000)
    suggested_fix: Optional[str] = Field(default=None, description="Correction proposed by the reporter", max_length=1000)
    context_before: Optional[str] = Field(default=None, description="Text right before the typo", max_length=1000)
    context_after: Optional[str] = Field(default=None, description="Text right after the typo", max_length=1000)
    reporter_name: Optional[str] = Field(default=None, description="Display name of the reporter", max_length=200)

    @field_validator("page_url")
    @classmethod
    def validate_page_url(cls, v: str) -> str:
        """
        Strip whitespace and reject blank URLs.
        """
        return _strip_required(v, "page_url", 2048)

    @field_validator("report_text")
    @classmethod
    def validate_report_text(cls, v: str) -> str:
        """
        Strip whitespace and reject blank typo text.
        """
        return _strip_required(v, "report_text", 1000)

    @field_validator("suggested_fix", "reporter_name")
    @classmethod
    def normalize_optional(cls, v: Optional[str]) -> Optional[str]:
        """
        Blank optional values are stored as null.
        """
        return _strip_optional(v)

    @field_validator("context_before", "context_after")
    @classmethod
    def normalize_context(cls, v: Optional[str]) -> Optional[str]:
        """
        Blank context is stored as null. Non-blank context keeps its spacing,
        since it is the text immediately around the typo.
        """
        if v is None or not v.strip():
            return None
        return v


# PUBLIC_INTERFACE
class TypoResult(BaseModel):
    """
    Schema returned for a stored typo.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 17,
                "workspace_id": 101,
                "status": "REPORTED",
                "page_url": "https://example.com/docs/intro",
                "report_text": "recieve",
                "suggested_fix": "receive",
                "context_before": "You will ",
                "context_after": " an email shortly.",
                "reporter_name": "Alice",
                "created_at": "2025-01-25T10:15:30.123456",
                "updated_at": "2025-01-25T10:15:30.123456",
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the typo")
    workspace_id: int = Field(..., description="Workspace the typo belongs to")
    status: TypoStatus = Field(..., description="Current lifecycle status")
    page_url: str = Field(..., description="URL of the page where the typo was found")
    report_text: str = Field(..., description="Text containing the typo")
    suggested_fix: Optional[str] = Field(default=None, description="Correction proposed by the reporter")
    context_before: Optional[str] = Field(default=None, description="Text right before the typo")
    context_after: Optional[str] = Field(default=None, description="Text right after the typo")
    reporter_name: Optional[str] = Field(default=None, description="Display name of the reporter")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last status change timestamp")


# PUBLIC_INTERFACE
class TypoStatusPatch(BaseModel):
    """
    Request body for a status change. A null event only re-reads the typo.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"event": "START"}})

    event: Optional[TypoEvent] = Field(default=None, description="Lifecycle event to apply")


# PUBLIC_INTERFACE
class TypoStatusResult(TypoResult):
    """
    Stored typo after a status change request, with the outcome of the request.
    """

    transition_applied: bool = Field(..., description="False when the event does not apply to the current status")
    allowed_events: List[TypoEvent] = Field(default_factory=list, description="Events accepted from the current status")


# PUBLIC_INTERFACE
class TypoPage(BaseModel):
    """
    One page of a workspace's typos with workspace-scoped page metadata.
    """

    items: List[TypoResult] = Field(..., description="Typos on this page")
    number: int = Field(..., description="Zero-based page number")
    size: int = Field(..., description="Requested page size")
    number_of_elements: int = Field(..., description="Number of typos on this page")
    total_elements: int = Field(..., description="Number of typos in the workspace")
    total_pages: int = Field(..., description="Number of pages for the requested size")


# PUBLIC_INTERFACE
class StatusCount(BaseModel):
    """Number of typos in one status."""

    status: TypoStatus
    count: int


# PUBLIC_INTERFACE
class TokenView(BaseModel):
    """
    Raw fields needed to build the workspace Basic credential.
    """

    settings_id: int = Field(..., description="Workspace settings identifier, used as the Basic username")
    api_access_token: str = Field(..., description="Workspace API access token, used as the Basic password")


# PUBLIC_INTERFACE
class TokenOut(TokenView):
    """
    Token view as returned over HTTP, including the ready-to-use Basic credential.
    """

    basic_token: str = Field(..., description="base64('{settings_id}:{api_access_token}')")
