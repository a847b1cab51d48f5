from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..auth import get_caller_role, get_workspace_token_dependency
from ..models import WorkspaceRole
from ..repositories import DEFAULT_SORT, SORT_FIELDS, PageRequest, TypoRepository, get_typo_repository
from ..schemas import StatusCount, TypoPage, TypoReport, TypoResult, TypoStatusPatch, TypoStatusResult
from ..services import TypoService
from ..settings import get_settings

_settings = get_settings()

router = APIRouter(
    prefix="/api/v1/workspaces/{workspace_id}/typos",
    tags=["typos"],
)

_workspace_from_token = get_workspace_token_dependency()


def _get_service(repo: TypoRepository = Depends(get_typo_repository)) -> TypoService:
    """
    Dependency wrapper building the service over the configured repository.
    """
    return TypoService(repo)


def _require_member(role: WorkspaceRole = Depends(get_caller_role)) -> WorkspaceRole:
    if role == WorkspaceRole.NONE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this workspace")
    return role


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Typo not found")


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TypoResult,
    status_code=status.HTTP_201_CREATED,
    summary="Report Typo",
    description=(
        "Submit a typo found on the tracked site. Authenticated with HTTP Basic using the "
        "workspace settings id as username and the workspace API access token as password."
    ),
    responses={
        201: {"description": "Typo reported"},
        401: {"description": "Missing or invalid workspace credentials"},
        403: {"description": "Credentials belong to another workspace"},
    },
)
def report_typo(
    payload: TypoReport,
    authenticated_workspace_id: int = Depends(_workspace_from_token),
    service: TypoService = Depends(_get_service),
) -> TypoResult:
    """
    Create a typo report in REPORTED status.
    """
    return service.add_typo_report(payload, authenticated_workspace_id)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=TypoPage,
    summary="List Typos",
    description=(
        "List the workspace's typos one page at a time.\n\n"
        "Query parameters:\n"
        "- page: zero-based page number\n"
        "- size: page size\n"
        "- sort: created_at, updated_at or status; prefix with '-' for descending\n\n"
        "Page metadata covers only this workspace."
    ),
    responses={
        200: {"description": "Page retrieved successfully"},
        400: {"description": "Invalid query parameters"},
    },
)
def list_typos(
    workspace_id: int,
    page: int = Query(0, ge=0, description="Zero-based page number"),
    size: int = Query(_settings.default_page_size, ge=1, le=_settings.max_page_size, description="Page size"),
    sort: str = Query(DEFAULT_SORT, description="Sort key: created_at, updated_at, status, '-' for descending"),
    _: WorkspaceRole = Depends(_require_member),
    service: TypoService = Depends(_get_service),
) -> TypoPage:
    """
    Paginated listing of a workspace's typos.
    """
    normalized = sort.strip().lower()
    if normalized.lstrip("-") not in SORT_FIELDS:
        raise HTTPException(
            status_code=400,
            detail=f"sort must be one of {', '.join(sorted(SORT_FIELDS))}, optionally prefixed with '-'",
        )
    return service.get_typo_page(PageRequest(page=page, size=size, sort=normalized), workspace_id)


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=List[StatusCount],
    summary="Count Typos By Status",
    description="Number of typos per status. Statuses without typos are omitted.",
)
def count_typos_by_status(
    workspace_id: int,
    _: WorkspaceRole = Depends(_require_member),
    service: TypoService = Depends(_get_service),
) -> List[StatusCount]:
    counts = service.get_count_typo_by_status_for_workspace_id(workspace_id)
    return [StatusCount(status=s, count=c) for s, c in counts]


# PUBLIC_INTERFACE
@router.get(
    "/last",
    response_model=TypoResult,
    summary="Get Last Typo",
    description="The workspace's earliest-created typo.",
    responses={404: {"description": "Workspace has no typos"}},
)
def get_last_typo(
    workspace_id: int,
    _: WorkspaceRole = Depends(_require_member),
    service: TypoService = Depends(_get_service),
) -> TypoResult:
    typo = service.get_last_typo_by_workspace_id(workspace_id)
    if typo is None:
        raise _not_found()
    return typo


# PUBLIC_INTERFACE
@router.get(
    "/{typo_id}",
    response_model=TypoResult,
    summary="Get Typo",
    description="Get a single typo of the workspace by ID.",
    responses={404: {"description": "Typo not found in this workspace"}},
)
def get_typo(
    workspace_id: int,
    typo_id: int,
    _: WorkspaceRole = Depends(_require_member),
    service: TypoService = Depends(_get_service),
) -> TypoResult:
    typo = service.get_typo(typo_id, workspace_id)
    if typo is None:
        raise _not_found()
    return typo


# PUBLIC_INTERFACE
@router.patch(
    "/{typo_id}/status",
    response_model=TypoStatusResult,
    summary="Change Typo Status",
    description=(
        "Apply a lifecycle event (START, RESTART, RESOLVE). A null event returns the typo unchanged. "
        "An event that does not apply to the current status leaves it unchanged and is reported "
        "with transition_applied=false."
    ),
    responses={404: {"description": "Typo not found in this workspace"}},
)
def patch_typo_status(
    workspace_id: int,
    typo_id: int,
    payload: TypoStatusPatch,
    _: WorkspaceRole = Depends(_require_member),
    service: TypoService = Depends(_get_service),
) -> TypoStatusResult:
    if service.get_typo(typo_id, workspace_id) is None:
        raise _not_found()
    updated = service.update_typo_status(typo_id, payload.event)
    if updated is None:
        raise _not_found()
    return updated


# PUBLIC_INTERFACE
@router.delete(
    "/{typo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Typo",
    description="Delete a typo of the workspace by ID.",
    responses={
        204: {"description": "Typo deleted"},
        404: {"description": "Typo not found in this workspace"},
    },
)
def delete_typo(
    workspace_id: int,
    typo_id: int,
    _: WorkspaceRole = Depends(_require_member),
    service: TypoService = Depends(_get_service),
) -> None:
    """
    Delete a typo. Returns 204 on success, 404 if not found.
    """
    if service.get_typo(typo_id, workspace_id) is None:
        raise _not_found()
    if service.delete_typo_by_id(typo_id) == 0:
        raise _not_found()
    return None
