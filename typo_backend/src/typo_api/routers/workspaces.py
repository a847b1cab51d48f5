from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..auth import get_caller_role
from ..models import WorkspaceRole
from ..repositories import WorkspaceSettingsRepository, get_settings_repository
from ..schemas import TokenOut
from ..services import WorkspaceSettingsService
from ..utils import token_out

router = APIRouter(
    prefix="/api/v1/workspaces/{workspace_id}",
    tags=["workspaces"],
)


def _get_service(repo: WorkspaceSettingsRepository = Depends(get_settings_repository)) -> WorkspaceSettingsService:
    return WorkspaceSettingsService(repo)


def _settings_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace settings not found")


# PUBLIC_INTERFACE
@router.get(
    "/token",
    response_model=TokenOut,
    summary="Get API Token",
    description=(
        "Return the workspace settings id, API access token and the ready-to-use "
        "Basic credential for external integrations."
    ),
    responses={
        403: {"description": "Not a member of this workspace"},
        404: {"description": "Workspace settings not found"},
    },
)
def get_token(
    workspace_id: int,
    role: WorkspaceRole = Depends(get_caller_role),
    service: WorkspaceSettingsService = Depends(_get_service),
) -> TokenOut:
    if role == WorkspaceRole.NONE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this workspace")
    view = service.get_token_view(workspace_id)
    if view is None:
        raise _settings_not_found()
    return token_out(view)


# PUBLIC_INTERFACE
@router.patch(
    "/token/regenerate",
    response_model=TokenOut,
    summary="Regenerate API Token",
    description="Replace the workspace API access token. Only workspace administrators may do this.",
    responses={
        403: {"description": "Caller is not an administrator of this workspace"},
        404: {"description": "Workspace settings not found"},
    },
)
def regenerate_token(
    workspace_id: int,
    role: WorkspaceRole = Depends(get_caller_role),
    service: WorkspaceSettingsService = Depends(_get_service),
) -> TokenOut:
    """
    Rotate the token. AuthorizationError from the service is rendered as 403
    by the application exception handler.
    """
    view = service.regenerate_token(workspace_id, role)
    if view is None:
        raise _settings_not_found()
    return token_out(view)
