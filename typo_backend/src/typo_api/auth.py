from __future__ import annotations

from abc import ABC, abstractmethod
from functools import lru_cache
from threading import RLock
from typing import Dict, Optional, Tuple

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .models import WorkspaceRole
from .repositories import WorkspaceSettingsRepository, get_settings_repository
from .services import WorkspaceSettingsService
from .settings import get_settings

_security = HTTPBasic(auto_error=False)


# PUBLIC_INTERFACE
class RoleProvider(ABC):
    """Answers which role a principal holds in a workspace."""

    @abstractmethod
    def role_of(self, workspace_id: int, principal: str) -> WorkspaceRole:
        """Return the principal's role, WorkspaceRole.NONE when it has none."""


class InMemoryRoleProvider(RoleProvider):
    """
    Thread-safe role registry for local runs and tests. Account management
    lives outside this service; this only records the resulting roles.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._roles: Dict[Tuple[int, str], WorkspaceRole] = {}

    def assign(self, workspace_id: int, principal: str, role: WorkspaceRole) -> None:
        with self._lock:
            self._roles[(workspace_id, principal)] = role

    def role_of(self, workspace_id: int, principal: str) -> WorkspaceRole:
        with self._lock:
            return self._roles.get((workspace_id, principal), WorkspaceRole.NONE)


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_role_provider() -> RoleProvider:
    """Return the process-wide role provider."""
    return InMemoryRoleProvider()


# PUBLIC_INTERFACE
def get_principal(x_principal: Optional[str] = Header(default=None)) -> str:
    """
    Return the caller identity set by the fronting authentication layer in the
    X-Principal header.

    Raises:
        HTTPException(401) if the header is missing or blank.
    """
    if x_principal is None or not x_principal.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return x_principal.strip()


# PUBLIC_INTERFACE
def get_caller_role(
    workspace_id: int,
    principal: str = Depends(get_principal),
    roles: RoleProvider = Depends(get_role_provider),
) -> WorkspaceRole:
    """Role of the calling principal in the workspace addressed by the path."""
    return roles.role_of(workspace_id, principal)


# PUBLIC_INTERFACE
def get_workspace_token_dependency():
    """
    Return a FastAPI dependency callable that resolves the workspace of an
    external report submission from its HTTP Basic credentials.

    Behavior:
    - If settings.enable_basic_auth is False: the path workspace id is trusted as is.
    - If True (default): username must be the workspace settings id and password the
      workspace API access token. Missing or invalid credentials raise 401 with
      WWW-Authenticate: Basic; valid credentials of another workspace raise 403.

    Usage:
        token_dep = get_workspace_token_dependency()
        @router.post("/{workspace_id}/typos")
        def create(workspace_id: int = Depends(token_dep)) ...
    """
    settings = get_settings()

    if not settings.enable_basic_auth:
        def _trust_path(workspace_id: int) -> int:
            return workspace_id

        return _trust_path

    def _enforce(
        workspace_id: int,
        creds: Optional[HTTPBasicCredentials] = Depends(_security),
        repo: WorkspaceSettingsRepository = Depends(get_settings_repository),
    ) -> int:
        """
        Enforce workspace token authentication.

        Raises:
            HTTPException(401) if credentials are missing or invalid.
            HTTPException(403) if they belong to another workspace.
        """
        unauthorized = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
        if creds is None or not creds.username or not creds.password:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Basic"},
            )
        try:
            settings_id = int(creds.username)
        except ValueError:
            raise unauthorized from None

        owner = WorkspaceSettingsService(repo).authenticate(settings_id, creds.password)
        if owner is None:
            raise unauthorized
        if owner != workspace_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Credentials do not belong to this workspace",
            )
        return workspace_id

    return _enforce
