"""
Workspace-scoped services on top of the repositories.

TypoService owns report intake and the status workflow; WorkspaceSettingsService
owns the per-workspace API token. Both translate "not found" into None/0 and
leave HTTP concerns to the routers.
"""
from __future__ import annotations

import hmac
import logging
import secrets
import uuid
from typing import Callable, List, Optional, Tuple

from .errors import AuthorizationError
from .lifecycle import INITIAL_STATUS, TypoEvent, TypoStatus, allowed_events, next_status
from .models import TypoEntity, WorkspaceRole, WorkspaceSettingsEntity
from .repositories import PageRequest, TypoRepository, WorkspaceSettingsRepository
from .schemas import TokenView, TypoPage, TypoReport, TypoResult, TypoStatusResult

logger = logging.getLogger(__name__)

# "Last" typo of a workspace is its earliest-created one.
LAST_TYPO_SORT = "created_at"


def _status_result(entity: TypoEntity, applied: bool) -> TypoStatusResult:
    return TypoStatusResult(
        **entity,
        transition_applied=applied,
        allowed_events=allowed_events(entity["status"]),
    )


# PUBLIC_INTERFACE
class TypoService:
    """Typo intake, listing, aggregation and lifecycle updates."""

    def __init__(self, repository: TypoRepository) -> None:
        self._repo = repository

    def add_typo_report(self, report: TypoReport, workspace_id: int) -> TypoResult:
        """
        Store a new report in the workspace with the initial REPORTED status.
        """
        created = self._repo.create(report, workspace_id, INITIAL_STATUS)
        logger.info("Typo %s reported in workspace %s", created["id"], workspace_id)
        return TypoResult(**created)

    def get_typo_page(self, page_request: PageRequest, workspace_id: int) -> TypoPage:
        """
        Return one page of the workspace's typos. Page metadata counts only
        typos of this workspace.
        """
        items, total = self._repo.find_by_workspace(workspace_id, page_request)
        size = max(page_request.size, 0)
        total_pages = -(-total // size) if size else 0
        return TypoPage(
            items=[TypoResult(**it) for it in items],
            number=max(page_request.page, 0),
            size=size,
            number_of_elements=len(items),
            total_elements=total,
            total_pages=total_pages,
        )

    def get_typo(self, typo_id: int, workspace_id: int) -> Optional[TypoResult]:
        entity = self._repo.get(typo_id)
        if entity is None or entity["workspace_id"] != workspace_id:
            return None
        return TypoResult(**entity)

    def update_typo_status(self, typo_id: int, event: Optional[TypoEvent]) -> Optional[TypoStatusResult]:
        """
        Apply a lifecycle event to a typo.

        Returns None when the typo does not exist. A None event returns the
        stored typo untouched. An event that has no edge from the current
        status is logged and reported back with transition_applied=False.
        The write is conditional on the status that was read, so a concurrent
        update is never overwritten with a transition computed from stale state.
        """
        entity = self._repo.get(typo_id)
        if entity is None:
            return None

        current = entity["status"]
        target, ok = next_status(current, event)
        if not ok:
            logger.warning(
                "Rejected transition for typo %s: %s does not accept %s",
                typo_id,
                current.value,
                event.value if event else None,
            )
            return _status_result(entity, applied=False)
        if target == current:
            return _status_result(entity, applied=True)

        updated = self._repo.update_status(typo_id, current, target)
        if updated is None:
            fresh = self._repo.get(typo_id)
            if fresh is None:
                return None
            logger.info(
                "Typo %s changed concurrently to %s; %s not applied",
                typo_id,
                fresh["status"].value,
                event.value if event else None,
            )
            return _status_result(fresh, applied=False)

        logger.info("Typo %s moved %s -> %s", typo_id, current.value, target.value)
        return _status_result(updated, applied=True)

    def delete_typo_by_id(self, typo_id: int) -> int:
        """Delete a typo. Returns 1 if it existed, 0 otherwise."""
        deleted = self._repo.delete(typo_id)
        if deleted:
            logger.info("Typo %s deleted", typo_id)
        return deleted

    def get_count_typo_by_status_for_workspace_id(self, workspace_id: int) -> List[Tuple[TypoStatus, int]]:
        """
        Per-status counts for the workspace, omitting statuses with no typos,
        in lifecycle declaration order.
        """
        counts = dict(self._repo.count_by_status(workspace_id))
        return [(status, counts[status]) for status in TypoStatus if counts.get(status, 0) > 0]

    def get_last_typo_by_workspace_id(self, workspace_id: int) -> Optional[TypoResult]:
        items, _ = self._repo.find_by_workspace(workspace_id, PageRequest(page=0, size=1, sort=LAST_TYPO_SORT))
        if not items:
            return None
        return TypoResult(**items[0])


# PUBLIC_INTERFACE
def generate_token() -> str:
    """Return a fresh 128-bit random token in canonical UUID form."""
    return str(uuid.UUID(bytes=secrets.token_bytes(16), version=4))


def _token_view(entity: WorkspaceSettingsEntity) -> TokenView:
    return TokenView(settings_id=entity["id"], api_access_token=entity["api_access_token"])


# PUBLIC_INTERFACE
class WorkspaceSettingsService:
    """Issues, exposes and rotates the per-workspace API access token."""

    def __init__(
        self,
        repository: WorkspaceSettingsRepository,
        token_factory: Callable[[], str] = generate_token,
    ) -> None:
        self._repo = repository
        self._new_token = token_factory

    def create_settings(self, workspace_id: int) -> TokenView:
        """
        Create the settings row of a new workspace with a fresh token.
        Existing settings are returned as they are.
        """
        existing = self._repo.get_by_workspace_id(workspace_id)
        if existing is not None:
            return _token_view(existing)
        created = self._repo.create(workspace_id, self._new_token())
        logger.info("Created settings %s for workspace %s", created["id"], workspace_id)
        return _token_view(created)

    def get_token_view(self, workspace_id: int) -> Optional[TokenView]:
        entity = self._repo.get_by_workspace_id(workspace_id)
        return None if entity is None else _token_view(entity)

    def regenerate_token(self, workspace_id: int, caller_role: WorkspaceRole) -> Optional[TokenView]:
        """
        Replace the workspace token with a new random value.

        Raises:
            AuthorizationError: the caller is not an ADMIN of the workspace.

        Returns None when the workspace has no settings row.
        """
        if caller_role != WorkspaceRole.ADMIN:
            logger.warning("Token regeneration denied for workspace %s (role %s)", workspace_id, caller_role)
            raise AuthorizationError(workspace_id, "regenerate_token", caller_role)

        current = self._repo.get_by_workspace_id(workspace_id)
        if current is None:
            return None

        token = self._new_token()
        while token == current["api_access_token"]:
            token = self._new_token()

        updated = self._repo.update_token(workspace_id, token)
        if updated is None:
            return None
        logger.info("API token regenerated for workspace %s", workspace_id)
        return _token_view(updated)

    def authenticate(self, settings_id: int, token: str) -> Optional[int]:
        """
        Resolve Basic credentials (settings id, token) to the workspace id they
        are bound to, or None when they do not match.
        """
        entity = self._repo.get(settings_id)
        if entity is None:
            return None
        if not hmac.compare_digest(entity["api_access_token"].encode(), token.encode()):
            return None
        return entity["workspace_id"]
