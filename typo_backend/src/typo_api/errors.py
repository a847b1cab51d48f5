from __future__ import annotations

from typing import Any


class AuthorizationError(Exception):
    """Raised when the caller's workspace role does not permit an operation."""

    def __init__(self, workspace_id: int, operation: str, role: Any = None) -> None:
        self.workspace_id = workspace_id
        self.operation = operation
        self.role = role
        super().__init__(f"{operation} requires the ADMIN role in workspace {workspace_id}")
