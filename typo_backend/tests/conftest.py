import os

import pytest
from fastapi.testclient import TestClient

# Memory backend and workspace-token auth for the app under test
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")
os.environ.setdefault("ENABLE_BASIC_AUTH", "true")

from typo_api.auth import InMemoryRoleProvider, get_role_provider  # noqa: E402
from typo_api.db import SQLiteTypoRepository, SQLiteWorkspaceSettingsRepository  # noqa: E402
from typo_api.lifecycle import TypoStatus  # noqa: E402
from typo_api.main import app  # noqa: E402
from typo_api.models import WorkspaceRole  # noqa: E402
from typo_api.repositories import (  # noqa: E402
    InMemoryTypoRepository,
    InMemoryWorkspaceSettingsRepository,
    get_settings_repository,
    get_typo_repository,
)
from typo_api.schemas import TypoReport  # noqa: E402

WORKSPACE_101_ID = 101
WORKSPACE_102_ID = 102
WORKSPACE_103_ID = 103

ADMIN = "admin@example.com"
MEMBER = "member@example.com"
STRANGER = "stranger@example.com"

# Statuses seeded into workspace 101, in creation order
WORKSPACE_101_STATUSES = [
    TypoStatus.REPORTED,
    TypoStatus.REPORTED,
    TypoStatus.IN_PROGRESS,
    TypoStatus.RESOLVED,
    TypoStatus.CANCELED,
    TypoStatus.IN_PROGRESS,
    TypoStatus.REPORTED,
]


def make_report(i: int = 0, **overrides) -> TypoReport:
    data = {
        "page_url": f"https://example.com/page/{i}",
        "report_text": f"teh {i}",
        "suggested_fix": f"the {i}",
        "context_before": "In ",
        "context_after": " beginning",
        "reporter_name": f"Reporter {i}",
    }
    data.update(overrides)
    return TypoReport(**data)


def seed_typos(repo):
    """Workspace 101 gets one typo per entry of WORKSPACE_101_STATUSES, 102 gets two, 103 none."""
    ids = []
    for i, status in enumerate(WORKSPACE_101_STATUSES):
        ids.append(repo.create(make_report(i), WORKSPACE_101_ID, status)["id"])
    repo.create(make_report(100), WORKSPACE_102_ID, TypoStatus.REPORTED)
    repo.create(make_report(101), WORKSPACE_102_ID, TypoStatus.RESOLVED)
    return ids


@pytest.fixture(params=["memory", "sqlite"])
def typo_repo(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteTypoRepository(str(tmp_path / "typos.db"))
    return InMemoryTypoRepository()


@pytest.fixture(params=["memory", "sqlite"])
def settings_repo(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteWorkspaceSettingsRepository(str(tmp_path / "settings.db"))
    return InMemoryWorkspaceSettingsRepository()


@pytest.fixture
def roles():
    provider = InMemoryRoleProvider()
    for workspace_id in (WORKSPACE_101_ID, WORKSPACE_102_ID, WORKSPACE_103_ID):
        provider.assign(workspace_id, ADMIN, WorkspaceRole.ADMIN)
        provider.assign(workspace_id, MEMBER, WorkspaceRole.MEMBER)
    return provider


@pytest.fixture
def api_typo_repo():
    return InMemoryTypoRepository()


@pytest.fixture
def api_settings_repo():
    return InMemoryWorkspaceSettingsRepository()


@pytest.fixture
def client(api_typo_repo, api_settings_repo, roles):
    app.dependency_overrides[get_typo_repository] = lambda: api_typo_repo
    app.dependency_overrides[get_settings_repository] = lambda: api_settings_repo
    app.dependency_overrides[get_role_provider] = lambda: roles
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
