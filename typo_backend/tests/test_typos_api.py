from datetime import datetime

import pytest

from conftest import (
    ADMIN,
    MEMBER,
    STRANGER,
    WORKSPACE_101_ID,
    WORKSPACE_101_STATUSES,
    WORKSPACE_102_ID,
    WORKSPACE_103_ID,
    seed_typos,
)
from typo_api.db import SQLiteTypoRepository, SQLiteWorkspaceSettingsRepository
from typo_api.services import WorkspaceSettingsService


def typos_url(workspace_id, suffix=""):
    return f"/api/v1/workspaces/{workspace_id}/typos/{suffix}"


def report_payload(report_text="teh", page_url="https://example.com/docs", **extra):
    payload = {"report_text": report_text, "page_url": page_url}
    payload.update(extra)
    return payload


def as_user(principal):
    return {"X-Principal": principal}


def assert_typo_shape(typo: dict):
    for key in ["id", "workspace_id", "status", "page_url", "report_text", "created_at", "updated_at"]:
        assert key in typo
    assert "suggested_fix" in typo
    assert isinstance(typo["id"], int)
    datetime.fromisoformat(typo["created_at"])
    datetime.fromisoformat(typo["updated_at"])


@pytest.fixture
def credentials(api_settings_repo):
    settings = WorkspaceSettingsService(api_settings_repo)
    views = {ws: settings.create_settings(ws) for ws in (WORKSPACE_101_ID, WORKSPACE_102_ID, WORKSPACE_103_ID)}
    return {ws: (str(v.settings_id), v.api_access_token) for ws, v in views.items()}


@pytest.fixture
def seeded(api_typo_repo):
    return seed_typos(api_typo_repo)


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        assert res.json()["message"] == "Healthy"


class TestReportTypo:
    def test_report_with_workspace_token(self, client, credentials):
        res = client.post(
            typos_url(WORKSPACE_101_ID),
            json=report_payload(suggested_fix="the"),
            auth=credentials[WORKSPACE_101_ID],
        )
        assert res.status_code == 201
        typo = res.json()
        assert_typo_shape(typo)
        assert typo["status"] == "REPORTED"
        assert typo["workspace_id"] == WORKSPACE_101_ID
        assert typo["suggested_fix"] == "the"

    def test_missing_credentials(self, client, credentials):
        res = client.post(typos_url(WORKSPACE_101_ID), json=report_payload())
        assert res.status_code == 401
        assert res.headers["WWW-Authenticate"] == "Basic"

    def test_wrong_token(self, client, credentials):
        settings_id, _ = credentials[WORKSPACE_101_ID]
        res = client.post(typos_url(WORKSPACE_101_ID), json=report_payload(), auth=(settings_id, "nope"))
        assert res.status_code == 401

    def test_non_numeric_username(self, client, credentials):
        _, token = credentials[WORKSPACE_101_ID]
        res = client.post(typos_url(WORKSPACE_101_ID), json=report_payload(), auth=("abc", token))
        assert res.status_code == 401

    def test_token_of_another_workspace(self, client, credentials):
        res = client.post(typos_url(WORKSPACE_101_ID), json=report_payload(), auth=credentials[WORKSPACE_102_ID])
        assert res.status_code == 403

    def test_blank_report_text(self, client, credentials, api_typo_repo):
        res = client.post(
            typos_url(WORKSPACE_101_ID),
            json=report_payload(report_text="   "),
            auth=credentials[WORKSPACE_101_ID],
        )
        assert res.status_code == 422
        body = res.json()
        assert body.get("error") == "ValidationError"
        assert body.get("message") == "Request validation failed"
        assert isinstance(body.get("detail"), list)
        assert api_typo_repo.find_by_workspace(WORKSPACE_101_ID)[1] == 0


class TestListTypos:
    def test_second_page(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_101_ID) + "?page=1&size=3", headers=as_user(MEMBER))
        assert res.status_code == 200
        page = res.json()
        assert page["number"] == 1
        assert page["size"] == 3
        assert page["number_of_elements"] == 3
        assert page["total_elements"] == len(WORKSPACE_101_STATUSES)
        assert page["total_pages"] == 3
        assert [t["id"] for t in page["items"]] == seeded[3:6]

    def test_descending_sort(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_101_ID) + "?size=10&sort=-created_at", headers=as_user(MEMBER))
        assert res.status_code == 200
        assert [t["id"] for t in res.json()["items"]] == list(reversed(seeded))

    def test_invalid_sort(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_101_ID) + "?sort=title", headers=as_user(MEMBER))
        assert res.status_code == 400

    def test_invalid_page_size(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_101_ID) + "?size=0", headers=as_user(MEMBER))
        assert res.status_code == 422

    def test_requires_principal(self, client, seeded):
        assert client.get(typos_url(WORKSPACE_101_ID)).status_code == 401

    def test_non_member_is_forbidden(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_101_ID), headers=as_user(STRANGER))
        assert res.status_code == 403

    def test_empty_workspace(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_103_ID), headers=as_user(MEMBER))
        assert res.status_code == 200
        assert res.json()["items"] == []
        assert res.json()["total_elements"] == 0


class TestStatsAndLast:
    def test_stats(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_101_ID, "stats"), headers=as_user(MEMBER))
        assert res.status_code == 200
        counts = {row["status"]: row["count"] for row in res.json()}
        assert counts == {
            "REPORTED": 3,
            "IN_PROGRESS": 2,
            "RESOLVED": 1,
            "CANCELED": 1,
        }

    def test_stats_empty_workspace(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_103_ID, "stats"), headers=as_user(MEMBER))
        assert res.status_code == 200
        assert res.json() == []

    def test_last(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_101_ID, "last"), headers=as_user(MEMBER))
        assert res.status_code == 200
        assert res.json()["id"] == seeded[0]

    def test_last_empty_workspace(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_103_ID, "last"), headers=as_user(MEMBER))
        assert res.status_code == 404


class TestGetTypo:
    def test_get_and_cross_workspace_not_found(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_101_ID, str(seeded[0])), headers=as_user(MEMBER))
        assert res.status_code == 200
        assert_typo_shape(res.json())

        res_other = client.get(typos_url(WORKSPACE_102_ID, str(seeded[0])), headers=as_user(MEMBER))
        assert res_other.status_code == 404
        assert res_other.json()["detail"] == "Typo not found"


class TestPatchStatus:
    def _patch(self, client, typo_id, event, workspace_id=WORKSPACE_101_ID):
        return client.patch(
            typos_url(workspace_id, f"{typo_id}/status"),
            json={"event": event},
            headers=as_user(MEMBER),
        )

    def test_start_then_resolve(self, client, seeded):
        res = self._patch(client, seeded[0], "START")
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "IN_PROGRESS"
        assert body["transition_applied"] is True
        assert body["allowed_events"] == ["RESOLVE"]

        res = self._patch(client, seeded[0], "RESOLVE")
        assert res.json()["status"] == "RESOLVED"

    def test_restart_canceled(self, client, seeded):
        typo_id = seeded[WORKSPACE_101_STATUSES.index("CANCELED")]
        res = self._patch(client, typo_id, "RESTART")
        assert res.status_code == 200
        assert res.json()["status"] == "IN_PROGRESS"

    def test_rejected_transition(self, client, seeded):
        res = self._patch(client, seeded[0], "RESOLVE")
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "REPORTED"
        assert body["transition_applied"] is False

    def test_null_event(self, client, seeded):
        res = self._patch(client, seeded[0], None)
        assert res.status_code == 200
        assert res.json()["status"] == "REPORTED"

    def test_unknown_event(self, client, seeded):
        res = self._patch(client, seeded[0], "CANCEL")
        assert res.status_code == 422

    def test_not_found(self, client, seeded):
        assert self._patch(client, 999_999, "START").status_code == 404
        assert self._patch(client, seeded[0], "START", workspace_id=WORKSPACE_102_ID).status_code == 404


class TestDeleteTypo:
    def test_delete(self, client, seeded):
        url = typos_url(WORKSPACE_101_ID, str(seeded[0]))

        res_del = client.delete(url, headers=as_user(ADMIN))
        assert res_del.status_code == 204
        assert res_del.text == ""

        assert client.get(url, headers=as_user(ADMIN)).status_code == 404
        res_again = client.delete(url, headers=as_user(ADMIN))
        assert res_again.status_code == 404
        assert res_again.json()["detail"] == "Typo not found"

    def test_delete_from_other_workspace_path(self, client, seeded, api_typo_repo):
        res = client.delete(typos_url(WORKSPACE_102_ID, str(seeded[0])), headers=as_user(ADMIN))
        assert res.status_code == 404
        assert api_typo_repo.exists(seeded[0])


class TestIdsBeyondStorageRange:
    """Ids SQLite cannot store are answered as not found, never as a server error."""

    TOO_LARGE = str(2**63)

    @pytest.fixture
    def api_typo_repo(self, tmp_path):
        return SQLiteTypoRepository(str(tmp_path / "typos.db"))

    @pytest.fixture
    def api_settings_repo(self, tmp_path):
        return SQLiteWorkspaceSettingsRepository(str(tmp_path / "settings.db"))

    def test_get_patch_and_delete_are_not_found(self, client, seeded):
        url = typos_url(WORKSPACE_101_ID, self.TOO_LARGE)
        assert client.get(url, headers=as_user(MEMBER)).status_code == 404
        assert client.delete(url, headers=as_user(ADMIN)).status_code == 404
        res = client.patch(url + "/status", json={"event": "START"}, headers=as_user(MEMBER))
        assert res.status_code == 404

    def test_page_far_past_the_end_is_empty(self, client, seeded):
        res = client.get(typos_url(WORKSPACE_101_ID) + "?page=100000000000000000&size=1000", headers=as_user(MEMBER))
        assert res.status_code == 200
        body = res.json()
        assert body["items"] == []
        assert body["total_elements"] == len(WORKSPACE_101_STATUSES)

    def test_settings_id_beyond_range_is_unauthorized(self, client, credentials):
        _, token = credentials[WORKSPACE_101_ID]
        res = client.post(typos_url(WORKSPACE_101_ID), json=report_payload(), auth=(self.TOO_LARGE, token))
        assert res.status_code == 401
