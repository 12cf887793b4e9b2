"""
End-to-end tests of the HTTP surface against mock Snowflake and mock R2.
"""

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from studyplanner.api.dependencies import get_deletion_coordinator
from studyplanner.config.settings import Settings
from studyplanner.core.resources import ScheduleConflictError
from studyplanner.main import create_app


API_KEY = "test-key"


def auth(user_id: str = "U1") -> dict:
    return {"X-API-Key": API_KEY, "X-User-Id": user_id}


def make_settings(**overrides) -> Settings:
    values = dict(
        _env_file=None,
        api_keys=API_KEY,
        snowflake_mock_mode=True,
        r2_mock_mode=True,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def client():
    app = create_app(make_settings())
    with TestClient(app) as test_client:
        yield test_client


def create_schedule(client, user_id="U1", **fields) -> dict:
    body = {
        "title": "Linear algebra revision",
        "startDate": "2026-11-01",
        "endDate": "2026-11-30",
    }
    body.update(fields)
    response = client.post("/api/v1/schedules", json=body, headers=auth(user_id))
    assert response.status_code == 201, response.text
    return response.json()


def upload(client, schedule_id, file_name="notes.pdf", user_id="U1") -> dict:
    """Run phases 1 and 3 of the handshake and return the created resource."""
    credential = client.get(
        "/api/v1/uploads/credential",
        params={"fileName": file_name, "scheduleId": schedule_id},
        headers=auth(user_id),
    )
    assert credential.status_code == 200, credential.text

    finalize = client.post(
        "/api/v1/uploads/finalize",
        json={
            "scheduleId": schedule_id,
            "fileName": file_name,
            "fileUrl": credential.json()["resultingFileUrl"],
            "fileSize": 2048,
            "fileType": "application/pdf",
        },
        headers=auth(user_id),
    )
    assert finalize.status_code == 200, finalize.text
    return finalize.json()["resource"]


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestHealth:

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["details"]["mock_mode"] == {"snowflake": True, "r2": True}

    def test_ready_in_mock_mode(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_without_storage(self):
        app = create_app(make_settings(r2_mock_mode=False))
        with TestClient(app) as unconfigured:
            response = unconfigured.get("/health/ready")

        assert response.status_code == 503
        checks = {c["name"]: c["status"] for c in response.json()["checks"]}
        assert checks["storage"] == "error"
        assert checks["database"] == "ok"


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class TestAuthentication:

    def test_missing_api_key(self, client):
        response = client.get("/api/v1/schedules", headers={"X-User-Id": "U1"})
        assert response.status_code == 401

    def test_wrong_api_key(self, client):
        response = client.get(
            "/api/v1/schedules",
            headers={"X-API-Key": "nope", "X-User-Id": "U1"},
        )
        assert response.status_code == 401

    def test_missing_user(self, client):
        response = client.get(
            "/api/v1/uploads/credential",
            params={"fileName": "notes.pdf", "scheduleId": "S1"},
            headers={"X-API-Key": API_KEY},
        )
        assert response.status_code == 401


# ---------------------------------------------------------------------------
# Upload lifecycle
# ---------------------------------------------------------------------------

class TestUploadLifecycle:

    def test_credential_response_shape(self, client):
        schedule = create_schedule(client)

        response = client.get(
            "/api/v1/uploads/credential",
            params={"fileName": "my notes.pdf", "scheduleId": schedule["id"]},
            headers=auth(),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["blobPath"].startswith(f"U1/{schedule['id']}/")
        assert body["blobPath"].endswith("_my_notes.pdf")
        assert body["resultingFileUrl"].endswith(body["blobPath"])
        assert parse_qs(urlparse(body["signedUploadUrl"]).query)["permission"] == ["read-write"]
        assert "expiresAt" in body

    def test_upload_read_delete(self, client):
        schedule = create_schedule(client)
        resource = upload(client, schedule["id"])

        assert resource["fileName"] == "notes.pdf"
        assert resource["fileSize"] == 2048
        assert resource["fileType"] == "application/pdf"

        stored = client.get(f"/api/v1/schedules/{schedule['id']}", headers=auth()).json()
        assert [r["id"] for r in stored["resources"]] == [resource["id"]]

        read = client.get(
            "/api/v1/uploads/read-credential",
            params={"fileUrl": resource["fileUrl"], "scheduleId": schedule["id"]},
            headers=auth(),
        )
        assert read.status_code == 200
        assert parse_qs(urlparse(read.json()["signedReadUrl"]).query)["permission"] == ["read"]

        deleted = client.delete(f"/api/v1/resources/{resource['id']}", headers=auth())
        assert deleted.status_code == 200
        assert deleted.json() == {"success": True}

        stored = client.get(f"/api/v1/schedules/{schedule['id']}", headers=auth()).json()
        assert stored["resources"] == []

    def test_other_user_gets_403_on_credential(self, client):
        schedule = create_schedule(client)

        response = client.get(
            "/api/v1/uploads/credential",
            params={"fileName": "notes.pdf", "scheduleId": schedule["id"]},
            headers=auth("U2"),
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Forbidden"

    def test_other_user_gets_403_on_finalize(self, client):
        schedule = create_schedule(client)
        credential = client.get(
            "/api/v1/uploads/credential",
            params={"fileName": "notes.pdf", "scheduleId": schedule["id"]},
            headers=auth(),
        ).json()

        response = client.post(
            "/api/v1/uploads/finalize",
            json={
                "scheduleId": schedule["id"],
                "fileName": "notes.pdf",
                "fileUrl": credential["resultingFileUrl"],
            },
            headers=auth("U2"),
        )

        assert response.status_code == 403
        stored = client.get(f"/api/v1/schedules/{schedule['id']}", headers=auth()).json()
        assert stored["resources"] == []

    def test_unknown_schedule_is_404(self, client):
        response = client.get(
            "/api/v1/uploads/credential",
            params={"fileName": "notes.pdf", "scheduleId": "schedule_missing"},
            headers=auth(),
        )
        assert response.status_code == 404

    def test_missing_query_parameter_is_400(self, client):
        response = client.get(
            "/api/v1/uploads/credential",
            params={"scheduleId": "S1"},
            headers=auth(),
        )
        assert response.status_code == 400

    def test_finalize_missing_fields_is_400(self, client):
        response = client.post(
            "/api/v1/uploads/finalize",
            json={"scheduleId": "S1"},
            headers=auth(),
        )
        assert response.status_code == 400

    def test_finalize_foreign_url_is_400(self, client):
        schedule = create_schedule(client)

        response = client.post(
            "/api/v1/uploads/finalize",
            json={
                "scheduleId": schedule["id"],
                "fileName": "notes.pdf",
                "fileUrl": "https://elsewhere.example.com/notes.pdf",
            },
            headers=auth(),
        )
        assert response.status_code == 400

    def test_read_credential_for_unrecorded_url_is_404(self, client):
        schedule = create_schedule(client)
        upload(client, schedule["id"])

        response = client.get(
            "/api/v1/uploads/read-credential",
            params={
                "fileUrl": f"mock://storage/study-resources/U1/{schedule['id']}/1_guess.pdf",
                "scheduleId": schedule["id"],
            },
            headers=auth(),
        )
        assert response.status_code == 404

    def test_deleting_someone_elses_resource_is_404(self, client):
        schedule = create_schedule(client)
        resource = upload(client, schedule["id"])

        response = client.delete(f"/api/v1/resources/{resource['id']}", headers=auth("U2"))

        assert response.status_code == 404

    def test_delete_conflict_is_409(self, client):
        class AlwaysConflicting:
            async def delete_resource(self, owner_id, resource_id):
                raise ScheduleConflictError("Schedule S1 was modified concurrently")

        client.app.dependency_overrides[get_deletion_coordinator] = AlwaysConflicting
        try:
            response = client.delete("/api/v1/resources/resource_1", headers=auth())
        finally:
            client.app.dependency_overrides.clear()

        assert response.status_code == 409
        assert "Reload" in response.json()["detail"]

    def test_credential_without_storage_is_503(self):
        app = create_app(make_settings(r2_mock_mode=False))
        with TestClient(app) as unconfigured:
            schedule = create_schedule(unconfigured)
            response = unconfigured.get(
                "/api/v1/uploads/credential",
                params={"fileName": "notes.pdf", "scheduleId": schedule["id"]},
                headers=auth(),
            )

        assert response.status_code == 503

    def test_schedules_without_database_are_503(self):
        app = create_app(make_settings(snowflake_mock_mode=False))
        with TestClient(app) as unconfigured:
            response = unconfigured.get("/api/v1/schedules", headers=auth())

        assert response.status_code == 503


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------

class TestSchedules:

    def test_create_and_list(self, client):
        created = create_schedule(client, description="Chapters 1-4")
        create_schedule(client, user_id="U2", title="Someone else's")

        listed = client.get("/api/v1/schedules", headers=auth()).json()

        assert [s["id"] for s in listed] == [created["id"]]
        assert listed[0]["userId"] == "U1"
        assert listed[0]["status"] == "pending"
        assert listed[0]["description"] == "Chapters 1-4"

    def test_end_before_start_is_400(self, client):
        response = client.post(
            "/api/v1/schedules",
            json={"title": "Backwards", "startDate": "2026-11-30", "endDate": "2026-11-01"},
            headers=auth(),
        )
        assert response.status_code == 400

    def test_update_changes_only_given_fields(self, client):
        created = create_schedule(client)

        response = client.put(
            f"/api/v1/schedules/{created['id']}",
            json={"status": "completed"},
            headers=auth(),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["title"] == created["title"]

    def test_update_keeps_resources(self, client):
        created = create_schedule(client)
        resource = upload(client, created["id"])

        response = client.put(
            f"/api/v1/schedules/{created['id']}",
            json={"title": "Renamed"},
            headers=auth(),
        )

        assert [r["id"] for r in response.json()["resources"]] == [resource["id"]]

    def test_other_user_cannot_read_update_or_delete(self, client):
        created = create_schedule(client)

        assert client.get(f"/api/v1/schedules/{created['id']}", headers=auth("U2")).status_code == 403
        assert client.put(
            f"/api/v1/schedules/{created['id']}",
            json={"title": "Mine now"},
            headers=auth("U2"),
        ).status_code == 403
        assert client.delete(f"/api/v1/schedules/{created['id']}", headers=auth("U2")).status_code == 403
        assert client.get(f"/api/v1/schedules/{created['id']}", headers=auth()).status_code == 200

    def test_delete_schedule(self, client):
        created = create_schedule(client)
        upload(client, created["id"])

        response = client.delete(f"/api/v1/schedules/{created['id']}", headers=auth())

        assert response.status_code == 200
        assert client.get(f"/api/v1/schedules/{created['id']}", headers=auth()).status_code == 404
