from __future__ import annotations

import pytest

pytestmark = pytest.mark.integration


@pytest.mark.parametrize(
    "path",
    [
        "/api/health",
        "/api/settings",
        "/api/downloads",
        "/api/dashboard",
    ],
)
def test_api_smoke_endpoints(app_client, path):
    assert app_client.get(path).status_code == 200


def test_unknown_job_progress_is_not_found(app_client):
    response = app_client.get("/api/downloads/123456/progress")

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_invalid_job_id_uses_stable_error_code(app_client):
    response = app_client.delete("/api/downloads/0")

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_job_id"
