from fastapi import status
from fastapi.testclient import TestClient

from file_server.errors import MetadataUnavailableError
from file_server.main import create_app
from tests.consts import OWNER_HEADER, TEST_OWNER


def test_invalid_name_is_400(client: TestClient):
    response = client.put("/v1/files/%23%23%23", files={"file_content": ("x", b"data", "text/plain")})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "INVALID_NAME"


def test_unknown_file_is_404(client: TestClient):
    response = client.get("/v1/files/missing.txt")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_delete_unknown_file_is_404(client: TestClient):
    response = client.delete("/v1/files/missing.txt")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_missing_content_is_distinct_404(client: TestClient, local_content_store):
    client.put("/v1/files/a.txt", files={"file_content": ("a.txt", b"hello", "text/plain")})
    local_content_store.delete(TEST_OWNER, "a.txt")

    response = client.get("/v1/files/a.txt")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "CONTENT_NOT_FOUND"


def test_upload_without_file_is_422(client: TestClient):
    response = client.put("/v1/files/a.txt")
    assert response.status_code == 422


def test_missing_owner_header_is_401(client: TestClient):
    response = client.get("/v1/files", headers={OWNER_HEADER: ""})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"]["code"] == "OWNER_NOT_RESOLVED"


def test_default_owner_applies_without_header(settings, registry):
    settings = settings.model_copy(update={"default_owner": TEST_OWNER})
    with TestClient(create_app(settings=settings, registry=registry)) as client:
        client.put("/v1/files/a.txt", files={"file_content": ("a.txt", b"hello", "text/plain")})

    assert [r.name for r in registry.list_files(TEST_OWNER)] == ["a.txt"]


def test_store_outage_is_503(client: TestClient, metadata_index, monkeypatch):
    def unavailable(owner_id):
        raise MetadataUnavailableError("Metadata index unavailable", owner_id=owner_id)

    monkeypatch.setattr(metadata_index, "query_by_owner", unavailable)

    response = client.get("/v1/files")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["error"]["code"] == "METADATA_UNAVAILABLE"


def test_unexpected_error_is_500(client: TestClient, metadata_index, monkeypatch):
    def broken(owner_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(metadata_index, "query_by_owner", broken)

    response = client.get("/v1/files")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["error"]["code"] == "INTERNAL_ERROR"
