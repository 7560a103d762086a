import pytest

pytest_plugins = [
    "tests.fixtures.aws",
    "tests.fixtures.stores",
    "tests.fixtures.app_client",
]


@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch, tmp_path):
    """Keep a developer's .env and cached settings out of the tests."""
    from file_server.config.settings import get_settings

    monkeypatch.chdir(tmp_path)
    for var in ("DEPLOYMENT_MODE", "CONTENT_BACKEND", "METADATA_BACKEND", "MONGODB_URI",
                "DEFAULT_OWNER", "OWNER_HEADER", "AWS_ENDPOINT_URL", "STORAGE_DIR", "METADATA_DB_PATH"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
