"""Store and registry fixtures for tests."""
import pytest

from file_server.adapters.storage import LocalContentStore, S3ContentStore
from file_server.database.nosql_adapter import SQLiteMetadataIndex
from file_server.registry import FileRegistry
from tests.consts import TEST_BUCKET_NAME, TEST_REGION


@pytest.fixture
def metadata_db_path(tmp_path) -> str:
    return str(tmp_path / "metadata.db")


@pytest.fixture
def storage_dir(tmp_path) -> str:
    return str(tmp_path / "storage")


@pytest.fixture
def metadata_index(metadata_db_path) -> SQLiteMetadataIndex:
    index = SQLiteMetadataIndex(metadata_db_path)
    index.init_collections()
    return index


@pytest.fixture
def local_content_store(storage_dir) -> LocalContentStore:
    store = LocalContentStore(storage_dir)
    store.init_store()
    return store


@pytest.fixture
def s3_content_store(mocked_aws) -> S3ContentStore:
    return S3ContentStore(TEST_BUCKET_NAME, s3_client=mocked_aws, region_name=TEST_REGION)


@pytest.fixture
def registry(metadata_index, local_content_store) -> FileRegistry:
    """Registry over a temporary SQLite index and a temporary local content store."""
    return FileRegistry(metadata_index=metadata_index, content_store=local_content_store)


@pytest.fixture
def s3_registry(metadata_index, s3_content_store) -> FileRegistry:
    """Registry over a temporary SQLite index and moto-backed S3."""
    return FileRegistry(metadata_index=metadata_index, content_store=s3_content_store)
