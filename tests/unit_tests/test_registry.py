import io
import logging
from unittest.mock import MagicMock, call

import pytest

from file_server.adapters.storage import ContentStore
from file_server.database.metadata_index import MetadataIndex
from file_server.errors import (
    ContentNotFoundError,
    ContentUnavailableError,
    FileRecordNotFoundError,
    InvalidNameError,
    MetadataUnavailableError,
)
from file_server.models import FileRecord
from file_server.registry import FileRegistry
from tests.consts import OTHER_OWNER, TEST_OWNER


def _upload(registry: FileRegistry, name: str, data: bytes, owner_id: str = TEST_OWNER, content_type: str = "text/plain"):
    return registry.upload(
        owner_id=owner_id,
        raw_name=name,
        content_type=content_type,
        stream=io.BytesIO(data),
        declared_length=len(data),
    )


def _download(registry: FileRegistry, name: str, owner_id: str = TEST_OWNER):
    sink = io.BytesIO()
    record = registry.download(owner_id, name, sink)
    return record, sink.getvalue()


# -- behavior against real stores --


def test_upload_download_delete_scenario(registry):
    _upload(registry, "a.txt", b"hello")

    record, data = _download(registry, "a.txt")
    assert data == b"hello"
    assert record.content_type == "text/plain"
    assert record.content_length == 5

    registry.delete(TEST_OWNER, "a.txt")
    with pytest.raises(FileRecordNotFoundError):
        _download(registry, "a.txt")


@pytest.mark.parametrize(
    "data, content_type",
    [
        (b"", "application/octet-stream"),
        (b"\x00\x01\x02\xff" * 1000, "application/octet-stream"),
        ("unicode ✓".encode(), "text/plain; charset=utf-8"),
    ],
)
def test_round_trip_preserves_bytes_and_type(registry, data, content_type):
    _upload(registry, "blob.bin", data, content_type=content_type)

    record, downloaded = _download(registry, "blob.bin")
    assert downloaded == data
    assert record.content_type == content_type
    assert record.content_length == len(data)


def test_reupload_overwrites(registry):
    _upload(registry, "a.txt", b"first version", content_type="text/plain")
    _upload(registry, "a.txt", b"second", content_type="text/markdown")

    record, data = _download(registry, "a.txt")
    assert data == b"second"
    assert record.content_type == "text/markdown"
    assert [r.name for r in registry.list_files(TEST_OWNER)] == ["a.txt"]


def test_upload_sanitizes_name(registry):
    record = _upload(registry, "my file#1.txt", b"data")
    assert record.name == "myfile1.txt"
    assert [r.name for r in registry.list_files(TEST_OWNER)] == ["myfile1.txt"]

    # Any spelling that sanitizes to the same name addresses the same file
    _, data = _download(registry, "my file#1.txt")
    assert data == b"data"
    _, data = _download(registry, "myfile1.txt")
    assert data == b"data"


def test_upload_rejects_unusable_name(registry):
    with pytest.raises(InvalidNameError):
        _upload(registry, "###", b"data")
    assert registry.list_files(TEST_OWNER) == []


def test_list_is_scoped_to_owner(registry):
    _upload(registry, "a.txt", b"a")
    _upload(registry, "b.txt", b"bb")
    _upload(registry, "c.txt", b"ccc", owner_id=OTHER_OWNER)

    assert {r.name for r in registry.list_files(TEST_OWNER)} == {"a.txt", "b.txt"}
    assert {r.name for r in registry.list_files(OTHER_OWNER)} == {"c.txt"}


def test_list_empty_owner(registry):
    assert registry.list_files("nobody") == []


def test_download_is_scoped_to_owner(registry):
    _upload(registry, "a.txt", b"hello")
    with pytest.raises(FileRecordNotFoundError):
        _download(registry, "a.txt", owner_id=OTHER_OWNER)


def test_repeated_delete_reports_not_found(registry):
    _upload(registry, "a.txt", b"hello")
    registry.delete(TEST_OWNER, "a.txt")
    with pytest.raises(FileRecordNotFoundError):
        registry.delete(TEST_OWNER, "a.txt")


def test_content_removed_out_of_band_is_content_not_found(registry, local_content_store):
    _upload(registry, "a.txt", b"hello")
    local_content_store.delete(TEST_OWNER, "a.txt")

    with pytest.raises(ContentNotFoundError):
        _download(registry, "a.txt")
    # The record is still listed so the divergence stays visible
    assert [r.name for r in registry.list_files(TEST_OWNER)] == ["a.txt"]


def test_delete_repairs_metadata_only_state(registry, local_content_store):
    _upload(registry, "a.txt", b"hello")
    local_content_store.delete(TEST_OWNER, "a.txt")

    registry.delete(TEST_OWNER, "a.txt")
    assert registry.list_files(TEST_OWNER) == []


def test_upload_corrects_wrong_declared_length(registry, caplog):
    with caplog.at_level(logging.WARNING, logger="file_server.registry"):
        record = registry.upload(TEST_OWNER, "a.txt", "text/plain", io.BytesIO(b"hello"), declared_length=99)

    assert record.content_length == 5
    stored, _ = _download(registry, "a.txt")
    assert stored.content_length == 5
    assert "does not match" in caplog.text


def test_upload_without_declared_length_records_actual_length(registry):
    record = registry.upload(TEST_OWNER, "a.txt", "text/plain", io.BytesIO(b"hello"))
    assert record.content_length == 5


def test_download_warns_on_length_divergence(registry, metadata_index, caplog):
    _upload(registry, "a.txt", b"hello")
    metadata_index.upsert(FileRecord(owner_id=TEST_OWNER, name="a.txt", content_type="text/plain", content_length=3))

    with caplog.at_level(logging.WARNING, logger="file_server.registry"):
        record, data = _download(registry, "a.txt")

    assert data == b"hello"
    assert record.content_length == 3
    assert "were transferred" in caplog.text


# -- ordering and failure handling against mocked stores --


@pytest.fixture
def stores():
    """Mocked stores sharing one parent so call order across both is recorded."""
    parent = MagicMock()
    parent.metadata_index = MagicMock(spec=MetadataIndex)
    parent.content_store = MagicMock(spec=ContentStore)
    return parent


@pytest.fixture
def mocked_registry(stores) -> FileRegistry:
    return FileRegistry(metadata_index=stores.metadata_index, content_store=stores.content_store)


def _stored_record() -> FileRecord:
    return FileRecord(owner_id=TEST_OWNER, name="a.txt", content_type="text/plain", content_length=5)


def _write_content(owner_id, name, stream):
    stream.read()


def test_upload_writes_metadata_before_content(mocked_registry, stores):
    stores.content_store.write.side_effect = _write_content

    _upload(mocked_registry, "a.txt", b"hello")

    record = _stored_record()
    assert [c for c in stores.mock_calls if c[0] != "content_store.write"] == [
        call.metadata_index.upsert(record),
        call.content_store.ensure_container(TEST_OWNER),
    ]
    assert [c[0] for c in stores.mock_calls] == [
        "metadata_index.upsert",
        "content_store.ensure_container",
        "content_store.write",
    ]


def test_failed_content_write_leaves_metadata_and_reports_failure(mocked_registry, stores):
    stores.content_store.write.side_effect = ContentUnavailableError("Content store unavailable")

    with pytest.raises(ContentUnavailableError):
        _upload(mocked_registry, "a.txt", b"hello")

    stores.metadata_index.upsert.assert_called_once_with(_stored_record())
    stores.metadata_index.delete.assert_not_called()


def test_failed_metadata_upsert_skips_content_write(mocked_registry, stores):
    stores.metadata_index.upsert.side_effect = MetadataUnavailableError("Metadata index unavailable")

    with pytest.raises(MetadataUnavailableError):
        _upload(mocked_registry, "a.txt", b"hello")

    stores.content_store.write.assert_not_called()


def test_invalid_name_touches_no_store(mocked_registry, stores):
    with pytest.raises(InvalidNameError):
        _upload(mocked_registry, "###", b"hello")
    with pytest.raises(InvalidNameError):
        mocked_registry.delete(TEST_OWNER, "###")
    assert stores.mock_calls == []


def test_delete_removes_content_before_metadata(mocked_registry, stores):
    stores.metadata_index.get.return_value = _stored_record()

    mocked_registry.delete(TEST_OWNER, "a.txt")

    assert stores.mock_calls == [
        call.metadata_index.get("u1-a.txt", TEST_OWNER),
        call.content_store.delete(TEST_OWNER, "a.txt"),
        call.metadata_index.delete("u1-a.txt", TEST_OWNER),
    ]


def test_failed_content_delete_keeps_metadata(mocked_registry, stores):
    stores.metadata_index.get.return_value = _stored_record()
    stores.content_store.delete.side_effect = ContentUnavailableError("Content store unavailable")

    with pytest.raises(ContentUnavailableError):
        mocked_registry.delete(TEST_OWNER, "a.txt")

    stores.metadata_index.delete.assert_not_called()


def test_delete_missing_record_touches_no_content(mocked_registry, stores):
    stores.metadata_index.get.return_value = None

    with pytest.raises(FileRecordNotFoundError):
        mocked_registry.delete(TEST_OWNER, "a.txt")

    stores.content_store.delete.assert_not_called()


def test_download_missing_record_touches_no_content(mocked_registry, stores):
    stores.metadata_index.get.return_value = None

    with pytest.raises(FileRecordNotFoundError):
        mocked_registry.download(TEST_OWNER, "a.txt", io.BytesIO())

    stores.content_store.read_into.assert_not_called()


def test_download_propagates_content_not_found(mocked_registry, stores, caplog):
    stores.metadata_index.get.return_value = _stored_record()
    stores.content_store.read_into.side_effect = ContentNotFoundError("No content stored for 'a.txt'")

    with caplog.at_level(logging.WARNING, logger="file_server.registry"):
        with pytest.raises(ContentNotFoundError):
            mocked_registry.download(TEST_OWNER, "a.txt", io.BytesIO())

    assert "has no content" in caplog.text


def test_list_propagates_metadata_outage(mocked_registry, stores):
    stores.metadata_index.query_by_owner.side_effect = MetadataUnavailableError("Metadata index unavailable")

    with pytest.raises(MetadataUnavailableError):
        mocked_registry.list_files(TEST_OWNER)


@pytest.mark.parametrize("owner_id", [".", "..", ".hidden"])
def test_dot_owner_ids_round_trip(registry, owner_id):
    _upload(registry, "a.txt", b"hi", owner_id=owner_id)

    record, data = _download(registry, "a.txt", owner_id=owner_id)
    assert data == b"hi"
    assert record.content_length == 2

    registry.delete(owner_id, "a.txt")
    assert registry.list_files(owner_id) == []
    # No other owner's container was touched
    assert registry.list_files(TEST_OWNER) == []
