"""
File registry: keeps the metadata index and the content store consistent.

Ordering rules:
- upload writes the metadata record first, then the content
- delete removes the content first, then the metadata record

Either way an interrupted operation leaves a record without content, which a
later download reports as ``ContentNotFoundError`` and a retried upload or
delete repairs.
"""

import logging
from typing import BinaryIO, List, Optional

from file_server.adapters.storage import ContentStore, get_content_store
from file_server.config.settings import Settings
from file_server.database.metadata_index import MetadataIndex, get_metadata_index
from file_server.errors import ContentNotFoundError, FileRecordNotFoundError
from file_server.identity import derive_key
from file_server.models import FileRecord
from file_server.utils.decorators import log_execution_time

logger = logging.getLogger(__name__)


class CountingReader:
    """Read-only stream wrapper that counts the bytes handed out."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        chunk = self._stream.read(size)
        self.bytes_read += len(chunk)
        return chunk

    def readable(self) -> bool:
        return True


class CountingWriter:
    """Write-only stream wrapper that counts the bytes written through it."""

    def __init__(self, sink: BinaryIO):
        self._sink = sink
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        self._sink.write(data)
        self.bytes_written += len(data)
        return len(data)

    def flush(self) -> None:
        self._sink.flush()


class FileRegistry:
    """
    Upload, download, list and delete files across the two stores.

    The registry holds no state of its own besides the two store handles, so a
    single instance serves concurrent requests. Nothing is retried here.
    """

    def __init__(self, metadata_index: MetadataIndex, content_store: ContentStore):
        self.metadata_index = metadata_index
        self.content_store = content_store

    @log_execution_time
    def upload(
        self,
        owner_id: str,
        raw_name: str,
        content_type: str,
        stream: BinaryIO,
        declared_length: Optional[int] = None,
    ) -> FileRecord:
        """
        Store a file, overwriting any previous file with the same sanitized name.

        :param owner_id: Owner of the file.
        :param raw_name: Caller-supplied file name; sanitized before use.
        :param content_type: MIME type, stored verbatim.
        :param stream: Readable binary stream with the content; consumed to the end.
        :param declared_length: Length announced by the caller, if known.
        :return: The record as stored, with the length actually written.
        :raises InvalidNameError: If nothing is left of the name after sanitization.
        """
        key, name = derive_key(owner_id, raw_name)
        record = FileRecord(
            owner_id=owner_id,
            name=name,
            content_type=content_type,
            content_length=declared_length or 0,
        )
        logger.info(f"Uploading {key} for owner {owner_id} (declared length: {declared_length})")

        self.metadata_index.upsert(record)

        counting_stream = CountingReader(stream)
        self.content_store.ensure_container(owner_id)
        self.content_store.write(owner_id, name, counting_stream)

        if counting_stream.bytes_read != record.content_length:
            if declared_length is not None:
                logger.warning(
                    f"Declared length {declared_length} for {key} does not match "
                    f"{counting_stream.bytes_read} bytes written, correcting record"
                )
            record = record.model_copy(update={"content_length": counting_stream.bytes_read})
            self.metadata_index.upsert(record)

        return record

    @log_execution_time
    def download(self, owner_id: str, raw_name: str, sink: BinaryIO) -> FileRecord:
        """
        Copy a file's content into ``sink``.

        Returns only after the content store has finished the transfer, so
        the caller may read ``sink`` as soon as this returns.

        :return: The file's metadata record.
        :raises FileRecordNotFoundError: If no record exists for the name.
        :raises ContentNotFoundError: If the record exists but its content does not.
        """
        key, name = derive_key(owner_id, raw_name)
        record = self.metadata_index.get(key, owner_id)
        if record is None:
            raise FileRecordNotFoundError(f"File '{name}' not found", owner_id=owner_id, key=key)

        counting_sink = CountingWriter(sink)
        try:
            self.content_store.read_into(owner_id, name, counting_sink)
        except ContentNotFoundError:
            logger.warning(f"Record {key} for owner {owner_id} has no content in the content store")
            raise

        if counting_sink.bytes_written != record.content_length:
            logger.warning(
                f"Record {key} for owner {owner_id} declares {record.content_length} bytes "
                f"but {counting_sink.bytes_written} were transferred"
            )
        return record

    @log_execution_time
    def list_files(self, owner_id: str) -> List[FileRecord]:
        """All records belonging to ``owner_id``, in no particular order."""
        return list(self.metadata_index.query_by_owner(owner_id))

    @log_execution_time
    def delete(self, owner_id: str, raw_name: str) -> None:
        """
        Remove a file from both stores.

        :raises FileRecordNotFoundError: If no record exists for the name.
        """
        key, name = derive_key(owner_id, raw_name)
        record = self.metadata_index.get(key, owner_id)
        if record is None:
            raise FileRecordNotFoundError(f"File '{name}' not found", owner_id=owner_id, key=key)

        self.content_store.delete(owner_id, name)
        self.metadata_index.delete(key, owner_id)
        logger.info(f"Deleted {key} for owner {owner_id}")


def build_registry(settings: Settings) -> FileRegistry:
    """Build a registry with long-lived store clients for the configured backends."""
    return FileRegistry(
        metadata_index=get_metadata_index(settings),
        content_store=get_content_store(settings),
    )
