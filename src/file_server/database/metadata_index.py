"""Metadata index contract and backend selection."""

import logging
from abc import ABC, abstractmethod
from typing import Iterator, Optional

from file_server.config.settings import Settings
from file_server.models import FileRecord

logger = logging.getLogger(__name__)


class MetadataIndex(ABC):
    """
    Narrow contract over a document store holding FileRecords.

    ``owner_id`` is the partition selector for every operation. Implementations
    must be safe to share across concurrent requests and must raise
    ``MetadataUnavailableError`` for any store failure.

    Implementations:
    - SQLiteMetadataIndex: JSON documents in a local SQLite file
    - MongoMetadataIndex: documents in a MongoDB collection
    """

    @abstractmethod
    def init_collections(self) -> None:
        """Create tables/collections and the owner index if missing."""

    @abstractmethod
    def get(self, key: str, owner_id: str) -> Optional[FileRecord]:
        """Return the record stored under ``key``, or None if there is none."""

    @abstractmethod
    def upsert(self, record: FileRecord) -> None:
        """Insert the record, replacing any record with the same key."""

    @abstractmethod
    def delete(self, key: str, owner_id: str) -> None:
        """Remove the record stored under ``key``; a missing record is not an error."""

    @abstractmethod
    def query_by_owner(self, owner_id: str) -> Iterator[FileRecord]:
        """Iterate once over every record in the owner's partition, in no particular order."""

    @abstractmethod
    def ping(self) -> None:
        """Raise MetadataUnavailableError if the store cannot serve requests."""

    def close(self) -> None:
        """Release connections held by the backend."""


def get_metadata_index(settings: Settings) -> MetadataIndex:
    """Build the metadata index configured in ``settings``."""
    if settings.metadata_backend == "mongo":
        from file_server.database.mongo_adapter import MongoMetadataIndex

        logger.info(f"Using MongoDB metadata index: {settings.mongodb_database}.{settings.mongodb_collection}")
        return MongoMetadataIndex(
            connection_string=settings.mongodb_uri,
            database=settings.mongodb_database,
            collection=settings.mongodb_collection,
        )

    from file_server.database.nosql_adapter import SQLiteMetadataIndex

    logger.info(f"Using SQLite metadata index: {settings.metadata_db_path}")
    return SQLiteMetadataIndex(settings.metadata_db_path)
