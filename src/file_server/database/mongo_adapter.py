"""
MongoDB adapter for file records.
Provides the same metadata index contract as SQLiteMetadataIndex using a native MongoDB collection.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

from file_server.database.metadata_index import MetadataIndex
from file_server.errors import MetadataUnavailableError
from file_server.models import FileRecord

logger = logging.getLogger(__name__)


def _require_str(value: Any, field: str) -> str:
    """Filter values must be plain strings so a caller can never smuggle in an operator document."""
    if not isinstance(value, str):
        raise TypeError(f"{field} must be a string, got {type(value).__name__}")
    return value


class MongoMetadataIndex(MetadataIndex):
    """MongoDB-backed metadata index.

    Documents use the record key as ``_id`` and carry ``owner_id`` as the
    partition (shard) key; every filter includes both.
    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        database: str = "file_server",
        collection: str = "file_records",
        client: Optional[MongoClient] = None,
    ):
        if client is None and not connection_string:
            raise ValueError("MongoDB connection string required. Set MONGODB_URI or pass connection_string")

        self.connection_string = connection_string
        self.client = client or MongoClient(connection_string)
        self.db = self.client[database]
        self.collection = self.db[collection]
        logger.info(f"Using MongoDB collection: {database}.{collection}")

    def _point_filter(self, key: str, owner_id: str) -> Dict[str, str]:
        return {"_id": _require_str(key, "key"), "owner_id": _require_str(owner_id, "owner_id")}

    def init_collections(self) -> None:
        """Create the owner index used by query_by_owner"""
        try:
            self.collection.create_index([("owner_id", ASCENDING)])
            logger.info("MongoDB file record indexes initialized successfully")
        except PyMongoError as e:
            logger.error(f"Error initializing MongoDB indexes: {e}")
            raise MetadataUnavailableError("Metadata index unavailable") from e

    def get(self, key: str, owner_id: str) -> Optional[FileRecord]:
        """Get a record by key"""
        query = self._point_filter(key, owner_id)
        try:
            document = self.collection.find_one(query)
        except PyMongoError as e:
            logger.error(f"Error getting record {key} for owner {owner_id}: {e}")
            raise MetadataUnavailableError("Metadata index unavailable", owner_id=owner_id, key=key) from e

        if document:
            return FileRecord.from_document(document)
        return None

    def upsert(self, record: FileRecord) -> None:
        """Insert or replace a record"""
        query = self._point_filter(record.key, record.owner_id)
        document = record.model_dump()
        document["_id"] = record.key
        document["updated_at"] = datetime.now(timezone.utc)
        try:
            self.collection.replace_one(query, document, upsert=True)
        except PyMongoError as e:
            logger.error(f"Error upserting record {record.key} for owner {record.owner_id}: {e}")
            raise MetadataUnavailableError(
                "Metadata index unavailable", owner_id=record.owner_id, key=record.key
            ) from e
        logger.info(f"Upserted record {record.key} for owner {record.owner_id}")

    def delete(self, key: str, owner_id: str) -> None:
        """Delete a record by key"""
        query = self._point_filter(key, owner_id)
        try:
            result = self.collection.delete_one(query)
        except PyMongoError as e:
            logger.error(f"Error deleting record {key} for owner {owner_id}: {e}")
            raise MetadataUnavailableError("Metadata index unavailable", owner_id=owner_id, key=key) from e

        if result.deleted_count > 0:
            logger.info(f"Deleted record {key} for owner {owner_id}")
        else:
            logger.warning(f"No record found to delete: {key} for owner {owner_id}")

    def query_by_owner(self, owner_id: str) -> Iterator[FileRecord]:
        """Query all records in the owner's partition"""
        query = {"owner_id": _require_str(owner_id, "owner_id")}
        try:
            documents = list(self.collection.find(query))
        except PyMongoError as e:
            logger.error(f"Error querying records for owner {owner_id}: {e}")
            raise MetadataUnavailableError("Metadata index unavailable", owner_id=owner_id) from e

        return iter([FileRecord.from_document(document) for document in documents])

    def ping(self) -> None:
        try:
            self.client.admin.command('ping')
        except PyMongoError as e:
            logger.error(f"MongoDB health check failed: {e}")
            raise MetadataUnavailableError("Metadata index unavailable") from e

    def close(self) -> None:
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
