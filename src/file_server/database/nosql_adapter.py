"""
SQLite-backed document store for file records.
Each record is kept as a JSON document, partitioned by owner id.
"""

import sqlite3
import json
import logging
from typing import Dict, Any, Iterator, Optional

from file_server.database.metadata_index import MetadataIndex
from file_server.errors import MetadataUnavailableError
from file_server.models import FileRecord

logger = logging.getLogger(__name__)


class SQLiteMetadataIndex(MetadataIndex):
    """Metadata index over JSON documents in a SQLite file"""

    def __init__(self, db_path: str = "file_metadata.db"):
        self.db_path = db_path

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection; one per call so the index can be shared across threads"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _serialize_document(self, document: Dict[str, Any]) -> str:
        return json.dumps(document)

    def _deserialize_document(self, json_str: str) -> Dict[str, Any]:
        return json.loads(json_str)

    def init_collections(self) -> None:
        """Initialize the file_records collection (table)"""
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            logger.error(f"Error opening metadata index at {self.db_path}: {e}")
            raise MetadataUnavailableError("Metadata index unavailable") from e
        try:
            cursor = conn.cursor()
            # The (owner_id, id) primary key doubles as the owner partition index
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS file_records_docs (
                    owner_id TEXT NOT NULL,
                    id TEXT NOT NULL,
                    document TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (owner_id, id)
                )
            ''')
            conn.commit()
            logger.info("File records collection initialized successfully")
        except sqlite3.Error as e:
            logger.error(f"Error initializing collections: {e}")
            raise MetadataUnavailableError("Metadata index unavailable") from e
        finally:
            conn.close()

    def get(self, key: str, owner_id: str) -> Optional[FileRecord]:
        """Get a record by key within the owner's partition"""
        try:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    'SELECT document FROM file_records_docs WHERE owner_id = ? AND id = ?',
                    (owner_id, key),
                )
                row = cursor.fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Error getting record {key} for owner {owner_id}: {e}")
            raise MetadataUnavailableError("Metadata index unavailable", owner_id=owner_id, key=key) from e

        if row:
            return FileRecord.from_document(self._deserialize_document(row['document']))
        return None

    def upsert(self, record: FileRecord) -> None:
        """Insert or replace a record"""
        doc_json = self._serialize_document(record.to_document())
        try:
            conn = self._get_connection()
            try:
                conn.execute('''
                    INSERT INTO file_records_docs (owner_id, id, document)
                    VALUES (?, ?, ?)
                    ON CONFLICT (owner_id, id) DO UPDATE SET
                        document = excluded.document,
                        updated_at = CURRENT_TIMESTAMP
                ''', (record.owner_id, record.key, doc_json))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Error upserting record {record.key} for owner {record.owner_id}: {e}")
            raise MetadataUnavailableError(
                "Metadata index unavailable", owner_id=record.owner_id, key=record.key
            ) from e
        logger.info(f"Upserted record {record.key} for owner {record.owner_id}")

    def delete(self, key: str, owner_id: str) -> None:
        """Delete a record by key"""
        try:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    'DELETE FROM file_records_docs WHERE owner_id = ? AND id = ?',
                    (owner_id, key),
                )
                deleted = cursor.rowcount > 0
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Error deleting record {key} for owner {owner_id}: {e}")
            raise MetadataUnavailableError("Metadata index unavailable", owner_id=owner_id, key=key) from e

        if deleted:
            logger.info(f"Deleted record {key} for owner {owner_id}")
        else:
            logger.warning(f"No record found to delete: {key} for owner {owner_id}")

    def query_by_owner(self, owner_id: str) -> Iterator[FileRecord]:
        """Query all records in the owner's partition"""
        try:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    'SELECT document FROM file_records_docs WHERE owner_id = ?',
                    (owner_id,),
                )
                rows = cursor.fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Error querying records for owner {owner_id}: {e}")
            raise MetadataUnavailableError("Metadata index unavailable", owner_id=owner_id) from e

        return iter([FileRecord.from_document(self._deserialize_document(row['document'])) for row in rows])

    def ping(self) -> None:
        """Check that the index can be opened and queried"""
        try:
            conn = self._get_connection()
            try:
                conn.execute('SELECT 1 FROM file_records_docs LIMIT 1').fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Metadata index health check failed: {e}")
            raise MetadataUnavailableError("Metadata index unavailable") from e
