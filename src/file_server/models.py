"""Domain model for file metadata records."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from file_server.identity import make_key


class FileRecord(BaseModel):
    """Descriptive record of one stored file.

    The record key is derived from ``owner_id`` and ``name`` on every access
    and is never stored as independent state.
    """

    model_config = ConfigDict(frozen=True)

    owner_id: str = Field(..., min_length=1, description="Owner of the file, also the partition key")
    name: str = Field(..., min_length=1, pattern=r"^[A-Za-z0-9_.]+$", description="Sanitized file name")
    content_type: str = Field(..., description="Caller-declared MIME type, stored verbatim")
    content_length: int = Field(..., ge=0, description="Number of bytes held by the content store")

    @property
    def key(self) -> str:
        return make_key(self.owner_id, self.name)

    def to_document(self) -> Dict[str, Any]:
        """Serialize for a document store, including the derived key as ``id``."""
        document = self.model_dump()
        document["id"] = self.key
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "FileRecord":
        """Build a record from a stored document, ignoring store bookkeeping fields."""
        return cls(
            owner_id=document["owner_id"],
            name=document["name"],
            content_type=document["content_type"],
            content_length=document["content_length"],
        )
