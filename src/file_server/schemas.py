####################################
# --- Request/response schemas --- #
####################################

from typing import List

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

from file_server.models import FileRecord


class FileMetadata(BaseModel):
    """Metadata of a file."""
    name: str = Field(
        description="The sanitized name of the file.",
        json_schema_extra={"example": "report_2024.pdf"},
    )
    content_type: str = Field(description="The MIME type declared at upload.")
    content_length: int = Field(description="The size of the file in bytes.")

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileMetadata":
        return cls(
            name=record.name,
            content_type=record.content_type,
            content_length=record.content_length,
        )


class GetFilesResponse(BaseModel):
    """Response model for `GET /v1/files`."""
    files: List[FileMetadata]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "files": [
                    {
                        "name": "report_2024.pdf",
                        "content_type": "application/pdf",
                        "content_length": 512,
                    }
                ],
            }
        }
    )


class PutFileResponse(BaseModel):
    """Response model for `PUT /v1/files/:file_name` and `POST /v1/files`."""
    file: FileMetadata
    message: str = Field(description="A message about the operation.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "file": {
                    "name": "report_2024.pdf",
                    "content_type": "application/pdf",
                    "content_length": 512,
                },
                "message": "Uploaded file: report_2024.pdf",
            }
        }
    )


class DeleteFileResponse(BaseModel):
    """Response model for `DELETE /v1/files/:file_name`."""
    message: str
