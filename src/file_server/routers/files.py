import logging
from tempfile import SpooledTemporaryFile

from fastapi import (
    APIRouter,
    Depends,
    File,
    Path,
    UploadFile,
)
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from file_server.dependencies import get_owner_id, get_registry
from file_server.registry import FileRegistry
from file_server.schemas import (
    DeleteFileResponse,
    FileMetadata,
    GetFilesResponse,
    PutFileResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
# Downloads larger than this spill from memory to a temporary file
DOWNLOAD_SPOOL_MAX_MEMORY = 8 * 1024 * 1024
DOWNLOAD_CHUNK_SIZE = 64 * 1024

router = APIRouter()


def _store_upload(registry: FileRegistry, owner_id: str, raw_name: str, file_content: UploadFile) -> PutFileResponse:
    record = registry.upload(
        owner_id=owner_id,
        raw_name=raw_name,
        content_type=file_content.content_type or DEFAULT_CONTENT_TYPE,
        stream=file_content.file,
        declared_length=file_content.size,
    )
    return PutFileResponse(
        file=FileMetadata.from_record(record),
        message=f"Uploaded file: {record.name}",
    )


@router.get("/files", response_model=GetFilesResponse)
def list_files(
    owner_id: str = Depends(get_owner_id),
    registry: FileRegistry = Depends(get_registry),
) -> GetFilesResponse:
    """List every file stored for the requesting owner."""
    records = registry.list_files(owner_id)
    return GetFilesResponse(files=[FileMetadata.from_record(record) for record in records])


@router.put("/files/{file_name}", response_model=PutFileResponse)
def upload_file(
    file_name: str = Path(..., description="Name to store the file under; sanitized before use"),
    file_content: UploadFile = File(..., description="The file to upload"),
    owner_id: str = Depends(get_owner_id),
    registry: FileRegistry = Depends(get_registry),
) -> PutFileResponse:
    """
    Upload a file, replacing any file with the same sanitized name.

    Only letters, digits, underscores and dots are kept from ``file_name``.
    """
    return _store_upload(registry, owner_id, file_name, file_content)


@router.post("/files", response_model=PutFileResponse)
def upload_form_file(
    file_content: UploadFile = File(..., description="The file to upload, stored under its own file name"),
    owner_id: str = Depends(get_owner_id),
    registry: FileRegistry = Depends(get_registry),
) -> PutFileResponse:
    """Upload a file from a form, named after the uploaded file."""
    return _store_upload(registry, owner_id, file_content.filename or "", file_content)


@router.get(
    "/files/{file_name}",
    response_class=StreamingResponse,
    responses={
        200: {"description": "The file content", "content": {DEFAULT_CONTENT_TYPE: {}}},
        404: {"description": "File or its content not found"},
    },
)
def get_file(
    file_name: str = Path(..., description="Name of the file to download"),
    owner_id: str = Depends(get_owner_id),
    registry: FileRegistry = Depends(get_registry),
) -> StreamingResponse:
    """
    Download a file.

    The content is fully transferred from the content store before the
    response starts, so a failed transfer is reported as an error status
    rather than a truncated body.
    """
    spool = SpooledTemporaryFile(max_size=DOWNLOAD_SPOOL_MAX_MEMORY)
    try:
        record = registry.download(owner_id, file_name, spool)
    except Exception:
        spool.close()
        raise

    body_length = spool.tell()
    spool.seek(0)
    return StreamingResponse(
        content=iter(lambda: spool.read(DOWNLOAD_CHUNK_SIZE), b""),
        headers={
            # Stored type verbatim, no charset appended
            "Content-Type": record.content_type,
            "Content-Length": str(body_length),
            "Content-Disposition": f'attachment; filename="{record.name}"',
        },
        background=BackgroundTask(spool.close),
    )


@router.delete("/files/{file_name}", response_model=DeleteFileResponse)
def delete_file(
    file_name: str = Path(..., description="Name of the file to delete"),
    owner_id: str = Depends(get_owner_id),
    registry: FileRegistry = Depends(get_registry),
) -> DeleteFileResponse:
    """Delete a file and its metadata."""
    registry.delete(owner_id, file_name)
    return DeleteFileResponse(message=f"Deleted file: {file_name}")
