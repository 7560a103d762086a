"""
Content store adapters: raw file bytes, one logical container per owner.
"""

import os
import shutil
import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Optional
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError

from file_server.config.settings import Settings
from file_server.errors import ContentNotFoundError, ContentUnavailableError
from file_server.s3.delete_objects import delete_s3_object
from file_server.s3.read_objects import download_s3_object_into, is_missing_object_error
from file_server.s3.write_objects import ensure_s3_bucket, upload_s3_object

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

_COPY_BUFFER_SIZE = 1024 * 1024


def container_name(owner_id: str) -> str:
    """Map any owner id to a single, distinct directory name.

    Percent-quoting removes separators. A leading dot is written as ``%2E``
    (quoting never emits that sequence itself) so ``.``, ``..`` and hidden
    names cannot occur, and the empty id becomes a lone ``%``.

    >>> container_name("..")
    '%2E.'
    """
    container = quote(owner_id, safe="")
    if not container:
        return "%"
    if container.startswith("."):
        container = "%2E" + container[1:]
    return container


class ContentStore(ABC):
    """
    Narrow contract over a blob store.

    ``owner_id`` selects the container and ``name`` the blob inside it;
    ``name`` is always a sanitized name. Implementations must be safe to
    share across concurrent requests.

    Implementations:
    - LocalContentStore: one directory per owner on the local filesystem
    - S3ContentStore: one key prefix per owner in a single S3 bucket
    """

    @abstractmethod
    def ensure_container(self, owner_id: str) -> None:
        """Create the owner's container if needed. Succeeds if it already exists."""

    @abstractmethod
    def write(self, owner_id: str, name: str, stream: BinaryIO) -> None:
        """Consume ``stream`` to the end and store it, replacing any existing content."""

    @abstractmethod
    def read_into(self, owner_id: str, name: str, sink: BinaryIO) -> None:
        """Copy the full content into ``sink``.

        Raises:
            ContentNotFoundError: If there is no blob under ``name``.
        """

    @abstractmethod
    def delete(self, owner_id: str, name: str) -> None:
        """Remove the blob. Deleting a missing blob is not an error."""

    @abstractmethod
    def ping(self) -> None:
        """Raise ContentUnavailableError if the store cannot serve requests."""

    def init_store(self) -> None:
        """Create the store root (directory or bucket) if missing."""


class LocalContentStore(ContentStore):
    """
    Local filesystem content store.

    Layout: ``<root>/<quoted owner id>/<name>``. Writes go to a temporary file
    in the owner directory and are moved into place with ``os.replace`` so a
    reader never sees a partially written blob.
    """

    def __init__(self, root_dir: str):
        self.root_dir = Path(root_dir)

    def _container_path(self, owner_id: str) -> Path:
        return self.root_dir / container_name(owner_id)

    def ensure_container(self, owner_id: str) -> None:
        try:
            self._container_path(owner_id).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating container for owner {owner_id}: {e}")
            raise ContentUnavailableError("Content store unavailable", owner_id=owner_id) from e

    def write(self, owner_id: str, name: str, stream: BinaryIO) -> None:
        container = self._container_path(owner_id)
        target = container / name
        logger.info(f"Writing content for owner {owner_id}: {name}")
        tmp_path: Optional[str] = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=container, prefix=".upload-")
            with os.fdopen(fd, "wb") as tmp_file:
                shutil.copyfileobj(stream, tmp_file, _COPY_BUFFER_SIZE)
            os.replace(tmp_path, target)
            tmp_path = None
        except OSError as e:
            logger.error(f"Error writing content for owner {owner_id}: {name}: {e}")
            raise ContentUnavailableError("Content store unavailable", owner_id=owner_id, key=name) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def read_into(self, owner_id: str, name: str, sink: BinaryIO) -> None:
        source = self._container_path(owner_id) / name
        try:
            with open(source, "rb") as source_file:
                shutil.copyfileobj(source_file, sink, _COPY_BUFFER_SIZE)
        except FileNotFoundError as e:
            raise ContentNotFoundError(
                f"No content stored for '{name}'", owner_id=owner_id, key=name
            ) from e
        except OSError as e:
            logger.error(f"Error reading content for owner {owner_id}: {name}: {e}")
            raise ContentUnavailableError("Content store unavailable", owner_id=owner_id, key=name) from e

    def delete(self, owner_id: str, name: str) -> None:
        target = self._container_path(owner_id) / name
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Error deleting content for owner {owner_id}: {name}: {e}")
            raise ContentUnavailableError("Content store unavailable", owner_id=owner_id, key=name) from e
        logger.info(f"Deleted content for owner {owner_id}: {name}")

    def init_store(self) -> None:
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating content store root {self.root_dir}: {e}")
            raise ContentUnavailableError("Content store unavailable") from e

    def ping(self) -> None:
        if not self.root_dir.is_dir() or not os.access(self.root_dir, os.W_OK):
            logger.error(f"Content store root is missing or not writable: {self.root_dir}")
            raise ContentUnavailableError("Content store unavailable")


class S3ContentStore(ContentStore):
    """
    S3 content store.

    All owners share one bucket; the owner's container is the key prefix
    ``<owner id>/``. Sanitized names never contain ``/``, so one owner's keys
    can never reach into another owner's prefix.
    """

    def __init__(self, bucket_name: str, s3_client: "S3Client", region_name: Optional[str] = None):
        self.bucket_name = bucket_name
        self.s3_client = s3_client
        self.region_name = region_name

    def _object_key(self, owner_id: str, name: str) -> str:
        return f"{owner_id}/{name}"

    def init_store(self) -> None:
        try:
            if ensure_s3_bucket(self.bucket_name, self.region_name, s3_client=self.s3_client):
                logger.info(f"Created S3 bucket: {self.bucket_name}")
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error ensuring bucket {self.bucket_name}: {e}")
            raise ContentUnavailableError("Content store unavailable") from e

    def ensure_container(self, owner_id: str) -> None:
        # Prefixes need no creation; only the shared bucket must exist
        self.init_store()

    def write(self, owner_id: str, name: str, stream: BinaryIO) -> None:
        object_key = self._object_key(owner_id, name)
        logger.info(f"Uploading '{object_key}' to bucket '{self.bucket_name}'")
        try:
            upload_s3_object(self.bucket_name, object_key, stream, s3_client=self.s3_client)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error uploading to S3: {object_key}: {e}")
            raise ContentUnavailableError("Content store unavailable", owner_id=owner_id, key=name) from e

    def read_into(self, owner_id: str, name: str, sink: BinaryIO) -> None:
        object_key = self._object_key(owner_id, name)
        logger.info(f"Downloading '{object_key}' from bucket '{self.bucket_name}'")
        try:
            download_s3_object_into(self.bucket_name, object_key, sink, s3_client=self.s3_client)
        except ClientError as e:
            if is_missing_object_error(e):
                raise ContentNotFoundError(
                    f"No content stored for '{name}'", owner_id=owner_id, key=name
                ) from e
            logger.error(f"Error downloading from S3: {object_key}: {e}")
            raise ContentUnavailableError("Content store unavailable", owner_id=owner_id, key=name) from e
        except BotoCoreError as e:
            logger.error(f"Error downloading from S3: {object_key}: {e}")
            raise ContentUnavailableError("Content store unavailable", owner_id=owner_id, key=name) from e

    def delete(self, owner_id: str, name: str) -> None:
        object_key = self._object_key(owner_id, name)
        try:
            delete_s3_object(self.bucket_name, object_key, s3_client=self.s3_client)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error deleting from S3: {object_key}: {e}")
            raise ContentUnavailableError("Content store unavailable", owner_id=owner_id, key=name) from e
        logger.info(f"Deleted '{object_key}' from bucket '{self.bucket_name}'")

    def ping(self) -> None:
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 health check failed for bucket {self.bucket_name}: {e}")
            raise ContentUnavailableError("Content store unavailable") from e


def get_content_store(settings: Settings) -> ContentStore:
    """Build the content store configured in ``settings``."""
    if settings.content_backend == "s3":
        from file_server.aws.utils import get_s3_client

        logger.info(f"Using S3 bucket: {settings.s3_bucket_name}")
        return S3ContentStore(
            bucket_name=settings.s3_bucket_name,
            s3_client=get_s3_client(settings),
            region_name=settings.aws_region,
        )

    logger.info(f"Using local content store: {settings.storage_dir}")
    return LocalContentStore(settings.storage_dir)
