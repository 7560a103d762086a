"""Functions for reading objects from an S3 bucket--the "R" in CRUD."""

from typing import TYPE_CHECKING, BinaryIO, Optional

import boto3
from botocore.exceptions import ClientError

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

MISSING_OBJECT_ERROR_CODES = ("404", "NoSuchKey", "NotFound")


def is_missing_object_error(error: ClientError) -> bool:
    """Whether a ClientError means the requested object does not exist."""
    return error.response.get("Error", {}).get("Code") in MISSING_OBJECT_ERROR_CODES


def download_s3_object_into(
    bucket_name: str,
    object_key: str,
    sink: BinaryIO,
    s3_client: Optional["S3Client"] = None,
) -> None:
    """
    Stream an object's full content into a writable binary sink.

    Returns only once every byte has been written; transfer errors propagate.

    :param bucket_name: Name of the S3 bucket.
    :param object_key: Key of the object to read.
    :param sink: Writable binary stream receiving the content.
    :param s3_client: Optional S3 client to use. If not provided, a new client will be created.
    """
    s3_client = s3_client or boto3.client("s3")
    s3_client.download_fileobj(Bucket=bucket_name, Key=object_key, Fileobj=sink)
