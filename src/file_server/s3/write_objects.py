"""Functions for writing objects to an S3 bucket--the "C" and "U" in CRUD."""

from typing import TYPE_CHECKING, BinaryIO, Optional

import boto3
from botocore.exceptions import ClientError

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client


def ensure_s3_bucket(
    bucket_name: str,
    region_name: Optional[str] = None,
    s3_client: Optional["S3Client"] = None,
) -> bool:
    """
    Create an S3 bucket unless it already exists.

    :param bucket_name: The name of the S3 bucket.
    :param region_name: Region to create the bucket in; us-east-1 takes no location constraint.
    :param s3_client: An optional boto3 S3 client. If not provided, one will be created.
    :return: True if the bucket was created by this call.
    """
    s3_client = s3_client or boto3.client("s3")
    try:
        s3_client.head_bucket(Bucket=bucket_name)
        return False
    except ClientError as error:
        if error.response.get("Error", {}).get("Code") not in ("404", "NoSuchBucket", "NotFound"):
            raise

    create_kwargs = {"Bucket": bucket_name}
    if region_name and region_name != "us-east-1":
        create_kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region_name}
    try:
        s3_client.create_bucket(**create_kwargs)
    except ClientError as error:
        # Lost a race with another creator
        if error.response.get("Error", {}).get("Code") in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
            return False
        raise
    return True


def upload_s3_object(
    bucket_name: str,
    object_key: str,
    file_content: BinaryIO,
    s3_client: Optional["S3Client"] = None,
) -> None:
    """
    Stream a file-like object into an S3 bucket, replacing any existing object.

    :param bucket_name: The name of the S3 bucket.
    :param object_key: path to the object in the S3 bucket.
    :param file_content: A readable binary stream; it is consumed to the end.
    :param s3_client: An optional boto3 S3 client. If not provided, one will be created.
    """
    s3_client = s3_client or boto3.client("s3")
    s3_client.upload_fileobj(
        Fileobj=file_content,
        Bucket=bucket_name,
        Key=object_key,
    )
