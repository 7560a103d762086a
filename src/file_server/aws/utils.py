"""AWS client construction."""
import os
import boto3
import logging
from typing import TYPE_CHECKING, Any, Dict

from file_server.config.settings import Settings

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)


def get_client_kwargs(settings: Settings) -> Dict[str, Any]:
    """Build boto3 client keyword arguments from settings."""
    client_kwargs: Dict[str, Any] = {
        'region_name': settings.aws_region
    }

    # Add credentials from settings; otherwise boto3's default chain applies
    if settings.aws_access_key_id:
        client_kwargs['aws_access_key_id'] = settings.aws_access_key_id
    if settings.aws_secret_access_key:
        client_kwargs['aws_secret_access_key'] = settings.aws_secret_access_key

    # Add endpoint URL for local/mock modes
    if settings.aws_endpoint_url and settings.deployment_mode in ['local-dev', 'aws-mock']:
        client_kwargs['endpoint_url'] = settings.aws_endpoint_url

    return client_kwargs


def get_s3_client(settings: Settings) -> "S3Client":
    """
    Create an S3 client for the configured deployment mode.

    boto3 clients are thread safe, so one client is built at startup and
    shared by every request.
    """
    aws_profile = os.environ.get('AWS_PROFILE')
    if aws_profile and settings.deployment_mode == 'aws-prod':
        # Use session with profile for SSO
        session = boto3.Session(profile_name=aws_profile)
        logger.info(f"Creating S3 client using profile: {aws_profile}")
        return session.client('s3', region_name=settings.aws_region)

    client_kwargs = get_client_kwargs(settings)
    logger.info(f"Creating S3 client (mode: {settings.deployment_mode}, region: {settings.aws_region}, "
                f"endpoint: {client_kwargs.get('endpoint_url')})")
    return boto3.client('s3', **client_kwargs)
