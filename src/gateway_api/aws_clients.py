"""AWS client construction from validated settings."""
import logging
from typing import Any, TYPE_CHECKING

import boto3

from gateway_api.config.settings import (
    QUEUE_REQUIRED_SETTINGS,
    STORAGE_REQUIRED_SETTINGS,
    Settings,
)

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client
    from mypy_boto3_sqs import SQSClient

logger = logging.getLogger(__name__)


def create_client(service_name: str, settings: Settings) -> Any:
    """Create a boto3 client for `service_name` using the credentials in `settings`."""
    client_kwargs = {
        'region_name': settings.aws_region,
        'aws_access_key_id': settings.aws_access_key_id,
        'aws_secret_access_key': settings.aws_secret_access_key,
    }

    # Local emulators (localstack, moto server)
    if settings.aws_endpoint_url:
        client_kwargs['endpoint_url'] = settings.aws_endpoint_url

    try:
        client = boto3.client(service_name, **client_kwargs)
    except Exception as e:
        logger.error(f"Error creating {service_name} client: {str(e)}")
        raise
    logger.debug(f"Created {service_name} client")
    return client


def create_sqs_client(settings: Settings) -> "SQSClient":
    """Get an SQS client, failing fast when the queue settings are incomplete."""
    settings.require(QUEUE_REQUIRED_SETTINGS, "SQS")
    client = create_client('sqs', settings)
    logger.info("SQS Client initialized successfully")
    return client


def create_s3_client(settings: Settings) -> "S3Client":
    """Get an S3 client, failing fast when the bucket settings are incomplete."""
    settings.require(STORAGE_REQUIRED_SETTINGS, "S3")
    client = create_client('s3', settings)
    logger.info("S3 Client initialized successfully")
    return client
