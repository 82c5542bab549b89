"""Time-limited and CDN access URLs for stored objects."""

from datetime import datetime, timedelta, timezone
from typing import Optional, TYPE_CHECKING

from botocore.exceptions import BotoCoreError, ClientError

from gateway_api.errors import TransportError

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client


def generate_signed_url(
    bucket_name: str,
    object_key: str,
    s3_client: "S3Client",
    expires_in: int = 3600,
) -> str:
    """
    Generate a presigned GET URL for an object.

    :param bucket_name: The name of the S3 bucket.
    :param object_key: path to the object in the S3 bucket.
    :param s3_client: The boto3 S3 client built at startup.
    :param expires_in: URL lifetime in seconds (default: 1 hour).
    """
    try:
        return s3_client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": bucket_name, "Key": object_key},
            ExpiresIn=expires_in,
        )
    except (ClientError, BotoCoreError) as e:
        raise TransportError(f"Failed to sign URL for {object_key}: {e}") from e


def clamp_expiry(expires_in: int, max_expires_in: int) -> int:
    return min(int(expires_in), max_expires_in)


def expires_at(expires_in: int, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(seconds=expires_in)


def get_cloudfront_url(domain: Optional[str], object_key: str) -> Optional[str]:
    """Public CloudFront URL for a key, or None if no distribution is configured."""
    if not domain:
        return None
    clean_domain = domain.rstrip("/")
    clean_key = object_key.lstrip("/")
    return f"https://{clean_domain}/{clean_key}"
