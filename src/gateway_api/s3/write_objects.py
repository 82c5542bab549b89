"""Functions for writing objects to an S3 bucket--the "C" and "U" in CRUD."""

import time
from typing import Optional, TYPE_CHECKING

from botocore.exceptions import BotoCoreError, ClientError

from gateway_api.errors import TransportError

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

UPLOAD_PREFIX = "uploads"


def build_object_key(file_name: str, now_ms: Optional[int] = None) -> str:
    """Key for a new upload: `uploads/<epoch millis>-<file name>`."""
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    return f"{UPLOAD_PREFIX}/{now_ms}-{file_name}"


def upload_s3_object(
    bucket_name: str,
    object_key: str,
    file_content: bytes,
    s3_client: "S3Client",
    content_type: Optional[str] = None,
) -> None:
    """
    Upload a file to an S3 bucket.

    :param bucket_name: The name of the S3 bucket.
    :param object_key: path to the object in the S3 bucket.
    :param file_content: The content of the file to upload.
    :param s3_client: The boto3 S3 client built at startup.
    :param content_type: The MIME type of the file, e.g. "application/pdf".
    """
    content_type = content_type or "application/octet-stream"
    try:
        s3_client.put_object(
            Bucket=bucket_name,
            Key=object_key,
            Body=file_content,
            ContentType=content_type,
        )
    except (ClientError, BotoCoreError) as e:
        raise TransportError(f"Failed to upload {object_key}: {e}") from e
