"""Functions for reading objects from an S3 bucket--the "R" in CRUD."""

from typing import TYPE_CHECKING

from botocore.exceptions import BotoCoreError, ClientError

from gateway_api.errors import ObjectNotFoundError, TransportError

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client
    from mypy_boto3_s3.type_defs import GetObjectOutputTypeDef

NOT_FOUND_ERROR_CODES = {"NoSuchKey", "404", "NotFound"}


def fetch_s3_object(
    bucket_name: str,
    object_key: str,
    s3_client: "S3Client",
) -> "GetObjectOutputTypeDef":
    """
    Fetch an object, including its streaming body, from an S3 bucket.

    :param bucket_name: The name of the S3 bucket.
    :param object_key: path to the object in the S3 bucket.
    :param s3_client: The boto3 S3 client built at startup.

    :raises ObjectNotFoundError: if the key does not exist.
    """
    try:
        return s3_client.get_object(Bucket=bucket_name, Key=object_key)
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") in NOT_FOUND_ERROR_CODES:
            raise ObjectNotFoundError(f"No object at key: {object_key}") from e
        raise TransportError(f"Failed to fetch {object_key}: {e}") from e
    except BotoCoreError as e:
        raise TransportError(f"Failed to fetch {object_key}: {e}") from e
