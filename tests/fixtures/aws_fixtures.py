"""AWS fixtures for tests, backed by moto."""
import boto3
import pytest
from moto import mock_aws

from gateway_api.config.settings import Settings
from tests.consts import (
    AWS_ENV_VARS,
    TEST_ACCESS_KEY_ID,
    TEST_BUCKET_NAME,
    TEST_QUEUE_NAME,
    TEST_REGION,
    TEST_SECRET_ACCESS_KEY,
)


@pytest.fixture
def clean_aws_env(monkeypatch):
    """Remove every AWS variable so tests never reach a real account."""
    for name in AWS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mocked_aws(clean_aws_env, monkeypatch):
    """Fake S3 bucket and SQS queue; yields the queue URL."""
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", TEST_ACCESS_KEY_ID)
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", TEST_SECRET_ACCESS_KEY)

    with mock_aws():
        s3_client = boto3.client("s3", region_name=TEST_REGION)
        s3_client.create_bucket(Bucket=TEST_BUCKET_NAME)

        sqs_client = boto3.client("sqs", region_name=TEST_REGION)
        queue_url = sqs_client.create_queue(QueueName=TEST_QUEUE_NAME)["QueueUrl"]

        yield queue_url


@pytest.fixture
def settings(mocked_aws) -> Settings:
    """Settings pointing at the moto resources, with the background poller off."""
    return Settings(
        _env_file=None,
        aws_region=TEST_REGION,
        aws_access_key_id=TEST_ACCESS_KEY_ID,
        aws_secret_access_key=TEST_SECRET_ACCESS_KEY,
        s3_bucket_name=TEST_BUCKET_NAME,
        sqs_queue_url=mocked_aws,
        sqs_wait_time_seconds=0,
        poller_enabled=False,
    )


@pytest.fixture
def sqs_client(mocked_aws):
    return boto3.client("sqs", region_name=TEST_REGION)


@pytest.fixture
def s3_client(mocked_aws):
    return boto3.client("s3", region_name=TEST_REGION)
