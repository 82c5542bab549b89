import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from gateway_api.aws_clients import create_sqs_client
from gateway_api.config.settings import Settings
from gateway_api.errors import TransportError
from gateway_api.schemas import DEFAULT_TOPIC

logger = logging.getLogger(__name__)

TOPIC_ATTRIBUTE = "Topic"
MIN_RECEIVE_MESSAGES = 1
MAX_RECEIVE_MESSAGES = 10
LONG_POLL_WAIT_SECONDS = 20

# Raised by SQS when a receipt handle was already used or its visibility window expired
STALE_RECEIPT_ERROR_CODES = {"ReceiptHandleIsInvalid", "InvalidReceiptHandle"}


def utc_timestamp() -> str:
    """Current time as ISO8601 with millisecond precision and a `Z` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class QueueMessage:
    """One delivery of a queue message."""
    message_id: str
    body: str
    receipt_handle: str
    attributes: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_sqs(cls, message: Dict[str, Any]) -> "QueueMessage":
        attributes = {
            name: value.get("StringValue")
            for name, value in message.get("MessageAttributes", {}).items()
            if "StringValue" in value
        }
        return cls(
            message_id=message.get("MessageId", ""),
            body=message.get("Body", ""),
            receipt_handle=message["ReceiptHandle"],
            attributes=attributes,
        )


class BaseQueueClient:
    """Base class for queue handling (to be extended by specific implementations)"""
    async def send(self, payload: Dict[str, Any], topic: Optional[str] = None) -> str:
        raise NotImplementedError

    async def receive(self, max_messages: int = 5) -> List[QueueMessage]:
        raise NotImplementedError

    async def delete(self, receipt_handle: str) -> bool:
        raise NotImplementedError


class SQSQueueClient(BaseQueueClient):
    """Handles AWS SQS queue"""
    def __init__(self, sqs_client, queue_url: str, wait_time_seconds: int = LONG_POLL_WAIT_SECONDS):
        self.sqs = sqs_client
        self.queue_url = queue_url
        self.wait_time_seconds = wait_time_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "SQSQueueClient":
        """Build the client, raising ConfigurationError if region, credentials or queue URL are missing."""
        sqs_client = create_sqs_client(settings)
        client = cls(
            sqs_client,
            settings.sqs_queue_url,
            wait_time_seconds=settings.sqs_wait_time_seconds,
        )
        logger.info(f"SQSQueueClient initialized")
        logger.info(f"  Queue URL: {client.queue_url}")
        logger.info(f"  Region: {settings.aws_region}")
        return client

    async def _call(self, operation: str, **kwargs) -> Dict[str, Any]:
        # boto3 blocks; keep the long poll off the event loop
        method = getattr(self.sqs, operation)
        try:
            return await asyncio.to_thread(method, QueueUrl=self.queue_url, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise TransportError(f"SQS {operation} failed: {e}") from e

    async def send(self, payload: Dict[str, Any], topic: Optional[str] = None) -> str:
        """Send `payload` stamped with its topic and send time. Returns the SQS message id."""
        topic = topic or DEFAULT_TOPIC
        body = json.dumps({**payload, "topic": topic, "timestamp": utc_timestamp()})
        response = await self._call(
            "send_message",
            MessageBody=body,
            MessageAttributes={
                TOPIC_ATTRIBUTE: {
                    "DataType": "String",
                    "StringValue": topic,
                }
            },
        )
        message_id = response.get("MessageId")
        logger.info(f"Message queued with ID: {message_id} [{topic}]")
        return message_id

    async def receive(self, max_messages: int = 5) -> List[QueueMessage]:
        """Long-poll for up to `max_messages`; an empty list means nothing arrived in the wait window."""
        if not MIN_RECEIVE_MESSAGES <= max_messages <= MAX_RECEIVE_MESSAGES:
            raise ValueError(
                f"max_messages must be between {MIN_RECEIVE_MESSAGES} and {MAX_RECEIVE_MESSAGES}, got {max_messages}"
            )
        response = await self._call(
            "receive_message",
            MaxNumberOfMessages=max_messages,
            WaitTimeSeconds=self.wait_time_seconds,
            MessageAttributeNames=["All"],
        )
        return [QueueMessage.from_sqs(message) for message in response.get("Messages", [])]

    async def delete(self, receipt_handle: str) -> bool:
        """Delete a delivered message. A stale receipt handle is logged and reported as False."""
        try:
            await self._call("delete_message", ReceiptHandle=receipt_handle)
        except TransportError as e:
            cause = e.__cause__
            if isinstance(cause, ClientError) and cause.response.get("Error", {}).get("Code") in STALE_RECEIPT_ERROR_CODES:
                logger.warning(f"Receipt handle already used or expired, ignoring: {str(cause)}")
                return False
            raise
        return True
