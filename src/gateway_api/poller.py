"""
Queue-to-socket relay loop.

A single long-running task long-polls the queue, publishes each valid message to
the realtime clients and then deletes it. Delivery is at-least-once: a message is
deleted right after it is handed to the broadcaster, and a failed delete means the
queue redelivers it, so clients may see duplicates.
"""
import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional

from gateway_api.adapters.queue import BaseQueueClient, QueueMessage
from gateway_api.errors import ParseError, TransportError
from gateway_api.realtime.broadcaster import Broadcaster
from gateway_api.schemas import BroadcastEnvelope

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 5
DEFAULT_ERROR_BACKOFF_SECONDS = 5.0


def parse_envelope(body: str) -> BroadcastEnvelope:
    """
    Parse a queue message body into an envelope.

    Only a body that is not JSON at all raises ParseError. A JSON object is
    relayed with whatever keys it carries; any other JSON value becomes the
    envelope's `text`.
    """
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Message body is not JSON: {e}") from e
    if not isinstance(data, dict):
        data = {"text": data}
    return BroadcastEnvelope.model_validate(data)


class QueuePoller:
    """Relays queue messages to the broadcaster until stopped."""

    def __init__(
        self,
        queue_client: BaseQueueClient,
        broadcaster: Broadcaster,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        error_backoff_seconds: float = DEFAULT_ERROR_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.queue_client = queue_client
        self.broadcaster = broadcaster
        self.max_messages = max_messages
        self.error_backoff_seconds = error_backoff_seconds
        self._sleep = sleep

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Poll forever, or until `stop_event` is set.

        The event is checked between iterations; an in-flight long poll is
        allowed to finish.
        """
        stop_event = stop_event or asyncio.Event()
        logger.info("Starting SQS polling loop...")
        while not stop_event.is_set():
            await self.poll_once()
        logger.info("SQS polling loop stopped")

    async def poll_once(self) -> int:
        """
        Run one receive cycle.

        Returns:
            Number of messages published in this cycle
        """
        try:
            messages = await self.queue_client.receive(self.max_messages)
        except TransportError as e:
            logger.error(f"SQS Polling Error: {str(e)}")
            await self._sleep(self.error_backoff_seconds)
            return 0
        except Exception:
            logger.exception("Unexpected error while polling SQS")
            await self._sleep(self.error_backoff_seconds)
            return 0

        published = 0
        for message in messages:
            if await self.handle_message(message):
                published += 1
        return published

    async def handle_message(self, message: QueueMessage) -> bool:
        """Parse, publish and delete one message. Returns True if it was published."""
        try:
            envelope = parse_envelope(message.body)
        except ParseError as e:
            # Left on the queue; it reappears after the visibility timeout
            logger.error(f"Failed to parse SQS message {message.message_id}: {str(e)}")
            return False

        logger.info(f"New SQS Message: [{envelope.topic}] {message.body}")

        try:
            await self.broadcaster.publish(envelope)
        except Exception:
            logger.exception(f"Failed to broadcast SQS message {message.message_id}")
            return False

        try:
            await self.queue_client.delete(message.receipt_handle)
        except Exception as e:
            logger.error(f"Failed to delete SQS message {message.message_id}: {str(e)}")
        return True
