"""Message producer: the single path by which messages enter the queue."""
import logging
from typing import Optional

from gateway_api.adapters.queue import BaseQueueClient
from gateway_api.errors import ValidationError

logger = logging.getLogger(__name__)


class MessageProducer:
    """Wraps a text payload in the queue envelope and sends it."""

    def __init__(self, queue_client: BaseQueueClient):
        self.queue_client = queue_client

    async def send(self, text: str, topic: Optional[str] = None, sender_id: Optional[str] = None) -> str:
        """
        Queue a message for relay to every connected client.

        Args:
            text: Message text (required)
            topic: Topic to send under; the queue client defaults it to `general`
            sender_id: Realtime session id of the originating client, if any

        Returns:
            The queue's message id
        """
        if not text:
            raise ValidationError("Text is required")

        payload = {"text": text}
        if sender_id is not None:
            payload["senderId"] = sender_id

        logger.info(f"Sending message to SQS: [{topic}] {text}")
        return await self.queue_client.send(payload, topic)
