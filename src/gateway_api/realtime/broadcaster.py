import logging
from typing import Optional

from gateway_api.realtime.transport import ConnectionManager
from gateway_api.schemas import BroadcastEnvelope
from gateway_api.services.messages import MessageProducer

logger = logging.getLogger(__name__)

MESSAGE_EVENT = "message"


class Broadcaster:
    """Bridges the queue and the realtime clients in both directions."""

    def __init__(self, transport: ConnectionManager, producer: MessageProducer):
        self.transport = transport
        self.producer = producer

    async def publish(self, envelope: BroadcastEnvelope) -> int:
        """
        Send an envelope to every currently connected client.

        Clients that connect later never see it; there is no backlog.

        Returns:
            Number of clients the event was written to
        """
        return await self.transport.emit(MESSAGE_EVENT, envelope.to_event())

    async def on_client_send(self, session_id: str, text: str, topic: Optional[str] = None) -> str:
        """
        Forward a client-originated message to the queue tagged with the sender's session id.

        Nothing is broadcast here: the message comes back through the poller so every
        client, the sender included, sees it in queue order.
        """
        return await self.producer.send(text, topic, sender_id=session_id)
