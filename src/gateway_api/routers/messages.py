from fastapi import APIRouter, Depends

from gateway_api.dependencies import get_message_producer
from gateway_api.schemas import SendMessageRequest, SendMessageResponse
from gateway_api.services.messages import MessageProducer

router = APIRouter()


@router.post("/messages", response_model=SendMessageResponse)
async def send_message(
    body: SendMessageRequest,
    producer: MessageProducer = Depends(get_message_producer),
) -> SendMessageResponse:
    """
    Queue a message for broadcast to every dashboard client.

    Useful for pushing messages from external tools; the message reaches
    clients through the queue poller, not directly.
    """
    message_id = await producer.send(body.text, body.topic)
    return SendMessageResponse(message_id=message_id)
