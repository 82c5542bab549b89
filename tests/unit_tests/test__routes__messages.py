import json

from fastapi import status
from fastapi.testclient import TestClient

from gateway_api.main import create_app
from tests.fixtures.fakes import FailingSendQueueClient


def test__send_message__queues_message(client: TestClient, sqs_client, mocked_aws):
    response = client.post("/api/messages", json={"text": "hello", "topic": "t1"})

    assert response.status_code == status.HTTP_200_OK
    payload = response.json()
    assert payload["success"] is True
    assert payload["message"] == "Message queued"
    assert payload["messageId"]

    messages = sqs_client.receive_message(QueueUrl=mocked_aws, WaitTimeSeconds=0).get("Messages", [])
    assert len(messages) == 1
    body = json.loads(messages[0]["Body"])
    assert body["text"] == "hello"
    assert body["topic"] == "t1"
    assert "senderId" not in body


def test__send_message__missing_text_is_400(client: TestClient):
    response = client.post("/api/messages", json={"topic": "t1"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "text is required"


def test__send_message__empty_text_is_400(client: TestClient):
    response = client.post("/api/messages", json={"text": ""})

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test__send_message__queue_failure_is_502(settings, s3_client):
    app = create_app(settings, queue_client=FailingSendQueueClient(), s3_client=s3_client)

    with TestClient(app) as client:
        response = client.post("/api/messages", json={"text": "hello"})

    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    assert response.json()["success"] is False
