import asyncio
import json
import logging

import pytest

from gateway_api.errors import ParseError, TransportError
from gateway_api.poller import QueuePoller, parse_envelope
from gateway_api.realtime.broadcaster import Broadcaster
from gateway_api.realtime.transport import ConnectionManager
from gateway_api.services.messages import MessageProducer
from tests.fixtures.fakes import (
    FakeBroadcaster,
    FakeQueueClient,
    FakeWebSocket,
    StalledWebSocket,
    make_message,
)


def make_poller(queue, broadcaster, sleep):
    return QueuePoller(queue, broadcaster, max_messages=5, error_backoff_seconds=5.0, sleep=sleep)


async def test__valid_message__published_then_deleted(recording_sleep):
    queue = FakeQueueClient([[make_message('{"text":"hi","topic":"t1"}', "r1")]])
    broadcaster = FakeBroadcaster()

    published = await make_poller(queue, broadcaster, recording_sleep).poll_once()

    assert published == 1
    assert len(broadcaster.published) == 1
    envelope = broadcaster.published[0]
    assert envelope.text == "hi"
    assert envelope.topic == "t1"
    assert queue.deleted == ["r1"]
    assert queue.receive_calls == [5]
    assert recording_sleep.calls == []


async def test__unparseable_body__skipped_and_not_deleted(recording_sleep, caplog):
    queue = FakeQueueClient([[make_message("not-json", "r2")]])
    broadcaster = FakeBroadcaster()

    with caplog.at_level(logging.ERROR, logger="gateway_api.poller"):
        published = await make_poller(queue, broadcaster, recording_sleep).poll_once()

    assert published == 0
    assert broadcaster.published == []
    assert queue.deleted == []
    assert "Failed to parse SQS message" in caplog.text


async def test__receive_error__backs_off_then_retries(recording_sleep, caplog):
    queue = FakeQueueClient([
        TransportError("SQS receive_message failed: connection refused"),
        [make_message('{"text":"after"}', "r3")],
    ])
    broadcaster = FakeBroadcaster()
    poller = make_poller(queue, broadcaster, recording_sleep)

    with caplog.at_level(logging.ERROR, logger="gateway_api.poller"):
        assert await poller.poll_once() == 0
    assert recording_sleep.calls == [5.0]
    assert "SQS Polling Error" in caplog.text

    assert await poller.poll_once() == 1
    assert queue.deleted == ["r3"]
    assert recording_sleep.calls == [5.0]


async def test__unexpected_receive_error__also_backs_off(recording_sleep):
    queue = FakeQueueClient([RuntimeError("boom")])

    assert await make_poller(queue, FakeBroadcaster(), recording_sleep).poll_once() == 0
    assert recording_sleep.calls == [5.0]


async def test__empty_receive__no_delete_no_sleep(recording_sleep):
    queue = FakeQueueClient([[]])
    broadcaster = FakeBroadcaster()

    assert await make_poller(queue, broadcaster, recording_sleep).poll_once() == 0
    assert queue.deleted == []
    assert broadcaster.published == []
    assert recording_sleep.calls == []


async def test__batch__bad_message_does_not_affect_others_and_order_is_kept(recording_sleep):
    queue = FakeQueueClient([[
        make_message('{"text":"first","topic":"a"}', "ra"),
        make_message("{broken", "rbad"),
        make_message('{"text":"second","topic":"b"}', "rb"),
    ]])
    broadcaster = FakeBroadcaster()

    assert await make_poller(queue, broadcaster, recording_sleep).poll_once() == 2
    assert [e.text for e in broadcaster.published] == ["first", "second"]
    assert queue.deleted == ["ra", "rb"]


async def test__delete_failure__logged_and_loop_continues(recording_sleep, caplog):
    queue = FakeQueueClient([[
        make_message('{"text":"one"}', "r1"),
        make_message('{"text":"two"}', "r2"),
    ]])
    queue.delete_errors["r1"] = TransportError("SQS delete_message failed: throttled")
    broadcaster = FakeBroadcaster()

    with caplog.at_level(logging.ERROR, logger="gateway_api.poller"):
        published = await make_poller(queue, broadcaster, recording_sleep).poll_once()

    assert published == 2
    assert queue.deleted == ["r2"]
    assert "Failed to delete SQS message" in caplog.text
    assert recording_sleep.calls == []


async def test__publish_failure__message_not_deleted(recording_sleep):
    queue = FakeQueueClient([[make_message('{"text":"hi"}', "r1")]])
    broadcaster = FakeBroadcaster(error=RuntimeError("transport down"))

    assert await make_poller(queue, broadcaster, recording_sleep).poll_once() == 0
    assert queue.deleted == []


async def test__run__survives_errors_until_stopped(stop_event, recording_sleep):
    queue = FakeQueueClient(
        [
            TransportError("SQS receive_message failed: timeout"),
            [make_message("not-json", "bad")],
            [],
            [make_message('{"text":"hi","topic":"t1"}', "r1")],
        ],
        stop_event=stop_event,
    )
    broadcaster = FakeBroadcaster()

    await make_poller(queue, broadcaster, recording_sleep).run(stop_event)

    # four scripted batches plus the empty receive that sets the stop event
    assert len(queue.receive_calls) == 5
    assert [e.text for e in broadcaster.published] == ["hi"]
    assert queue.deleted == ["r1"]
    assert recording_sleep.calls == [5.0]


async def test__run__exits_immediately_when_already_stopped(stop_event, recording_sleep):
    stop_event.set()
    queue = FakeQueueClient([[make_message('{"text":"hi"}', "r1")]])

    await make_poller(queue, FakeBroadcaster(), recording_sleep).run(stop_event)

    assert queue.receive_calls == []


async def test__redelivered_message__published_again(recording_sleep):
    body = json.dumps({"text": "dup", "topic": "t1", "timestamp": "2024-01-01T00:00:00.000Z"})
    queue = FakeQueueClient([
        [make_message(body, "r1", message_id="m1")],
        [make_message(body, "r1-again", message_id="m1")],
    ])
    broadcaster = FakeBroadcaster()
    poller = make_poller(queue, broadcaster, recording_sleep)

    await poller.poll_once()
    await poller.poll_once()

    assert len(broadcaster.published) == 2
    assert queue.deleted == ["r1", "r1-again"]


def test__parse_envelope__defaults_topic_and_keeps_extra_fields():
    envelope = parse_envelope('{"text":"hi","timestamp":"2024-01-01T00:00:00.000Z","priority":3}')

    assert envelope.topic == "general"
    assert envelope.to_event() == {
        "text": "hi",
        "topic": "general",
        "timestamp": "2024-01-01T00:00:00.000Z",
        "priority": 3,
    }


def test__parse_envelope__sender_id_round_trips_as_camel_case():
    envelope = parse_envelope('{"text":"hi","topic":"t1","senderId":"abc"}')

    assert envelope.sender_id == "abc"
    assert envelope.to_event()["senderId"] == "abc"


@pytest.mark.parametrize("body", ["not-json", "", "{broken"])
def test__parse_envelope__rejects_bodies_that_are_not_json(body):
    with pytest.raises(ParseError):
        parse_envelope(body)


@pytest.mark.parametrize(
    "body, expected",
    [
        ('{"topic":"t1"}', {"topic": "t1"}),
        ('{"text": 42}', {"text": 42, "topic": "general"}),
        ('{"message":"hi","topic":"t1"}', {"message": "hi", "topic": "t1"}),
        ('"just a string"', {"text": "just a string", "topic": "general"}),
        ('["text", "hi"]', {"text": ["text", "hi"], "topic": "general"}),
    ],
)
def test__parse_envelope__relays_any_json_as_is(body, expected):
    assert parse_envelope(body).to_event() == expected


async def test__json_bodies_without_text__published_and_deleted(recording_sleep):
    queue = FakeQueueClient([[
        make_message('{"message":"hi","topic":"t1"}', "r1"),
        make_message('{"text":42,"topic":"t1"}', "r2"),
    ]])
    broadcaster = FakeBroadcaster()

    assert await make_poller(queue, broadcaster, recording_sleep).poll_once() == 2
    assert [e.to_event() for e in broadcaster.published] == [
        {"message": "hi", "topic": "t1"},
        {"text": 42, "topic": "t1"},
    ]
    assert queue.deleted == ["r1", "r2"]


async def test__stalled_client__does_not_stall_the_loop(recording_sleep):
    transport = ConnectionManager(send_timeout=0.05)
    healthy = FakeWebSocket()
    await transport.connect(healthy)
    await transport.connect(StalledWebSocket())
    broadcaster = Broadcaster(transport, MessageProducer(FakeQueueClient()))
    queue = FakeQueueClient([
        [make_message('{"text":"one","topic":"t1"}', "r1")],
        [make_message('{"text":"two","topic":"t1"}', "r2")],
    ])
    poller = make_poller(queue, broadcaster, recording_sleep)

    assert await asyncio.wait_for(poller.poll_once(), timeout=2) == 1
    assert await asyncio.wait_for(poller.poll_once(), timeout=2) == 1

    assert queue.deleted == ["r1", "r2"]
    assert [frame["data"]["text"] for frame in healthy.sent] == ["one", "two"]
