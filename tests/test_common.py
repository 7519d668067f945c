import asyncio

import pytest

from wsrelay.common import Message, MessageKind, MessageQueue, QueueClosed


def test_text_message_data_is_utf8():
    message = Message.text("héllo\n")
    assert message.is_text
    assert message.data == "héllo\n".encode("utf-8")


def test_binary_message_is_not_text():
    message = Message.binary(b"\x00\x01")
    assert message.kind is MessageKind.BINARY
    assert not message.is_text
    assert message.data == b"\x00\x01"


def test_message_is_immutable():
    message = Message.text("a")
    with pytest.raises(AttributeError):
        message.payload = "b"


def test_queue_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        MessageQueue(0)


@pytest.mark.asyncio
async def test_queue_is_fifo():
    queue = MessageQueue(4)
    for payload in ["a", "b", "c"]:
        await queue.put(Message.text(payload))
    await queue.close()

    assert [message.payload async for message in queue] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_full_queue_suspends_producer_without_dropping():
    queue = MessageQueue(2)
    payloads = [str(i) for i in range(5)]

    async def produce():
        for payload in payloads:
            await queue.put(Message.text(payload))
        await queue.close()

    producer = asyncio.create_task(produce())
    for _ in range(10):
        await asyncio.sleep(0)

    assert len(queue) == 2
    assert not producer.done()

    received = []
    async for message in queue:
        assert len(queue) <= queue.max_size
        received.append(message.payload)

    await producer
    assert received == payloads


@pytest.mark.asyncio
async def test_get_waits_for_producer():
    queue = MessageQueue()
    getter = asyncio.create_task(queue.get())
    await asyncio.sleep(0)
    assert not getter.done()

    await queue.put(Message.text("late"))
    assert (await getter).payload == "late"


@pytest.mark.asyncio
async def test_closed_queue_is_drained_before_ending():
    queue = MessageQueue()
    await queue.put(Message.text("a"))
    await queue.close()

    assert queue.closed
    assert (await queue.get()).payload == "a"
    assert await queue.get() is None


@pytest.mark.asyncio
async def test_close_wakes_waiting_consumer():
    queue = MessageQueue()
    getter = asyncio.create_task(queue.get())
    await asyncio.sleep(0)

    await queue.close()
    assert await getter is None


@pytest.mark.asyncio
async def test_put_on_closed_queue_raises():
    queue = MessageQueue()
    await queue.close()
    with pytest.raises(QueueClosed):
        await queue.put(Message.text("a"))


@pytest.mark.asyncio
async def test_close_releases_blocked_producer():
    queue = MessageQueue(1)
    await queue.put(Message.text("a"))
    putter = asyncio.create_task(queue.put(Message.text("b")))
    await asyncio.sleep(0)
    assert not putter.done()

    await queue.close()
    with pytest.raises(QueueClosed):
        await putter


def test_text_message_rejects_bytes_payload():
    with pytest.raises(TypeError):
        Message(MessageKind.TEXT, b"not text")


def test_binary_message_rejects_str_payload():
    with pytest.raises(TypeError):
        Message(MessageKind.BINARY, "not bytes")


def test_message_kind_is_required_with_payload():
    with pytest.raises(TypeError):
        Message(MessageKind.TEXT)
