import queue
import threading
import time
from unittest import mock

import pytest
import redis

from cablerelay.redis_pubsub import (
    DEFAULT_REDIS_CHANNEL,
    DEFAULT_REDIS_URL,
    RedisConfig,
    RedisSubscriber,
    next_retry,
)


class RecordingNode:
    def __init__(self):
        self.messages = []
        self.received = threading.Event()

    def handle_pubsub(self, data):
        self.messages.append(data)
        self.received.set()


class FakePubSub:
    def __init__(self, client):
        self.client = client
        self.pending = []

    def subscribe(self, channel):
        self.client.subscribed.append(channel)
        self.pending.append({"type": "subscribe", "channel": channel.encode(), "data": 1})
        self.pending.append(
            {"type": "message", "channel": channel.encode(), "data": b'{"stream":"s","data":"1"}'}
        )

    def get_message(self, timeout=0.0):
        if self.pending:
            return self.pending.pop(0)
        time.sleep(min(timeout, 0.01))
        return None

    def ping(self):
        self.client.pings += 1

    def close(self):
        pass


class FakeClient:
    def __init__(self):
        self.subscribed = []
        self.pings = 0
        self.closed = threading.Event()

    def pubsub(self):
        return FakePubSub(self)

    def close(self):
        self.closed.set()


def test_default_config():
    config = RedisConfig()
    assert config.url == DEFAULT_REDIS_URL == "redis://localhost:6379/5"
    assert config.channel == DEFAULT_REDIS_CHANNEL == "__anycable__"
    assert config.sentinels == ""
    assert config.tls_verify is False


@pytest.mark.parametrize("step", [1, 2, 3, 4, 5])
def test_next_retry_bounds(step):
    for _ in range(50):
        delay = next_retry(step)
        extra = delay - step * step
        assert extra >= 0
        assert extra % (step + 1) == 0
        assert extra // (step + 1) < step * 4


def test_next_retry_rejects_non_positive_step():
    with pytest.raises(ValueError):
        next_retry(0)


def test_messages_are_passed_to_node():
    client = FakeClient()
    node = RecordingNode()
    config = RedisConfig(channel="broadcasts")
    subscriber = RedisSubscriber(node, config)
    done = queue.Queue()

    with mock.patch("redis.Redis.from_url", return_value=client) as from_url:
        subscriber.start(done)
        assert node.received.wait(2)
        subscriber.shutdown()
        assert client.closed.wait(3)

    assert node.messages == [b'{"stream":"s","data":"1"}']
    assert client.subscribed == ["broadcasts"]
    assert from_url.call_args.args[0] == config.url
    assert done.empty()


def test_failed_connection_waits_before_retry():
    node = RecordingNode()
    subscriber = RedisSubscriber(node, RedisConfig())
    done = queue.Queue()
    called = threading.Event()

    def failing(*args, **kwargs):
        called.set()
        raise redis.ConnectionError("refused")

    with mock.patch("redis.Redis.from_url", side_effect=failing) as from_url:
        subscriber.start(done)
        assert called.wait(2)
        time.sleep(0.2)
        subscriber.shutdown()
        assert from_url.call_count == 1

    assert done.empty()
    assert node.messages == []