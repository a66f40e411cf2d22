"""
Unit tests for broker inspection API.

Tests verify that introspection methods provide accurate information about
channels, subscriptions and broker state, and that the views they return
cannot be used to corrupt the broker.
"""

import json
from pathlib import Path

import chanbroker


def handler1(event: chanbroker.Event) -> None:
    pass


def handler2(event: chanbroker.Event) -> None:
    pass


def test_list_channels_in_priority_order() -> None:
    """Test that list_channels maps each channel to its ordered subscriptions."""
    broker = chanbroker.Broker()

    late = broker.subscribe("system:io", handler1, priority=9)
    early = broker.subscribe("system:io", handler2, priority=1)
    star = broker.subscribe("system:*", handler1)

    channels = broker.list_channels()

    assert set(channels) == {"system:io", "system:*"}
    assert [sub.id for sub in channels["system:io"]] == [early, late]
    assert [sub.id for sub in channels["system:*"]] == [star]


def test_list_channels_returns_a_copy() -> None:
    """Test that mutating the returned mapping leaves the broker untouched."""
    broker = chanbroker.Broker()
    broker.subscribe("copy", handler1)

    channels = broker.list_channels()
    channels["copy"].clear()
    channels["extra"] = []

    assert len(broker.list_channels()["copy"]) == 1
    assert "extra" not in broker.list_channels()


def test_list_subscriptions() -> None:
    """Test the full registry and the exact-channel filter."""
    broker = chanbroker.Broker()

    first = broker.subscribe("a:b", handler1)
    second = broker.subscribe("a:*", handler2)

    assert set(broker.list_subscriptions()) == {first, second}
    assert list(broker.list_subscriptions("a:b")) == [first]
    # Exact names only, no pattern expansion.
    assert list(broker.list_subscriptions("a:*")) == [second]
    assert broker.list_subscriptions("a:c") == {}


def test_get_subscription_miss() -> None:
    """Test that an unknown id returns None."""
    broker = chanbroker.Broker()

    assert broker.get_subscription("missing") is None


def test_get_channels_and_channel_exists() -> None:
    """Test sorted channel names and existence checks."""
    broker = chanbroker.Broker()

    broker.subscribe("system:io:file", handler1)
    broker.subscribe("app:startup", handler2)

    assert broker.get_channels() == ["app:startup", "system:io:file"]
    assert broker.channel_exists("app:startup") is True
    assert broker.channel_exists("nonexistent") is False


def test_empty_channel_is_dropped() -> None:
    """Test that a channel disappears with its last subscription."""
    broker = chanbroker.Broker()

    sub_id = broker.subscribe("short:lived", handler1)
    broker.unsubscribe(sub_id)

    assert broker.channel_exists("short:lived") is False


def test_get_subscriber_count_and_is_subscribed() -> None:
    """Test counting and membership for an exact channel."""
    broker = chanbroker.Broker()

    broker.subscribe("test:event", handler1)
    broker.subscribe("test:event", handler2)

    assert broker.get_subscriber_count("test:event") == 2
    assert broker.get_subscriber_count("nonexistent") == 0
    assert broker.is_subscribed(handler1, "test:event") is True
    assert broker.is_subscribed(handler1, "test:*") is False


def test_to_dict() -> None:
    """Test the dictionary form of the broker."""
    broker = chanbroker.Broker()

    first = broker.subscribe("b:channel", handler1, priority=2, count=3)
    second = broker.subscribe("a:channel", handler2)

    data = broker.to_dict()

    assert list(data) == ["a:channel", "b:channel"]
    assert data["a:channel"] == [
        {
            "id": second,
            "callback": f"{__name__}.handler2",
            "priority": 5,
            "remaining": None,
        },
    ]
    assert data["b:channel"] == [
        {
            "id": first,
            "callback": f"{__name__}.handler1",
            "priority": 2,
            "remaining": 3,
        },
    ]


def test_to_dict_bound_method() -> None:
    """Test that bound methods are reported by class and method name."""
    broker = chanbroker.Broker()

    class Listener(object):
        def on_event(self, event: chanbroker.Event) -> None:
            pass

    listener = Listener()
    broker.subscribe("bound", listener.on_event)

    assert broker.to_dict()["bound"][0]["callback"] == "Listener.on_event"


def test_to_string_is_json() -> None:
    """Test that to_string produces JSON matching to_dict."""
    broker = chanbroker.Broker()
    broker.subscribe("json:channel", handler1)

    assert json.loads(broker.to_string()) == broker.to_dict()


def test_export(tmp_path: Path) -> None:
    """Test that export writes the dictionary form to disk."""
    broker = chanbroker.Broker()
    broker.subscribe("export:channel", handler1)
    filepath = Path(tmp_path, "broker.json")

    broker.export(filepath)

    assert json.loads(filepath.read_text()) == broker.to_dict()


def test_export_empty_broker(tmp_path: Path) -> None:
    """Test that an empty broker exports an empty object."""
    broker = chanbroker.Broker()
    filepath = Path(tmp_path, "empty.json")

    broker.export(str(filepath))

    assert json.loads(filepath.read_text()) == {}
