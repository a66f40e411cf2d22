"""
Subscription registry and channel index for the channel broker.

The SubscriptionRegistry is the source of truth for which subscriptions exist,
keyed by subscription id. The ChannelIndex maps each exact channel name to its
subscriptions in dispatch order: ascending priority, with ties kept in
subscribe order.

A channel exists in the index while it has at least one subscription. The
broker keeps both structures in step; neither is meant to be mutated on its
own by user code.
"""

from typing import Iterator
from typing import Optional

from chanbroker import subscription


def _priority(sub: subscription.Subscription) -> float:
    return sub.priority


class ChannelIndex(object):
    """Exact channel name to ordered subscriptions."""

    def __init__(self) -> None:
        self._channels: dict[str, list[subscription.Subscription]] = {}

    def __contains__(self, channel: str) -> bool:
        return channel in self._channels

    def __iter__(self) -> Iterator[str]:
        return iter(self._channels)

    def get(self, channel: str) -> list[subscription.Subscription]:
        """Subscriptions on the exact channel, in dispatch order. Not a copy."""
        return self._channels.get(channel, [])

    def add(self, sub: subscription.Subscription) -> bool:
        """
        Append a subscription to its channel and restore priority order.
        Returns True if the channel was created by this call.
        """
        is_new_channel = self._ensure_channel_exists(sub.channel)
        entry = self._channels[sub.channel]
        entry.append(sub)
        entry.sort(key=_priority)
        return is_new_channel

    def resort(self, channel: str) -> None:
        """Stable re-sort after a priority override."""
        if channel in self._channels:
            self._channels[channel].sort(key=_priority)

    def remove(self, sub: subscription.Subscription) -> bool:
        """
        Remove a subscription from its channel.
        Returns True if the channel was dropped because it became empty.
        """
        if sub.channel not in self._channels:
            return False

        entry = self._channels[sub.channel]
        self._channels[sub.channel] = [s for s in entry if s is not sub]
        return self._cleanup_channel_if_empty(sub.channel)

    def find(
        self, channel: str, callback: subscription.CALLBACK
    ) -> Optional[subscription.Subscription]:
        """The subscription with the given callback on the exact channel."""
        for sub in self._channels.get(channel, []):
            if sub.callback == callback:
                return sub
        return None

    def snapshot(self) -> dict[str, list[subscription.Subscription]]:
        """Copy of the index. Mutating it has no effect on the broker."""
        return {channel: list(subs) for channel, subs in self._channels.items()}

    def clear(self) -> None:
        self._channels = {}

    def _ensure_channel_exists(self, channel: str) -> bool:
        if channel not in self._channels:
            self._channels[channel] = []
            return True

        return False

    def _cleanup_channel_if_empty(self, channel: str) -> bool:
        if not self._channels.get(channel):
            self._channels.pop(channel, None)
            return True

        return False


class SubscriptionRegistry(object):
    """Subscription id to subscription record."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, subscription.Subscription] = {}

    def __contains__(self, id_: str) -> bool:
        return id_ in self._subscriptions

    def get(self, id_: str) -> Optional[subscription.Subscription]:
        return self._subscriptions.get(id_)

    def is_live(self, sub: subscription.Subscription) -> bool:
        """True while this exact record is registered under its id."""
        return self._subscriptions.get(sub.id) is sub

    def add(self, sub: subscription.Subscription) -> None:
        if sub.id in self._subscriptions:
            raise KeyError(f"Subscription id '{sub.id}' is already in use.")
        self._subscriptions[sub.id] = sub

    def pop(self, id_: str) -> Optional[subscription.Subscription]:
        return self._subscriptions.pop(id_, None)

    def find_callback(
        self, callback: subscription.CALLBACK
    ) -> list[subscription.Subscription]:
        """Every subscription using the callback, across all channels."""
        return [sub for sub in self._subscriptions.values() if sub.callback == callback]

    def snapshot(self) -> dict[str, subscription.Subscription]:
        return dict(self._subscriptions)

    def clear(self) -> None:
        self._subscriptions = {}
