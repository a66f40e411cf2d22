"""
# Channel Broker

The public surface of the package. A Broker owns one subscription registry and
one channel index and hands broadcasts to its dispatch pipeline.

Channels are colon-delimited (`orders:eu:created`) and may use `*` segments
when subscribing. Lower priorities run first. Broadcasts are coroutines: the
caller awaits them, or schedules them with asyncio.create_task().

For a complete breakdown of broker functionality, read the project readme.
"""

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any
from typing import Callable
from typing import Coroutine
from typing import Mapping
from typing import Optional
from typing import Union

from chanbroker import dispatch
from chanbroker import errors
from chanbroker import handlers
from chanbroker import matcher
from chanbroker import registry
from chanbroker import subscription


logger = logging.getLogger(__name__)


version_major = 1
version_minor = 0
version_patch = 0
__version__ = f"{version_major}.{version_minor}.{version_patch}"


def short_id() -> str:
    """Default subscription id factory."""
    return uuid.uuid4().hex[:12]


def _validate_channel(channel: Any, action: str) -> None:
    if not channel or not isinstance(channel, str):
        raise errors.InvalidChannelError(
            f"A non-empty channel string is required to {action}, got {channel!r}."
        )


class Broker(object):
    """
    Primary event coordinator.
    Supports hierarchical channels through colon notation, with * for
    single-segment wildcards.

    Supports both synchronous and asynchronous subscribers. Every broadcast
    walks its subscribers one at a time, awaiting each before the next.

    To manage subscribers use subscribe() and unsubscribe(), or decorate with
    @broker.listener().
    """

    def __init__(
        self,
        default_priority: Union[int, float] = subscription.DEFAULT_PRIORITY,
        exception_handler: Optional[
            handlers.SUBSCRIPTION_EXCEPTION_HANDLER
        ] = handlers.log_and_continue_subscriber_exception,
        id_factory: Callable[[], str] = short_id,
    ) -> None:
        self.default_priority = default_priority
        self._id_factory = id_factory

        self._subscriptions = registry.SubscriptionRegistry()
        self._channels = registry.ChannelIndex()
        self._pipeline = dispatch.DispatchPipeline(
            subscriptions=self._subscriptions,
            channels=self._channels,
            remove=self._discard,
            exception_handler=exception_handler,
        )

    @property
    def version(self) -> str:
        return __version__

    def __str__(self) -> str:
        return f"chanbroker version [{self.version}]"

    def clear(self) -> None:
        """Remove every channel and subscription."""
        self._subscriptions.clear()
        self._channels.clear()

    # -----Subscriber Management-----------------------------------------------

    def _resolve_callback(
        self, handle: subscription.CALLBACK_HANDLE
    ) -> subscription.CALLBACK:
        """Turn the callback slot of subscribe() into a callable."""
        if isinstance(handle, subscription.ExistingId):
            existing = self._subscriptions.get(handle.id)
            if existing is None:
                raise errors.InvalidCallbackError(
                    f"No subscription with id '{handle.id}'."
                )
            return existing.callback

        if not callable(handle):
            raise errors.InvalidCallbackError(
                f"A callable or ExistingId is required to subscribe, got {handle!r}."
            )

        return handle

    def _new_id(self) -> str:
        id_ = self._id_factory()
        while id_ in self._subscriptions:
            id_ = self._id_factory()

        return id_

    def subscribe(
        self,
        channel: str,
        callback: subscription.CALLBACK_HANDLE,
        options: Union[
            None, subscription.SubscribeOptions, Mapping[str, Any]
        ] = None,
        **option_kwargs: Any,
    ) -> str:
        """
        Register a callback to a channel.

        Args:
            channel (str): Channel name (e.g., 'system:io:file_open' or
                'system:*').
            callback (CALLBACK_HANDLE): Function to call on broadcast, sync or
                async, or an ExistingId naming a live subscription whose
                callback should be used.
            options (SubscribeOptions | Mapping | None): priority, count,
                context and force.
            **option_kwargs (Any): Same keys as options, taking precedence.
        Returns:
            str: The subscription id. When the callback is already subscribed
                to the channel, the existing id.
        Raises:
            InvalidChannelError: If channel is not a non-empty string.
            InvalidCallbackError: If callback is not callable and not a live
                ExistingId.
            InvalidOptionsError: If options are malformed.
        Notes:
            Re-subscribing an existing callback ignores the new options unless
            force=True is passed, in which case priority, count and context
            are replaced and the channel is re-sorted.
        """
        _validate_channel(channel, "subscribe")
        callback = self._resolve_callback(callback)
        opts = subscription.SubscribeOptions.build(
            options, option_kwargs, default_priority=self.default_priority
        )

        existing = self._channels.find(channel, callback)
        if existing is not None:
            if opts.force:
                existing.apply(opts)
                self._channels.resort(channel)
                logger.debug(f"Forced options onto {existing.id} on {channel}.")

            return existing.id

        sub = subscription.Subscription.from_options(
            self._new_id(), channel, callback, opts
        )
        self._subscriptions.add(sub)
        self._channels.add(sub)
        logger.debug(
            f"Subscribed {handlers.callback_name(callback)} to {channel} "
            f"as {sub.id} [priority={sub.priority}]."
        )

        return sub.id

    on = subscribe
    register = subscribe

    def listener(self, channel: str, **option_kwargs: Any) -> Callable:
        """
        Decorator to subscribe a function or static method to a channel.

        To subscribe a bound method (one using 'self'), use
        broker.subscribe('channel', self.method).

        Args:
            channel (str): The channel to subscribe to.
            **option_kwargs (Any): priority, count, context and force.
        """

        def decorator(func: subscription.CALLBACK) -> subscription.CALLBACK:
            self.subscribe(channel, func, **option_kwargs)
            return func

        return decorator

    def _discard(self, sub: subscription.Subscription) -> None:
        """Drop a subscription from both the registry and the channel index."""
        if self._subscriptions.is_live(sub):
            self._subscriptions.pop(sub.id)
        self._channels.remove(sub)
        logger.debug(f"Unsubscribed {sub.id} from {sub.channel}.")

    def unsubscribe(
        self,
        channel_or_id: Union[None, str, subscription.ExistingId] = None,
        callback: Optional[subscription.CALLBACK] = None,
    ) -> Optional[subscription.Subscription]:
        """
        Remove a subscription, by channel and callback or by subscription id.

        Args:
            channel_or_id (str | ExistingId): The exact channel the callback
                was subscribed to, or a subscription id when callback is
                omitted.
            callback (Optional[Callable]): The subscribed function.
        Returns:
            Optional[Subscription]: The removed subscription, or None if
                nothing matched. Unsubscribing twice is safe.
        Raises:
            InvalidChannelError: If channel_or_id is not a non-empty string.
            InvalidCallbackError: If callback is given but not callable.
        """
        if isinstance(channel_or_id, subscription.ExistingId):
            channel_or_id = channel_or_id.id

        _validate_channel(channel_or_id, "unsubscribe")

        if callback is None:
            sub = self._subscriptions.get(channel_or_id)
        elif not callable(callback):
            raise errors.InvalidCallbackError(
                f"Callback to unsubscribe must be callable, got {callback!r}."
            )
        else:
            sub = self._channels.find(channel_or_id, callback)

        if sub is None:
            return None

        self._discard(sub)
        return sub

    off = unsubscribe
    unregister = unsubscribe

    def unsubscribe_callback(
        self, callback: subscription.CALLBACK
    ) -> list[subscription.Subscription]:
        """
        Remove a callback from every channel it is subscribed to.

        Args:
            callback (Callable): The subscribed function.
        Returns:
            list[Subscription]: The removed subscriptions, possibly empty.
        """
        if not callable(callback):
            raise errors.InvalidCallbackError(
                f"Callback to unsubscribe must be callable, got {callback!r}."
            )

        removed = self._subscriptions.find_callback(callback)
        for sub in removed:
            self._discard(sub)

        return removed

    def set_subscriber_exception_handler(
        self, handler: Optional[handlers.SUBSCRIPTION_EXCEPTION_HANDLER]
    ) -> None:
        """
        Set the exception handler for subscriber errors.
        The handler is called when a subscriber raises during a broadcast.

        Args:
            Optional[handlers.SUBSCRIPTION_EXCEPTION_HANDLER]:
                Callable with signature (Subscription, str, Exception) -> bool.
                Returns True to stop the walk, False to continue.
                Pass None to let subscriber exceptions escape the broadcast.
        """
        self._pipeline.exception_handler = handler

    # -----Broadcasting--------------------------------------------------------

    def broadcast(self, channel: str, *payload: Any) -> Coroutine[Any, Any, None]:
        """
        Broadcast to every subscriber whose channel matches.

        Subscribers run one at a time, longest matching channel first, then by
        priority. Each receives the payload values followed by the Event.
        Any subscriber may call event.cancel() to stop the remaining walk.

        Args:
            channel (str): Concrete channel (e.g., 'system:io:file_open').
            *payload (Any): Values forwarded to every subscriber.
        Returns:
            Coroutine: Await it to run the broadcast to completion.
        Raises:
            InvalidChannelError: Immediately, if channel is not a non-empty
                string.
        """
        _validate_channel(channel, "broadcast")
        return self._pipeline.dispatch(channel, payload)

    emit = broadcast
    publish = broadcast
    trigger = broadcast

    # -----Introspection API---------------------------------------------------

    def list_channels(self) -> dict[str, list[subscription.Subscription]]:
        """Every channel with its subscriptions in dispatch order (a copy)."""
        return self._channels.snapshot()

    def list_subscriptions(
        self, channel: Optional[str] = None
    ) -> dict[str, subscription.Subscription]:
        """
        Get subscriptions keyed by id.

        Args:
            channel (Optional[str]): Restrict to subscriptions registered under
                this exact name. Patterns are not expanded.
        Returns:
            dict[str, Subscription]: A new dict; the records are live.
        """
        if channel is None:
            return self._subscriptions.snapshot()

        return {sub.id: sub for sub in self._channels.get(channel)}

    def get_subscription(self, id_: str) -> Optional[subscription.Subscription]:
        return self._subscriptions.get(id_)

    def get_channels(self) -> list[str]:
        """Get all channels with subscriptions."""
        return sorted(self._channels)

    def channel_exists(self, channel: str) -> bool:
        """Check if a channel has subscriptions."""
        return channel in self._channels

    def get_subscriber_count(self, channel: str) -> int:
        """Number of subscriptions registered under the exact channel."""
        return len(self._channels.get(channel))

    def is_subscribed(self, callback: subscription.CALLBACK, channel: str) -> bool:
        """
        Check if a specific callback is subscribed to a channel.

        Args:
            callback (Callable): The callback function to check.
            channel (str): The exact channel to check.
        Returns:
            bool: True if callback is subscribed to channel, False otherwise.
        """
        return self._channels.find(channel, callback) is not None

    def get_matching_channels(self, channel: str) -> list[str]:
        """
        Get the subscribed channels a broadcast on `channel` would reach.

        Example:
            broker.get_matching_channels('system:io:file')
            ['system:io:file', 'system:io:*', 'system:*', '*']
        """
        return matcher.match(channel, self._channels)

    def to_dict(self) -> dict:
        """
        Convert the broker structure to a dictionary.

        Example:
            {'orders:*': [{'id': '3f2a9c1e0b7d', 'callback': 'app.on_order',
                           'priority': 1, 'remaining': None}]}
        """
        return {
            channel: [
                {
                    "id": sub.id,
                    "callback": handlers.callback_name(sub.callback),
                    "priority": sub.priority,
                    "remaining": sub.remaining,
                }
                for sub in self._channels.get(channel)
            ]
            for channel in sorted(self._channels)
        }

    def to_string(self) -> str:
        """Returns a JSON string representation of the broker."""
        return json.dumps(self.to_dict(), indent=2)

    def export(self, filepath: Union[str, os.PathLike]) -> None:
        """Export broker structure to filepath as JSON."""
        Path(filepath).write_text(self.to_string() + "\n")
