"""
Sequential asynchronous dispatch for the channel broker.

One broadcast is one walk over the subscriptions it matches: longest matching
channel first, then priority order within each channel. Subscribers are called
one at a time and each result is awaited before the next subscriber runs, so
no two callbacks of a broadcast ever overlap. Separate broadcasts are separate
coroutines and may interleave at those await points.

The walk runs over a list built when the broadcast starts. Subscriptions added
during the walk wait for the next broadcast; subscriptions removed during the
walk are skipped when their turn comes.
"""

import asyncio
import inspect
import logging
from typing import Any
from typing import Callable
from typing import Iterable
from typing import Optional

from chanbroker import event
from chanbroker import handlers
from chanbroker import matcher
from chanbroker import registry
from chanbroker import subscription


logger = logging.getLogger(__name__)


class DispatchPipeline(object):
    """Walks matched subscriptions for each broadcast."""

    def __init__(
        self,
        subscriptions: registry.SubscriptionRegistry,
        channels: registry.ChannelIndex,
        remove: Callable[[subscription.Subscription], Any],
        exception_handler: Optional[
            handlers.SUBSCRIPTION_EXCEPTION_HANDLER
        ] = handlers.log_and_continue_subscriber_exception,
    ) -> None:
        self._subscriptions = subscriptions
        self._channels = channels
        self._remove = remove
        self.exception_handler = exception_handler

    def plan(self, channel: str) -> list[subscription.Subscription]:
        """
        Flatten every matching channel into the order a broadcast visits them.

        Args:
            channel (str): The concrete channel being broadcast on.
        Returns:
            list[subscription.Subscription]: A fresh list, safe to walk while
                the registry changes underneath it.
        """
        order = []
        for name in matcher.match(channel, self._channels):
            order.extend(self._channels.get(name))

        return order

    async def dispatch(self, channel: str, payload: Iterable[Any] = ()) -> None:
        """
        Run one broadcast to completion.

        Args:
            channel (str): The concrete channel being broadcast on.
            payload (Iterable[Any]): Positional values handed to every
                callback ahead of the Event.
        Note:
            -Always yields to the event loop once before the first callback,
            even when nothing matches.
            -Returns once the walk is exhausted or a subscriber cancels the
            event. Subscriber errors go to the exception handler and only
            escape when the handler is None.
        """
        await asyncio.sleep(0)

        queue = self.plan(channel)
        if not queue:
            return

        evt = event.Event(channel=channel, payload=tuple(payload))

        for sub in queue:
            if not self._subscriptions.is_live(sub):
                continue

            if sub.exhausted:
                self._retire(sub)
                continue

            if sub.remaining is not None:
                sub.remaining -= 1

            evt.subscription = sub

            try:
                result = sub.callback(*evt.payload, evt)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._retire(sub)
                if self.exception_handler is None:
                    raise

                stop = self.exception_handler(sub, channel, e)
                if stop:
                    break
                continue

            self._retire(sub)

            if evt.cancelled:
                logger.debug(f"Broadcast on {channel} cancelled by {sub.id}.")
                break

    def _retire(self, sub: subscription.Subscription) -> None:
        # Only a live subscription whose counter ran out is removed.
        if sub.exhausted and self._subscriptions.is_live(sub):
            logger.debug(f"Subscription {sub.id} on {sub.channel} exhausted.")
            self._remove(sub)
