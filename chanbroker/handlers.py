"""
Exception handling utilities for the channel broker.

Provides exception handler functions and type definitions for managing errors
that occur while a broadcast walks its subscribers. Includes built-in handlers
for common patterns: logging and continuing (the default), silently
continuing, stopping the walk with logging, and collecting exceptions for
batch processing.

A handler never makes the broadcast itself fail. To let subscriber errors
escape the broadcast, set the broker's handler to None.
"""

import logging
import sys
import types
from typing import Callable

from chanbroker import subscription


logger = logging.getLogger(__name__)


SUBSCRIPTION_EXCEPTION_HANDLER = Callable[
    [subscription.Subscription, str, Exception], bool
]
"""
Signature for exception handlers.

Exception handlers receive the failing subscription, the broadcast channel and
the exception, then return True to stop the walk or False to continue to the
remaining subscribers.
"""

STOP = True
CONTINUE = False


def callback_name(callback: Callable) -> str:
    """
    Readable name for a subscriber callback. Bound methods report
    `Class.method`, functions their module and qualified name, and anything
    else its repr.
    """
    owner = getattr(callback, "__self__", None)
    if owner is not None and not isinstance(owner, types.ModuleType):
        return f"{type(owner).__name__}.{callback.__name__}"

    qualname = getattr(callback, "__qualname__", None)
    if qualname is None:
        return repr(callback)

    return f"{getattr(callback, '__module__', '<unknown>')}.{qualname}"


def describe_subscription(sub: subscription.Subscription) -> str:
    """`callback [id] on channel`, with the remaining count when bounded."""
    text = f"{callback_name(sub.callback)} [{sub.id}] on {sub.channel}"
    if sub.remaining is not None:
        text += f" (remaining={sub.remaining})"
    return text


def log_and_continue_subscriber_exception(
    sub: subscription.Subscription, channel: str, exception: Exception
) -> bool:
    """Log subscriber errors but continue processing."""
    logger.warning(
        f"Subscriber error (continuing) for {channel}: "
        f"{describe_subscription(sub)}: {exception}"
    )
    return CONTINUE


def stop_and_log_subscriber_exception(
    sub: subscription.Subscription, channel: str, exception: Exception
) -> bool:
    """
    Handler that logs the raised exception and stops the walk. The broadcast
    still completes normally.
    """
    logger.error(
        f"Exception in broker subscriber, broadcast on {channel} stopped at "
        f"{describe_subscription(sub)}: "
        f"{exception.__class__.__name__}: {exception}",
        exc_info=exception,
    )
    return STOP


def silent_subscriber_exception(
    _: subscription.Subscription, __: str, ___: Exception
) -> bool:
    """Silently ignore all exceptions."""
    return CONTINUE


exceptions_caught = []


def collect_subscriber_exception(
    sub: subscription.Subscription, channel: str, exception: Exception
) -> bool:
    """
    Collect exceptions for batch processing.
    This appends a record per failure to chanbroker.handlers.exceptions_caught.
    Either manage the list manually or use this function as an example to create
    a more robust exception collector.
    """
    exceptions_caught.append(
        {
            "subscription": sub.id,
            "description": describe_subscription(sub),
            "channel": channel,
            "exception": f"{exception.__class__.__name__}: {exception}",
            "exc_info": sys.exc_info(),
        }
    )
    return CONTINUE
