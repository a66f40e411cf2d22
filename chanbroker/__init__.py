"""
# chanbroker

In-process publish/subscribe over colon-delimited channels.

Create a Broker and keep it wherever the rest of your application can reach
it. For applications that want one shared broker, a process-wide default
instance is available through init_default_broker(), get_default_broker() and
teardown_default_broker().

For a complete breakdown of broker functionality, read the project readme.
"""

from typing import Any
from typing import Optional

from chanbroker import handlers
from chanbroker.broker import Broker
from chanbroker.broker import __version__
from chanbroker.errors import BrokerArgumentError
from chanbroker.errors import InvalidCallbackError
from chanbroker.errors import InvalidChannelError
from chanbroker.errors import InvalidOptionsError
from chanbroker.event import Event
from chanbroker.subscription import ExistingId
from chanbroker.subscription import SubscribeOptions
from chanbroker.subscription import Subscription


__all__ = [
    "Broker",
    "BrokerArgumentError",
    "Event",
    "ExistingId",
    "InvalidCallbackError",
    "InvalidChannelError",
    "InvalidOptionsError",
    "SubscribeOptions",
    "Subscription",
    "__version__",
    "get_default_broker",
    "handlers",
    "init_default_broker",
    "teardown_default_broker",
]


# -----Default Instance--------------------------------------------------------

_DEFAULT_BROKER: Optional[Broker] = None


def init_default_broker(**kwargs: Any) -> Broker:
    """
    Create the process-wide broker.

    Args:
        **kwargs (Any): Forwarded to Broker().
    Raises:
        RuntimeError: If a default broker already exists. Tear it down first.
    """
    global _DEFAULT_BROKER
    if _DEFAULT_BROKER is not None:
        raise RuntimeError(
            "The default broker is already initialized. "
            "Call teardown_default_broker() before initializing it again."
        )

    _DEFAULT_BROKER = Broker(**kwargs)
    return _DEFAULT_BROKER


def get_default_broker() -> Broker:
    """Return the process-wide broker, raising if it was never initialized."""
    if _DEFAULT_BROKER is None:
        raise RuntimeError(
            "No default broker. Call init_default_broker() first."
        )

    return _DEFAULT_BROKER


def teardown_default_broker() -> None:
    """Clear and discard the process-wide broker. Safe to call repeatedly."""
    global _DEFAULT_BROKER
    if _DEFAULT_BROKER is not None:
        _DEFAULT_BROKER.clear()
    _DEFAULT_BROKER = None
