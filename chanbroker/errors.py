"""
Exceptions raised by the channel broker.

Every argument error is raised before the broker touches its registry, so a
failed call leaves subscriptions and channels unchanged.
"""


class BrokerArgumentError(Exception):
    """Base class for invalid arguments passed to the broker."""


class InvalidChannelError(BrokerArgumentError):
    """Raised when a channel name is missing, empty or not a string."""


class InvalidCallbackError(BrokerArgumentError):
    """Raised when a callback is not callable or an id names no subscription."""


class InvalidOptionsError(BrokerArgumentError):
    """Raised when subscribe options are malformed."""
