"""
The Event object handed to every subscriber during one broadcast.

One Event is built per broadcast and shared by every subscriber the broadcast
reaches. A subscriber stops the rest of the walk by calling cancel().
"""

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Optional

from chanbroker.subscription import Subscription


@dataclass
class Event(object):
    """Broadcast state shared across one dispatch walk."""

    channel: str
    """The concrete channel the broadcast was issued on."""

    payload: tuple[Any, ...] = field(default_factory=tuple)
    """Positional values supplied to broadcast(), forwarded unchanged."""

    subscription: Optional[Subscription] = None
    """The subscription currently being invoked."""

    cancelled: bool = False
    """Once True the walk does not advance to further subscribers."""

    def cancel(self) -> None:
        """Stop the walk after the current subscriber returns."""
        self.cancelled = True

    @property
    def context(self) -> Any:
        """The current subscription's context, or None between invocations."""
        if self.subscription is None:
            return None
        return self.subscription.context
