"""
Subscription data structures and type definitions for the channel broker.

Defines the immutable SubscribeOptions value that callers hand to subscribe(),
the mutable Subscription record the broker keeps for each registered interest,
and the ExistingId variant used to address an existing subscription in place
of a callback. Also defines the CALLBACK type alias used throughout the
package for type hints.
"""

import math
import numbers
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Mapping
from typing import Optional
from typing import Union

from chanbroker.errors import InvalidOptionsError


CALLBACK = Union[Callable[..., Any], Callable[..., Awaitable[Any]]]
"""
The callback end point that broadcast payloads are forwarded to. Called with
the broadcast payload values followed by the Event. Can be sync or async, or
a sync function returning an awaitable.

The broker cannot determine which value to send back to the caller.
If you want data back, broadcast on a channel going the opposite direction.
"""

DEFAULT_PRIORITY = 5


@dataclass(frozen=True)
class ExistingId(object):
    """Addresses an already registered subscription by its id."""

    id: str


CALLBACK_HANDLE = Union[CALLBACK, ExistingId]
"""What subscribe() accepts in its callback slot."""


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


@dataclass(frozen=True)
class SubscribeOptions(object):
    """Options supplied to subscribe(). Never mutated after construction."""

    priority: Union[int, float] = DEFAULT_PRIORITY
    """Where in the dispatch order the callback runs. Lower runs first."""

    count: Optional[int] = None
    """How many times the callback runs before it is unsubscribed."""

    context: Any = None
    """Opaque value handed back to the callback through the Event."""

    force: bool = False
    """Replace the options of an existing subscription instead of ignoring them."""

    @classmethod
    def build(
        cls,
        options: Union[None, "SubscribeOptions", Mapping[str, Any]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        default_priority: Union[int, float] = DEFAULT_PRIORITY,
    ) -> "SubscribeOptions":
        """
        Normalise and validate subscribe options.

        Args:
            options: None, an existing SubscribeOptions, or a mapping of
                option names to values.
            overrides (Mapping): Keyword options layered over `options`.
            default_priority: The priority used when none is supplied.
        Returns:
            SubscribeOptions: A validated options value.
        Raises:
            InvalidOptionsError: If options is not a mapping, if it names
                unknown options, or if priority, count or force has the wrong
                type.
        """
        if options is None:
            raw: dict[str, Any] = {}
        elif isinstance(options, SubscribeOptions):
            raw = {
                "priority": options.priority,
                "count": options.count,
                "context": options.context,
                "force": options.force,
            }
        elif isinstance(options, Mapping):
            raw = dict(options)
        else:
            raise InvalidOptionsError(
                f"Options must be a mapping, SubscribeOptions or None, "
                f"got {type(options).__name__}."
            )

        if overrides:
            raw.update(overrides)

        unknown = set(raw) - {"priority", "count", "context", "force"}
        if unknown:
            raise InvalidOptionsError(f"Unknown subscribe options: {sorted(unknown)}")

        priority = raw.get("priority")
        if priority is None:
            priority = default_priority
        elif not _is_number(priority):
            raise InvalidOptionsError(
                f"Priority must be a number, got {type(priority).__name__}."
            )
        elif math.isnan(priority) or math.isinf(priority):
            raise InvalidOptionsError(
                f"Priority must be a finite number, got {priority!r}."
            )

        count = raw.get("count")
        if count is not None:
            if not _is_number(count) or math.isnan(count) or math.isinf(count):
                raise InvalidOptionsError(
                    f"Count must be a finite number, got {count!r}."
                )
            count = math.floor(count)

        force = raw.get("force", False)
        if not isinstance(force, bool):
            raise InvalidOptionsError(f"Force must be a bool, got {force!r}.")

        return cls(
            priority=priority,
            count=count,
            context=raw.get("context"),
            force=force,
        )


@dataclass
class Subscription(object):
    """A registered interest in one channel pattern."""

    id: str
    """Unique among live subscriptions. Stable for the subscription's lifetime."""

    channel: str
    """The exact channel name the subscription was registered under."""

    callback: CALLBACK = field(compare=False)
    """The end point that broadcast data is forwarded to. i.e. what gets ran."""

    priority: Union[int, float] = DEFAULT_PRIORITY
    """Dispatch order within the channel, lower numbers first."""

    remaining: Optional[int] = None
    """Invocations left before auto-unsubscribe. None means unlimited."""

    context: Any = field(default=None, compare=False)
    """Handed back to the callback through Event.context."""

    @classmethod
    def from_options(
        cls, id_: str, channel: str, callback: CALLBACK, options: SubscribeOptions
    ) -> "Subscription":
        return cls(
            id=id_,
            channel=channel,
            callback=callback,
            priority=options.priority,
            remaining=options.count,
            context=options.context,
        )

    def apply(self, options: SubscribeOptions) -> None:
        """Overwrite the mutable fields with a forced set of options."""
        self.priority = options.priority
        self.remaining = options.count
        self.context = options.context

    @property
    def exhausted(self) -> bool:
        """True once a bounded subscription has no invocations left."""
        return self.remaining is not None and self.remaining <= 0
