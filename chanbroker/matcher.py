"""
Channel matching for the channel broker.

Channels are colon-delimited (`orders:eu:created`). A subscribed channel may
use `*` as a segment, which matches any single segment at that position. A
trailing `*` also covers every segment after it, so `orders:*` receives
`orders:eu:created`.

Patterns with more segments than the broadcast channel never match.
"""

from typing import Iterable

SEPARATOR = ":"
WILDCARD = "*"


def split(channel: str) -> list[str]:
    return channel.split(SEPARATOR)


def matches(channel: str, pattern: str) -> bool:
    """
    Check if a broadcast channel is received by a subscribed pattern.

    Args:
        channel (str): The concrete channel the broadcast was issued on.
        pattern (str): The channel name a subscription was registered under.
    Returns:
        bool: True if subscriptions on the pattern should receive the broadcast.
    """
    if channel == pattern:
        return True

    target = split(channel)
    source = split(pattern)

    if len(source) > len(target):
        return False

    for want, got in zip(source, target):
        if want != WILDCARD and want != got:
            return False

    # A shorter pattern only reaches past its end through a trailing wildcard.
    return len(source) == len(target) or source[-1] == WILDCARD


def specificity(channel: str, pattern: str) -> tuple[int, int, int, int]:
    """Sort key for a matched pattern, larger sorts first."""
    segments = split(pattern)
    literal = sum(1 for segment in segments if segment != WILDCARD)
    return int(pattern == channel), len(pattern), len(segments), literal


def match(channel: str, indexed: Iterable[str]) -> list[str]:
    """
    Resolve a concrete channel to the indexed channel names that receive it.

    Args:
        channel (str): The concrete channel being broadcast on.
        indexed (Iterable[str]): Every channel name with subscriptions.
    Returns:
        list[str]: Matching names, longest name first. The channel itself,
            when indexed, always comes first. Names of equal length are
            ordered by segment count, then literal segment count, and
            otherwise keep the order of `indexed`.
    """
    found = [pattern for pattern in indexed if matches(channel, pattern)]
    found.sort(key=lambda pattern: specificity(channel, pattern), reverse=True)
    return found
