"""
Unit tests for channel matching.

Tests cover literal matches, single-segment wildcards in any position,
trailing wildcards covering deeper channels, rejection of longer patterns and
the longest-name-first ordering of matches.
"""

import pytest

import chanbroker
from chanbroker import matcher


@pytest.mark.parametrize(
    "channel, pattern",
    [
        ("a:b:c", "a:b:c"),
        ("a:b:c", "a:b:*"),
        ("a:b:c", "a:*:c"),
        ("a:b:c", "*:b:c"),
        ("a:b:c", "*:*:*"),
        ("a:b:c:d", "a:b:*"),
        ("a:b:c:d", "a:*"),
        ("a:b:c:d", "*"),
        ("a", "*"),
        ("orders:created", "orders:created"),
    ],
)
def test_matches(channel: str, pattern: str) -> None:
    """Test patterns that receive the broadcast channel."""
    assert matcher.matches(channel, pattern)


@pytest.mark.parametrize(
    "channel, pattern",
    [
        ("a:b:c", "a:b:d"),
        ("a:b:c", "a:*:d"),
        ("a:b:c", "a:b:c:d"),
        ("a:b:c", "a:b:c:*"),
        ("a", "a:*"),
        ("a:b:c", "a:b"),
        ("a:b:c:d", "a:*:c"),
        ("ab:c", "a:*"),
    ],
)
def test_does_not_match(channel: str, pattern: str) -> None:
    """Test patterns that must not receive the broadcast channel."""
    assert not matcher.matches(channel, pattern)


def test_match_orders_most_specific_first() -> None:
    """Test that the exact name comes first, then longer names."""
    indexed = ["*", "x:*", "x:y:*", "x:y:z", "other"]

    assert matcher.match("x:y:z", indexed) == ["x:y:z", "x:y:*", "x:*", "*"]


def test_match_literal_segments_break_depth_ties() -> None:
    """Test that among equal-length patterns, more literal segments win."""
    indexed = ["*:*:c", "a:*:c", "*:*:*"]

    assert matcher.match("a:b:c", indexed) == ["a:*:c", "*:*:c", "*:*:*"]


def test_match_keeps_index_order_on_full_ties() -> None:
    """Test that equally specific patterns keep their index order."""
    assert matcher.match("a:b:c", ["a:*:c", "a:b:*"]) == ["a:*:c", "a:b:*"]
    assert matcher.match("a:b:c", ["a:b:*", "a:*:c"]) == ["a:b:*", "a:*:c"]


def test_match_exact_channel_beats_longer_wildcard() -> None:
    """Test that the literal channel outranks patterns of equal depth."""
    assert matcher.match("a:b", ["a:*", "a:b"]) == ["a:b", "a:*"]


def test_match_orders_longer_name_before_deeper_pattern() -> None:
    """Test that a longer name outranks a pattern with more segments."""
    indexed = ["*:b:*", "loooong:*"]

    assert matcher.match("loooong:b:c", indexed) == ["loooong:*", "*:b:*"]


def test_match_exact_channel_beats_longer_name() -> None:
    """Test that the exact channel comes first even when a match is longer."""
    assert matcher.match("a:", ["a:*", "a:"]) == ["a:", "a:*"]
    assert matcher.match("a:b:c", ["a:*", "*:*:*"]) == ["*:*:*", "a:*"]


def test_match_nothing_indexed() -> None:
    """Test that an empty index produces no matches."""
    assert matcher.match("a:b:c", []) == []


def test_broker_get_matching_channels() -> None:
    """Test that the broker exposes the matcher over its own index."""
    broker = chanbroker.Broker()

    def handler(event: chanbroker.Event) -> None:
        pass

    for channel in ["x:*", "x:y:*", "x:y:z", "x:q"]:
        broker.subscribe(channel, handler)

    assert broker.get_matching_channels("x:y:z") == ["x:y:z", "x:y:*", "x:*"]
    assert broker.get_matching_channels("y") == []
