# homelink/matcher.py
# SPDX-FileCopyrightText: Copyright (c) 2026 Christopher Piggott
# SPDX-License-Identifier: MIT

"""
Single-wildcard topic matching.

A pattern holds at most one wildcard, anywhere in the string:

  '#'  matches any run of characters, '/' included, possibly empty
  '+'  matches a run of characters with no '/' in it

This is not a full MQTT filter parser: "sensors/#" and "sensors/+/outdoor"
behave as expected, and so does "sensors/temp_+" (wildcards inside a level).
"""

MULTI_LEVEL = "#"
SINGLE_LEVEL = "+"
SEPARATOR = "/"


def _split(pattern: str, i: int):
    return pattern[:i], pattern[i + 1:]


def _ends_match(topic: str, prefix: str, suffix: str) -> bool:
    return (not prefix or topic.startswith(prefix)) and (not suffix or topic.endswith(suffix))


def topic_matches(pattern: str, topic: str) -> bool:
    """
    Return True if the concrete topic matches the pattern.

    Only the first '#' is considered, and '+' only when there is no '#'.
    Use check_pattern() to reject patterns that would need more than that.
    """
    i = pattern.find(MULTI_LEVEL)
    if i >= 0:
        prefix, suffix = _split(pattern, i)
        return _ends_match(topic, prefix, suffix)

    i = pattern.find(SINGLE_LEVEL)
    if i >= 0:
        prefix, suffix = _split(pattern, i)
        if not _ends_match(topic, prefix, suffix):
            return False
        start = len(prefix)
        end = len(topic) - len(suffix)
        if start > end:
            # prefix and suffix overlap inside the topic
            start, end = end, start
        return SEPARATOR not in topic[start:end]

    return pattern == topic


def wildcard_count(pattern: str) -> int:
    return pattern.count(MULTI_LEVEL) + pattern.count(SINGLE_LEVEL)


def check_pattern(pattern: str) -> None:
    """Raise ValueError if the pattern cannot be matched as written."""
    if pattern is None:
        raise ValueError("Pattern may not be NoneType")
    if not pattern:
        raise ValueError("Pattern may not be empty.")
    if wildcard_count(pattern) > 1:
        raise ValueError(f"Pattern may contain at most one wildcard: {pattern}")
