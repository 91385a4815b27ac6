# homelink/router.py
from .matcher import topic_matches

DEBUG = False


class Subscription:
    __slots__ = ("pattern", "callback", "topic_callback")

    def __init__(self, pattern, callback=None, topic_callback=None):
        self.pattern = pattern
        self.callback = callback                # callable(payload)
        self.topic_callback = topic_callback    # callable(topic, payload)

    def __repr__(self):
        return f"Subscription({self.pattern!r})"


class SubscriptionRouter:
    """
    Ordered set of subscriptions, one per pattern.

    Inbound messages are handed to every subscription whose pattern
    matches the topic, in the order the patterns were first added.
    """

    def __init__(self):
        self._subs = []  # [Subscription], insertion order

    def clear(self):
        self._subs = []

    def get(self, pattern):
        for sub in self._subs:
            if sub.pattern == pattern:
                return sub
        return None

    def add(self, pattern, callback=None, topic_callback=None):
        """
        Add a subscription, or replace the callbacks of the existing one
        for the same pattern (it keeps its place in the dispatch order).
        """
        sub = self.get(pattern)
        if sub is None:
            sub = Subscription(pattern, callback, topic_callback)
            self._subs.append(sub)
        else:
            sub.callback = callback
            sub.topic_callback = topic_callback
        if DEBUG:
            print("SubscriptionRouter.add:", pattern)
        return sub

    def remove(self, pattern) -> bool:
        """Remove the subscription with exactly this pattern."""
        for i, sub in enumerate(self._subs):
            if sub.pattern == pattern:
                del self._subs[i]
                return True
        return False

    def dispatch(self, topic, payload=None):
        """Call every matching subscription; return how many matched."""
        matched = 0
        # copy: a callback may subscribe or unsubscribe
        for sub in list(self._subs):
            if not topic_matches(sub.pattern, topic):
                continue
            matched += 1
            if sub.callback is not None:
                sub.callback(payload)
            if sub.topic_callback is not None:
                sub.topic_callback(topic, payload)
        if DEBUG:
            print("SubscriptionRouter.dispatch:", topic, "matched=", matched)
        return matched

    def topics(self):
        """Return the list of patterns currently registered."""
        return [sub.pattern for sub in self._subs]

    def __len__(self):
        return len(self._subs)

    def __contains__(self, pattern):
        return self.get(pattern) is not None
