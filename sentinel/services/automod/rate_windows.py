"""
Rate Windows
============

Sliding-window state for link spam, rapid posting and cross-channel
duplicates.

DESIGN:
    One RateWindowService is built at startup and handed to the pipeline.
    Every method takes `now` so tests drive the clock directly. Entries are
    pruned lazily on access, and a sweep drops dead keys and evicts the
    least recently touched ones above max_entries, either on access (at most
    once per sweep_interval) or from the cleanup task.
"""

import hashlib
import time
from collections import OrderedDict
from typing import Callable, List, Optional, Tuple

from sentinel.core.logger import logger

from .constants import (
    ADAPTIVE_DAY_SECONDS,
    ADAPTIVE_WEEK_SECONDS,
    DUP_CHANNEL_THRESHOLD,
    DUP_WINDOW_SECONDS,
    LINK_WINDOW_SECONDS,
    MAX_LINKS,
    RAPID_MIN_GAP_SECONDS,
    RAPID_MIN_POSTS,
    RAPID_WINDOW_SECONDS,
    RATE_MAX_ENTRIES,
    RATE_SWEEP_INTERVAL,
)


DuplicateKey = Tuple[int, str]


class RateWindowService:
    """
    Per-user post timestamps and per-(user, content) channel history.

    Attributes:
        window_seconds: Link-spam window.
        max_links: Base link limit inside the window.
        dup_window_seconds: Cross-channel duplicate window.
        dup_channel_threshold: Distinct channels that count as spam.
        max_entries: Key cap per map after a sweep.
    """

    def __init__(
        self,
        window_seconds: float = LINK_WINDOW_SECONDS,
        max_links: int = MAX_LINKS,
        dup_window_seconds: float = DUP_WINDOW_SECONDS,
        dup_channel_threshold: int = DUP_CHANNEL_THRESHOLD,
        max_entries: int = RATE_MAX_ENTRIES,
        sweep_interval: float = RATE_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.window_seconds = window_seconds
        self.max_links = max_links
        self.dup_window_seconds = dup_window_seconds
        self.dup_channel_threshold = dup_channel_threshold
        self.max_entries = max_entries
        self.sweep_interval = sweep_interval
        self._clock = clock

        self._user_posts: "OrderedDict[int, List[float]]" = OrderedDict()
        self._duplicate_posts: "OrderedDict[DuplicateKey, List[Tuple[float, int]]]" = OrderedDict()
        self._last_sweep: Optional[float] = None

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    # =========================================================================
    # Link Window
    # =========================================================================

    def register_post(self, user_id: int, now: Optional[float] = None) -> int:
        """
        Record a link post.

        Returns:
            Number of posts in the window, including this one.
        """
        now = self._now(now)
        self._maybe_sweep(now)

        posts = [t for t in self._user_posts.get(user_id, []) if now - t <= self.window_seconds]
        posts.append(now)
        self._user_posts[user_id] = posts
        self._user_posts.move_to_end(user_id)
        return len(posts)

    def post_count(self, user_id: int, now: Optional[float] = None) -> int:
        now = self._now(now)
        return sum(1 for t in self._user_posts.get(user_id, []) if now - t <= self.window_seconds)

    def adaptive_limit(self, account_age: Optional[float]) -> int:
        """Link limit for an account of this age in seconds (None = unknown)."""
        if account_age is None:
            return self.max_links
        if account_age < ADAPTIVE_DAY_SECONDS:
            return max(1, self.max_links - 2)
        if account_age < ADAPTIVE_WEEK_SECONDS:
            return max(2, self.max_links - 1)
        return self.max_links

    def is_spamming(
        self,
        user_id: int,
        account_age: Optional[float] = None,
        now: Optional[float] = None,
    ) -> bool:
        """True when the posts already registered exceed the adaptive limit."""
        return self.post_count(user_id, now) > self.adaptive_limit(account_age)

    def is_rapid_posting(self, user_id: int, now: Optional[float] = None) -> bool:
        """At least 5 posts in the last 10 s with any consecutive gap under 2 s."""
        now = self._now(now)
        recent = [t for t in self._user_posts.get(user_id, []) if now - t <= RAPID_WINDOW_SECONDS]
        if len(recent) < RAPID_MIN_POSTS:
            return False
        return any(b - a < RAPID_MIN_GAP_SECONDS for a, b in zip(recent, recent[1:]))

    # =========================================================================
    # Cross-Channel Duplicates
    # =========================================================================

    @staticmethod
    def content_key(content: str) -> str:
        return hashlib.sha256((content or "").encode("utf-8")).hexdigest()

    def is_cross_channel_spam(
        self,
        user_id: int,
        content_key: str,
        channel_id: int,
        now: Optional[float] = None,
    ) -> bool:
        """
        Record a post of this content and report whether it has now reached
        dup_channel_threshold distinct channels inside the window.
        """
        now = self._now(now)
        self._maybe_sweep(now)

        key = (user_id, content_key)
        entries = [
            (t, channel) for t, channel in self._duplicate_posts.get(key, [])
            if now - t <= self.dup_window_seconds
        ]
        entries.append((now, channel_id))
        self._duplicate_posts[key] = entries
        self._duplicate_posts.move_to_end(key)

        return len({channel for _, channel in entries}) >= self.dup_channel_threshold

    # =========================================================================
    # Eviction
    # =========================================================================

    def _maybe_sweep(self, now: float) -> None:
        if self._last_sweep is None:
            self._last_sweep = now
        elif now - self._last_sweep >= self.sweep_interval:
            self.sweep(now)

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Drop keys with no live entries, then evict least recently touched
        keys until each map holds at most max_entries.

        Returns:
            Number of keys removed.
        """
        now = self._now(now)
        self._last_sweep = now
        removed = 0

        for user_id in list(self._user_posts):
            if all(now - t > self.window_seconds for t in self._user_posts[user_id]):
                del self._user_posts[user_id]
                removed += 1

        for key in list(self._duplicate_posts):
            if all(now - t > self.dup_window_seconds for t, _ in self._duplicate_posts[key]):
                del self._duplicate_posts[key]
                removed += 1

        while len(self._user_posts) > self.max_entries:
            self._user_posts.popitem(last=False)
            removed += 1
        while len(self._duplicate_posts) > self.max_entries:
            self._duplicate_posts.popitem(last=False)
            removed += 1

        if removed:
            logger.debug(f"Rate windows swept: {removed} keys removed")
        return removed

    @property
    def tracked_users(self) -> int:
        return len(self._user_posts)

    @property
    def tracked_duplicates(self) -> int:
        return len(self._duplicate_posts)


__all__ = ["RateWindowService"]
