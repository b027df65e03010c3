"""Tag usage cache used for tag autocompletion.

Tracks how often and how recently each tag was used, keeps at most ``max_size``
entries, and evicts the least frequently used tag (oldest first on ties) when a
brand-new tag arrives at capacity.
"""

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from .db import Database
from .models import TagUsage, normalize_tag
from ..utils.study_time import from_ts, now as current_time, to_ts

DEFAULT_MAX_SIZE = 50


class TagCache:
    """LFU-then-LRU bounded tag store backed by the ``tag_usages`` table."""

    def __init__(self, db: Database, max_size: int = DEFAULT_MAX_SIZE,
                 clock: Optional[Callable[[], datetime]] = None):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.db = db
        self.max_size = max_size
        self.clock = clock or current_time

    def __len__(self) -> int:
        return self.db.count_tag_usages()

    def _usage(self, row: Dict) -> TagUsage:
        return TagUsage(tag=row["tag"], count=row["count"], last_used=from_ts(row["last_used_ts"]))

    def use(self, tag: str, now: Optional[datetime] = None) -> Optional[TagUsage]:
        """Record one use of a tag. Blank tags are ignored (returns None)."""
        key = normalize_tag(tag)
        if not key:
            return None

        now_ts = to_ts(now or self.clock())
        with self.db.transaction():
            existing = self.db.get_tag_usage(key)
            if existing:
                count = existing["count"] + 1
                self.db.put_tag_usage(key, count, now_ts)
                return TagUsage(key, count, from_ts(now_ts))

            self._make_room()
            self.db.insert_tag_usage(key, 1, now_ts)
            return TagUsage(key, 1, from_ts(now_ts))

    def _make_room(self) -> None:
        """Evict least-used entries until one more tag fits."""
        while self.db.count_tag_usages() >= self.max_size:
            victim = self.db.least_used_tag()
            if victim is None:
                break
            self.db.delete_tag_usage(victim["tag"])

    def resize(self, max_size: int) -> int:
        """Change the capacity, evicting least-used entries that no longer fit.

        Returns the number of evicted tags.
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        evicted = 0
        with self.db.transaction():
            while self.db.count_tag_usages() > max_size:
                victim = self.db.least_used_tag()
                if victim is None:
                    break
                self.db.delete_tag_usage(victim["tag"])
                evicted += 1
            self.max_size = max_size
        return evicted

    def use_many(self, tags: Iterable[str], now: Optional[datetime] = None) -> None:
        """Record uses one tag at a time, each new tag getting its own eviction check."""
        with self.db.transaction():
            for tag in tags:
                self.use(tag, now)

    def get(self, tag: str) -> Optional[TagUsage]:
        row = self.db.get_tag_usage(normalize_tag(tag))
        return self._usage(row) if row else None

    def rank(self) -> List[TagUsage]:
        """All entries, most used first, most recently used first on ties."""
        return [self._usage(row) for row in self.db.list_tag_usages()]

    def filter(self, query: str, limit: int = 10) -> List[TagUsage]:
        """Autocomplete suggestions for ``query``.

        Case-insensitive substring match; an exact match sorts before partial
        matches, then ranking order applies. An empty query returns the top of the
        full ranking.
        """
        needle = normalize_tag(query)
        ranked = self.rank()
        if not needle:
            return ranked[:limit]

        exact = [usage for usage in ranked if usage.tag == needle]
        partial = [usage for usage in ranked if needle in usage.tag and usage.tag != needle]
        return (exact + partial)[:limit]

    def clear(self) -> None:
        self.db.clear_tag_usages()

    def initialize_from_cards(self, cards: Iterable) -> None:
        """Seed or merge the cache from existing cards' tags and ``updated_at``.

        Known tags merge in place: count becomes the max of cached and computed,
        last use the later of the two. New tags go in by descending computed usage;
        once the cache is full a new tag only gets in if it outranks the current
        eviction victim. Running this twice with the same cards changes nothing.
        """
        computed: Dict[str, Dict] = {}
        for card in cards:
            for tag in card.tags:
                key = normalize_tag(tag)
                if not key:
                    continue
                used_ts = to_ts(card.updated_at)
                entry = computed.get(key)
                if entry is None:
                    computed[key] = {"count": 1, "last_used_ts": used_ts}
                else:
                    entry["count"] += 1
                    entry["last_used_ts"] = max(entry["last_used_ts"], used_ts)

        ordered = sorted(
            computed.items(),
            key=lambda item: (item[1]["count"], item[1]["last_used_ts"]),
            reverse=True,
        )

        with self.db.transaction():
            for key, usage in ordered:
                existing = self.db.get_tag_usage(key)
                if existing:
                    merged = (max(existing["count"], usage["count"]),
                              max(existing["last_used_ts"], usage["last_used_ts"]))
                    if merged != (existing["count"], existing["last_used_ts"]):
                        self.db.put_tag_usage(key, *merged)
                    continue

                if self.db.count_tag_usages() >= self.max_size:
                    victim = self.db.least_used_tag()
                    candidate = (usage["count"], usage["last_used_ts"])
                    if victim is None or candidate <= (victim["count"], victim["last_used_ts"]):
                        continue
                    self.db.delete_tag_usage(victim["tag"])

                self.db.insert_tag_usage(key, usage["count"], usage["last_used_ts"])
