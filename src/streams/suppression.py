"""TTL-based suppression window for recently checked channels.

Keeps the poller from re-checking a channel it checked moments ago. This is
not duplicate-session detection (that is the persisted session start
comparison); it only bounds request volume. Process-local and empty on
restart, so a freshly started process may re-check a channel the previous
process checked seconds before it exited.
"""

import time


class SuppressionWindow:
    """Mapping of identifier -> monotonic time of its last check.

    An identifier marked less than ``ttl_seconds`` ago is suppressed. Older
    marks are evicted before they are consulted. A TTL of zero or less disables
    suppression.

    Usage:
        window = SuppressionWindow(ttl_seconds=30)
        if not window.is_suppressed("channel"):
            window.mark("channel")
            ...
    """

    def __init__(self, ttl_seconds: float = 30.0):
        self._ttl = max(float(ttl_seconds), 0.0)
        self._marks: dict[str, float] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def mark(self, identifier: str, now: float | None = None) -> None:
        """Record (or refresh) the check time of ``identifier``."""
        self._marks[identifier] = time.monotonic() if now is None else now

    def is_suppressed(self, identifier: str, now: float | None = None) -> bool:
        """Return True if ``identifier`` was marked less than TTL ago.

        An expired mark is evicted as a side effect.
        """
        marked_at = self._marks.get(identifier)
        if marked_at is None:
            return False

        now = time.monotonic() if now is None else now
        if now - marked_at < self._ttl:
            return True

        del self._marks[identifier]
        return False

    def evict_expired(self, now: float | None = None) -> int:
        """Drop every mark older than TTL.

        Returns:
            Number of marks removed
        """
        now = time.monotonic() if now is None else now
        expired = [
            identifier
            for identifier, marked_at in self._marks.items()
            if now - marked_at >= self._ttl
        ]
        for identifier in expired:
            del self._marks[identifier]
        return len(expired)

    def clear(self) -> None:
        self._marks.clear()

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._marks

    def __len__(self) -> int:
        return len(self._marks)
