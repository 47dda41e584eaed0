"""In-memory store for per-client window state.

The store is owned by a single limiter and is not thread-safe on its own:
the limiter holds its lock around every call.
"""

from __future__ import annotations

from collections import OrderedDict

from school_payments.adapters.rate_limit.base import ClientWindowState


class WindowStateStore:
    """Mapping of identifier to window state with optional LRU bound.

    Attributes:
        max_entries: Maximum number of tracked identifiers (None for unlimited).
    """

    def __init__(self, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._max_entries = max_entries
        self._states: OrderedDict[str, ClientWindowState] = OrderedDict()
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._states

    @property
    def max_entries(self) -> int | None:
        return self._max_entries

    @property
    def evictions(self) -> int:
        return self._evictions

    def get(self, identifier: str) -> ClientWindowState | None:
        state = self._states.get(identifier)
        if state is not None:
            self._states.move_to_end(identifier)  # mark as recently used
        return state

    def peek(self, identifier: str) -> ClientWindowState | None:
        """Return the state without changing its eviction order."""
        return self._states.get(identifier)

    def put(self, identifier: str, state: ClientWindowState) -> None:
        self._states[identifier] = state
        self._states.move_to_end(identifier)
        self._evict_if_over_capacity()

    def sweep(self, now: int, window_size_ms: int) -> int:
        """Remove every state whose window has expired at ``now``.

        Args:
            now: Epoch milliseconds.
            window_size_ms: Window length used by the owning limiter.

        Returns:
            Number of removed identifiers.
        """

        expired = [
            key
            for key, state in self._states.items()
            if now - state.window_start >= window_size_ms
        ]
        for key in expired:
            del self._states[key]
        self._evictions += len(expired)
        return len(expired)

    def clear(self) -> None:
        self._states.clear()
        self._evictions = 0

    def _evict_if_over_capacity(self) -> None:
        if self._max_entries is None:
            return

        while len(self._states) > self._max_entries:
            # popitem(last=False) removes the least recently used entry
            self._states.popitem(last=False)
            self._evictions += 1
