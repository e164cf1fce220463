"""
Undo/redo history with debounced snapshots.

Rapid edits are coalesced: every record() restarts the debounce timer and
replaces the pending snapshot, and only when the timer fires does the
snapshot become a history entry. A new entry discards everything after the
cursor (linear history). The entry list is capped; the oldest entries are
dropped first.

The engine is single threaded: the timer does not run on its own thread.
The host calls poll() from its event loop (or flush() when it needs the
pending snapshot committed right away).
"""

import logging
import time
from typing import Callable, List, Optional, Tuple

from markpad.core.config import DEBOUNCE_SECONDS, MAX_HISTORY_ENTRIES

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class DebounceTimer:
    """Cancel-and-reschedule timer driven by an injectable clock."""

    def __init__(self, interval: float = DEBOUNCE_SECONDS, clock: Clock = time.monotonic):
        self.interval = interval
        self._clock = clock
        self._deadline: Optional[float] = None
        self._callback: Optional[Callable[[], None]] = None

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    def schedule(self, callback: Callable[[], None]) -> None:
        """(Re)start the timer. A previously scheduled callback is dropped."""
        self._callback = callback
        self._deadline = self._clock() + self.interval

    def cancel(self) -> None:
        self._deadline = None
        self._callback = None

    def fire(self) -> bool:
        """Run the scheduled callback now. Returns False if nothing was scheduled."""
        callback = self._callback
        self.cancel()
        if callback is None:
            return False
        callback()
        return True

    def fire_if_due(self) -> bool:
        if self._deadline is None or self._clock() < self._deadline:
            return False
        return self.fire()


class HistoryManager:
    """
    Bounded, branch-discarding undo/redo history for one editing session.

    Invariant: entries[cursor] is the current committed text.
    """

    def __init__(self, initial_text: str = '', max_entries: int = MAX_HISTORY_ENTRIES,
                 debounce: float = DEBOUNCE_SECONDS, clock: Clock = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._timer = DebounceTimer(debounce, clock)
        self._entries: List[str] = [initial_text]
        self._cursor = 0
        self._pending: Optional[str] = None

    @property
    def entries(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> str:
        return self._entries[self._cursor]

    @property
    def pending(self) -> Optional[str]:
        return self._pending

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def record(self, text: str) -> None:
        """
        Note a content change. The snapshot is committed once the debounce
        interval passes without another change.
        """
        if text == self.current and self._pending is None:
            return
        self._pending = text
        self._timer.schedule(self._commit_pending)

    def poll(self) -> bool:
        """Commit the pending snapshot if its timer is due. Returns True if it fired."""
        return self._timer.fire_if_due()

    def flush(self) -> bool:
        """Commit the pending snapshot immediately, if there is one."""
        return self._timer.fire()

    def commit(self, text: str) -> None:
        """Append text as a new entry right away, bypassing the debounce."""
        self._timer.cancel()
        self._pending = None
        self._append(text)

    def undo(self) -> Optional[str]:
        self.flush()
        if not self.can_undo:
            return None
        self._cursor -= 1
        logger.debug(f"History: undo to entry {self._cursor}/{len(self._entries) - 1}")
        return self._entries[self._cursor]

    def redo(self) -> Optional[str]:
        self.flush()
        if not self.can_redo:
            return None
        self._cursor += 1
        logger.debug(f"History: redo to entry {self._cursor}/{len(self._entries) - 1}")
        return self._entries[self._cursor]

    def reset(self, text: str = '') -> None:
        """Re-seed the history with a single entry."""
        self._timer.cancel()
        self._pending = None
        self._entries = [text]
        self._cursor = 0

    def close(self) -> None:
        """End of session: an unfired snapshot is dropped."""
        if self._pending is not None:
            logger.debug("History: session closed with a pending snapshot, dropping it")
        self._timer.cancel()
        self._pending = None

    def _commit_pending(self) -> None:
        text, self._pending = self._pending, None
        if text is not None:
            self._append(text)

    def _append(self, text: str) -> None:
        if text == self.current:
            return
        # Linear history: a new edit after an undo loses the redo branch
        del self._entries[self._cursor + 1:]
        self._entries.append(text)
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            del self._entries[:overflow]
            logger.debug(f"History: dropped {overflow} oldest entries")
        self._cursor = len(self._entries) - 1
