from __future__ import annotations

import threading
from collections import OrderedDict


class SessionHistoryStore:
    """In-process conversation memory, lost on restart.

    Each session keeps at most `max_entries` messages (oldest dropped first).
    At most `max_sessions` sessions are kept; the least recently used session
    is evicted whole when a new one would exceed the limit.
    """

    def __init__(self, max_entries: int = 12, max_sessions: int = 1000):
        if max_entries < 2 or max_entries % 2:
            raise ValueError("max_entries must be an even number >= 2")
        if max_sessions <= 0:
            raise ValueError("max_sessions must be greater than 0")
        self.max_entries = max_entries
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, list[dict[str, str]]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def _touch(self, session_id: str) -> list[dict[str, str]]:
        history = self._sessions.get(session_id)
        if history is None:
            history = []
            self._sessions[session_id] = history
            while len(self._sessions) > self.max_sessions:
                self._sessions.popitem(last=False)
        else:
            self._sessions.move_to_end(session_id)
        return history

    def get(self, session_id: str) -> list[dict[str, str]]:
        with self._lock:
            return [dict(turn) for turn in self._touch(session_id)]

    def append(self, session_id: str, user_content: str, assistant_content: str) -> None:
        with self._lock:
            history = self._touch(session_id)
            history.append({"role": "user", "content": user_content})
            history.append({"role": "assistant", "content": assistant_content})
            if len(history) > self.max_entries:
                del history[: -self.max_entries]

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
