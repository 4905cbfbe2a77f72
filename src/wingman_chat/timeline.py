"""Ordered, deduplicated turn log with optimistic-insert semantics."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable

from .models import Role, Turn


class MessageTimeline:
    """Keep the turns of the open thread in a strict total order.

    Every mutation re-sorts by ``Turn.sort_key`` so the order never depends on
    the arrival order of hydrate, insert, or reconcile calls.  Turns are
    merged by id: a second copy of the same id replaces the first.
    """

    def __init__(self, thread_id: str | None = None) -> None:
        self.thread_id = thread_id
        self._turns: list[Turn] = []

    @property
    def turns(self) -> list[Turn]:
        """Return a shallow copy of the ordered turns."""
        return list(self._turns)

    @property
    def turn_count(self) -> int:
        return len(self._turns)

    @property
    def is_empty(self) -> bool:
        return not self._turns

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self):
        return iter(list(self._turns))

    def get(self, turn_id: str) -> Turn | None:
        for turn in self._turns:
            if turn.id == turn_id:
                return turn
        return None

    def clear(self, thread_id: str | None = None) -> None:
        """Empty the log and optionally re-point it at another thread."""
        self._turns = []
        self.thread_id = thread_id

    def hydrate(
        self,
        remote_turns: Iterable[dict[str, Any] | Turn],
        thread_id: str | None = None,
    ) -> None:
        """Replace the whole log from a history payload."""
        if thread_id is not None:
            self.thread_id = thread_id
        turns: list[Turn] = []
        for item in remote_turns:
            if isinstance(item, Turn):
                turns.append(item)
            elif isinstance(item, dict):
                turns.append(Turn.from_wire(item, self.thread_id))
        self._turns = []
        for turn in turns:
            self._merge(turn)
        self._sort()

    def insert_optimistic(self, turn: Turn) -> Turn:
        """Append a locally originated user turn before any remote round trip."""
        if turn.role is not Role.USER:
            raise ValueError("Optimistic turns must be authored by the user.")
        self._merge(turn)
        self._sort()
        return turn

    def reconcile(self, confirmed: Turn, answers: str | None = None) -> Turn:
        """Merge a server-confirmed turn; duplicates replace, never repeat.

        ``answers`` names the user turn this reply responds to.  A reply is
        never placed before its prompt, so when the server clock lags the
        client clock the reply takes the prompt's timestamp and sorts
        right after it.
        """
        prompt = self.get(answers) if answers else None
        if prompt is not None and confirmed.timestamp < prompt.timestamp:
            confirmed = replace(confirmed, timestamp=prompt.timestamp)
        self._merge(confirmed)
        self._sort()
        return confirmed

    def confirm(self, provisional_id: str, server_id: str) -> bool:
        """Rebind a provisional turn to its server id.

        Returns False when the provisional turn is unknown.  When the server
        turn has already been merged, the provisional copy is dropped.
        """
        provisional = self.get(provisional_id)
        if provisional is None:
            return False
        self._turns = [t for t in self._turns if t.id != provisional_id]
        if self.get(server_id) is None:
            self._turns.append(provisional.confirmed(server_id))
        self._sort()
        return True

    def latest(self, role: Role | None = None) -> Turn | None:
        for turn in reversed(self._turns):
            if role is None or turn.role is role:
                return turn
        return None

    def _merge(self, turn: Turn) -> None:
        for index, existing in enumerate(self._turns):
            if existing.id == turn.id:
                self._turns[index] = turn
                return
        self._turns.append(turn)

    def _sort(self) -> None:
        # list.sort is stable, so equal keys keep their insertion order.
        self._turns.sort(key=lambda turn: turn.sort_key)
