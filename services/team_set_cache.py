# services/team_set_cache.py
from __future__ import annotations

import itertools
import time
from collections import OrderedDict
from typing import Callable, Optional

from domain.models import TeamSet


class TeamSetCache:
    """
    Recently generated team sets, keyed by team_set_id.

    - Owned by whoever builds the bot (main.py) and handed to services.
    - Entries expire after ttl_seconds.
    - Oldest entries are evicted once max_entries is exceeded (LRU on get).
    - latest_for() goes by created_at, then insertion order; reads do not change it.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 3600.0,
        max_entries: int = 64,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._ttl = float(ttl_seconds)
        self._max = int(max_entries)
        self._clock = clock
        self._seq = itertools.count()
        # id -> (expires_at, insertion seq, team set)
        self._items: OrderedDict[str, tuple[float, int, TeamSet]] = OrderedDict()

    def __len__(self) -> int:
        self.evict_expired()
        return len(self._items)

    def __contains__(self, team_set_id: object) -> bool:
        return self.get(str(team_set_id)) is not None

    def put(self, team_set: TeamSet) -> None:
        self._items[team_set.id] = (self._clock() + self._ttl, next(self._seq), team_set)
        self._items.move_to_end(team_set.id)
        while len(self._items) > self._max:
            self._items.popitem(last=False)

    def get(self, team_set_id: str) -> Optional[TeamSet]:
        entry = self._items.get(team_set_id)
        if entry is None:
            return None
        expires_at, _seq, team_set = entry
        if expires_at <= self._clock():
            del self._items[team_set_id]
            return None
        self._items.move_to_end(team_set_id)
        return team_set

    def latest_for(self, tournament_id: str) -> Optional[TeamSet]:
        self.evict_expired()
        candidates = [(ts.created_at, seq, ts) for _exp, seq, ts in self._items.values() if ts.tournament_id == str(tournament_id)]
        if not candidates:
            return None
        return max(candidates, key=lambda c: (c[0], c[1]))[2]

    def discard(self, team_set_id: str) -> None:
        self._items.pop(team_set_id, None)

    def evict_expired(self) -> int:
        now = self._clock()
        stale = [k for k, (exp, _seq, _ts) in self._items.items() if exp <= now]
        for k in stale:
            del self._items[k]
        return len(stale)
