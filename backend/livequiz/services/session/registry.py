"""Room registry and connection routing.

The store owns the process-wide room map. Rooms are created on first join
and leave the map only through ``end_room``, idle eviction or ``clear``.
Socket ids never live on player state; the ``ConnectionTable`` maps
``(room_code, player_id)`` to the sid used for directed delivery.
"""

import itertools
import threading
import time
from typing import Callable, Dict, List, Optional, Set, Tuple

from .state import PlayerSession, Room

Member = Tuple[str, str]

# Shared by every store so a re-created room never reuses a session id
_session_ids = itertools.count(1)


class ConnectionTable:
    def __init__(self) -> None:
        self._by_member: Dict[Member, str] = {}
        self._by_sid: Dict[str, Set[Member]] = {}
        self._guard = threading.Lock()

    def bind(self, room_code: str, player_id: str, sid: str) -> Optional[str]:
        """Route the member to ``sid``; returns the sid it replaced, if any."""
        member = (room_code, player_id)
        with self._guard:
            previous = self._by_member.get(member)
            if previous is not None and previous != sid:
                self._forget(previous, member)
            self._by_member[member] = sid
            self._by_sid.setdefault(sid, set()).add(member)
            return previous if previous != sid else None

    def lookup(self, room_code: str, player_id: str) -> Optional[str]:
        with self._guard:
            return self._by_member.get((room_code, player_id))

    def unbind(self, room_code: str, player_id: str) -> Optional[str]:
        member = (room_code, player_id)
        with self._guard:
            sid = self._by_member.pop(member, None)
            if sid is not None:
                self._forget(sid, member)
            return sid

    def members_of(self, sid: str) -> List[Member]:
        with self._guard:
            return sorted(self._by_sid.get(sid, ()))

    def drop_room(self, room_code: str) -> None:
        """Unbind every member of a room."""
        with self._guard:
            members = [m for m in self._by_member if m[0] == room_code]
            for member in members:
                self._forget(self._by_member.pop(member), member)

    def clear(self) -> None:
        with self._guard:
            self._by_member.clear()
            self._by_sid.clear()

    def _forget(self, sid: str, member: Member) -> None:
        members = self._by_sid.get(sid)
        if members is None:
            return
        members.discard(member)
        if not members:
            del self._by_sid[sid]


class SessionStore:
    """Process-wide map of room code to :class:`Room`."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._rooms: Dict[str, Room] = {}
        self._guard = threading.Lock()
        self._clock = clock
        self.connections = ConnectionTable()

    def __len__(self) -> int:
        return len(self._rooms)

    def get(self, room_code: str) -> Optional[Room]:
        return self._rooms.get(room_code)

    def get_or_create(self, room_code: str) -> Room:
        with self._guard:
            room = self._rooms.get(room_code)
            if room is None:
                room = Room(code=room_code, last_activity=self._clock())
                self._rooms[room_code] = room
            return room

    def join(self, room_code: str, player_id: str, display_name: str) -> Tuple[Room, PlayerSession, bool]:
        """Add a player unless already present.

        Returns ``(room, player, created)``; joining twice with the same id
        hands back the existing player untouched.
        """
        room = self.get_or_create(room_code)
        with room.lock:
            room.touch(self._clock())
            player = room.find_player(player_id)
            if player is not None:
                return room, player, False
            player = PlayerSession(id=player_id, display_name=display_name)
            room.players.append(player)
            return room, player, True

    def remove(self, room_code: str, player_id: str) -> Optional[Room]:
        """Remove a player; returns the room only when someone was removed."""
        room = self.get(room_code)
        if room is None:
            return None
        with room.lock:
            before = len(room.players)
            room.players = [p for p in room.players if p.id != player_id]
            if len(room.players) == before:
                return None
            room.touch(self._clock())
            return room

    def end_room(self, room_code: str) -> Optional[Room]:
        with self._guard:
            room = self._rooms.pop(room_code, None)
        if room is not None:
            self.connections.drop_room(room_code)
        return room

    def evict_idle(self, ttl: float, now: Optional[float] = None) -> List[str]:
        """Drop rooms with no activity for ``ttl`` seconds."""
        now = self._clock() if now is None else now
        with self._guard:
            stale = [code for code, room in self._rooms.items() if now - room.last_activity >= ttl]
            for code in stale:
                del self._rooms[code]
        for code in stale:
            self.connections.drop_room(code)
        return stale

    def clear(self) -> None:
        with self._guard:
            self._rooms.clear()
        self.connections.clear()

    def touch(self, room: Room) -> None:
        room.touch(self._clock())

    def next_session_id(self) -> int:
        return next(_session_ids)
