"""Outbound delivery and timed callbacks.

The engine only talks to an ``Outbox``: room broadcasts go to the Socket.IO
room for the code, directed sends resolve the player's sid through the
connection table at the moment of delivery.
"""

import logging
from typing import Any, Callable, Optional

from .registry import ConnectionTable

logger = logging.getLogger('livequiz')


def room_channel(room_code: str) -> str:
    return f"room:{room_code}"


class SocketIOEmitter:
    """Emit through a Flask-SocketIO server instance."""

    def __init__(self, socketio, namespace: str = '/ws') -> None:
        self.socketio = socketio
        self.namespace = namespace

    def emit(self, event: str, payload: Any, to: str) -> None:
        if payload is None:
            self.socketio.emit(event, to=to, namespace=self.namespace)
        else:
            self.socketio.emit(event, payload, to=to, namespace=self.namespace)

    def detach(self, sid: str, room_code: str) -> None:
        # Stop room broadcasts reaching a socket that no longer belongs there
        self.socketio.server.leave_room(sid, room_channel(room_code), namespace=self.namespace)


class Outbox:
    def __init__(self, emitter, connections: ConnectionTable) -> None:
        self.emitter = emitter
        self.connections = connections

    def to_room(self, room_code: str, event: str, payload: Any = None) -> None:
        self.emitter.emit(event, payload, to=room_channel(room_code))

    def to_player(self, room_code: str, player_id: str, event: str, payload: Any = None) -> bool:
        sid = self.connections.lookup(room_code, player_id)
        if sid is None:
            logger.debug(f"[deliver-skip] room={room_code} player={player_id} event={event} no connection")
            return False
        self.emitter.emit(event, payload, to=sid)
        return True

    def to_sid(self, sid: str, event: str, payload: Any = None) -> None:
        self.emitter.emit(event, payload, to=sid)

    def detach(self, sid: str, room_code: str) -> None:
        self.emitter.detach(sid, room_code)


class BackgroundScheduler:
    """Run callbacks after a delay on a Socket.IO background task."""

    def __init__(self, socketio) -> None:
        self.socketio = socketio

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        def _runner():
            if delay > 0:
                self.socketio.sleep(delay)
            try:
                callback(*args)
            except Exception:
                logger.exception(f"[timer-error] callback={getattr(callback, '__name__', callback)}")

        self.socketio.start_background_task(_runner)


class InlineScheduler:
    """Run callbacks immediately; used in TESTING so flows are deterministic."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Optional[Any]:
        return callback(*args)
