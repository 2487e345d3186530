"""Inbound Socket.IO event payloads.

Each event has a fixed shape; ``from_payload`` validates the raw dict coming
off the wire and raises :class:`InvalidEvent` before anything reaches the
engine. Keys from the legacy web client (``user``, ``studentId``,
``userId``) are accepted alongside the documented ones.
"""

from dataclasses import dataclass
from typing import Any, Mapping

from .answers import NO_ANSWER


class InvalidEvent(ValueError):
    """Raised when an inbound payload is missing fields or malformed."""


def normalize_room_code(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidEvent('roomCode is required')
    return value.strip().upper()


def _mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise InvalidEvent('payload must be an object')
    return data


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _identifier(value: Any, field_name: str) -> str:
    # Ids arrive as strings (database ids) or ints; bools are never ids
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise InvalidEvent(f'{field_name} is required')
    text = str(value).strip()
    if not text:
        raise InvalidEvent(f'{field_name} is required')
    return text


def _index(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidEvent(f'{field_name} must be an integer')
    return value


@dataclass(frozen=True)
class JoinRoom:
    room_code: str
    player_id: str
    display_name: str

    @classmethod
    def from_payload(cls, data: Any) -> 'JoinRoom':
        data = _mapping(data)
        player = _first(data, 'player', 'user')
        if not isinstance(player, Mapping):
            raise InvalidEvent('player is required')
        player_id = _identifier(_first(player, 'id', '_id'), 'player.id')
        name = _first(player, 'displayName', 'username', 'name')
        display_name = name.strip() if isinstance(name, str) and name.strip() else player_id
        return cls(normalize_room_code(data.get('roomCode')), player_id, display_name)


@dataclass(frozen=True)
class KickStudent:
    room_code: str
    target_id: str

    @classmethod
    def from_payload(cls, data: Any) -> 'KickStudent':
        data = _mapping(data)
        target = _identifier(_first(data, 'targetId', 'studentId'), 'targetId')
        return cls(normalize_room_code(data.get('roomCode')), target)


@dataclass(frozen=True)
class StartQuiz:
    room_code: str

    @classmethod
    def from_payload(cls, data: Any) -> 'StartQuiz':
        # The legacy client sends the bare room code
        if isinstance(data, str):
            return cls(normalize_room_code(data))
        return cls(normalize_room_code(_mapping(data).get('roomCode')))


@dataclass(frozen=True)
class ClientReady:
    room_code: str
    player_id: str

    @classmethod
    def from_payload(cls, data: Any) -> 'ClientReady':
        data = _mapping(data)
        player_id = _identifier(_first(data, 'playerId', 'userId'), 'playerId')
        return cls(normalize_room_code(data.get('roomCode')), player_id)


@dataclass(frozen=True)
class LeaveRoom:
    room_code: str
    player_id: str

    @classmethod
    def from_payload(cls, data: Any) -> 'LeaveRoom':
        data = _mapping(data)
        player_id = _identifier(_first(data, 'playerId', 'userId'), 'playerId')
        return cls(normalize_room_code(data.get('roomCode')), player_id)


@dataclass(frozen=True)
class SubmitAnswer:
    room_code: str
    player_id: str
    question_index: int
    selected_option_index: int

    @classmethod
    def from_payload(cls, data: Any) -> 'SubmitAnswer':
        data = _mapping(data)
        player_id = _identifier(_first(data, 'playerId', 'userId'), 'playerId')
        question_index = _index(data.get('questionIndex'), 'questionIndex')
        selected = _coerce_selection(data.get('selectedOptionIndex'))
        return cls(normalize_room_code(data.get('roomCode')), player_id, question_index, selected)


def _coerce_selection(value: Any) -> int:
    """Anything that is not an integer counts as no answer, never an error."""
    if isinstance(value, bool) or not isinstance(value, int):
        return NO_ANSWER
    return value

