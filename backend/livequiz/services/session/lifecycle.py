"""Room state transitions: lobby -> starting -> in_progress -> finished."""

import random
from typing import Optional

from .delivery import Outbox
from .shuffler import shuffled_indices
from .state import QuizSnapshot, Room, RoomStatus

STARTABLE = (RoomStatus.LOBBY, RoomStatus.FINISHED)


def prepare_start(room: Room, quiz: QuizSnapshot, session_id: int,
                  rng: Optional[random.Random] = None) -> int:
    """Reset every player, store the snapshot and enter ``starting``.

    Each player gets an independent permutation of the question indices.
    ``session_id`` must be unique for the process; it is returned as is.
    """
    for player in room.players:
        player.reset(shuffled_indices(quiz.question_count, rng))
    room.quiz = quiz
    room.ready.clear()
    room.released = False
    room.session_id = session_id
    room.status = RoomStatus.STARTING
    return room.session_id


def mark_ready(room: Room, player_id: str) -> bool:
    """Record a countdown acknowledgement; True once every player has sent one."""
    if room.status is not RoomStatus.STARTING or room.find_player(player_id) is None:
        return False
    room.ready.add(player_id)
    return all_ready(room)


def all_ready(room: Room) -> bool:
    return bool(room.players) and all(p.id in room.ready for p in room.players)


def begin(room: Room, outbox: Outbox) -> bool:
    if room.status is not RoomStatus.STARTING or room.quiz is None:
        return False
    room.status = RoomStatus.IN_PROGRESS
    room.ready.clear()
    outbox.to_room(room.code, 'quiz_started', room.quiz.to_public_dict())
    return True


def finish_if_complete(room: Room, outbox: Outbox) -> bool:
    """Barrier check: finish the room once every player is done.

    Fires at most once per session since the status leaves ``in_progress``.
    """
    if room.status is not RoomStatus.IN_PROGRESS or not room.all_finished():
        return False
    room.status = RoomStatus.FINISHED
    outbox.to_room(room.code, 'quiz_finished', room.player_list())
    outbox.to_room(room.code, 'quiz_review', room.quiz.to_review_dict())
    return True
