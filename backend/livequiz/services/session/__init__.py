"""Real-time quiz session engine.

Room membership, per-player question streams, exactly-once answer scoring
and session completion. Transport concerns stay in ``socketio_events``; this
package only sees room codes, player ids and an outbox.
"""

from .answers import NO_ANSWER
from .engine import SessionEngine
from .events import InvalidEvent
from .state import PlayerSession, QuestionSnapshot, QuizSettings, QuizSnapshot, Room, RoomStatus

__all__ = [
    'NO_ANSWER',
    'InvalidEvent',
    'PlayerSession',
    'QuestionSnapshot',
    'QuizSettings',
    'QuizSnapshot',
    'Room',
    'RoomStatus',
    'SessionEngine',
]
