"""In-memory session state for live quiz rooms.

Nothing here knows about sockets: players are identified by id only and the
connection routing lives in :mod:`registry`.
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple


class RoomStatus(str, Enum):
    LOBBY = 'lobby'
    STARTING = 'starting'
    IN_PROGRESS = 'in_progress'
    FINISHED = 'finished'


@dataclass(frozen=True)
class QuestionSnapshot:
    text: str
    options: Tuple[str, ...]
    correct_answer_index: int

    def to_public_dict(self) -> Dict[str, Any]:
        # Never includes the answer key
        return {'text': self.text, 'options': list(self.options)}

    def to_review_dict(self) -> Dict[str, Any]:
        payload = self.to_public_dict()
        payload['correctAnswerIndex'] = self.correct_answer_index
        return payload


@dataclass(frozen=True)
class QuizSettings:
    num_questions: int
    time_per_question: int
    points_per_question: int

    def to_dict(self) -> Dict[str, int]:
        return {
            'numQuestions': self.num_questions,
            'timePerQuestion': self.time_per_question,
            'pointsPerQuestion': self.points_per_question,
        }


@dataclass(frozen=True)
class QuizSnapshot:
    """Immutable copy of a quiz taken when a session starts."""

    title: str
    settings: QuizSettings
    questions: Tuple[QuestionSnapshot, ...]

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def question_at(self, index: int) -> Optional[QuestionSnapshot]:
        if isinstance(index, bool) or not isinstance(index, int):
            return None
        if 0 <= index < len(self.questions):
            return self.questions[index]
        return None

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'settings': self.settings.to_dict(),
            'totalQuestions': self.question_count,
            'questions': [q.to_public_dict() for q in self.questions],
        }

    def to_review_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'questions': [q.to_review_dict() for q in self.questions],
        }


@dataclass
class PlayerSession:
    id: str
    display_name: str
    score: int = 0
    answered_current: bool = False
    progress_cursor: int = 0
    question_sequence: List[int] = field(default_factory=list)

    def reset(self, sequence: List[int]) -> None:
        self.score = 0
        self.progress_cursor = 0
        self.answered_current = False
        self.question_sequence = list(sequence)

    def is_finished(self, question_count: int) -> bool:
        return self.progress_cursor >= question_count

    def in_flight_question(self) -> Optional[int]:
        """Real question index the player is currently answering, if any."""
        if 0 <= self.progress_cursor < len(self.question_sequence):
            return self.question_sequence[self.progress_cursor]
        return None

    def to_dict(self, question_count: Optional[int] = None) -> Dict[str, Any]:
        return {
            'id': self.id,
            'displayName': self.display_name,
            'score': self.score,
            'progress': self.progress_cursor,
            'finished': bool(question_count) and self.is_finished(question_count),
        }


@dataclass
class Room:
    code: str
    players: List[PlayerSession] = field(default_factory=list)
    quiz: Optional[QuizSnapshot] = None
    status: RoomStatus = RoomStatus.LOBBY
    session_id: int = 0
    ready: Set[str] = field(default_factory=set)
    # First questions have gone out for the current session
    released: bool = False
    last_activity: float = field(default_factory=time.monotonic)
    lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    def touch(self, now: Optional[float] = None) -> None:
        self.last_activity = time.monotonic() if now is None else now

    def find_player(self, player_id: str) -> Optional[PlayerSession]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    @property
    def question_count(self) -> int:
        return self.quiz.question_count if self.quiz else 0

    def all_finished(self) -> bool:
        if not self.players or self.quiz is None:
            return False
        count = self.quiz.question_count
        return all(p.is_finished(count) for p in self.players)

    def player_list(self) -> List[Dict[str, Any]]:
        count = self.question_count
        return [p.to_dict(count) for p in self.players]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'roomCode': self.code,
            'status': self.status.value,
            'players': self.player_list(),
            'quiz': self.quiz.to_public_dict() if self.quiz else None,
        }
