from typing import Optional

from .delivery import Outbox
from .lifecycle import finish_if_complete
from .state import PlayerSession, QuizSnapshot, Room


def dispatch_next(room: Room, player: PlayerSession, outbox: Outbox) -> Optional[int]:
    """Send the player their next question, or mark them finished.

    Returns the real question index that was sent, ``None`` when the player
    has run out of questions. The payload never carries the correct answer.
    """
    quiz = room.quiz
    if quiz is None:
        return None

    if player.is_finished(quiz.question_count):
        outbox.to_player(room.code, player.id, 'player_finished')
        finish_if_complete(room, outbox)
        return None

    question_index = player.in_flight_question()
    if question_index is None:
        return None
    player.answered_current = False
    _send_question(room.code, quiz, player, question_index, outbox)
    return question_index


def resend_current(room: Room, player: PlayerSession, outbox: Outbox) -> Optional[int]:
    """Repeat the in-flight question to a player's new connection.

    Leaves the cursor and answer lock untouched, so nothing is re-armed.
    """
    quiz = room.quiz
    if quiz is None or player.answered_current:
        return None
    question_index = player.in_flight_question()
    if question_index is None:
        return None
    _send_question(room.code, quiz, player, question_index, outbox)
    return question_index


def _send_question(room_code: str, quiz: QuizSnapshot, player: PlayerSession,
                   question_index: int, outbox: Outbox) -> None:
    outbox.to_player(room_code, player.id, 'new_question', {
        'question': quiz.questions[question_index].to_public_dict(),
        'questionNumber': player.progress_cursor + 1,
        'totalQuestions': quiz.question_count,
        # Sequences differ per player, so the client echoes the real index back
        'questionIndex': question_index,
        'timePerQuestion': quiz.settings.time_per_question,
    })
