"""Answer processing and scoring.

A submission is accepted exactly once per question: the player's
``answered_current`` flag is set on acceptance and only cleared when the
dispatcher sends the next question.
"""

from typing import Callable, Optional

from .delivery import Outbox
from .state import PlayerSession, QuestionSnapshot, Room, RoomStatus

# Submitted by the per-question timer when the player did not answer
NO_ANSWER = -1


def is_correct(question: QuestionSnapshot, selected_option_index) -> bool:
    if isinstance(selected_option_index, bool) or not isinstance(selected_option_index, int):
        return False
    if selected_option_index == NO_ANSWER:
        return False
    return selected_option_index == question.correct_answer_index


def points_for(question: QuestionSnapshot, selected_option_index, points_per_question: int) -> int:
    """+points_per_question for the correct option, 0 otherwise. No negatives."""
    return points_per_question if is_correct(question, selected_option_index) else 0


def submit_answer(
    room: Room,
    player_id: str,
    question_index: int,
    selected_option_index,
    outbox: Outbox,
    advance: Callable[[Room, PlayerSession], Optional[int]],
) -> bool:
    """Score a submission and move the player on.

    Returns False when the submission was discarded: unknown player or
    question, room not in progress, already answered, or not the question
    the player currently has in flight. Standings are broadcast after every
    submission to a room with a quiz, discarded ones included.
    """
    if room.quiz is None:
        return False
    accepted = _apply(room, player_id, question_index, selected_option_index, advance)
    outbox.to_room(room.code, 'update_leaderboard', room.player_list())
    return accepted


def _apply(room, player_id, question_index, selected_option_index, advance) -> bool:
    quiz = room.quiz
    if room.status is not RoomStatus.IN_PROGRESS:
        return False
    question = quiz.question_at(question_index)
    player = room.find_player(player_id)
    if question is None or player is None or player.answered_current:
        return False
    if player.in_flight_question() != question_index:
        return False

    player.score += points_for(question, selected_option_index, quiz.settings.points_per_question)
    player.answered_current = True
    player.progress_cursor += 1

    advance(room, player)
    return True
