from typing import Optional

from livequiz.models import Quiz
from livequiz.services.session.state import QuestionSnapshot, QuizSettings, QuizSnapshot


def snapshot_quiz(quiz: Quiz) -> QuizSnapshot:
    """Copy a persisted quiz into the immutable form a session plays from."""
    questions = tuple(
        QuestionSnapshot(
            text=q.text,
            options=tuple(q.options),
            correct_answer_index=int(q.correct_answer_index),
        )
        for q in quiz.questions
    )
    settings = QuizSettings(
        num_questions=int(quiz.num_questions or len(questions)),
        time_per_question=int(quiz.time_per_question or 0),
        points_per_question=int(quiz.points_per_question or 0),
    )
    return QuizSnapshot(title=quiz.title, settings=settings, questions=questions)


def load_quiz_for_session(room_code: str) -> Optional[QuizSnapshot]:
    """Room codes are quiz codes; returns None when no such quiz exists."""
    quiz = Quiz.query.filter_by(quiz_code=room_code.upper()).first()
    if quiz is None:
        return None
    return snapshot_quiz(quiz)
