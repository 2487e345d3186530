import os
import sys
import pytest

# Ensure the backend root (containing the `livequiz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from flask import Flask
from livequiz import create_app, db, socketio
from livequiz.services.session import QuestionSnapshot, QuizSettings, QuizSnapshot, SessionEngine


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = []
    SOCKETIO_NAMESPACE = '/ws'
    QUIZ_START_LEAD_SEC = 0
    QUIZ_SETTLE_SEC = 0
    AUTO_SUBMIT_ENABLED = False
    AUTO_SUBMIT_GRACE_SEC = 0
    ROOM_IDLE_TTL_SEC = 60
    ROOM_SWEEP_INTERVAL_SEC = 0


SAMPLE_QUESTIONS = [
    ('What is the capital of France?', ['Berlin', 'Madrid', 'Paris', 'Rome'], 2),
    ('Which planet is known as the Red Planet?', ['Venus', 'Mars', 'Jupiter', 'Saturn'], 1),
    ('What is 7 x 8?', ['54', '56', '58', '64'], 1),
]


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import livequiz.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def seeded_quiz(flask_app):
    from livequiz.models import Quiz, Question
    quiz = Quiz(title='General Knowledge', quiz_code='AB12CD', num_questions=3,
                time_per_question=20, points_per_question=1)
    for position, (text, options, answer) in enumerate(SAMPLE_QUESTIONS):
        quiz.questions.append(Question(position=position, text=text, options=options,
                                       correct_answer_index=answer))
    db.session.add(quiz)
    db.session.commit()
    return quiz


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def make_sio_client(flask_app):
    created = []

    def _make():
        test_client = socketio.test_client(flask_app, namespace='/ws')
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        if test_client.is_connected('/ws'):
            test_client.disconnect(namespace='/ws')


# ---- Engine unit test helpers ----

class RecordingEmitter:
    """Captures outbound events instead of sending them over Socket.IO."""

    def __init__(self):
        self.sent = []
        self.detached = []

    def emit(self, event, payload, to):
        self.sent.append((to, event, payload))

    def detach(self, sid, room_code):
        self.detached.append((sid, room_code))

    def events(self, name, to=None):
        return [payload for dest, event, payload in self.sent
                if event == name and (to is None or dest == to)]

    def names(self, to=None):
        return [event for dest, event, _ in self.sent if to is None or dest == to]

    def last(self, name, to=None):
        found = self.events(name, to=to)
        return found[-1] if found else None

    def clear(self):
        self.sent.clear()
        self.detached.clear()


class ManualScheduler:
    """Holds timed callbacks until the test decides to fire them."""

    def __init__(self):
        self.pending = []

    def call_later(self, delay, callback, *args):
        self.pending.append((delay, callback, args))

    def run_next(self):
        delay, callback, args = self.pending.pop(0)
        callback(*args)
        return callback.__name__

    def run_all(self, limit=100):
        ran = []
        while self.pending and len(ran) < limit:
            ran.append(self.run_next())
        return ran


def make_quiz(count=3, points=1, seconds=20, title='Unit Quiz'):
    questions = tuple(
        QuestionSnapshot(text=f'Question {i + 1}?', options=('A', 'B', 'C', 'D'), correct_answer_index=i % 4)
        for i in range(count)
    )
    return QuizSnapshot(title=title, settings=QuizSettings(count, seconds, points), questions=questions)


class EngineHarness:
    def __init__(self, quizzes=None, **config):
        self.app = Flask('livequiz')
        self.app.config.update({
            'TESTING': True,
            'QUIZ_START_LEAD_SEC': 4,
            'QUIZ_SETTLE_SEC': 0.5,
            'AUTO_SUBMIT_ENABLED': False,
            'AUTO_SUBMIT_GRACE_SEC': 2,
            'ROOM_IDLE_TTL_SEC': 60,
        })
        self.app.config.update(config)
        self.quizzes = dict(quizzes if quizzes is not None else {'AB12CD': make_quiz()})
        self.emitter = RecordingEmitter()
        self.scheduler = ManualScheduler()
        self.engine = SessionEngine()
        self.engine.init_app(self.app, emitter=self.emitter, scheduler=self.scheduler,
                             quiz_loader=self.quizzes.get)

    def room(self, code='AB12CD'):
        return self.engine.store.get(code)

    def player(self, player_id, code='AB12CD'):
        return self.room(code).find_player(player_id)

    def join(self, player_id, code='AB12CD', sid=None):
        return self.engine.join(code, player_id, player_id.title(), sid=sid or f'sid-{player_id}')

    def start_and_release(self, code='AB12CD'):
        """Start the quiz and fire the countdown and settle timers."""
        assert self.engine.start(code)
        self.scheduler.run_next()
        self.scheduler.run_next()

    def current_question(self, player_id, code='AB12CD'):
        payload = self.emitter.last('new_question', to=f'sid-{player_id}')
        return payload['questionIndex'] if payload else None

    def correct_option(self, question_index, code='AB12CD'):
        return self.quizzes[code].questions[question_index].correct_answer_index

    def answer(self, player_id, correct=True, code='AB12CD'):
        index = self.current_question(player_id, code)
        option = self.correct_option(index, code)
        if not correct:
            option = (option + 1) % 4
        return self.engine.submit(code, player_id, index, option)


@pytest.fixture()
def harness():
    return EngineHarness()


@pytest.fixture()
def harness_factory():
    return EngineHarness


@pytest.fixture()
def quiz_factory():
    return make_quiz


@pytest.fixture()
def sample_questions():
    return SAMPLE_QUESTIONS
