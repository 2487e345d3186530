from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config
from livequiz.services.session import SessionEngine

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)
sessions = SessionEngine()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)
    sessions.init_app(flask_app, socketio=socketio)

    from livequiz.main import main
    flask_app.register_blueprint(main)

    from livequiz.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Importing here binds the handlers to the initialized socketio instance
    from livequiz.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/ws'))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with a sample quiz."""
        from livequiz.models import Quiz, Question
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            quiz = Quiz(title='General Knowledge', quiz_code='AB12CD', num_questions=3,
                        time_per_question=30, points_per_question=1)
            samples = [
                ('What is the capital of France?', ['Berlin', 'Madrid', 'Paris', 'Rome'], 2),
                ('Which planet is known as the Red Planet?', ['Venus', 'Mars', 'Jupiter', 'Saturn'], 1),
                ('What is 7 x 8?', ['54', '56', '58', '64'], 1),
            ]
            for position, (text, options, answer) in enumerate(samples):
                quiz.questions.append(Question(position=position, text=text, options=options,
                                               correct_answer_index=answer))
            db.session.add(quiz)
            db.session.commit()
            print(f'Database has been reset and seeded! Sample room code: {quiz.quiz_code}')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
