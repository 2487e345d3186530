from livequiz import db
import json
import string
import random


def generate_quiz_code(length=6):
    """Generate a unique, short room code for a quiz."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Quiz.query.filter_by(quiz_code=code).first():
            return code


class Quiz(db.Model):
    __tablename__ = 'quiz'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    quiz_code = db.Column(db.String(12), unique=True, index=True, nullable=False)
    num_questions = db.Column(db.Integer, nullable=False, default=0)
    time_per_question = db.Column(db.Integer, nullable=False, default=30)  # seconds
    points_per_question = db.Column(db.Integer, nullable=False, default=1)
    questions = db.relationship(
        'Question', back_populates='quiz', order_by='Question.position', cascade='all, delete-orphan'
    )

    def __init__(self, **kwargs):
        super(Quiz, self).__init__(**kwargs)
        if not self.quiz_code:
            self.quiz_code = generate_quiz_code()

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'quiz_code': self.quiz_code,
            'settings': {
                'numQuestions': self.num_questions,
                'timePerQuestion': self.time_per_question,
                'pointsPerQuestion': self.points_per_question,
            },
            'question_count': len(self.questions),
        }


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quiz.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    text = db.Column(db.Text, nullable=False)
    options_json = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of strings
    correct_answer_index = db.Column(db.Integer, nullable=False)
    quiz = db.relationship('Quiz', back_populates='questions')

    @property
    def options(self):
        try:
            return json.loads(self.options_json or '[]')
        except ValueError:
            return []

    @options.setter
    def options(self, values):
        self.options_json = json.dumps([str(v) for v in values])

    def to_dict(self):
        return {
            'id': self.id,
            'text': self.text,
            'options': self.options,
            'correctAnswerIndex': self.correct_answer_index,
        }
