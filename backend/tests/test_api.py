from livequiz import db
from livequiz.models import Quiz
from livequiz.services.quiz_source import load_quiz_for_session


def _join(test_client, player_id, code='AB12CD'):
    test_client.emit('join_room', {'roomCode': code, 'player': {'id': player_id, 'displayName': player_id}},
                     namespace='/ws')


def test_health(client):
    res = client.get('/health')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'ok', 'rooms': 0}


def test_unknown_room_state_is_404(client):
    res = client.get('/api/rooms/NOPE00')
    assert res.status_code == 404
    assert client.post('/api/rooms/NOPE00/end').status_code == 404


def test_room_state_reflects_players(client, sio_client):
    _join(sio_client, 'u1')
    res = client.get('/api/rooms/ab12cd')
    assert res.status_code == 200
    state = res.get_json()
    assert state['roomCode'] == 'AB12CD'
    assert state['status'] == 'lobby'
    assert state['quiz'] is None
    assert [p['id'] for p in state['players']] == ['u1']
    assert state['timing']['auto_submit'] is False


def test_room_state_after_start_hides_answers(seeded_quiz, client, sio_client):
    _join(sio_client, 'u1')
    sio_client.emit('start_quiz', 'AB12CD', namespace='/ws')
    state = client.get('/api/rooms/AB12CD').get_json()
    assert state['status'] == 'in_progress'
    assert state['quiz']['totalQuestions'] == 3
    assert all('correctAnswerIndex' not in q for q in state['quiz']['questions'])


def test_end_room_notifies_clients_and_forgets_room(client, sio_client):
    _join(sio_client, 'u1')
    sio_client.get_received('/ws')

    res = client.post('/api/rooms/AB12CD/end')
    assert res.status_code == 200
    assert res.get_json()['room_code'] == 'AB12CD'

    received = sio_client.get_received('/ws')
    assert [pkt['name'] for pkt in received] == ['room_closed']
    assert client.get('/api/rooms/AB12CD').status_code == 404


def test_load_quiz_for_session_snapshots_questions(seeded_quiz):
    snapshot = load_quiz_for_session('ab12cd')
    assert snapshot.title == 'General Knowledge'
    assert snapshot.question_count == 3
    assert snapshot.settings.points_per_question == 1
    assert snapshot.settings.time_per_question == 20
    assert snapshot.questions[0].options == ('Berlin', 'Madrid', 'Paris', 'Rome')
    assert snapshot.questions[0].correct_answer_index == 2
    assert load_quiz_for_session('NOPE00') is None


def test_quiz_gets_generated_code(flask_app):
    quiz = Quiz(title='Untitled', num_questions=0)
    db.session.add(quiz)
    db.session.commit()
    assert len(quiz.quiz_code) == 6
    assert quiz.to_dict()['question_count'] == 0


def test_db_reset_seeds_sample_quiz(flask_app):
    result = flask_app.test_cli_runner().invoke(args=['db-reset'])
    assert result.exit_code == 0
    assert 'AB12CD' in result.output
    assert load_quiz_for_session('AB12CD').question_count == 3
