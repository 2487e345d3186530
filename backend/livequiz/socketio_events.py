from flask import request
from flask_socketio import join_room, leave_room, emit
from livequiz import sessions, socketio
from livequiz.services.session.delivery import room_channel
from livequiz.services.session.events import (
    ClientReady,
    InvalidEvent,
    JoinRoom,
    KickStudent,
    LeaveRoom,
    StartQuiz,
    SubmitAnswer,
)


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _parse(event_type, data):
    """Validate an inbound payload, reporting problems back to the sender."""
    try:
        return event_type.from_payload(data)
    except InvalidEvent as exc:
        emit('error', {'message': str(exc)})
        return None


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    sessions.disconnect(_get_sid())


def handle_join_room(data):
    event = _parse(JoinRoom, data)
    if event is None:
        return
    join_room(room_channel(event.room_code))
    sessions.join(event.room_code, event.player_id, event.display_name, sid=_get_sid())


def handle_leave_room(data):
    event = _parse(LeaveRoom, data)
    if event is None:
        return
    leave_room(room_channel(event.room_code))
    sessions.leave(event.room_code, event.player_id)


def handle_kick_student(data):
    event = _parse(KickStudent, data)
    if event is None:
        return
    sessions.kick(event.room_code, event.target_id)


def handle_start_quiz(data):
    event = _parse(StartQuiz, data)
    if event is None:
        return
    sessions.start(event.room_code)


def handle_client_ready(data):
    event = _parse(ClientReady, data)
    if event is None:
        return
    sessions.client_ready(event.room_code, event.player_id)


def handle_submit_answer(data):
    event = _parse(SubmitAnswer, data)
    if event is None:
        return
    sessions.submit(event.room_code, event.player_id, event.question_index, event.selected_option_index)


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the given namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('join_room', handle_join_room, namespace=namespace)
    socketio.on_event('leave_room', handle_leave_room, namespace=namespace)
    socketio.on_event('kick_student', handle_kick_student, namespace=namespace)
    socketio.on_event('start_quiz', handle_start_quiz, namespace=namespace)
    socketio.on_event('client_ready', handle_client_ready, namespace=namespace)
    socketio.on_event('submit_answer', handle_submit_answer, namespace=namespace)
