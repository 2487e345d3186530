from flask import Blueprint, jsonify, current_app
from livequiz import sessions

rooms = Blueprint('rooms', __name__)


@rooms.route('/<string:room_code>', methods=['GET'])
def get_room_state(room_code):
    """
    Returns the live state of a room: status, players with scores and the
    answer-free quiz snapshot once started.
    """
    state = sessions.describe(room_code.upper())
    if state is None:
        return jsonify({'error': 'Room not found'}), 404
    state['timing'] = {
        'start_lead_sec': sessions.start_lead_sec,
        'settle_sec': sessions.settle_sec,
        'auto_submit': sessions.auto_submit,
    }
    return jsonify(state)


@rooms.route('/<string:room_code>/end', methods=['POST'])
def end_room(room_code):
    """
    Tears the room down: connected clients get room_closed and any pending
    timers for it stop having an effect.
    """
    code = room_code.upper()
    if not sessions.end_room(code):
        return jsonify({'error': 'Room not found'}), 404
    current_app.logger.info(f"[api-end-room] room={code}")
    return jsonify({'message': f'Room {code} closed', 'room_code': code})
