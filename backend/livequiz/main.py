from flask import Blueprint, jsonify
from livequiz import sessions

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Live quiz session server'})


@main.route('/health')
def health():
    return jsonify({'status': 'ok', 'rooms': len(sessions.store)})
