import math

from flask import Blueprint, jsonify, request

from geoguess import rooms
from geoguess.services.rooms.scoring import score_results, team_ranking

rooms_api = Blueprint('rooms_api', __name__)


def _is_coordinate(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


@rooms_api.route('', methods=['GET'])
def list_rooms():
    return jsonify(rooms.snapshot())


@rooms_api.route('/<string:room_id>/state', methods=['GET'])
def get_room_state(room_id):
    with rooms.lock:
        room = rooms.get_room(room_id)
        if not room:
            return jsonify({'error': 'Room not found'}), 404
        return jsonify(room.to_dict())


@rooms_api.route('/score', methods=['POST'])
def score_round():
    """
    Scores a round_ended payload against the spawn the clients resolved.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    spawn = data.get('spawn') or {}
    results = data.get('results') or []
    if not isinstance(spawn, dict) or not all(_is_coordinate(spawn.get(k)) for k in ('lat', 'lng')):
        return jsonify({'error': 'spawn with numeric lat and lng is required'}), 400
    if not isinstance(results, list):
        return jsonify({'error': 'results must be a list'}), 400
    for result in results:
        if not isinstance(result, dict):
            return jsonify({'error': 'each result must be an object'}), 400
        guess = result.get('lastGuess')
        if guess is None:
            continue
        if not isinstance(guess, dict) or not all(_is_coordinate(guess.get(k)) for k in ('lat', 'lng')):
            return jsonify({'error': 'lastGuess needs numeric lat and lng'}), 400
    return jsonify({
        'results': score_results(results, spawn, data.get('startedAt')),
        'ranking': team_ranking(results, spawn),
    })
