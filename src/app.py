"""
Flask JSON API for the tournament bracket engine.
"""
import logging
from filelock import Timeout
from flask import Flask, request, jsonify

from bracket_store import BracketStore, DEFAULT_DATA_DIR
from engine import formats
from engine.errors import BracketError, ReferenceNotFoundError, StateConflictError, ValidationError

app = Flask(__name__)

DATA_DIR = DEFAULT_DATA_DIR
LOCK_TIMEOUT = 10


def _store() -> BracketStore:
    return BracketStore(DATA_DIR, lock_timeout=LOCK_TIMEOUT)


def _load_bracket(store: BracketStore, tournament_id: str) -> dict:
    bracket = store.load(tournament_id)
    if bracket is None:
        raise ReferenceNotFoundError(f'No bracket for tournament {tournament_id}.')
    return bracket


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object.')
    return data


@app.errorhandler(BracketError)
def handle_bracket_error(error):
    app.logger.warning(f'{request.method} {request.path} rejected: {error.message}')
    return jsonify({'success': False, 'error': error.message}), error.status_code


@app.errorhandler(Timeout)
def handle_lock_timeout(error):
    app.logger.warning(f'Lock timeout on {request.path}: {error}')
    return jsonify({'success': False, 'error': 'Tournament is busy, try again.'}), 409


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['POST'])
def api_create_bracket(tournament_id):
    """Generate and store a bracket. Refuses to overwrite unless ?replace=1."""
    data = _json_body()
    replace = request.args.get('replace') in ('1', 'true')
    store = _store()
    with store.locked(tournament_id):
        if store.exists(tournament_id) and not replace:
            raise StateConflictError('A bracket already exists for this tournament.')
        bracket = formats.generate_bracket(data.get('participants'), data.get('settings'))
        store.save(tournament_id, bracket)
    app.logger.info(f'Created {bracket["type"]} bracket for {tournament_id}')
    return jsonify({'success': True, 'bracket': bracket}), 201


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['GET'])
def api_get_bracket(tournament_id):
    bracket = _load_bracket(_store(), tournament_id)
    return jsonify({'success': True, 'bracket': bracket})


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['DELETE'])
def api_delete_bracket(tournament_id):
    store = _store()
    with store.locked(tournament_id):
        if not store.delete(tournament_id):
            raise ReferenceNotFoundError(f'No bracket for tournament {tournament_id}.')
    return jsonify({'success': True})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/report', methods=['POST'])
def api_report_match(tournament_id, match_id):
    """Report a match winner (and optional score)."""
    data = _json_body()
    store = _store()
    with store.locked(tournament_id):
        bracket = _load_bracket(store, tournament_id)
        formats.report_match(bracket, match_id, data.get('winner_id'), data.get('score'))
        store.save(tournament_id, bracket)
    return jsonify({
        'success': True,
        'match': formats.find_match(bracket, match_id),
        'complete': formats.is_complete(bracket),
    })


@app.route('/api/tournaments/<tournament_id>/groups/<group_id>/games/<int:game_number>/report',
           methods=['POST'])
def api_report_game(tournament_id, group_id, game_number):
    """Report a battle royale game's placements, first place first."""
    data = _json_body()
    store = _store()
    with store.locked(tournament_id):
        bracket = _load_bracket(store, tournament_id)
        formats.report_game_results(bracket, group_id, game_number, data.get('placements'))
        store.save(tournament_id, bracket)
    return jsonify({
        'success': True,
        'current_stage': bracket['current_stage'],
        'complete': formats.is_complete(bracket),
    })


@app.route('/api/tournaments/<tournament_id>/rounds/next', methods=['POST'])
def api_next_round(tournament_id):
    store = _store()
    with store.locked(tournament_id):
        bracket = _load_bracket(store, tournament_id)
        formats.generate_next_round(bracket)
        store.save(tournament_id, bracket)
    return jsonify({'success': True, 'current_round': bracket['current_round']})


@app.route('/api/tournaments/<tournament_id>/active', methods=['GET'])
def api_active_matches(tournament_id):
    bracket = _load_bracket(_store(), tournament_id)
    return jsonify({'success': True, 'matches': formats.get_active_matches(bracket)})


@app.route('/api/tournaments/<tournament_id>/standings', methods=['GET'])
def api_standings(tournament_id):
    bracket = _load_bracket(_store(), tournament_id)
    return jsonify({'success': True, 'standings': formats.get_standings(bracket)})


@app.route('/api/tournaments/<tournament_id>/results', methods=['GET'])
def api_results(tournament_id):
    bracket = _load_bracket(_store(), tournament_id)
    return jsonify({
        'success': True,
        'complete': formats.is_complete(bracket),
        'results': formats.get_results(bracket),
    })


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True, port=5000)
