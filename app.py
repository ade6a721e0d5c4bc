import logging
import random
from datetime import timedelta
from functools import wraps
from typing import Dict

from flask import Flask, jsonify, request, session

import config
import service
from checkout import format_dart, suggest
from league import default_matches_per_player, valid_matches_per_player_options, validate_league_config
from scoring import MatchScoringEngine, Outcome
from store import get_store
from tournament import (
    IllegalTransition,
    InvalidConfig,
    InvalidInput,
    NotFound,
    TournamentError,
    TournamentSettings,
)

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = config.SECRET_KEY
app.permanent_session_lifetime = timedelta(days=365)
app.config['DB_PATH'] = config.DB_PATH

# live scoring engines, keyed by match id
_engines: Dict[str, MatchScoringEngine] = {}


def get_db():
    return get_store(app.config['DB_PATH'])


def admin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not session.get('admin_logged_in'):
            return jsonify({'error': 'admin login required'}), 401
        return view(*args, **kwargs)
    return wrapped


@app.errorhandler(TournamentError)
def handle_tournament_error(exc):
    if isinstance(exc, NotFound):
        status = 404
    elif isinstance(exc, IllegalTransition):
        status = 409
    else:
        status = 400
    if isinstance(exc, InvalidConfig):
        message = exc.reason
    else:
        message = str(exc)
    return jsonify({'error': message}), status


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


def _int_field(data: dict, key: str, default=None) -> int:
    value = data.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{key} must be a number")


@app.route('/login', methods=['POST'])
def login():
    data = _json_body() or request.form
    if data.get('username') == config.ADMIN_USERNAME and data.get('password') == config.ADMIN_PASSWORD:
        session.permanent = True
        session['admin_logged_in'] = True
        return jsonify({'admin': True})
    return jsonify({'error': 'invalid credentials'}), 401


@app.route('/logout', methods=['POST'])
def logout():
    session.pop('admin_logged_in', None)
    return jsonify({'admin': False})


@app.route('/')
def index():
    return jsonify({'tournaments': get_db().list_tournaments()})


@app.route('/tournaments', methods=['POST'])
@admin_required
def create_tournament():
    data = _json_body()
    settings = TournamentSettings(
        format=data.get('format', 'group'),
        game_mode=_int_field(data, 'game_mode', config.DEFAULT_GAME_MODE),
        group_sets_to_win=_int_field(data, 'group_sets_to_win', config.DEFAULT_GROUP_SETS_TO_WIN),
        knockout_sets_to_win=_int_field(data, 'knockout_sets_to_win', config.DEFAULT_KNOCKOUT_SETS_TO_WIN),
        group_checkout=data.get('group_checkout', config.DEFAULT_GROUP_CHECKOUT),
        knockout_checkout=data.get('knockout_checkout', config.DEFAULT_KNOCKOUT_CHECKOUT),
        show_checkout_suggestions=bool(data.get('show_checkout_suggestions', True)),
        matches_per_player=(_int_field(data, 'matches_per_player')
                            if data.get('matches_per_player') is not None else None),
    )
    created = service.create_tournament(get_db(), data.get('name', ''), data.get('players', []), settings)
    body = {'id': created.tournament_id, 'phase': created.phase}
    if created.warning is not None:
        body['warning'] = str(created.warning)
    return jsonify(body), 201


@app.route('/tournaments/<int:t_id>')
def tournament_view(t_id: int):
    db = get_db()
    tournament = db.load_tournament(t_id)
    session['current_tournament_id'] = t_id
    return jsonify({
        'tournament': tournament,
        'players': [p.to_dict() for p in db.load_players(t_id)],
        'matches': [m.to_dict() for m in db.load_matches(t_id)],
        'standings': service.standings(db, t_id),
    })


@app.route('/tournaments/<int:t_id>', methods=['DELETE'])
@admin_required
def delete_tournament(t_id: int):
    db = get_db()
    for m in db.load_matches(t_id):
        _engines.pop(m.id, None)
    db.delete_tournament(t_id)
    if session.get('current_tournament_id') == t_id:
        session.pop('current_tournament_id', None)
    return jsonify({'deleted': t_id})


def _result_args(data: dict) -> dict:
    return {
        'winner_id': data.get('winner_id'),
        'player1_sets': _int_field(data, 'player1_sets'),
        'player2_sets': _int_field(data, 'player2_sets'),
        'player1_score': _int_field(data, 'player1_score', 0),
        'player1_darts': _int_field(data, 'player1_darts', 0),
        'player2_score': _int_field(data, 'player2_score', 0),
        'player2_darts': _int_field(data, 'player2_darts', 0),
    }


@app.route('/tournaments/<int:t_id>/matches/<m_id>/result', methods=['POST'])
@admin_required
def record_score(t_id: int, m_id: str):
    match = service.record_result(get_db(), t_id, m_id, **_result_args(_json_body()))
    _engines.pop(m_id, None)
    return jsonify(match.to_dict())


@app.route('/tournaments/<int:t_id>/matches/<m_id>/result', methods=['PUT'])
@admin_required
def edit_score(t_id: int, m_id: str):
    match = service.edit_result(get_db(), t_id, m_id, **_result_args(_json_body()))
    return jsonify(match.to_dict())


@app.route('/tournaments/<int:t_id>/matches/<m_id>/skip', methods=['POST'])
@admin_required
def skip_match(t_id: int, m_id: str):
    match = service.skip_match(get_db(), t_id, m_id)
    _engines.pop(m_id, None)
    return jsonify(match.to_dict())


@app.route('/tournaments/<int:t_id>/simulate', methods=['POST'])
@admin_required
def simulate(t_id: int):
    data = _json_body()
    rng = random.Random(data['seed']) if data.get('seed') is not None else None
    count = service.simulate_stage(get_db(), t_id, data.get('stage'), rng)
    return jsonify({'simulated': count})


# -------- live scoring --------

def _engine_for(t_id: int, m_id: str) -> MatchScoringEngine:
    db = get_db()
    match = db.load_match(m_id)
    if match.tournament_id != t_id:
        raise NotFound(f"match {m_id} is not part of tournament {t_id}")
    if not match.is_pending:
        _engines.pop(m_id, None)
        raise IllegalTransition(f"match {m_id} is already {match.status}")
    if not match.player1_id or not match.player2_id:
        raise IllegalTransition(f"match {m_id} does not have two players yet")
    engine = _engines.get(m_id)
    if engine is not None:
        return engine
    settings = db.load_tournament_settings(t_id)
    engine = MatchScoringEngine(
        match.player1_id,
        match.player2_id,
        starting_score=settings.game_mode,
        sets_to_win=match.sets_to_win,
        double_out=settings.double_out(match.stage),
        show_suggestions=settings.show_checkout_suggestions,
        on_confirm=lambda result: service.record_engine_result(db, t_id, m_id, result),
    )
    _engines[m_id] = engine
    return engine


@app.route('/tournaments/<int:t_id>/matches/<m_id>/scoring')
def scoring_state(t_id: int, m_id: str):
    return jsonify(_engine_for(t_id, m_id).to_dict())


@app.route('/tournaments/<int:t_id>/matches/<m_id>/scoring/throw', methods=['POST'])
@admin_required
def scoring_throw(t_id: int, m_id: str):
    data = _json_body()
    engine = _engine_for(t_id, m_id)
    result = engine.record_throw(_int_field(data, 'base'), _int_field(data, 'multiplier', 1))
    if result.outcome in (Outcome.BUST, Outcome.INVALID_CHECKOUT):
        logger.info("match %s: %s by player %d", m_id, result.outcome.value, result.player)
    return jsonify({
        'outcome': result.outcome.value,
        'player': result.player,
        'throws': [t.label for t in result.throws],
        'round_total': result.round_total,
        'maximum': result.maximum,
        'state': engine.to_dict(),
    })


@app.route('/tournaments/<int:t_id>/matches/<m_id>/scoring/next', methods=['POST'])
@admin_required
def scoring_next_player(t_id: int, m_id: str):
    engine = _engine_for(t_id, m_id)
    engine.end_turn()
    return jsonify(engine.to_dict())


@app.route('/tournaments/<int:t_id>/matches/<m_id>/scoring/undo', methods=['POST'])
@admin_required
def scoring_undo(t_id: int, m_id: str):
    engine = _engine_for(t_id, m_id)
    engine.undo()
    return jsonify(engine.to_dict())


@app.route('/tournaments/<int:t_id>/matches/<m_id>/scoring/confirm', methods=['POST'])
@admin_required
def scoring_confirm(t_id: int, m_id: str):
    engine = _engine_for(t_id, m_id)
    engine.confirm_match_result()
    _engines.pop(m_id, None)
    return jsonify(get_db().load_match(m_id).to_dict())


# -------- helpers for the setup screens --------

@app.route('/checkout/<int:score>')
def checkout(score: int):
    double = request.args.get('double', '1') not in ('0', 'false', 'no')
    suggestion = suggest(score, double)
    if suggestion is None:
        return jsonify({'score': score, 'darts': None, 'requires_double': double})
    return jsonify({
        'score': score,
        'darts': list(suggestion.darts),
        'display': [format_dart(d) for d in suggestion.darts],
        'requires_double': double,
    })


@app.route('/league/options/<int:n>')
def league_options(n: int):
    k = request.args.get('k', type=int)
    body = {
        'players': n,
        'options': valid_matches_per_player_options(n),
        'default': default_matches_per_player(n),
    }
    if k is not None:
        error = validate_league_config(n, k)
        body['valid'] = error is None
        body['reason'] = error.reason if error else None
    return jsonify(body)


@app.route('/reset', methods=['POST'])
def reset():
    session.clear()
    return jsonify({'reset': True})


if __name__ == '__main__':
    app.run(debug=True)
