import logging
import random
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Union

import config
from bracket import find_match, generate_bracket, is_bye, next_slot
from dead_rubber import is_dead_rubber
from groups import advancing_players, draw_groups, group_standings, schedule_round_robin
from league import default_matches_per_player, generate_league_matches
from scoring import MatchResult
from store import Store
from tournament import (
    FORMAT_GROUP,
    FORMAT_LEAGUE,
    IllegalTransition,
    IncompleteSchedule,
    InvalidInput,
    Match,
    NotFound,
    PHASE_COMPLETED,
    PHASE_GROUP,
    PHASE_KNOCKOUT,
    PHASE_LEAGUE,
    Player,
    STAGE_GROUP,
    STAGE_KNOCKOUT,
    STAGE_LEAGUE,
    STATUS_COMPLETED,
    STATUS_PENDING,
    STATUS_SKIPPED,
    TournamentSettings,
    apply_result,
    compute_standings,
    knockout_size,
    revert_result,
    stage_complete,
)

logger = logging.getLogger(__name__)

PHASE_STAGE = {
    PHASE_GROUP: STAGE_GROUP,
    PHASE_LEAGUE: STAGE_LEAGUE,
    PHASE_KNOCKOUT: STAGE_KNOCKOUT,
}


@dataclass
class CreatedTournament:
    tournament_id: int
    phase: str
    warning: Optional[IncompleteSchedule] = None


def _normalize_entries(entries):
    players = []
    for i, entry in enumerate(entries):
        if isinstance(entry, dict):
            name = str(entry.get('name', '')).strip()
            country = entry.get('country') or None
        else:
            name, country = str(entry).strip(), None
        if not name:
            continue
        players.append(Player(name=name, seed=len(players) + 1, country=country))
    names = [p.name.lower() for p in players]
    if len(set(names)) != len(names):
        raise InvalidInput('players cannot share a name')
    return players


def create_tournament(
    store: Store,
    name: str,
    entries: Sequence[Union[str, Dict]],
    settings: Optional[TournamentSettings] = None,
    rng: Optional[random.Random] = None,
) -> CreatedTournament:
    settings = settings or TournamentSettings()
    settings.validate()
    players = _normalize_entries(entries)
    n = len(players)
    name = name.strip() or 'Tournament'

    warning = None
    if settings.format == FORMAT_GROUP:
        if n < config.MIN_GROUP_PLAYERS:
            raise InvalidInput(f"a group tournament needs at least {config.MIN_GROUP_PLAYERS} players")
        if n >= config.GROUP_STAGE_MIN_PLAYERS:
            phase = PHASE_GROUP
            groups = draw_groups(players)
            by_id = {p.id: p for p in players}
            for group in groups:
                for pid in group.player_ids:
                    by_id[pid].group_name = group.name
            matches = schedule_round_robin(groups, settings.group_sets_to_win)
        else:
            phase = PHASE_KNOCKOUT
            matches = generate_bracket(players, settings.knockout_sets_to_win)
    elif settings.format == FORMAT_LEAGUE:
        if n < config.MIN_LEAGUE_PLAYERS:
            raise InvalidInput(f"a league needs at least {config.MIN_LEAGUE_PLAYERS} players")
        if settings.matches_per_player is None:
            settings.matches_per_player = default_matches_per_player(n)
        schedule = generate_league_matches(players, settings.matches_per_player, rng, settings.group_sets_to_win)
        if schedule.error is not None:
            raise schedule.error
        phase = PHASE_LEAGUE
        matches = schedule.matches
        warning = schedule.warning
    else:
        raise InvalidInput(f"unknown tournament format: {settings.format!r}")

    with store.transaction():
        tid = store.create_tournament(name, settings, phase)
        for p in players:
            p.tournament_id = tid
        for m in matches:
            m.tournament_id = tid
        store.insert_players(players)
        store.insert_matches(matches)
        if phase == PHASE_KNOCKOUT:
            _advance_byes(store, tid)

    logger.info("created tournament %d %r: %s, %d players, %d matches", tid, name, phase, n, len(matches))
    return CreatedTournament(tid, phase, warning)


def _load_match(store, tournament_id, match_id):
    match = store.load_match(match_id)
    if match.tournament_id != tournament_id:
        raise NotFound(f"match {match_id} is not part of tournament {tournament_id}")
    return match


def _result_fields(match, winner_id, player1_sets, player2_sets,
                   player1_score, player1_darts, player2_score, player2_darts):
    if winner_id not in (match.player1_id, match.player2_id):
        raise InvalidInput('the winner must be one of the two players')
    winner_sets, loser_sets = (player1_sets, player2_sets) if winner_id == match.player1_id else (player2_sets, player1_sets)
    if min(player1_sets, player2_sets) < 0 or winner_sets <= loser_sets:
        raise InvalidInput('the winner must have won more sets than the loser')
    if min(player1_score, player1_darts, player2_score, player2_darts) < 0:
        raise InvalidInput('scores and darts cannot be negative')
    return {
        'winner_id': winner_id,
        'player1_sets': player1_sets,
        'player2_sets': player2_sets,
        'player1_total_score': player1_score,
        'player1_darts': player1_darts,
        'player2_total_score': player2_score,
        'player2_darts': player2_darts,
        'status': STATUS_COMPLETED,
    }


def _save_stats(store, players, match):
    for pid in (match.player1_id, match.player2_id):
        p = players[pid]
        store.update_player(pid, {
            'points': p.points,
            'sets_won': p.sets_won,
            'sets_lost': p.sets_lost,
            'total_score': p.total_score,
            'total_darts': p.total_darts,
        })


def record_result(
    store: Store,
    tournament_id: int,
    match_id: str,
    winner_id: str,
    player1_sets: int,
    player2_sets: int,
    player1_score: int = 0,
    player1_darts: int = 0,
    player2_score: int = 0,
    player2_darts: int = 0,
) -> Match:
    with store.transaction():
        match = _load_match(store, tournament_id, match_id)
        if match.status != STATUS_PENDING:
            raise IllegalTransition(f"match {match_id} is already {match.status}")
        if not match.player1_id or not match.player2_id:
            raise IllegalTransition(f"match {match_id} does not have two players yet")

        fields = _result_fields(match, winner_id, player1_sets, player2_sets,
                                player1_score, player1_darts, player2_score, player2_darts)
        match = store.update_match(match_id, fields)

        if match.stage == STAGE_KNOCKOUT:
            store.update_player(match.loser_id(), {'is_eliminated': True})
            _advance_winner(store, tournament_id, match)
        else:
            players = {p.id: p for p in store.load_players(tournament_id)}
            apply_result(match, players)
            _save_stats(store, players, match)
            _after_stage_match(store, tournament_id)
    return match


def record_engine_result(store: Store, tournament_id: int, match_id: str, result: MatchResult) -> Match:
    return record_result(
        store, tournament_id, match_id, result.winner_id,
        result.player1_sets, result.player2_sets,
        result.player1_total_score, result.player1_darts,
        result.player2_total_score, result.player2_darts,
    )


def edit_result(
    store: Store,
    tournament_id: int,
    match_id: str,
    winner_id: str,
    player1_sets: int,
    player2_sets: int,
    player1_score: int = 0,
    player1_darts: int = 0,
    player2_score: int = 0,
    player2_darts: int = 0,
) -> Match:
    """Correct a completed group or league result, replacing its statistics."""
    with store.transaction():
        old = _load_match(store, tournament_id, match_id)
        if old.status != STATUS_COMPLETED:
            raise IllegalTransition(f"match {match_id} has no result to edit")
        if old.stage == STAGE_KNOCKOUT:
            raise IllegalTransition('knockout results cannot be edited once the winner has moved on')

        fields = _result_fields(old, winner_id, player1_sets, player2_sets,
                                player1_score, player1_darts, player2_score, player2_darts)
        players = {p.id: p for p in store.load_players(tournament_id)}
        revert_result(old, players)
        match = store.update_match(match_id, fields)
        apply_result(match, players)
        _save_stats(store, players, match)
    return match


def skip_match(store: Store, tournament_id: int, match_id: str) -> Match:
    with store.transaction():
        match = _load_match(store, tournament_id, match_id)
        if match.status != STATUS_PENDING:
            raise IllegalTransition(f"match {match_id} is already {match.status}")
        if match.stage == STAGE_KNOCKOUT:
            raise IllegalTransition('knockout matches cannot be skipped')
        match = store.update_match(match_id, {'status': STATUS_SKIPPED})
        _after_stage_match(store, tournament_id)
    return match


def _after_stage_match(store, tournament_id):
    matches = store.load_matches(tournament_id)
    if any(m.stage == STAGE_KNOCKOUT for m in matches):
        return
    if stage_complete(matches):
        start_knockout(store, tournament_id)


def _stage_players(players, settings):
    if settings.format == FORMAT_GROUP:
        return [p for p in players if p.group_name]
    return list(players)


def _cutoff(settings, ranked_count):
    if settings.format == FORMAT_GROUP:
        return min(advancing_players(ranked_count), ranked_count)
    return min(knockout_size(ranked_count), ranked_count)


def start_knockout(store: Store, tournament_id: int) -> List[Match]:
    """Rank the finished stage, eliminate everyone outside the cut and lay out the bracket."""
    with store.transaction():
        settings = store.load_tournament_settings(tournament_id)
        matches = store.load_matches(tournament_id)
        if any(m.stage == STAGE_KNOCKOUT for m in matches):
            raise IllegalTransition('the knockout stage has already started')
        if not stage_complete(matches):
            raise IllegalTransition('the stage still has pending matches')

        players = _stage_players(store.load_players(tournament_id), settings)
        by_id = {p.id: p for p in players}
        ranked = compute_standings(players, matches)
        size = _cutoff(settings, len(ranked))
        advancing = [replace(by_id[r.player_id], seed=i + 1) for i, r in enumerate(ranked[:size])]
        for row in ranked[size:]:
            store.update_player(row.player_id, {'is_eliminated': True})

        if len(advancing) < 2:
            store.update_tournament_phase(tournament_id, PHASE_COMPLETED, 'completed')
            logger.info("tournament %d completed without a knockout stage", tournament_id)
            return []

        bracket = generate_bracket(advancing, settings.knockout_sets_to_win)
        for m in bracket:
            m.tournament_id = tournament_id
        store.insert_matches(bracket)
        store.update_tournament_phase(tournament_id, PHASE_KNOCKOUT, 'active')
        _advance_byes(store, tournament_id)
    logger.info("tournament %d: %d of %d players advance to the knockout stage",
                tournament_id, len(advancing), len(ranked))
    return bracket


def _advance_winner(store, tournament_id, match):
    rnd, number, slot = next_slot(match)
    nxt = find_match(store.load_matches(tournament_id), rnd, number)
    if nxt is None:
        store.update_tournament_phase(tournament_id, PHASE_COMPLETED, 'completed')
        logger.info("tournament %d completed, winner %s", tournament_id, match.winner_id)
        return
    store.update_match(nxt.id, {slot: match.winner_id})


def _advance_byes(store, tournament_id):
    for m in store.load_matches(tournament_id):
        if m.stage != STAGE_KNOCKOUT or m.status != STATUS_PENDING or not is_bye(m):
            continue
        winner = m.player1_id or m.player2_id
        m = store.update_match(m.id, {'status': STATUS_SKIPPED, 'winner_id': winner})
        _advance_winner(store, tournament_id, m)


def _row_dict(row):
    return {
        'player_id': row.player_id,
        'name': row.name,
        'played': row.played,
        'wins': row.wins,
        'points': row.points,
        'sets_won': row.sets_won,
        'sets_lost': row.sets_lost,
        'set_difference': row.set_difference,
        'average': round(row.average, 1),
    }


def standings(store: Store, tournament_id: int) -> Dict:
    """Ranked table (per group for group format) and dead rubber flags for pending fixtures."""
    settings = store.load_tournament_settings(tournament_id)
    players = _stage_players(store.load_players(tournament_id), settings)
    matches = store.load_matches(tournament_id)
    stage = STAGE_GROUP if settings.format == FORMAT_GROUP else STAGE_LEAGUE

    table = compute_standings(players, matches, stages=(stage,))
    pending = [m for m in matches if m.stage == stage and m.status == STATUS_PENDING]
    cutoff = _cutoff(settings, len(table))
    dead = {}
    for m in pending:
        verdict = is_dead_rubber(m, table, pending, cutoff)
        if verdict:
            dead[m.id] = verdict.reason

    data = {
        'format': settings.format,
        'cutoff': cutoff,
        'table': [_row_dict(r) for r in table],
        'dead_rubbers': dead,
    }
    if settings.format == FORMAT_GROUP:
        data['groups'] = {
            name: [_row_dict(r) for r in rows]
            for name, rows in group_standings(players, matches).items()
        }
    return data


def simulate_match(match: Match, game_mode: int, sets_to_win: int, rng: Optional[random.Random] = None) -> MatchResult:
    """Random but plausible result: sets until one side reaches ``sets_to_win``."""
    rng = rng or random.Random()
    sets = [0, 0]
    scores = [0, 0]
    darts = [0, 0]
    while max(sets) < sets_to_win:
        winner = 0 if rng.random() > 0.5 else 1
        thrown = rng.randint(9, 21)
        sets[winner] += 1
        scores[winner] += game_mode
        scores[1 - winner] += rng.randint(50, game_mode - 1)
        darts[0] += thrown
        darts[1] += max(1, thrown + rng.randint(-1, 1))
    win = 0 if sets[0] > sets[1] else 1
    ids = (match.player1_id, match.player2_id)
    return MatchResult(
        winner_id=ids[win],
        loser_id=ids[1 - win],
        player1_sets=sets[0],
        player2_sets=sets[1],
        player1_total_score=scores[0],
        player1_darts=darts[0],
        player2_total_score=scores[1],
        player2_darts=darts[1],
    )


def simulate_stage(store: Store, tournament_id: int, stage: Optional[str] = None,
                   rng: Optional[random.Random] = None) -> int:
    """Play out every pending match of the stage that has both players; returns the count."""
    rng = rng or random.Random()
    if stage is None:
        phase = store.load_tournament(tournament_id)['phase']
        stage = PHASE_STAGE.get(phase)
        if stage is None:
            return 0
    settings = store.load_tournament_settings(tournament_id)

    simulated = 0
    while True:
        playable = [
            m for m in store.load_matches(tournament_id)
            if m.stage == stage and m.status == STATUS_PENDING and m.player1_id and m.player2_id
        ]
        if not playable:
            break
        for m in playable:
            result = simulate_match(m, settings.game_mode, m.sets_to_win, rng)
            record_engine_result(store, tournament_id, m.id, result)
            simulated += 1
    logger.info("simulated %d %s matches in tournament %d", simulated, stage, tournament_id)
    return simulated
