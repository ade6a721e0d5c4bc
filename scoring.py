"""Live scoring for one head-to-head match, dart by dart."""
import copy
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

import config
from checkout import format_throw, suggest, throw_matches_expected_dart, visible_route
from tournament import IllegalTransition, InvalidInput

logger = logging.getLogger(__name__)

DARTS_PER_TURN = 3
MAXIMUM = 180
BULLSEYE = 50
OUTER_BULL = 25


class Phase(str, Enum):
    IN_PROGRESS = 'in_progress'
    MATCH_COMPLETE = 'match_complete'
    CONFIRMED = 'confirmed'


class Outcome(str, Enum):
    IGNORED = 'ignored'
    SCORED = 'scored'
    TURN_OVER = 'turn_over'
    BUST = 'bust'
    INVALID_CHECKOUT = 'invalid_checkout'
    SET_WON = 'set_won'
    MATCH_WON = 'match_won'


@dataclass(frozen=True)
class Throw:
    base: int
    multiplier: int = 1

    @property
    def points(self) -> int:
        return self.base * self.multiplier

    @property
    def is_double_finish(self) -> bool:
        return self.multiplier == 2 or self.base == BULLSEYE

    @property
    def label(self) -> str:
        return format_throw(self.base, self.multiplier)


def validate_throw(base: int, multiplier: int) -> None:
    if base in (OUTER_BULL, BULLSEYE):
        if multiplier != 1:
            raise InvalidInput(f"{base} can only be hit as a single")
        return
    if not 0 <= base <= 20:
        raise InvalidInput(f"invalid dart value: {base}")
    if multiplier not in (1, 2, 3):
        raise InvalidInput(f"invalid multiplier: {multiplier}")


@dataclass
class PlayerState:
    score: int
    set_darts: int = 0
    sets_won: int = 0
    total_score: int = 0
    total_darts: int = 0


@dataclass
class TurnStart:
    score: int = 0
    total_score: int = 0
    set_darts: int = 0
    total_darts: int = 0


@dataclass
class MatchResult:
    winner_id: str
    loser_id: str
    player1_sets: int
    player2_sets: int
    player1_total_score: int
    player1_darts: int
    player2_total_score: int
    player2_darts: int


@dataclass
class ScoringState:
    players: List[PlayerState]
    active: int = 1
    set_number: int = 1
    throws: List[Throw] = field(default_factory=list)
    round_total: int = 0
    turn_start: TurnStart = field(default_factory=TurnStart)
    locked_suggestion: Optional[Tuple[str, ...]] = None
    suggestion_locked_at: int = 0
    phase: Phase = Phase.IN_PROGRESS
    result: Optional[MatchResult] = None


@dataclass(frozen=True)
class ThrowResult:
    outcome: Outcome
    player: int
    throws: Tuple[Throw, ...] = ()
    round_total: int = 0
    maximum: bool = False


class MatchScoringEngine:
    def __init__(
        self,
        player1_id: str,
        player2_id: str,
        starting_score: int = config.DEFAULT_GAME_MODE,
        sets_to_win: int = config.DEFAULT_GROUP_SETS_TO_WIN,
        double_out: bool = False,
        show_suggestions: bool = True,
        on_confirm: Optional[Callable[[MatchResult], None]] = None,
    ):
        if starting_score < 2 or sets_to_win < 1:
            raise InvalidInput("starting score must be at least 2 and sets to win at least 1")
        self.player_ids = (player1_id, player2_id)
        self.starting_score = starting_score
        self.sets_to_win = sets_to_win
        self.double_out = double_out
        self.show_suggestions = show_suggestions
        self.on_confirm = on_confirm
        self.state = ScoringState(players=[PlayerState(starting_score), PlayerState(starting_score)])
        self.history: List[ScoringState] = []
        self._begin_turn()

    # -- queries --

    @property
    def current(self) -> PlayerState:
        return self.state.players[self.state.active - 1]

    @property
    def darts_left(self) -> int:
        return DARTS_PER_TURN - len(self.state.throws)

    def visible_checkout(self) -> Optional[List[str]]:
        """Route still ahead of the player this turn, if it can be finished in time."""
        s = self.state
        if not self.show_suggestions or s.phase != Phase.IN_PROGRESS:
            return None
        if s.locked_suggestion is not None:
            ahead = s.locked_suggestion[len(s.throws) - s.suggestion_locked_at:]
            return visible_route(list(ahead), self.darts_left)
        suggestion = suggest(self.current.score, self.double_out)
        if suggestion is None:
            return None
        return visible_route(list(suggestion.darts), self.darts_left)

    def to_dict(self) -> dict:
        data = asdict(self.state)
        data['player_ids'] = list(self.player_ids)
        data['starting_score'] = self.starting_score
        data['sets_to_win'] = self.sets_to_win
        data['double_out'] = self.double_out
        data['checkout'] = self.visible_checkout()
        data['can_undo'] = bool(self.history)
        return data

    # -- transitions --

    def record_throw(self, base: int, multiplier: int = 1) -> ThrowResult:
        validate_throw(base, multiplier)
        s = self.state
        if s.phase != Phase.IN_PROGRESS or len(s.throws) >= DARTS_PER_TURN:
            return ThrowResult(Outcome.IGNORED, s.active, tuple(s.throws), s.round_total)

        self.history.append(copy.deepcopy(s))
        throw = Throw(base, multiplier)
        player = self.current
        new_score = player.score - throw.points

        if new_score < 0 or (self.double_out and new_score == 1):
            return self._bust(throw, Outcome.BUST)
        if new_score == 0 and self.double_out and not throw.is_double_finish:
            return self._bust(throw, Outcome.INVALID_CHECKOUT)

        position = len(s.throws)
        s.throws.append(throw)
        s.round_total += throw.points
        player.score = new_score
        player.set_darts += 1
        player.total_darts += 1
        player.total_score += throw.points

        if new_score == 0:
            return self._win_set()

        self._follow_suggestion(throw, position, new_score)

        if len(s.throws) == DARTS_PER_TURN:
            result = ThrowResult(Outcome.TURN_OVER, s.active, tuple(s.throws), s.round_total,
                                 maximum=s.round_total == MAXIMUM)
            self._switch_player()
            return result
        return ThrowResult(Outcome.SCORED, s.active, tuple(s.throws), s.round_total)

    def end_turn(self) -> bool:
        """Hand over to the opponent before all three darts are used."""
        s = self.state
        if s.phase != Phase.IN_PROGRESS or not s.throws:
            return False
        self.history.append(copy.deepcopy(s))
        self._switch_player()
        return True

    def undo(self) -> bool:
        if not self.history:
            return False
        self.state = self.history.pop()
        return True

    def confirm_match_result(self) -> MatchResult:
        s = self.state
        if s.phase != Phase.MATCH_COMPLETE or s.result is None:
            raise IllegalTransition("there is no finished match to confirm")
        # a failing callback leaves the match complete and undoable
        if self.on_confirm is not None:
            self.on_confirm(s.result)
        s.phase = Phase.CONFIRMED
        self.history.clear()
        return s.result

    # -- internals --

    def _begin_turn(self):
        s = self.state
        s.throws = []
        s.round_total = 0
        p = self.current
        s.turn_start = TurnStart(p.score, p.total_score, p.set_darts, p.total_darts)
        s.locked_suggestion = None
        s.suggestion_locked_at = 0
        if self.show_suggestions:
            suggestion = suggest(p.score, self.double_out)
            if suggestion is not None:
                s.locked_suggestion = suggestion.darts

    def _switch_player(self):
        self.state.active = 2 if self.state.active == 1 else 1
        self._begin_turn()

    def _bust(self, throw, outcome):
        s = self.state
        s.throws.append(throw)
        thrown = tuple(s.throws)
        start = s.turn_start
        player = self.current
        # the whole turn counts as three darts, none of them scoring
        player.score = start.score
        player.total_score = start.total_score
        player.set_darts = start.set_darts + DARTS_PER_TURN
        player.total_darts = start.total_darts + DARTS_PER_TURN
        busted = s.active
        logger.debug("player %d %s on %d with %s", busted, outcome.value, start.score, throw.label)
        self._switch_player()
        return ThrowResult(outcome, busted, thrown, 0)

    def _follow_suggestion(self, throw, position, new_score):
        if not self.show_suggestions:
            return
        s = self.state
        if s.locked_suggestion is not None:
            index = position - s.suggestion_locked_at
            if 0 <= index < len(s.locked_suggestion) and throw_matches_expected_dart(
                throw.base, throw.multiplier, s.locked_suggestion[index]
            ):
                return
        s.locked_suggestion = None
        s.suggestion_locked_at = 0
        if position + 1 >= DARTS_PER_TURN:
            return
        suggestion = suggest(new_score, self.double_out)
        if suggestion is not None:
            s.locked_suggestion = suggestion.darts
            s.suggestion_locked_at = position + 1

    def _win_set(self):
        s = self.state
        winner = s.active
        player = self.current
        player.sets_won += 1
        thrown = tuple(s.throws)
        total = s.round_total
        maximum = len(thrown) == DARTS_PER_TURN and total == MAXIMUM

        if player.sets_won >= self.sets_to_win:
            s.phase = Phase.MATCH_COMPLETE
            s.locked_suggestion = None
            s.result = self._build_result(winner)
            logger.debug("match won by player %d, sets %d-%d", winner,
                         s.result.player1_sets, s.result.player2_sets)
            return ThrowResult(Outcome.MATCH_WON, winner, thrown, total, maximum)

        logger.debug("set %d won by player %d", s.set_number, winner)
        s.set_number += 1
        for p in s.players:
            p.score = self.starting_score
            p.set_darts = 0
        # player 1 opens odd sets, player 2 even ones
        s.active = 1 if s.set_number % 2 == 1 else 2
        self._begin_turn()
        return ThrowResult(Outcome.SET_WON, winner, thrown, total, maximum)

    def _build_result(self, winner):
        p1, p2 = self.state.players
        winner_id = self.player_ids[winner - 1]
        loser_id = self.player_ids[2 - winner]
        return MatchResult(
            winner_id=winner_id,
            loser_id=loser_id,
            player1_sets=p1.sets_won,
            player2_sets=p2.sets_won,
            player1_total_score=p1.total_score,
            player1_darts=p1.total_darts,
            player2_total_score=p2.total_score,
            player2_darts=p2.total_darts,
        )
