import uuid
from dataclasses import asdict, dataclass, field, fields
from typing import Dict, Iterable, List, Optional

import config

STAGE_GROUP = 'group'
STAGE_LEAGUE = 'league'
STAGE_KNOCKOUT = 'knockout'

STATUS_PENDING = 'pending'
STATUS_COMPLETED = 'completed'
STATUS_SKIPPED = 'skipped'

PHASE_GROUP = 'group_stage'
PHASE_LEAGUE = 'league'
PHASE_KNOCKOUT = 'knockout'
PHASE_COMPLETED = 'completed'

FORMAT_GROUP = 'group'
FORMAT_LEAGUE = 'league'

CHECKOUT_SINGLE = 'single'
CHECKOUT_DOUBLE = 'double'

KNOCKOUT_SIZES = (16, 8, 4, 2)

# sort key for players without a seed
UNSEEDED = 999


class TournamentError(Exception):
    """Base class for every error raised by the tournament core."""


class InvalidInput(TournamentError, ValueError):
    pass


class InvalidConfig(TournamentError):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class IncompleteSchedule(TournamentError):
    """Attached to a league schedule when some players did not get k matches."""

    def __init__(self, expected: int, counts: Dict[str, int]):
        short = {pid: c for pid, c in counts.items() if c != expected}
        super().__init__(
            f"{len(short)} player(s) did not reach {expected} matches: "
            + ', '.join(f"{pid}={c}" for pid, c in sorted(short.items()))
        )
        self.expected = expected
        self.counts = short


class IllegalTransition(TournamentError):
    pass


class NotFound(TournamentError, LookupError):
    pass


def new_id() -> str:
    return uuid.uuid4().hex


class _Record:
    """dict round-tripping shared by the stored records."""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict):
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass
class Player(_Record):
    name: str
    id: str = field(default_factory=new_id)
    tournament_id: Optional[int] = None
    seed: Optional[int] = None
    country: Optional[str] = None
    group_name: Optional[str] = None
    points: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    total_score: int = 0
    total_darts: int = 0
    is_eliminated: bool = False


@dataclass
class Match(_Record):
    stage: str
    round: int = 1
    match_number: int = 1
    player1_id: Optional[str] = None
    player2_id: Optional[str] = None
    id: str = field(default_factory=new_id)
    tournament_id: Optional[int] = None
    group_name: Optional[str] = None
    winner_id: Optional[str] = None
    player1_sets: int = 0
    player2_sets: int = 0
    player1_total_score: int = 0
    player1_darts: int = 0
    player2_total_score: int = 0
    player2_darts: int = 0
    status: str = STATUS_PENDING
    sets_to_win: int = config.DEFAULT_GROUP_SETS_TO_WIN

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    @property
    def is_finished(self) -> bool:
        return self.status in (STATUS_COMPLETED, STATUS_SKIPPED)

    def involves(self, player_id: str) -> bool:
        return player_id in (self.player1_id, self.player2_id)

    def loser_id(self) -> Optional[str]:
        if self.winner_id is None:
            return None
        return self.player2_id if self.winner_id == self.player1_id else self.player1_id


@dataclass
class GroupInfo:
    name: str
    player_ids: List[str] = field(default_factory=list)


@dataclass
class TournamentSettings(_Record):
    format: str = FORMAT_GROUP
    game_mode: int = config.DEFAULT_GAME_MODE
    group_sets_to_win: int = config.DEFAULT_GROUP_SETS_TO_WIN
    knockout_sets_to_win: int = config.DEFAULT_KNOCKOUT_SETS_TO_WIN
    group_checkout: str = config.DEFAULT_GROUP_CHECKOUT
    knockout_checkout: str = config.DEFAULT_KNOCKOUT_CHECKOUT
    show_checkout_suggestions: bool = True
    matches_per_player: Optional[int] = None

    def sets_to_win(self, stage: str) -> int:
        if stage == STAGE_KNOCKOUT:
            return self.knockout_sets_to_win
        return self.group_sets_to_win

    def double_out(self, stage: str) -> bool:
        checkout = self.knockout_checkout if stage == STAGE_KNOCKOUT else self.group_checkout
        return checkout == CHECKOUT_DOUBLE

    def validate(self) -> None:
        if self.format not in (FORMAT_GROUP, FORMAT_LEAGUE):
            raise InvalidInput(f"unknown tournament format: {self.format!r}")
        if self.game_mode not in config.GAME_MODES:
            raise InvalidInput(f"game mode must be one of {config.GAME_MODES}")
        if self.group_sets_to_win < 1 or self.knockout_sets_to_win < 1:
            raise InvalidInput("sets to win must be at least 1")
        for checkout in (self.group_checkout, self.knockout_checkout):
            if checkout not in (CHECKOUT_SINGLE, CHECKOUT_DOUBLE):
                raise InvalidInput(f"unknown checkout type: {checkout!r}")


@dataclass
class StandingRow:
    player_id: str
    name: str = ''
    points: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    total_score: int = 0
    total_darts: int = 0
    played: int = 0
    wins: int = 0

    @property
    def set_difference(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def average(self) -> float:
        return three_dart_average(self.total_score, self.total_darts)


def three_dart_average(total_score: int, total_darts: int) -> float:
    if total_darts == 0:
        return 0.0
    return total_score / total_darts * 3


def standing_sort_key(row: StandingRow):
    """Points, then set difference, then three-dart average; all descending."""
    return (-row.points, -row.set_difference, -row.average)


def rank_standings(rows: Iterable[StandingRow]) -> List[StandingRow]:
    return sorted(rows, key=standing_sort_key)


def knockout_size(player_count: int) -> int:
    """Largest of 16, 8, 4, 2 that the ranked player count reaches."""
    for size in KNOCKOUT_SIZES:
        if player_count >= size:
            return size
    return KNOCKOUT_SIZES[-1]


def stage_complete(matches: Iterable[Match], stages=(STAGE_GROUP, STAGE_LEAGUE)) -> bool:
    stage_matches = [m for m in matches if m.stage in stages]
    return bool(stage_matches) and all(m.is_finished for m in stage_matches)


def _side_stats(match: Match, player_id: str):
    if player_id == match.player1_id:
        return match.player1_sets, match.player2_sets, match.player1_total_score, match.player1_darts
    return match.player2_sets, match.player1_sets, match.player2_total_score, match.player2_darts


def apply_result(match: Match, players: Dict[str, Player], sign: int = 1) -> None:
    """Add (or with sign=-1 remove) a completed match's statistics to both players."""
    if match.status != STATUS_COMPLETED or match.winner_id is None:
        return
    for pid in (match.player1_id, match.player2_id):
        player = players.get(pid)
        if player is None:
            continue
        won, lost, score, darts = _side_stats(match, pid)
        if pid == match.winner_id:
            player.points += sign * config.POINTS_PER_WIN
        player.sets_won += sign * won
        player.sets_lost += sign * lost
        player.total_score += sign * score
        player.total_darts += sign * darts


def revert_result(match: Match, players: Dict[str, Player]) -> None:
    apply_result(match, players, sign=-1)


def compute_standings(players: Iterable[Player], matches: Iterable[Match], stages=(STAGE_GROUP, STAGE_LEAGUE)) -> List[StandingRow]:
    """Rebuild ranked standings from scratch out of completed matches."""
    rows = {p.id: StandingRow(player_id=p.id, name=p.name) for p in players}
    for m in matches:
        if m.stage not in stages or m.status != STATUS_COMPLETED:
            continue
        for pid in (m.player1_id, m.player2_id):
            row = rows.get(pid)
            if row is None:
                continue
            won, lost, score, darts = _side_stats(m, pid)
            row.played += 1
            row.sets_won += won
            row.sets_lost += lost
            row.total_score += score
            row.total_darts += darts
            if pid == m.winner_id:
                row.wins += 1
                row.points += config.POINTS_PER_WIN
    return rank_standings(rows.values())
