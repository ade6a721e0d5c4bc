import logging
import random
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, List, Optional, Sequence

import config
from tournament import IncompleteSchedule, InvalidConfig, Match, Player, STAGE_LEAGUE

logger = logging.getLogger(__name__)


@dataclass
class LeagueSchedule:
    matches: List[Match] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    error: Optional[InvalidConfig] = None
    warning: Optional[IncompleteSchedule] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

    @property
    def is_complete(self) -> bool:
        return self.error is None and self.warning is None


def valid_matches_per_player_options(player_count: int) -> List[int]:
    return [k for k in range(1, player_count) if (player_count * k) % 2 == 0]


def default_matches_per_player(player_count: int) -> Optional[int]:
    options = valid_matches_per_player_options(player_count)
    if not options:
        return None
    return options[len(options) // 2]


def validate_league_config(player_count: int, matches_per_player: int) -> Optional[InvalidConfig]:
    """None when (n, k) can be scheduled, otherwise the reason it cannot."""
    n, k = player_count, matches_per_player
    if n < config.MIN_LEAGUE_PLAYERS:
        return InvalidConfig(f"A league needs at least {config.MIN_LEAGUE_PLAYERS} players")
    if k < 1:
        return InvalidConfig("Each player must play at least 1 match")
    if k >= n:
        return InvalidConfig(
            f"With {n} players each player can meet at most {n - 1} opponents, not {k}"
        )
    if (n * k) % 2 != 0:
        return InvalidConfig(
            f"{n} players x {k} matches = {n * k} player slots, which is odd; "
            f"choose one of {valid_matches_per_player_options(n)}"
        )
    return None


def total_matches(player_count: int, matches_per_player: int) -> int:
    return player_count * matches_per_player // 2


def generate_league_matches(
    players: Sequence[Player],
    matches_per_player: int,
    rng: Optional[random.Random] = None,
    sets_to_win: int = config.DEFAULT_GROUP_SETS_TO_WIN,
) -> LeagueSchedule:
    error = validate_league_config(len(players), matches_per_player)
    if error is not None:
        return LeagueSchedule(error=error)

    rng = rng or random.Random()
    k = matches_per_player
    target = total_matches(len(players), k)
    ids = [p.id for p in players]

    pairs = list(combinations(ids, 2))
    rng.shuffle(pairs)

    counts = {pid: 0 for pid in ids}
    matches: List[Match] = []
    for a, b in pairs:
        if len(matches) >= target:
            break
        if counts[a] < k and counts[b] < k:
            counts[a] += 1
            counts[b] += 1
            matches.append(Match(
                stage=STAGE_LEAGUE,
                match_number=len(matches) + 1,
                player1_id=a,
                player2_id=b,
                sets_to_win=sets_to_win,
            ))

    schedule = LeagueSchedule(matches=matches, counts=counts)
    if any(c != k for c in counts.values()):
        schedule.warning = IncompleteSchedule(k, counts)
        logger.warning("league schedule incomplete: %s", schedule.warning)
    else:
        logger.debug("league schedule: %d players, %d matches each, %d matches", len(ids), k, len(matches))
    return schedule
