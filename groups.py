import logging
import math
import string
from typing import Dict, List, Sequence

import config
from tournament import (
    GroupInfo,
    InvalidInput,
    Match,
    Player,
    STAGE_GROUP,
    StandingRow,
    UNSEEDED,
    compute_standings,
)

logger = logging.getLogger(__name__)


def group_count(player_count: int) -> int:
    if player_count <= 8:
        return math.ceil(player_count / 4)
    if player_count <= 16:
        return 4
    return math.ceil(player_count / 4)


def draw_groups(players: Sequence[Player]) -> List[GroupInfo]:
    """Snake-draft players into groups in seed order (unseeded players last).

    With 3 groups: 1->A, 2->B, 3->C, 4->C, 5->B, 6->A, 7->A, ...
    """
    if not players:
        raise InvalidInput('cannot draw groups without players')
    num_groups = group_count(len(players))
    groups = [GroupInfo(name=string.ascii_uppercase[i]) for i in range(num_groups)]

    seeded = sorted(players, key=lambda p: p.seed if p.seed is not None else UNSEEDED)
    direction = 1
    index = 0
    for player in seeded:
        groups[index].player_ids.append(player.id)
        index += direction
        if index >= num_groups:
            index = num_groups - 1
            direction = -1
        elif index < 0:
            index = 0
            direction = 1

    logger.debug("drew %d players into %d groups", len(players), num_groups)
    return groups


def schedule_round_robin(groups: Sequence[GroupInfo], sets_to_win: int = config.DEFAULT_GROUP_SETS_TO_WIN) -> List[Match]:
    """Every pairing inside each group once, in player order.

    A group of exactly two players gets the reversed pairing as a second fixture.
    """
    matches: List[Match] = []
    for group in groups:
        ids = group.player_ids
        number = 1
        for i in range(len(ids)):
            for j in range(i + 1, len(ids)):
                matches.append(Match(
                    stage=STAGE_GROUP,
                    group_name=group.name,
                    match_number=number,
                    player1_id=ids[i],
                    player2_id=ids[j],
                    sets_to_win=sets_to_win,
                ))
                number += 1
        if len(ids) == 2:
            matches.append(Match(
                stage=STAGE_GROUP,
                group_name=group.name,
                match_number=number,
                player1_id=ids[1],
                player2_id=ids[0],
                sets_to_win=sets_to_win,
            ))
    return matches


def advancing_players(total_players: int) -> int:
    if total_players > 8:
        return config.GROUP_ADVANCING
    return total_players


def group_standings(players: Sequence[Player], matches: Sequence[Match]) -> Dict[str, List[StandingRow]]:
    """Ranked standings per group name."""
    by_group: Dict[str, List[Player]] = {}
    for p in players:
        if p.group_name:
            by_group.setdefault(p.group_name, []).append(p)
    return {
        name: compute_standings(members, [m for m in matches if m.group_name == name], stages=(STAGE_GROUP,))
        for name, members in sorted(by_group.items())
    }
