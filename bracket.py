import logging
from typing import List, Optional, Sequence, Tuple

from tournament import InvalidInput, Match, Player, STAGE_KNOCKOUT, UNSEEDED

logger = logging.getLogger(__name__)


def bracket_size(player_count: int) -> int:
    """Smallest power of two holding every player."""
    size = 1
    while size < player_count:
        size *= 2
    return size


def total_rounds(player_count: int) -> int:
    return bracket_size(player_count).bit_length() - 1


def seeding_order(size: int) -> List[int]:
    """Seed index for every bracket position, so that seed 1 and 2 can only meet in
    the final, seeds 1-4 only from the semifinal on, and so on.

    size 4 -> [0, 3, 1, 2]   (1v4, 2v3)
    size 8 -> [0, 7, 3, 4, 1, 6, 2, 5]
    """
    if size == 1:
        return [0]
    if size == 2:
        return [0, 1]
    order = []
    for seed in seeding_order(size // 2):
        order.append(seed)
        order.append(size - 1 - seed)
    return order


def generate_bracket(players: Sequence[Player], sets_to_win: int = 3) -> List[Match]:
    """Lay out a single-elimination bracket.

    Round 1 is filled from the seeding; a None slot there is a bye. Later rounds are
    empty slots filled as winners come through. Byes are never resolved here.
    """
    n = len(players)
    if n == 0:
        raise InvalidInput('cannot build a bracket without players')
    if n < 2:
        return []

    size = bracket_size(n)
    byes = size - n
    seeded: List[Optional[Player]] = sorted(players, key=lambda p: p.seed if p.seed is not None else UNSEEDED)
    seeded += [None] * byes

    positions = [seeded[seed] for seed in seeding_order(size)]

    matches: List[Match] = []
    for i in range(size // 2):
        p1, p2 = positions[i * 2], positions[i * 2 + 1]
        matches.append(Match(
            stage=STAGE_KNOCKOUT,
            round=1,
            match_number=i + 1,
            player1_id=p1.id if p1 else None,
            player2_id=p2.id if p2 else None,
            sets_to_win=sets_to_win,
        ))

    in_round = size // 4
    for rnd in range(2, total_rounds(n) + 1):
        for i in range(in_round):
            matches.append(Match(stage=STAGE_KNOCKOUT, round=rnd, match_number=i + 1, sets_to_win=sets_to_win))
        in_round //= 2

    logger.debug("bracket for %d players: size %d, %d byes, %d matches", n, size, byes, len(matches))
    return matches


def next_slot(match: Match) -> Tuple[int, int, str]:
    """(round, match_number, slot attribute) the winner of ``match`` moves into."""
    slot = 'player1_id' if match.match_number % 2 == 1 else 'player2_id'
    return match.round + 1, (match.match_number + 1) // 2, slot


def find_match(matches: Sequence[Match], rnd: int, number: int, stage: str = STAGE_KNOCKOUT) -> Optional[Match]:
    for m in matches:
        if m.stage == stage and m.round == rnd and m.match_number == number:
            return m
    return None


def is_bye(match: Match) -> bool:
    return match.round == 1 and (match.player1_id is None) != (match.player2_id is None)
