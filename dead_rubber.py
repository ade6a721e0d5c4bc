from dataclasses import dataclass
from typing import Optional, Sequence

import config
from tournament import Match, StandingRow, rank_standings

REASON_BOTH_QUALIFIED = 'Both players have already qualified for the knockout stage'
REASON_BOTH_ELIMINATED = 'Both players are already eliminated from the knockout stage'
REASON_NO_EFFECT = 'The result does not change who advances'


@dataclass(frozen=True)
class DeadRubber:
    is_dead: bool
    reason: str = ''

    def __bool__(self):
        return self.is_dead


LIVE = DeadRubber(False)


def _other_pending(match, player_id, pending):
    return [m for m in pending if m.id != match.id and m.involves(player_id)]


def is_dead_rubber(
    match: Match,
    standings: Sequence[StandingRow],
    pending: Sequence[Match],
    cutoff: int,
    points_per_win: Optional[int] = None,
) -> DeadRubber:
    per_win = config.POINTS_PER_WIN if points_per_win is None else points_per_win
    rows = {r.player_id: r for r in standings}
    p1 = rows.get(match.player1_id)
    p2 = rows.get(match.player2_id)
    if p1 is None or p2 is None or cutoff < 1:
        return LIVE

    if _other_pending(match, p1.player_id, pending) or _other_pending(match, p2.player_id, pending):
        return LIVE

    ranked = rank_standings(standings)
    order = [r.player_id for r in ranked]
    rank1 = order.index(p1.player_id) + 1
    rank2 = order.index(p2.player_id) + 1

    if rank1 <= cutoff and rank2 <= cutoff:
        threatened = False
        for outsider in ranked[cutoff:cutoff + 2]:
            remaining = [m for m in pending if m.involves(outsider.player_id)]
            if not remaining:
                continue
            best = outsider.points + len(remaining) * per_win
            if best > p1.points or best > p2.points:
                threatened = True
        if not threatened:
            return DeadRubber(True, REASON_BOTH_QUALIFIED)

    last_in = ranked[min(cutoff, len(ranked)) - 1]
    p1_can_qualify = p1.points + per_win >= last_in.points
    p2_can_qualify = p2.points + per_win >= last_in.points
    if not p1_can_qualify and not p2_can_qualify:
        return DeadRubber(True, REASON_BOTH_ELIMINATED)

    def safely_qualified(row: StandingRow, rank: int) -> bool:
        if rank > cutoff:
            return False
        if cutoff >= len(ranked):
            return True
        return row.points > ranked[cutoff].points + per_win

    if (safely_qualified(p1, rank1) and not p2_can_qualify) or (safely_qualified(p2, rank2) and not p1_can_qualify):
        return DeadRubber(True, REASON_NO_EFFECT)

    return LIVE
