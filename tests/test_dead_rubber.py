from dead_rubber import (
    LIVE,
    REASON_BOTH_ELIMINATED,
    REASON_BOTH_QUALIFIED,
    REASON_NO_EFFECT,
    is_dead_rubber,
)
from tournament import Match, STAGE_LEAGUE, StandingRow


def rows(**points):
    return [StandingRow(player_id=pid, name=pid, points=pts) for pid, pts in points.items()]


def fixture(a, b):
    return Match(stage=STAGE_LEAGUE, player1_id=a, player2_id=b, id=f"{a}-{b}")


def test_both_eliminated():
    m = fixture("C", "D")
    verdict = is_dead_rubber(m, rows(A=6, B=6, C=0, D=0), [m], cutoff=2)
    assert verdict
    assert verdict.reason == REASON_BOTH_ELIMINATED


def test_other_pending_match_keeps_it_live():
    m = fixture("C", "D")
    other = fixture("C", "A")
    assert is_dead_rubber(m, rows(A=6, B=6, C=0, D=0), [m, other], cutoff=2) == LIVE


def test_both_qualified_when_nobody_below_can_catch_up():
    m = fixture("A", "B")
    verdict = is_dead_rubber(m, rows(A=6, B=6, C=0, D=0), [m], cutoff=2)
    assert verdict.reason == REASON_BOTH_QUALIFIED


def test_qualified_pair_stays_live_while_an_outsider_can_catch_up():
    m = fixture("A", "B")
    chasing = [fixture("C", "D"), fixture("C", "E")]
    standings = rows(A=4, B=4, C=2, D=0, E=0)
    assert not is_dead_rubber(m, standings, [m] + chasing, cutoff=2)


def test_result_has_no_effect():
    m = fixture("A", "D")
    verdict = is_dead_rubber(m, rows(A=8, B=4, C=2, D=0), [m], cutoff=2)
    assert verdict.reason == REASON_NO_EFFECT


def test_close_race_is_live():
    m = fixture("B", "C")
    standings = rows(A=4, B=2, C=2, D=0)
    standings[1].sets_won = 2
    assert not is_dead_rubber(m, standings, [m], cutoff=2)


def test_unknown_players_or_no_cutoff_are_live():
    m = fixture("X", "A")
    assert not is_dead_rubber(m, rows(A=0, B=0), [m], cutoff=2)
    m = fixture("A", "B")
    assert not is_dead_rubber(m, rows(A=0, B=0), [m], cutoff=0)
    assert not bool(LIVE)
