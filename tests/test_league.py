import random

from league import (
    default_matches_per_player,
    generate_league_matches,
    total_matches,
    valid_matches_per_player_options,
    validate_league_config,
)
from tournament import InvalidConfig, STAGE_LEAGUE


def test_matches_per_player_options():
    assert valid_matches_per_player_options(6) == [1, 2, 3, 4, 5]
    assert valid_matches_per_player_options(5) == [2, 4]
    assert valid_matches_per_player_options(1) == []
    assert default_matches_per_player(6) == 3
    assert default_matches_per_player(5) == 4
    assert default_matches_per_player(1) is None


def test_validate_league_config():
    assert validate_league_config(6, 3) is None
    odd = validate_league_config(5, 3)
    assert isinstance(odd, InvalidConfig)
    assert "odd" in odd.reason
    assert validate_league_config(4, 4) is not None
    assert validate_league_config(4, 0) is not None
    assert validate_league_config(1, 1) is not None


def test_invalid_config_returns_empty_schedule(make_players):
    schedule = generate_league_matches(make_players(5), 3)
    assert not schedule.is_valid
    assert schedule.matches == []
    assert schedule.error.reason


def test_full_round_robin_is_always_complete(make_players):
    schedule = generate_league_matches(make_players(6), 5, random.Random(3))
    assert schedule.is_complete
    assert len(schedule.matches) == total_matches(6, 5) == 15
    assert set(schedule.counts.values()) == {5}


def test_schedule_properties_hold_for_any_shuffle(make_players):
    players = make_players(8)
    for seed in range(20):
        schedule = generate_league_matches(players, 3, random.Random(seed))
        pairs = [frozenset((m.player1_id, m.player2_id)) for m in schedule.matches]
        assert len(pairs) == len(set(pairs))
        assert all(m.player1_id != m.player2_id for m in schedule.matches)
        assert all(c <= 3 for c in schedule.counts.values())
        assert sum(schedule.counts.values()) == 2 * len(schedule.matches)
        assert [m.match_number for m in schedule.matches] == list(range(1, len(schedule.matches) + 1))
        assert all(m.stage == STAGE_LEAGUE for m in schedule.matches)
        if schedule.warning is None:
            assert len(schedule.matches) == 12
        else:
            assert schedule.warning.counts
            assert all(c != 3 for c in schedule.warning.counts.values())


def test_same_seed_same_schedule(make_players):
    players = make_players(6)
    a = generate_league_matches(players, 2, random.Random(7))
    b = generate_league_matches(players, 2, random.Random(7))
    assert [(m.player1_id, m.player2_id) for m in a.matches] == [(m.player1_id, m.player2_id) for m in b.matches]
