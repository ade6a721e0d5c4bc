import pytest

from bracket import bracket_size, find_match, generate_bracket, is_bye, next_slot, seeding_order, total_rounds
from tournament import InvalidInput, STAGE_KNOCKOUT


def test_bracket_size_and_rounds():
    assert [bracket_size(n) for n in (2, 3, 5, 8, 9, 16)] == [2, 4, 8, 8, 16, 16]
    assert total_rounds(2) == 1
    assert total_rounds(5) == 3
    assert total_rounds(16) == 4


def test_seeding_order_pairs_top_seed_with_bottom():
    assert seeding_order(4) == [0, 3, 1, 2]
    assert seeding_order(8) == [0, 7, 3, 4, 1, 6, 2, 5]
    order = seeding_order(16)
    assert sorted(order) == list(range(16))
    # every first-round pair sums to size + 1 in 1-based seeds
    assert all(order[i] + order[i + 1] == 15 for i in range(0, 16, 2))


def test_bracket_match_count_and_byes(make_players):
    for n in range(2, 17):
        matches = generate_bracket(make_players(n))
        size = bracket_size(n)
        assert len(matches) == size - 1
        first = [m for m in matches if m.round == 1]
        assert len(first) == size // 2
        assert sum(1 for m in first if is_bye(m)) == size - n
        # never an empty first-round match
        assert all(m.player1_id or m.player2_id for m in first)
        assert all(m.stage == STAGE_KNOCKOUT for m in matches)


def test_later_rounds_start_empty(make_players):
    matches = generate_bracket(make_players(8), sets_to_win=4)
    later = [m for m in matches if m.round > 1]
    assert len(later) == 3
    assert all(m.player1_id is None and m.player2_id is None for m in later)
    assert all(m.sets_to_win == 4 for m in matches)


def test_eight_player_first_round_pairings(make_players):
    matches = generate_bracket(make_players(8))
    first = sorted((m for m in matches if m.round == 1), key=lambda m: m.match_number)
    pairs = [(m.player1_id, m.player2_id) for m in first]
    assert pairs == [("p1", "p8"), ("p4", "p5"), ("p2", "p7"), ("p3", "p6")]


def test_top_two_seeds_only_meet_in_final(make_players):
    for n in (4, 6, 8, 12, 16):
        matches = [m for m in generate_bracket(make_players(n)) if m.round == 1]
        half = bracket_size(n) // 4
        m1 = next(m for m in matches if m.involves("p1"))
        m2 = next(m for m in matches if m.involves("p2"))
        assert (m1.match_number - 1) // half != (m2.match_number - 1) // half


def test_five_players_get_three_byes_for_top_seeds(make_players):
    matches = generate_bracket(make_players(5))
    byes = [m for m in matches if is_bye(m)]
    assert sorted(m.player1_id for m in byes) == ["p1", "p2", "p3"]
    # the generator never resolves byes itself
    assert all(m.winner_id is None for m in byes)


def test_unseeded_players_go_last(make_players):
    players = make_players(4)
    players[0].seed = None
    matches = generate_bracket(players)
    first = find_match(matches, 1, 1)
    assert first.player1_id == "p2"
    assert first.player2_id == "p1"


def test_degenerate_player_counts(make_players):
    with pytest.raises(InvalidInput):
        generate_bracket([])
    assert generate_bracket(make_players(1)) == []
    two = generate_bracket(make_players(2))
    assert len(two) == 1
    assert (two[0].player1_id, two[0].player2_id) == ("p1", "p2")


def test_next_slot_and_find_match(make_players):
    matches = generate_bracket(make_players(8))
    m3 = find_match(matches, 1, 3)
    m4 = find_match(matches, 1, 4)
    assert next_slot(m3) == (2, 2, "player1_id")
    assert next_slot(m4) == (2, 2, "player2_id")
    assert find_match(matches, 2, 2) is not None
    assert find_match(matches, 4, 1) is None


def test_top_seeds_winning_every_match_meet_in_the_final(make_players):
    for n in (2, 3, 5, 8, 11, 16):
        players = make_players(n)
        seed = {p.id: p.seed for p in players}
        matches = generate_bracket(players)
        meeting = None
        for rnd in range(1, total_rounds(n) + 1):
            for m in sorted((m for m in matches if m.round == rnd), key=lambda m: m.match_number):
                entrants = [pid for pid in (m.player1_id, m.player2_id) if pid]
                if {"p1", "p2"} <= set(entrants):
                    meeting = rnd
                m.winner_id = min(entrants, key=seed.get)
                if rnd < total_rounds(n):
                    nxt_round, number, slot = next_slot(m)
                    setattr(find_match(matches, nxt_round, number), slot, m.winner_id)
        assert meeting == total_rounds(n)
