"""
Unit tests for Swiss pairing, standings and round progression.
"""
import random
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from engine.swiss import (
    calculate_swiss_rounds,
    generate_bracket,
    pair_standings,
    advance_winner,
    generate_next_round,
    is_round_complete,
    get_active_matches,
    is_complete,
    get_results,
    get_standings,
)
from engine.errors import StateConflictError, ValidationError
from conftest import make_participants


def _pairs(bracket, round_number):
    round_entry = bracket['rounds'][round_number - 1]
    pairs = set()
    for match_id in round_entry['match_ids']:
        match = bracket['matches'][match_id]
        if not match['is_bye']:
            pairs.add(frozenset((match['participant1'], match['participant2'])))
    return pairs


def _standing(bracket, pid):
    return next(s for s in bracket['standings'] if s['participant_id'] == pid)


class TestSwissRounds:
    """Tests for the default round count."""

    def test_round_count(self):
        assert calculate_swiss_rounds(2) == 1
        assert calculate_swiss_rounds(4) == 2
        assert calculate_swiss_rounds(5) == 3
        assert calculate_swiss_rounds(16) == 4

    def test_setting_overrides_round_count(self, four_players):
        bracket = generate_bracket(four_players, {'swiss_rounds': 3})
        assert bracket['total_rounds'] == 3


class TestPairing:
    """Tests for the greedy pairing rule."""

    def test_first_round_follows_seeds(self, four_players):
        bracket = generate_bracket(four_players)
        assert _pairs(bracket, 1) == {frozenset(('p1', 'p2')), frozenset(('p3', 'p4'))}
        assert len(get_active_matches(bracket)) == 2

    def test_unseeded_roster_is_shuffled_with_rng(self):
        players = make_participants(8, seeded=False)
        first = generate_bracket(players, rng=random.Random(7))
        second = generate_bracket(players, rng=random.Random(7))
        assert _pairs(first, 1) == _pairs(second, 1)

    def test_no_rematch_in_second_round(self):
        """4 players, no seeds: round 2 never repeats a round 1 pairing."""
        bracket = generate_bracket(make_participants(4, seeded=False), rng=random.Random(3))
        for match in get_active_matches(bracket):
            advance_winner(bracket, match['id'], match['participant1'])
        generate_next_round(bracket)
        assert bracket['current_round'] == 2
        assert _pairs(bracket, 1).isdisjoint(_pairs(bracket, 2))

    def test_winners_meet_winners(self, four_players):
        bracket = generate_bracket(four_players)
        advance_winner(bracket, 'S1-M1', 'p1')
        advance_winner(bracket, 'S1-M2', 'p3')
        generate_next_round(bracket)
        assert frozenset(('p1', 'p3')) in _pairs(bracket, 2)

    def test_rematch_fallback(self):
        """Two players who already met are paired again when nobody else is left."""
        standings = [
            {'participant_id': 'a', 'points': 1, 'buchholz': 0, 'opponents': ['b']},
            {'participant_id': 'b', 'points': 0, 'buchholz': 1, 'opponents': ['a']},
        ]
        assert pair_standings(standings) == [('a', 'b')]

    def test_odd_player_gets_bye(self):
        standings = [
            {'participant_id': pid, 'points': 0, 'buchholz': 0, 'opponents': []}
            for pid in ('a', 'b', 'c')
        ]
        assert pair_standings(standings) == [('a', 'b'), ('c', None)]


class TestProgression:
    """Tests for reporting and round generation."""

    def test_bye_scores_immediately(self):
        bracket = generate_bracket(make_participants(3))
        bye = bracket['matches']['S1-M2']
        assert bye['is_bye'] is True
        assert bye['winner'] == 'p3'
        assert _standing(bracket, 'p3')['points'] == 1
        with pytest.raises(StateConflictError):
            advance_winner(bracket, 'S1-M2', 'p3')

    def test_standings_and_buchholz(self, four_players):
        bracket = generate_bracket(four_players)
        advance_winner(bracket, 'S1-M1', 'p1', score='2-0')
        p1 = _standing(bracket, 'p1')
        p2 = _standing(bracket, 'p2')
        assert (p1['wins'], p1['points'], p1['opponents']) == (1, 1, ['p2'])
        assert (p2['losses'], p2['points'], p2['buchholz']) == (1, 0, 1)
        assert bracket['matches']['S1-M1']['score'] == '2-0'

    def test_double_report_leaves_standings_alone(self, four_players):
        bracket = generate_bracket(four_players)
        advance_winner(bracket, 'S1-M1', 'p1')
        with pytest.raises(StateConflictError):
            advance_winner(bracket, 'S1-M1', 'p2')
        assert _standing(bracket, 'p1')['points'] == 1
        assert _standing(bracket, 'p2')['losses'] == 1

    def test_winner_must_be_in_match(self, four_players):
        bracket = generate_bracket(four_players)
        with pytest.raises(ValidationError):
            advance_winner(bracket, 'S1-M1', 'p3')

    def test_next_round_requires_complete_round(self, four_players):
        bracket = generate_bracket(four_players)
        advance_winner(bracket, 'S1-M1', 'p1')
        assert not is_round_complete(bracket)
        with pytest.raises(StateConflictError):
            generate_next_round(bracket)

    def test_match_numbers_continue_across_rounds(self, four_players):
        bracket = generate_bracket(four_players)
        advance_winner(bracket, 'S1-M1', 'p1')
        advance_winner(bracket, 'S1-M2', 'p3')
        generate_next_round(bracket)
        numbers = [bracket['matches'][mid]['match_number'] for mid in bracket['rounds'][1]['match_ids']]
        assert numbers == [3, 4]
        assert bracket['rounds'][0]['status'] == 'complete'

    def test_full_tournament_with_bye(self):
        bracket = generate_bracket(make_participants(3))
        advance_winner(bracket, 'S1-M1', 'p1')
        generate_next_round(bracket)
        assert _pairs(bracket, 2) == {frozenset(('p1', 'p3'))}
        assert bracket['matches']['S2-M2']['winner'] == 'p2'

        advance_winner(bracket, 'S2-M1', 'p1')
        assert is_complete(bracket)
        with pytest.raises(StateConflictError):
            generate_next_round(bracket)

        results = get_results(bracket)
        assert results['winner']['id'] == 'p1'
        assert results['standings'][0]['points'] == 2

    def test_results_none_until_complete(self, four_players):
        assert get_results(generate_bracket(four_players)) is None

    def test_get_standings_sorted_copy(self, four_players):
        bracket = generate_bracket(four_players)
        advance_winner(bracket, 'S1-M1', 'p2')
        standings = get_standings(bracket)
        assert standings[0]['participant']['id'] == 'p2'
        standings[0]['opponents'].append('x')
        assert _standing(bracket, 'p2')['opponents'] == ['p1']
