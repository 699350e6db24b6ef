"""
Unit tests for format dispatch.
"""
import random
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from engine import formats, elimination, swiss, battle_royale
from engine.errors import StateConflictError, ValidationError
from conftest import make_participants


class TestDispatch:
    """Tests for picking an engine."""

    def test_get_engine_by_name_and_bracket(self):
        assert formats.get_engine('swiss') is swiss
        bracket = formats.generate_bracket(make_participants(4))
        assert formats.get_engine(bracket) is elimination

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            formats.get_engine('ladder')
        with pytest.raises(ValidationError):
            formats.get_engine({'type': None})

    @pytest.mark.parametrize("fmt", sorted(formats.ENGINES))
    def test_generate_each_format(self, fmt):
        bracket = formats.generate_bracket(make_participants(6), {'format': fmt, 'lobby_size': 4},
                                           rng=random.Random(5))
        assert bracket['type'] == fmt
        assert bracket['settings']['format'] == fmt
        assert formats.get_active_matches(bracket)
        assert formats.is_complete(bracket) is False
        assert formats.get_results(bracket) is None
        assert formats.get_standings(bracket)

    def test_find_match_dispatches(self):
        bracket = formats.generate_bracket(make_participants(4), {'format': 'round_robin'})
        assert formats.find_match(bracket, 'RR1-M1')['round'] == 1
        royale = formats.generate_bracket(make_participants(4), {'format': 'battle_royale'})
        assert formats.find_match(royale, 'A-G1')['group_id'] == 'A'


class TestReporting:
    """Tests for the reporting wrappers."""

    def test_report_match_pairs_next_swiss_round(self):
        bracket = formats.generate_bracket(make_participants(4), {'format': 'swiss'})
        formats.report_match(bracket, 'S1-M1', 'p1')
        assert bracket['current_round'] == 1
        formats.report_match(bracket, 'S1-M2', 'p3')
        assert bracket['current_round'] == 2
        assert len(formats.get_active_matches(bracket)) == 2

    def test_report_match_stops_after_last_swiss_round(self):
        bracket = formats.generate_bracket(make_participants(2), {'format': 'swiss'})
        formats.report_match(bracket, 'S1-M1', 'p2')
        assert formats.is_complete(bracket)
        assert formats.get_results(bracket)['winner']['id'] == 'p2'

    def test_report_match_elimination(self):
        bracket = formats.generate_bracket(make_participants(2))
        formats.report_match(bracket, 'W1-M1', 'p1', score='3-2')
        assert formats.is_complete(bracket)

    def test_match_report_rejected_for_battle_royale(self):
        bracket = formats.generate_bracket(make_participants(4), {'format': 'battle_royale'})
        with pytest.raises(ValidationError):
            formats.report_match(bracket, 'A-G1', 'p1')

    def test_game_report_only_for_battle_royale(self):
        bracket = formats.generate_bracket(make_participants(4))
        with pytest.raises(ValidationError):
            formats.report_game_results(bracket, 'A', 1, ['p1'])

    def test_game_report_dispatches(self):
        bracket = formats.generate_bracket(make_participants(4), {'format': 'battle_royale', 'games_per_stage': 1})
        teams = list(bracket['groups'][0]['teams'])
        formats.report_game_results(bracket, 'A', 1, teams)
        assert bracket['current_stage'] == 'finals'
        assert bracket['type'] == battle_royale.BRACKET_TYPE

    def test_next_round_only_for_swiss(self):
        bracket = formats.generate_bracket(make_participants(4), {'format': 'round_robin'})
        with pytest.raises(StateConflictError):
            formats.generate_next_round(bracket)

    def test_format_names_cover_engines(self):
        assert set(formats.FORMAT_NAMES) == set(formats.ENGINES)
