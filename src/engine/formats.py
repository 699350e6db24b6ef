"""
Format dispatch: pick the engine for a bracket by its 'type'.
"""
import logging
import random
from typing import Dict, List, Optional

from . import battle_royale, double_elimination, elimination, round_robin, swiss
from .errors import StateConflictError, ValidationError
from .settings import normalize_settings

logger = logging.getLogger(__name__)

ENGINES = {
    'single_elimination': elimination,
    'double_elimination': double_elimination,
    'swiss': swiss,
    'round_robin': round_robin,
    'battle_royale': battle_royale,
}

FORMAT_NAMES = {
    'single_elimination': 'Single Elimination',
    'double_elimination': 'Double Elimination',
    'swiss': 'Swiss',
    'round_robin': 'Round Robin',
    'battle_royale': 'Battle Royale',
}


def get_engine(bracket_or_type):
    """Return the engine module for a bracket dict or a format name."""
    bracket_type = bracket_or_type.get('type') if isinstance(bracket_or_type, dict) else bracket_or_type
    engine = ENGINES.get(bracket_type)
    if engine is None:
        raise ValidationError(f'Unknown bracket type: {bracket_type}')
    return engine


def generate_bracket(participants, settings: Optional[Dict] = None,
                     rng: Optional[random.Random] = None) -> Dict:
    """
    Generate a bracket with the engine named by settings['format'].

    rng only matters to the formats that shuffle (Swiss, battle royale).
    """
    settings = normalize_settings(settings)
    engine = get_engine(settings['format'])
    if engine in (swiss, battle_royale):
        bracket = engine.generate_bracket(participants, settings, rng=rng)
    else:
        bracket = engine.generate_bracket(participants, settings)
    logger.debug("Dispatched %s bracket generation", settings['format'])
    return bracket


def advance_winner(bracket: Dict, match_id: str, winner_id, score: Optional[str] = None) -> Dict:
    if bracket.get('type') == battle_royale.BRACKET_TYPE:
        raise ValidationError('Battle royale results are reported per game')
    return get_engine(bracket).advance_winner(bracket, match_id, winner_id, score)


def report_match(bracket: Dict, match_id: str, winner_id, score: Optional[str] = None) -> Dict:
    """
    Record a match result as the reporting flow does.

    For Swiss brackets the next round is paired as soon as the current one is
    complete and rounds remain.
    """
    advance_winner(bracket, match_id, winner_id, score)
    if bracket['type'] == swiss.BRACKET_TYPE and swiss.is_round_complete(bracket):
        if bracket['current_round'] < bracket['total_rounds']:
            swiss.generate_next_round(bracket)
    return bracket


def report_game_results(bracket: Dict, group_id, game_number: int, placements: List) -> Dict:
    if bracket.get('type') != battle_royale.BRACKET_TYPE:
        raise ValidationError('Game results can only be reported for battle royale brackets')
    return battle_royale.report_game_results(bracket, group_id, game_number, placements)


def generate_next_round(bracket: Dict) -> Dict:
    if bracket.get('type') != swiss.BRACKET_TYPE:
        raise StateConflictError('Only Swiss brackets generate rounds on demand')
    return swiss.generate_next_round(bracket)


def get_active_matches(bracket: Dict) -> List[Dict]:
    return get_engine(bracket).get_active_matches(bracket)


def is_complete(bracket: Dict) -> bool:
    return get_engine(bracket).is_complete(bracket)


def get_results(bracket: Dict) -> Optional[Dict]:
    return get_engine(bracket).get_results(bracket)


def get_standings(bracket: Dict):
    return get_engine(bracket).get_standings(bracket)


def find_match(bracket: Dict, match_id: str) -> Optional[Dict]:
    return get_engine(bracket).find_match(bracket, match_id)
