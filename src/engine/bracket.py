"""
Match arena helpers shared by the match-based formats.

Matches live in ``bracket['matches']`` keyed by match id. Rounds list the ids
of their matches in order, and every link between matches is stored as an id.
"""
from typing import Dict, List, Optional, Tuple

from .errors import ReferenceNotFoundError, StateConflictError, ValidationError


def new_match(match_id: str, match_number: int, round_number: int, round_name: str,
              participant1: Optional[str] = None, participant2: Optional[str] = None,
              **extra) -> Dict:
    """Create a match dict with empty result fields."""
    match = {
        'id': match_id,
        'match_number': match_number,
        'round': round_number,
        'round_name': round_name,
        'participant1': participant1,
        'participant2': participant2,
        'winner': None,
        'loser': None,
        'score': None,
        'is_bye': False,
    }
    match.update(extra)
    return match


def add_round(bracket: Dict, rounds_key: str, round_number: int, name: str,
              matches: List[Dict], status: Optional[str] = None) -> Dict:
    """Register matches in the arena and append a round that lists them."""
    for match in matches:
        bracket['matches'][match['id']] = match
    round_entry = {
        'round': round_number,
        'name': name,
        'match_ids': [m['id'] for m in matches],
    }
    if status is not None:
        round_entry['status'] = status
    bracket[rounds_key].append(round_entry)
    return round_entry


def find_match(bracket: Dict, match_id: str) -> Optional[Dict]:
    """Find a match by id, or None."""
    return bracket.get('matches', {}).get(match_id)


def get_match(bracket: Dict, match_id: str) -> Dict:
    """Find a match by id, raising ReferenceNotFoundError when missing."""
    match = find_match(bracket, match_id)
    if match is None:
        raise ReferenceNotFoundError(f'Match not found: {match_id}')
    return match


def round_matches(bracket: Dict, round_entry: Dict) -> List[Dict]:
    """Resolve a round's match ids to match dicts."""
    return [bracket['matches'][mid] for mid in round_entry['match_ids']]


def iter_matches(bracket: Dict, rounds_key: str = 'rounds'):
    """Yield matches round by round in generation order."""
    for round_entry in bracket[rounds_key]:
        for match_id in round_entry['match_ids']:
            yield bracket['matches'][match_id]


def resolve_result(match: Dict, winner_id: str) -> Tuple[str, Optional[str]]:
    """
    Validate a reported winner and return (winner_id, loser_id).

    Does not mutate the match.
    """
    if match['winner'] is not None:
        raise StateConflictError(f"Match {match['id']} already has a winner")
    if match['participant1'] is None or match['participant2'] is None:
        raise StateConflictError(f"Match {match['id']} is still waiting for an opponent")
    if winner_id is None or winner_id not in (match['participant1'], match['participant2']):
        raise ValidationError(f"Winner {winner_id} is not a participant in match {match['id']}")
    if winner_id == match['participant1']:
        return winner_id, match['participant2']
    return winner_id, match['participant1']


def is_playable(match: Dict) -> bool:
    """Both slots filled, no winner yet, not a bye."""
    return (match['winner'] is None and not match['is_bye']
            and match['participant1'] is not None and match['participant2'] is not None)


def participant(bracket: Dict, participant_id: Optional[str]) -> Optional[Dict]:
    """Look up a participant dict by id."""
    if participant_id is None:
        return None
    return bracket['participants'].get(participant_id)


def participants_map(participants: List[Dict]) -> Dict[str, Dict]:
    return {p['id']: p for p in participants}
