"""
Swiss system tournament: rounds are paired one at a time from live standings.
"""
import logging
import math
import random
from typing import Dict, List, Optional

from .bracket import (  # find_match is part of the format contract
    add_round,
    find_match,
    get_match,
    is_playable,
    new_match,
    participant,
    participants_map,
    resolve_result,
    round_matches,
)
from .errors import StateConflictError
from .models import normalize_participants
from .seeding import sort_by_seed
from .settings import normalize_settings

logger = logging.getLogger(__name__)

BRACKET_TYPE = 'swiss'


def calculate_swiss_rounds(participant_count: int) -> int:
    """Default number of rounds: ceil(log2(n))."""
    if participant_count < 2:
        return 0
    return math.ceil(math.log2(participant_count))


def generate_bracket(participants, settings: Optional[Dict] = None,
                     rng: Optional[random.Random] = None) -> Dict:
    """
    Generate a Swiss bracket with its first round paired.

    Standings start at zero. Without any seeds the standings order is
    shuffled before round 1; otherwise it follows the seeds.
    """
    roster = normalize_participants(participants)
    settings = normalize_settings(settings)
    rng = rng or random.Random()

    total_rounds = settings.get('swiss_rounds') or calculate_swiss_rounds(len(roster))

    has_seeds = settings['seeding_enabled'] and any(p['seed'] is not None for p in roster)
    if has_seeds:
        ordered = sort_by_seed(roster)
    else:
        ordered = list(roster)
        rng.shuffle(ordered)

    standings = [{
        'participant_id': p['id'],
        'wins': 0,
        'losses': 0,
        'points': 0,
        'buchholz': 0,
        'opponents': [],
    } for p in ordered]

    bracket = {
        'type': BRACKET_TYPE,
        'settings': settings,
        'participants': participants_map(roster),
        'total_rounds': total_rounds,
        'current_round': 1,
        'rounds': [],
        'matches': {},
        'standings': standings,
        'next_match_number': 1,
    }
    generate_round(bracket, 1)

    logger.info("Generated Swiss bracket: %d participants, %d rounds", len(roster), total_rounds)
    return bracket


def _ranked(standings: List[Dict]) -> List[Dict]:
    """Sort by points desc, then Buchholz desc; stable for ties."""
    return sorted(standings, key=lambda s: (-s['points'], -s['buchholz']))


def pair_standings(standings: List[Dict]) -> List[tuple]:
    """
    Greedy Swiss pairing.

    Walk the ranking and pair each unpaired player with the highest-ranked
    unpaired player they have not faced yet. When every remaining candidate
    is a rematch, pair with the highest-ranked remaining one anyway. A player
    left over at the end gets (player, None), a bye.
    """
    ranked = _ranked(standings)
    paired = set()
    pairings = []

    for i, player in enumerate(ranked):
        pid = player['participant_id']
        if pid in paired:
            continue

        candidates = [c for c in ranked[i + 1:] if c['participant_id'] not in paired]
        opponent = next((c for c in candidates if c['participant_id'] not in player['opponents']), None)
        if opponent is None and candidates:
            # Rematch fallback
            opponent = candidates[0]

        paired.add(pid)
        if opponent is None:
            pairings.append((pid, None))
        else:
            paired.add(opponent['participant_id'])
            pairings.append((pid, opponent['participant_id']))

    return pairings


def generate_round(bracket: Dict, round_number: int) -> Dict:
    """Pair a new round from the current standings and append it."""
    by_id = {s['participant_id']: s for s in bracket['standings']}
    name = f"Swiss Round {round_number}"
    matches = []
    for position, (p1, p2) in enumerate(pair_standings(bracket['standings'])):
        match = new_match(f"S{round_number}-M{position + 1}", bracket['next_match_number'],
                          round_number, name, p1, p2)
        bracket['next_match_number'] += 1
        if p2 is None:
            # Automatic win for the odd player out
            match['is_bye'] = True
            match['winner'] = p1
            by_id[p1]['wins'] += 1
            by_id[p1]['points'] += 1
            logger.debug("Swiss round %d: bye for %s", round_number, p1)
        matches.append(match)

    round_entry = add_round(bracket, 'rounds', round_number, name, matches, status='active')
    if all(m['winner'] is not None for m in matches):
        round_entry['status'] = 'complete'
    return round_entry


def advance_winner(bracket: Dict, match_id: str, winner_id: str, score: Optional[str] = None) -> Dict:
    """Report a result, update both standings and recompute Buchholz."""
    match = get_match(bracket, match_id)
    if match['is_bye']:
        raise StateConflictError(f'Cannot report bye match {match_id}')
    winner, loser = resolve_result(match, winner_id)

    match['winner'] = winner
    match['loser'] = loser
    if score:
        match['score'] = score

    by_id = {s['participant_id']: s for s in bracket['standings']}
    by_id[winner]['wins'] += 1
    by_id[winner]['points'] += 1
    by_id[winner]['opponents'].append(loser)
    by_id[loser]['losses'] += 1
    by_id[loser]['opponents'].append(winner)

    calculate_buchholz(bracket)

    round_entry = bracket['rounds'][match['round'] - 1]
    if all(m['winner'] is not None for m in round_matches(bracket, round_entry)):
        round_entry['status'] = 'complete'
        logger.info("Swiss round %d complete", match['round'])

    logger.debug("Match %s won by %s", match_id, winner)
    return bracket


def calculate_buchholz(bracket: Dict):
    """Buchholz = sum of all opponents' current points."""
    points = {s['participant_id']: s['points'] for s in bracket['standings']}
    for standing in bracket['standings']:
        standing['buchholz'] = sum(points.get(opp, 0) for opp in standing['opponents'])


def is_round_complete(bracket: Dict) -> bool:
    """Whether every match of the current round has a winner."""
    if bracket['current_round'] > len(bracket['rounds']):
        return False
    current = bracket['rounds'][bracket['current_round'] - 1]
    return all(m['winner'] is not None for m in round_matches(bracket, current))


def generate_next_round(bracket: Dict) -> Dict:
    """Pair the next round once the current one is complete."""
    if not is_round_complete(bracket):
        raise StateConflictError('Current round is not complete')
    if bracket['current_round'] >= bracket['total_rounds']:
        raise StateConflictError('All rounds have been completed')

    bracket['rounds'][bracket['current_round'] - 1]['status'] = 'complete'
    next_round = bracket['current_round'] + 1
    generate_round(bracket, next_round)
    bracket['current_round'] = next_round

    logger.info("Swiss round %d paired", next_round)
    return bracket


def get_active_matches(bracket: Dict) -> List[Dict]:
    if bracket['current_round'] > len(bracket['rounds']):
        return []
    current = bracket['rounds'][bracket['current_round'] - 1]
    return [m for m in round_matches(bracket, current) if is_playable(m)]


def is_complete(bracket: Dict) -> bool:
    return bracket['current_round'] == bracket['total_rounds'] and is_round_complete(bracket)


def get_standings(bracket: Dict) -> List[Dict]:
    """Current standings sorted by points, then Buchholz."""
    ranked = []
    for standing in _ranked(bracket['standings']):
        entry = dict(standing)
        entry['opponents'] = list(standing['opponents'])
        entry['participant'] = participant(bracket, standing['participant_id'])
        ranked.append(entry)
    return ranked


def get_results(bracket: Dict) -> Optional[Dict]:
    if not is_complete(bracket):
        return None
    standings = get_standings(bracket)

    def nth(i):
        return standings[i]['participant'] if len(standings) > i else None

    return {
        'winner': nth(0),
        'runner_up': nth(1),
        'third_place': nth(2),
        'standings': standings,
    }
