"""
Round robin scheduling using the circle method.
"""
import logging
from functools import cmp_to_key
from typing import Dict, List, Optional

from .bracket import (  # find_match is part of the format contract
    add_round,
    find_match,
    get_match,
    is_playable,
    iter_matches,
    new_match,
    participant,
    participants_map,
    resolve_result,
    round_matches,
)
from .models import normalize_participants
from .settings import normalize_settings

logger = logging.getLogger(__name__)

BRACKET_TYPE = 'round_robin'


def circle_schedule(players: List) -> List[List[tuple]]:
    """
    Pair every entry with every other exactly once.

    With n entries (n even) there are n - 1 rounds. Each round pairs index i
    with index n - 1 - i, then every index but the first rotates one place:
    [0, 1, 2, 3, 4, 5] -> [0, 5, 1, 2, 3, 4].
    Pairs involving a None entry are dropped.
    """
    n = len(players)
    indices = list(range(n))
    schedule = []
    for _ in range(n - 1):
        pairs = []
        for i in range(n // 2):
            p1 = players[indices[i]]
            p2 = players[indices[n - 1 - i]]
            if p1 is None or p2 is None:
                continue
            pairs.append((p1, p2))
        schedule.append(pairs)
        indices.insert(1, indices.pop())
    return schedule


def generate_bracket(participants, settings: Optional[Dict] = None) -> Dict:
    """
    Generate a round robin bracket.

    An odd roster gets a ghost entry so every round has a sitting-out
    participant; ghost pairings are never created as matches.
    """
    roster = normalize_participants(participants)
    settings = normalize_settings(settings)

    player_ids = [p['id'] for p in roster]
    if len(player_ids) % 2 != 0:
        player_ids.append(None)

    count = len(roster)
    bracket = {
        'type': BRACKET_TYPE,
        'settings': settings,
        'participants': participants_map(roster),
        'total_rounds': len(player_ids) - 1,
        'total_matches': count * (count - 1) // 2,
        'current_round': 1,
        'rounds': [],
        'matches': {},
        'standings': [{
            'participant_id': p['id'],
            'wins': 0,
            'losses': 0,
            'matches_played': 0,
            'head_to_head': {},
        } for p in roster],
    }

    match_number = 1
    for round_number, pairs in enumerate(circle_schedule(player_ids), start=1):
        name = f"Round Robin - Round {round_number}"
        matches = []
        for position, (p1, p2) in enumerate(pairs):
            matches.append(new_match(f"RR{round_number}-M{position + 1}", match_number,
                                     round_number, name, p1, p2))
            match_number += 1
        add_round(bracket, 'rounds', round_number, name, matches,
                  status='active' if round_number == 1 else 'pending')

    logger.info("Generated round robin bracket: %d participants, %d rounds, %d matches",
                count, bracket['total_rounds'], bracket['total_matches'])
    return bracket


def advance_winner(bracket: Dict, match_id: str, winner_id: str, score: Optional[str] = None) -> Dict:
    """Report a result and update win/loss and head-to-head records."""
    match = get_match(bracket, match_id)
    winner, loser = resolve_result(match, winner_id)

    match['winner'] = winner
    match['loser'] = loser
    if score:
        match['score'] = score

    by_id = {s['participant_id']: s for s in bracket['standings']}
    by_id[winner]['wins'] += 1
    by_id[winner]['matches_played'] += 1
    by_id[winner]['head_to_head'][loser] = 'win'
    by_id[loser]['losses'] += 1
    by_id[loser]['matches_played'] += 1
    by_id[loser]['head_to_head'][winner] = 'loss'

    update_round_status(bracket)
    logger.debug("Match %s won by %s", match_id, winner)
    return bracket


def update_round_status(bracket: Dict):
    """
    Mark fully decided rounds complete and activate the round after each.

    current_round becomes the first round that is not complete, or
    total_rounds once everything is decided.
    """
    rounds = bracket['rounds']
    for i, round_entry in enumerate(rounds):
        if round_entry['status'] != 'complete' and _round_decided(bracket, round_entry):
            round_entry['status'] = 'complete'
            logger.info("Round robin round %d complete", round_entry['round'])
        if round_entry['status'] == 'complete' and i + 1 < len(rounds):
            if rounds[i + 1]['status'] == 'pending':
                rounds[i + 1]['status'] = 'active'

    bracket['current_round'] = next(
        (r['round'] for r in rounds if r['status'] != 'complete'),
        bracket['total_rounds'],
    )


def _round_decided(bracket: Dict, round_entry: Dict) -> bool:
    return all(m['winner'] is not None for m in round_matches(bracket, round_entry))


def is_round_complete(bracket: Dict, round_number: Optional[int] = None) -> bool:
    round_number = round_number or bracket['current_round']
    for round_entry in bracket['rounds']:
        if round_entry['round'] == round_number:
            return _round_decided(bracket, round_entry)
    return False


def get_active_matches(bracket: Dict) -> List[Dict]:
    active = []
    for round_entry in bracket['rounds']:
        if round_entry['status'] == 'active':
            active.extend(m for m in round_matches(bracket, round_entry) if is_playable(m))
    return active


def is_complete(bracket: Dict) -> bool:
    return all(m['winner'] is not None for m in iter_matches(bracket))


def _compare(a: Dict, b: Dict) -> int:
    """Wins desc, then head-to-head between the two, then losses asc."""
    if a['wins'] != b['wins']:
        return b['wins'] - a['wins']
    h2h = a['head_to_head'].get(b['participant_id'])
    if h2h == 'win':
        return -1
    if h2h == 'loss':
        return 1
    return a['losses'] - b['losses']


def sort_standings(standings: List[Dict]) -> List[Dict]:
    return sorted(standings, key=cmp_to_key(_compare))


def get_standings(bracket: Dict) -> List[Dict]:
    ranked = []
    for standing in sort_standings(bracket['standings']):
        entry = dict(standing)
        entry['head_to_head'] = dict(standing['head_to_head'])
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
