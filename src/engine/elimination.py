"""
Single elimination bracket generation and management.
"""
import logging
import math
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
from .seeding import get_round_name, next_power_of_two, place_participants
from .settings import normalize_settings

logger = logging.getLogger(__name__)

BRACKET_TYPE = 'single_elimination'


def build_elimination_rounds(bracket: Dict, slots: List[Optional[Dict]], rounds_key: str,
                             code_prefix: str, next_key: str, match_number: int,
                             round_namer=None, extra: Optional[Dict] = None) -> int:
    """
    Build a complete elimination tree from placed slots.

    Round 1 pairs adjacent slots; a match with a single occupant is a bye
    whose winner is set immediately. Every later match pairs two consecutive
    matches of the previous round, records them as its sources, and takes the
    winners of bye sources straight away.

    Returns the next free match number.
    """
    bracket_size = len(slots)
    total_rounds = int(math.log2(bracket_size))
    round_namer = round_namer or (lambda rnd, teams: get_round_name(teams))
    extra = extra or {}

    first_round = []
    for i in range(0, bracket_size, 2):
        p1 = slots[i]['id'] if slots[i] else None
        p2 = slots[i + 1]['id'] if slots[i + 1] else None
        match = new_match(
            f"{code_prefix}1-M{i // 2 + 1}", match_number, 1,
            round_namer(1, bracket_size), p1, p2,
            **{next_key: None}, **extra
        )
        match_number += 1
        if p1 is None or p2 is None:
            match['is_bye'] = True
            match['winner'] = p1 or p2
        first_round.append(match)
    add_round(bracket, rounds_key, 1, round_namer(1, bracket_size), first_round)

    previous = first_round
    teams_in_round = bracket_size // 2
    for round_number in range(2, total_rounds + 1):
        name = round_namer(round_number, teams_in_round)
        current = []
        for i in range(len(previous) // 2):
            source1 = previous[i * 2]
            source2 = previous[i * 2 + 1]
            match = new_match(
                f"{code_prefix}{round_number}-M{i + 1}", match_number, round_number, name,
                source1['winner'] if source1['is_bye'] else None,
                source2['winner'] if source2['is_bye'] else None,
                source_match1_id=source1['id'],
                source_match2_id=source2['id'],
                **{next_key: None}, **extra
            )
            match_number += 1
            source1[next_key] = match['id']
            source2[next_key] = match['id']
            current.append(match)
        add_round(bracket, rounds_key, round_number, name, current)
        previous = current
        teams_in_round //= 2

    return match_number


def generate_bracket(participants, settings: Optional[Dict] = None) -> Dict:
    """
    Generate a single elimination bracket.

    Returns dict with:
    - 'type': 'single_elimination'
    - 'bracket_size': power of 2 slot count
    - 'total_rounds': number of rounds
    - 'rounds': list of {'round', 'name', 'match_ids'}
    - 'matches': match arena keyed by id
    - 'current_round': lowest round with an undecided, non-bye match
    """
    roster = normalize_participants(participants)
    settings = normalize_settings(settings)

    bracket_size = next_power_of_two(len(roster))
    total_rounds = int(math.log2(bracket_size))
    slots = place_participants(roster, bracket_size, settings['seeding_enabled'])

    bracket = {
        'type': BRACKET_TYPE,
        'settings': settings,
        'participants': participants_map(roster),
        'bracket_size': bracket_size,
        'total_rounds': total_rounds,
        'rounds': [],
        'matches': {},
        'current_round': 1,
    }
    build_elimination_rounds(bracket, slots, 'rounds', 'W', 'next_match_id', 1)
    update_current_round(bracket)

    logger.info("Generated single elimination bracket: %d participants, size %d, %d rounds",
                len(roster), bracket_size, total_rounds)
    return bracket


def advance_winner(bracket: Dict, match_id: str, winner_id: str, score: Optional[str] = None) -> Dict:
    """Record a match result and move the winner into the linked slot."""
    match = get_match(bracket, match_id)
    winner, loser = resolve_result(match, winner_id)

    match['winner'] = winner
    match['loser'] = loser
    if score:
        match['score'] = score

    if match['next_match_id']:
        next_match = bracket['matches'][match['next_match_id']]
        if next_match['source_match1_id'] == match_id:
            next_match['participant1'] = winner
        else:
            next_match['participant2'] = winner

    update_current_round(bracket)
    logger.debug("Match %s won by %s", match_id, winner)
    if is_complete(bracket):
        logger.info("Single elimination bracket complete, champion %s", winner)
    return bracket


def update_current_round(bracket: Dict):
    """Set current_round to the lowest round with an undecided, non-bye match."""
    for round_entry in bracket['rounds']:
        if any(m['winner'] is None and not m['is_bye'] for m in round_matches(bracket, round_entry)):
            bracket['current_round'] = round_entry['round']
            return
    bracket['current_round'] = bracket['total_rounds'] + 1


def get_active_matches(bracket: Dict) -> List[Dict]:
    return [m for m in iter_matches(bracket) if is_playable(m)]


def _final_match(bracket: Dict) -> Dict:
    return round_matches(bracket, bracket['rounds'][-1])[0]


def is_complete(bracket: Dict) -> bool:
    return _final_match(bracket)['winner'] is not None


def get_results(bracket: Dict) -> Optional[Dict]:
    """
    Winner and runner-up come from the final.

    Third place is an approximation, not a bronze match: the loser of the
    first non-bye semifinal whose winner is not the runner-up.
    """
    if not is_complete(bracket):
        return None

    final = _final_match(bracket)
    winner_id = final['winner']
    runner_up_id = final['loser']

    third_place_id = None
    if len(bracket['rounds']) >= 2:
        for match in round_matches(bracket, bracket['rounds'][-2]):
            if match['is_bye'] or match['winner'] is None:
                continue
            if match['winner'] != runner_up_id:
                third_place_id = match['loser']
                break

    return {
        'winner': participant(bracket, winner_id),
        'runner_up': participant(bracket, runner_up_id),
        'third_place': participant(bracket, third_place_id),
    }


def get_standings(bracket: Dict) -> List[Dict]:
    """
    Live placing per participant: the round each one reached and whether
    they are still alive.
    """
    reached = {pid: {'participant': p, 'round_reached': 1, 'eliminated': False}
               for pid, p in bracket['participants'].items()}
    for match in iter_matches(bracket):
        for pid in (match['participant1'], match['participant2']):
            if pid is not None:
                reached[pid]['round_reached'] = max(reached[pid]['round_reached'], match['round'])
        if match['loser'] is not None:
            reached[match['loser']]['eliminated'] = True

    champion = _final_match(bracket)['winner']
    standings = list(reached.values())
    standings.sort(key=lambda s: (s['participant']['id'] != champion,
                                  s['eliminated'], -s['round_reached']))
    return standings
