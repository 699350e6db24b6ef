"""
Double elimination bracket generation and management.

In double elimination:
- Teams must lose twice to be eliminated
- Winners Bracket: Teams that haven't lost yet
- Losers Bracket: Teams that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
- Bracket Reset: If losers bracket winner wins Grand Final, a final match decides the champion

Losers bracket slots fed by a winners round-1 bye never receive anyone. Such
slots are "dead": a losers match with one dead input is a bye that passes its
live participant on as soon as they arrive, and a match with two dead inputs
produces nobody.
"""
import logging
import math
from typing import Dict, List, Optional

from .bracket import (  # find_match is part of the format contract
    add_round,
    find_match,
    get_match,
    is_playable,
    new_match,
    participant,
    participants_map,
    round_matches,
    resolve_result,
)
from .elimination import build_elimination_rounds
from .errors import StateConflictError
from .models import normalize_participants
from .seeding import next_power_of_two, place_participants
from .settings import normalize_settings

logger = logging.getLogger(__name__)

BRACKET_TYPE = 'double_elimination'
GRAND_FINAL_ID = 'GF'
BRACKET_RESET_ID = 'GF-R'


def get_losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (0-indexed)."""
    rounds_from_end = total_losers_rounds - round_num - 1
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num + 1}"


def get_winners_round_name(teams_in_round: int) -> str:
    """Get the name for a winners bracket round."""
    if teams_in_round == 2:
        return "Winners Final"
    elif teams_in_round == 4:
        return "Winners Semifinal"
    elif teams_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {teams_in_round}"


def calculate_losers_bracket_rounds(bracket_size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For N teams in winners bracket (power of 2):
    - Winners bracket has log2(N) rounds
    - Losers bracket has 2 * (log2(N) - 1) rounds

    Pattern: minor, major, minor, major, ... ending with a major round
    """
    if bracket_size < 2:
        return 0
    winners_rounds = int(math.log2(bracket_size))
    return 2 * (winners_rounds - 1)


def generate_bracket(participants, settings: Optional[Dict] = None) -> Dict:
    """
    Generate complete double elimination bracket structure.

    Returns dict with:
    - 'winners_rounds' / 'losers_rounds' / 'grand_finals_rounds': lists of
      {'round', 'name', 'match_ids'}; grand finals hold the Grand Final and
      the Bracket Reset
    - 'matches': match arena keyed by id
    - 'bracket_size', 'total_winners_rounds', 'total_losers_rounds'
    - 'needs_reset', 'wb_complete', 'lb_complete'
    """
    roster = normalize_participants(participants)
    settings = normalize_settings(settings)

    bracket_size = next_power_of_two(len(roster))
    total_winners_rounds = int(math.log2(bracket_size))
    total_losers_rounds = calculate_losers_bracket_rounds(bracket_size)
    slots = place_participants(roster, bracket_size, settings['seeding_enabled'])

    bracket = {
        'type': BRACKET_TYPE,
        'settings': settings,
        'participants': participants_map(roster),
        'bracket_size': bracket_size,
        'total_winners_rounds': total_winners_rounds,
        'total_losers_rounds': total_losers_rounds,
        'winners_rounds': [],
        'losers_rounds': [],
        'grand_finals_rounds': [],
        'matches': {},
        'needs_reset': False,
        'wb_complete': False,
        'lb_complete': False,
    }

    match_number = build_elimination_rounds(
        bracket, slots, 'winners_rounds', 'W', 'next_win_match_id', 1,
        round_namer=lambda rnd, teams: get_winners_round_name(teams),
        extra={'bracket': 'winners', 'next_lose_match_id': None},
    )
    match_number = _generate_losers_bracket(bracket, match_number)
    _generate_grand_finals(bracket, match_number)

    logger.info("Generated double elimination bracket: %d participants, size %d, "
                "%d winners rounds, %d losers rounds",
                len(roster), bracket_size, total_winners_rounds, total_losers_rounds)
    return bracket


def _losers_match(bracket: Dict, match_id: str, match_number: int, round_number: int, name: str,
                  source1: Dict, outcome1: str, source2: Dict, outcome2: str) -> Dict:
    """Create a losers bracket match fed by two (match, outcome) sources."""
    match = new_match(
        match_id, match_number, round_number, name,
        bracket='losers',
        next_win_match_id=None,
        source_match1_id=source1['id'],
        source1_outcome=outcome1,
        source_match2_id=source2['id'],
        source2_outcome=outcome2,
    )
    for source, outcome in ((source1, outcome1), (source2, outcome2)):
        if outcome == 'loser':
            source['next_lose_match_id'] = match_id
        else:
            source['next_win_match_id'] = match_id

    live_inputs = (_is_live(bracket, source1, outcome1) + _is_live(bracket, source2, outcome2))
    match['is_bye'] = live_inputs < 2
    return match


def _is_live(bracket: Dict, match: Dict, outcome: str) -> bool:
    """Whether a match outcome will ever produce a participant."""
    if outcome == 'loser':
        return match['bracket'] == 'winners' and not match['is_bye']
    if match['bracket'] == 'winners':
        return True
    return any(
        _is_live(bracket, bracket['matches'][match[f'source_match{i}_id']], match[f'source{i}_outcome'])
        for i in (1, 2)
    )


def _generate_losers_bracket(bracket: Dict, match_number: int) -> int:
    """
    Generate losers bracket structure following standard double elimination format.

    The losers bracket alternates between:
    - Odd rounds: only losers bracket teams compete (round 1 pairs the
      winners round 1 losers)
    - Even rounds: losers bracket winners face the losers dropping in from
      the next winners round

    For 8-team bracket:
    - L Round 1: 4 W-QF losers pair off -> 2 matches
    - L Round 2: 2 L-R1 winners vs 2 W-SF losers -> 2 matches
    - L Round 3: 2 L-R2 winners pair off -> 1 match
    - L Round 4: L-R3 winner vs W-F loser -> 1 match -> losers champion
    """
    total_losers_rounds = bracket['total_losers_rounds']
    if total_losers_rounds <= 0:
        return match_number

    winners = [round_matches(bracket, r) for r in bracket['winners_rounds']]

    name = get_losers_round_name(0, total_losers_rounds)
    first_round = []
    for i in range(0, len(winners[0]), 2):
        match = _losers_match(bracket, f"L1-M{i // 2 + 1}", match_number, 1, name,
                              winners[0][i], 'loser', winners[0][i + 1], 'loser')
        bracket['matches'][match['id']] = match
        first_round.append(match)
        match_number += 1
    add_round(bracket, 'losers_rounds', 1, name, first_round)

    previous = first_round
    winners_round_for_losers = 2
    for round_number in range(2, total_losers_rounds + 1):
        name = get_losers_round_name(round_number - 1, total_losers_rounds)
        current = []
        if round_number % 2 == 0:
            # Drop-in round
            dropping = winners[winners_round_for_losers - 1]
            for i, lb_source in enumerate(previous):
                match = _losers_match(bracket, f"L{round_number}-M{i + 1}", match_number,
                                      round_number, name,
                                      lb_source, 'winner', dropping[i], 'loser')
                bracket['matches'][match['id']] = match
                current.append(match)
                match_number += 1
            winners_round_for_losers += 1
        else:
            for i in range(len(previous) // 2):
                match = _losers_match(bracket, f"L{round_number}-M{i + 1}", match_number,
                                      round_number, name,
                                      previous[i * 2], 'winner', previous[i * 2 + 1], 'winner')
                bracket['matches'][match['id']] = match
                current.append(match)
                match_number += 1
        add_round(bracket, 'losers_rounds', round_number, name, current)
        previous = current

    return match_number


def _generate_grand_finals(bracket: Dict, match_number: int) -> int:
    """
    Grand Final: winners champion in slot 1, losers champion in slot 2.
    With no losers bracket (two participants) the winners final loser goes
    straight to slot 2.
    """
    wb_final = round_matches(bracket, bracket['winners_rounds'][-1])[0]
    if bracket['losers_rounds']:
        second_source, second_outcome = round_matches(bracket, bracket['losers_rounds'][-1])[0], 'winner'
    else:
        second_source, second_outcome = wb_final, 'loser'

    grand_final = new_match(
        GRAND_FINAL_ID, match_number, 1, 'Grand Final',
        bracket='grand_finals',
        is_reset=False,
        source_match1_id=wb_final['id'],
        source1_outcome='winner',
        source_match2_id=second_source['id'],
        source2_outcome=second_outcome,
        reset_match_id=BRACKET_RESET_ID,
    )
    bracket_reset = new_match(
        BRACKET_RESET_ID, match_number + 1, 2, 'Bracket Reset',
        bracket='grand_finals',
        is_reset=True,
        source_grand_final_id=GRAND_FINAL_ID,
    )

    wb_final['next_win_match_id'] = GRAND_FINAL_ID
    if second_outcome == 'loser':
        wb_final['next_lose_match_id'] = GRAND_FINAL_ID
    else:
        second_source['next_win_match_id'] = GRAND_FINAL_ID

    add_round(bracket, 'grand_finals_rounds', 1, 'Grand Final', [grand_final])
    add_round(bracket, 'grand_finals_rounds', 2, 'Bracket Reset', [bracket_reset])
    return match_number + 2


def _send(bracket: Dict, match: Dict, outcome: str, participant_id: Optional[str]):
    """Place a match's winner or loser into the slot its link points at."""
    target_id = match.get('next_win_match_id') if outcome == 'winner' else match.get('next_lose_match_id')
    if not target_id or participant_id is None:
        return
    target = bracket['matches'][target_id]
    if (target.get('source_match1_id') == match['id']
            and target.get('source1_outcome', 'winner') == outcome):
        target['participant1'] = participant_id
    else:
        target['participant2'] = participant_id

    # A losers bye passes its only participant straight through
    if target['is_bye'] and target['winner'] is None:
        target['winner'] = participant_id
        _send(bracket, target, 'winner', participant_id)


def advance_winner(bracket: Dict, match_id: str, winner_id: str, score: Optional[str] = None) -> Dict:
    """
    Record a match result.

    - Winners bracket: winner advances, loser drops to the losers bracket
    - Losers bracket: winner advances, loser is eliminated
    - Grand Final: if the losers champion wins, the bracket reset is armed
    """
    match = get_match(bracket, match_id)
    if match['is_bye']:
        raise StateConflictError(f'Cannot report bye match {match_id}')
    if match.get('is_reset') and not bracket['needs_reset']:
        raise StateConflictError('Bracket reset is not required')
    winner, loser = resolve_result(match, winner_id)

    match['winner'] = winner
    match['loser'] = loser
    if score:
        match['score'] = score

    if match['bracket'] == 'winners':
        _send(bracket, match, 'winner', winner)
        _send(bracket, match, 'loser', loser)
    elif match['bracket'] == 'losers':
        _send(bracket, match, 'winner', winner)
    elif not match['is_reset']:
        wb_champion = bracket['matches'][match['source_match1_id']]['winner']
        if winner == wb_champion:
            bracket['needs_reset'] = False
        else:
            bracket['needs_reset'] = True
            reset = bracket['matches'][match['reset_match_id']]
            reset['participant1'] = match['participant1']
            reset['participant2'] = match['participant2']
            logger.info("Losers champion %s won the Grand Final, bracket reset required", winner)

    _refresh_flags(bracket)
    logger.debug("Match %s won by %s", match_id, winner)
    if is_complete(bracket):
        logger.info("Double elimination bracket complete, champion %s", winner)
    return bracket


def _refresh_flags(bracket: Dict):
    wb_final = round_matches(bracket, bracket['winners_rounds'][-1])[0]
    bracket['wb_complete'] = wb_final['winner'] is not None
    if bracket['losers_rounds']:
        lb_final = round_matches(bracket, bracket['losers_rounds'][-1])[0]
        bracket['lb_complete'] = lb_final['winner'] is not None
    else:
        bracket['lb_complete'] = bracket['wb_complete']


def _all_matches(bracket: Dict) -> List[Dict]:
    matches = []
    for key in ('winners_rounds', 'losers_rounds', 'grand_finals_rounds'):
        for round_entry in bracket[key]:
            matches.extend(round_matches(bracket, round_entry))
    return matches


def get_active_matches(bracket: Dict) -> List[Dict]:
    active = []
    for match in _all_matches(bracket):
        if match.get('is_reset') and not bracket['needs_reset']:
            continue
        if is_playable(match):
            active.append(match)
    return active


def _grand_final(bracket: Dict) -> Dict:
    return bracket['matches'][GRAND_FINAL_ID]


def _bracket_reset(bracket: Dict) -> Dict:
    return bracket['matches'][BRACKET_RESET_ID]


def is_complete(bracket: Dict) -> bool:
    if _grand_final(bracket)['winner'] is None:
        return False
    if bracket['needs_reset']:
        return _bracket_reset(bracket)['winner'] is not None
    return True


def get_results(bracket: Dict) -> Optional[Dict]:
    """
    Champion and runner-up come from the deciding grand final match.
    Third place is the loser of the losers semifinal.
    """
    if not is_complete(bracket):
        return None

    final = _bracket_reset(bracket) if bracket['needs_reset'] else _grand_final(bracket)

    third_place_id = None
    if len(bracket['losers_rounds']) >= 2:
        lb_semis = round_matches(bracket, bracket['losers_rounds'][-2])
        if lb_semis and lb_semis[0]['loser'] is not None:
            third_place_id = lb_semis[0]['loser']

    return {
        'winner': participant(bracket, final['winner']),
        'runner_up': participant(bracket, final['loser']),
        'third_place': participant(bracket, third_place_id),
    }


def get_standings(bracket: Dict) -> List[Dict]:
    """Losses per participant; two losses (or losing the decider) eliminates."""
    standings = {pid: {'participant': p, 'losses': 0, 'eliminated': False, 'last_match_number': 0}
                 for pid, p in bracket['participants'].items()}
    for match in _all_matches(bracket):
        for pid in (match['participant1'], match['participant2']):
            if pid is not None and match['winner'] is not None:
                entry = standings[pid]
                entry['last_match_number'] = max(entry['last_match_number'], match['match_number'])
        if match['loser'] is not None:
            standings[match['loser']]['losses'] += 1

    for entry in standings.values():
        entry['eliminated'] = entry['losses'] >= 2
    if is_complete(bracket):
        runner_up = (_bracket_reset(bracket) if bracket['needs_reset'] else _grand_final(bracket))['loser']
        standings[runner_up]['eliminated'] = True

    ordered = list(standings.values())
    ordered.sort(key=lambda s: (s['eliminated'], s['losses'], -s['last_match_number']))
    return ordered
