"""
Seeding and bracket placement helpers shared by the elimination formats.
"""
import math
from typing import Dict, List, Optional, Set


def get_round_name(teams_in_round: int) -> str:
    """Get the name of a round based on number of teams."""
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def next_power_of_two(n: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if n <= 0:
        return 0
    return 2 ** math.ceil(math.log2(n))


def calculate_byes(participant_count: int) -> int:
    """Calculate number of byes needed."""
    return next_power_of_two(participant_count) - participant_count


def generate_seed_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.
    This ensures that if all higher seeds win, they meet in the proper rounds.

    For 8 teams: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    Winners: 1v4 side, 2v3 side
    Final: 1v2 (if chalk)
    """
    if bracket_size < 2:
        return [1] if bracket_size == 1 else []
    if bracket_size == 2:
        return [1, 2]

    previous = generate_seed_order(bracket_size // 2)

    # Pair each seed with its complement in the doubled bracket
    result = []
    for seed in previous:
        result.extend([seed, bracket_size + 1 - seed])
    return result


def assign_bye_positions(seed_order: List[int], participant_count: int) -> Set[int]:
    """
    Return the slot indices left empty for a roster of participant_count.

    Higher seeds get byes first: the slot opposite seed 1 is emptied first,
    then the slot opposite seed 2, and so on.
    """
    bye_count = len(seed_order) - participant_count
    positions = set()
    for i in range(bye_count):
        position = seed_order.index(i + 1)
        opponent = position + 1 if position % 2 == 0 else position - 1
        positions.add(opponent)
    return positions


def sort_by_seed(participants: List[Dict], seeding_enabled: bool = True) -> List[Dict]:
    """
    Order participants for placement.

    Seeded participants come first by ascending seed; unseeded participants
    follow in roster order. With seeding disabled the roster order is kept.
    """
    if not seeding_enabled:
        return list(participants)
    seeded = sorted((p for p in participants if p.get('seed') is not None),
                    key=lambda p: p['seed'])
    unseeded = [p for p in participants if p.get('seed') is None]
    return seeded + unseeded


def place_participants(participants: List[Dict], bracket_size: int,
                       seeding_enabled: bool = True) -> List[Optional[Dict]]:
    """
    Place participants into bracket slots.

    Participant i (1-indexed, after seed ordering) goes to slot
    seed_order.index(i). Slots without a participant stay None.
    """
    seed_order = generate_seed_order(bracket_size)
    slots = [None] * bracket_size
    for i, participant in enumerate(sort_by_seed(participants, seeding_enabled)):
        slots[seed_order.index(i + 1)] = participant
    return slots
