"""
Battle royale: lobby groups play placement-scored games, the top of each
group advances to a single finals lobby, and the finals standings decide the
champion.

Stages move groups -> finals -> complete on their own as games are reported.
"""
import logging
import math
import random
import string
from typing import Dict, List, Optional

from .bracket import participant, participants_map
from .errors import ReferenceNotFoundError, StateConflictError, ValidationError
from .models import normalize_participants
from .settings import normalize_settings

logger = logging.getLogger(__name__)

BRACKET_TYPE = 'battle_royale'
FINALS_ID = 'finals'


def _group_label(index: int) -> str:
    """A, B, ..., Z, AA, AB, ..."""
    letters = string.ascii_uppercase
    label = ''
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        label = letters[remainder] + label
    return label


def _empty_games(stage_id: str, games_per_stage: int) -> List[Dict]:
    return [{
        'id': f"{stage_id}-G{g}",
        'game_number': g,
        'status': 'pending',
        'results': [],
    } for g in range(1, games_per_stage + 1)]


def _empty_standings(team_ids: List[str]) -> List[Dict]:
    return [{
        'team_id': team_id,
        'points': 0,
        'games_played': 0,
        'placements': [],
    } for team_id in team_ids]


def _new_group(index: int, team_ids: List[str], games_per_stage: int) -> Dict:
    label = _group_label(index)
    return {
        'id': label,
        'name': f"Group {label}",
        'teams': list(team_ids),
        'games': _empty_games(label, games_per_stage),
        'standings': _empty_standings(team_ids),
    }


def generate_bracket(participants, settings: Optional[Dict] = None,
                     rng: Optional[random.Random] = None) -> Dict:
    """
    Shuffle the teams and split them into lobbies of lobby_size.

    The last group may be smaller. Every group gets games_per_stage empty
    games and zeroed standings.
    """
    roster = normalize_participants(participants)
    settings = normalize_settings(settings)
    rng = rng or random.Random()

    lobby_size = settings['lobby_size']
    games_per_stage = settings['games_per_stage']
    advancing_per_group = settings['advancing_per_group']

    team_ids = [p['id'] for p in roster]
    rng.shuffle(team_ids)

    group_count = math.ceil(len(team_ids) / lobby_size)
    groups = [
        _new_group(i, team_ids[i * lobby_size:(i + 1) * lobby_size], games_per_stage)
        for i in range(group_count)
    ]

    bracket = {
        'type': BRACKET_TYPE,
        'settings': settings,
        'participants': participants_map(roster),
        'lobby_size': lobby_size,
        'games_per_stage': games_per_stage,
        'advancing_per_group': advancing_per_group,
        'total_advancing': min(advancing_per_group * group_count, len(team_ids)),
        'current_stage': 'groups',
        'groups': groups,
        'finals': None,
    }

    logger.info("Generated battle royale bracket: %d teams in %d groups of up to %d",
                len(team_ids), group_count, lobby_size)
    return bracket


def get_group(bracket: Dict, group_id) -> Optional[Dict]:
    """Get a group by id, or the finals for 'finals'."""
    if group_id == FINALS_ID:
        return bracket['finals']
    for group in bracket['groups']:
        if group['id'] == group_id:
            return group
    return None


def _resolve_stage(bracket: Dict, group_ref) -> Dict:
    """Resolve a group id, 'finals', or a zero-based group index."""
    if isinstance(group_ref, int) and not isinstance(group_ref, bool):
        if group_ref < 0 or group_ref >= len(bracket['groups']):
            raise ValidationError(f'Group index out of range: {group_ref}')
        return bracket['groups'][group_ref]
    if group_ref == FINALS_ID:
        if bracket['finals'] is None:
            raise StateConflictError('Finals have not started yet')
        return bracket['finals']
    stage = get_group(bracket, group_ref)
    if stage is None:
        raise ReferenceNotFoundError(f'Group not found: {group_ref}')
    return stage


def _best_placement(standing: Dict) -> float:
    return min(standing['placements']) if standing['placements'] else math.inf


def sort_stage_standings(standings: List[Dict]):
    """Points desc, then best single placement asc. Sorts in place."""
    standings.sort(key=lambda s: (-s['points'], _best_placement(s)))


def _stage_complete(stage: Dict) -> bool:
    return all(g['status'] == 'complete' for g in stage['games'])


def report_game_results(bracket: Dict, group_id, game_number: int, placements: List) -> Dict:
    """
    Report one game's finishing order (team ids, first place first).

    Each team scores max(0, L - placement + 1) for a stage of L teams. When
    every group game is in, the finals are built; when every finals game is
    in, the tournament is complete.
    """
    stage = _resolve_stage(bracket, group_id)

    game = next((g for g in stage['games'] if g['game_number'] == game_number), None)
    if game is None:
        raise ReferenceNotFoundError(f"Game {game_number} not found in {stage['name']}")
    if game['status'] == 'complete':
        raise StateConflictError('Game results already reported')

    if not isinstance(placements, (list, tuple)):
        raise ValidationError('Placements must be a list of team ids')
    if len(set(placements)) != len(placements):
        raise ValidationError('A team appears more than once in the placements')
    unknown = [t for t in placements if t not in stage['teams']]
    if unknown:
        raise ValidationError(f"Teams not in {stage['name']}: {unknown}")
    if len(placements) != len(stage['teams']):
        raise ValidationError(f"Placements must rank all {len(stage['teams'])} teams of {stage['name']}")

    lobby_size = len(stage['teams'])
    game['results'] = [{
        'team_id': team_id,
        'placement': index + 1,
        'points': max(0, lobby_size - (index + 1) + 1),
    } for index, team_id in enumerate(placements)]
    game['status'] = 'complete'

    by_team = {s['team_id']: s for s in stage['standings']}
    for result in game['results']:
        standing = by_team[result['team_id']]
        standing['points'] += result['points']
        standing['games_played'] += 1
        standing['placements'].append(result['placement'])
    sort_stage_standings(stage['standings'])

    logger.debug("%s game %d reported", stage['name'], game_number)

    if bracket['current_stage'] == 'groups' and all(_stage_complete(g) for g in bracket['groups']):
        advance_to_finals(bracket)

    if bracket['current_stage'] == 'finals' and bracket['finals'] and _stage_complete(bracket['finals']):
        bracket['current_stage'] = 'complete'
        logger.info("Battle royale complete, champion %s", bracket['finals']['standings'][0]['team_id'])

    return bracket


def advance_to_finals(bracket: Dict) -> Dict:
    """Move the top advancing_per_group of every group into a finals lobby."""
    qualified = []
    for group in bracket['groups']:
        for standing in group['standings'][:bracket['advancing_per_group']]:
            qualified.append({
                'team_id': standing['team_id'],
                'qualified_from': group['name'],
                'group_points': standing['points'],
            })

    team_ids = [q['team_id'] for q in qualified]
    bracket['finals'] = {
        'id': FINALS_ID,
        'name': 'Grand Finals',
        'teams': team_ids,
        'qualified': qualified,
        'games': _empty_games(FINALS_ID, bracket['games_per_stage']),
        'standings': _empty_standings(team_ids),
    }
    bracket['current_stage'] = 'finals'

    logger.info("Battle royale finals: %d teams qualified", len(team_ids))
    return bracket


def assign_teams_to_groups(bracket: Dict, assignments: Dict[str, List]) -> Dict:
    """
    Re-seat teams into groups before any group game is reported.

    assignments maps group id to team ids. Every team must be placed exactly
    once, and every group must be non-empty and no larger than lobby_size.
    Group ids not yet present are created.
    """
    if bracket['current_stage'] != 'groups':
        raise StateConflictError('Groups can only be changed during the group stage')
    if any(g['status'] != 'pending' for group in bracket['groups'] for g in group['games']):
        raise StateConflictError('Group games have already been reported')
    if not assignments:
        raise ValidationError('At least one group is required')

    placed = [team for teams in assignments.values() for team in teams]
    if len(placed) != len(set(placed)):
        raise ValidationError('A team is assigned to more than one group')
    if set(placed) != set(bracket['participants']):
        raise ValidationError('Every team must be assigned to exactly one group')
    for group_id, teams in assignments.items():
        if not isinstance(group_id, str) or not group_id:
            raise ValidationError(f'Group ids must be non-empty strings, got {group_id!r}')
        if group_id == FINALS_ID:
            raise ValidationError(f"'{FINALS_ID}' is reserved for the finals stage")
        if not teams:
            raise ValidationError(f'Group {group_id} is empty')
        if len(teams) > bracket['lobby_size']:
            raise ValidationError(f"Group {group_id} exceeds the lobby size of {bracket['lobby_size']}")

    existing = {g['id']: g for g in bracket['groups']}
    groups = []
    for index, (group_id, teams) in enumerate(assignments.items()):
        group = _new_group(index, teams, bracket['games_per_stage'])
        group['id'] = group_id
        group['name'] = existing[group_id]['name'] if group_id in existing else f"Group {group_id}"
        for game in group['games']:
            game['id'] = f"{group_id}-G{game['game_number']}"
        groups.append(group)

    bracket['groups'] = groups
    bracket['total_advancing'] = min(bracket['advancing_per_group'] * len(groups),
                                     len(bracket['participants']))
    logger.info("Battle royale groups reassigned: %d groups", len(groups))
    return bracket


def get_active_matches(bracket: Dict) -> List[Dict]:
    """Pending games of the current stage, tagged with their group."""
    if bracket['current_stage'] == 'groups':
        stages = bracket['groups']
    elif bracket['current_stage'] == 'finals' and bracket['finals']:
        stages = [bracket['finals']]
    else:
        return []

    active = []
    for stage in stages:
        for game in stage['games']:
            if game['status'] == 'pending':
                entry = dict(game)
                entry['group_id'] = stage['id']
                entry['group_name'] = stage['name']
                entry['team_count'] = len(stage['teams'])
                active.append(entry)
    return active


def is_complete(bracket: Dict) -> bool:
    return bracket['current_stage'] == 'complete'


def _stage_view(bracket: Dict, stage: Dict) -> Dict:
    return {
        'id': stage['id'],
        'name': stage['name'],
        'standings': [
            dict(s, placements=list(s['placements']), team=participant(bracket, s['team_id']))
            for s in stage['standings']
        ],
        'games_complete': sum(1 for g in stage['games'] if g['status'] == 'complete'),
        'total_games': len(stage['games']),
    }


def get_standings(bracket: Dict) -> Dict:
    return {
        'current_stage': bracket['current_stage'],
        'groups': [_stage_view(bracket, g) for g in bracket['groups']],
        'finals': _stage_view(bracket, bracket['finals']) if bracket['finals'] else None,
        'advancing_per_group': bracket['advancing_per_group'],
    }


def get_results(bracket: Dict) -> Optional[Dict]:
    if not is_complete(bracket):
        return None
    standings = _stage_view(bracket, bracket['finals'])['standings']

    def nth(i):
        return standings[i]['team'] if len(standings) > i else None

    return {
        'winner': nth(0),
        'runner_up': nth(1),
        'third_place': nth(2),
        'standings': standings,
    }


def find_match(bracket: Dict, game_id: str) -> Optional[Dict]:
    """Find a game by id, with the group it belongs to."""
    stages = list(bracket['groups'])
    if bracket['finals']:
        stages.append(bracket['finals'])
    for stage in stages:
        for game in stage['games']:
            if game['id'] == game_id:
                return {'game': game, 'group_id': stage['id'], 'group_name': stage['name']}
    return None
