from typing import Dict, List

from .errors import ValidationError


class Participant:
    def __init__(self, id, name=None, seed=None, members=None):
        self.id = id
        self.name = name if name is not None else str(id)
        self.seed = seed
        self.members = list(members) if members else []

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'seed': self.seed,
            'members': list(self.members),
        }

    @classmethod
    def from_dict(cls, data):
        if 'id' not in data or data['id'] in (None, ''):
            raise ValidationError('Every participant needs an id.')
        return cls(
            id=data['id'],
            name=data.get('name') or data.get('username'),
            seed=data.get('seed'),
            members=data.get('members'),
        )

    def __repr__(self):
        return f"Participant(id={self.id}, name={self.name}, seed={self.seed})"


def normalize_participants(participants, min_count: int = 2) -> List[Dict]:
    """
    Convert a roster into plain participant dicts.

    Accepts Participant objects or mappings. Ids must be unique; seeds, when
    present, must be unique positive integers.
    """
    if participants is None:
        raise ValidationError('A participant list is required.')

    normalized = []
    for entry in participants:
        if isinstance(entry, Participant):
            participant = entry
        elif isinstance(entry, dict):
            participant = Participant.from_dict(entry)
        else:
            raise ValidationError(f'Unsupported participant entry: {entry!r}')
        normalized.append(participant.to_dict())

    if len(normalized) < min_count:
        raise ValidationError(f'Need at least {min_count} participants')

    ids = [p['id'] for p in normalized]
    if len(set(ids)) != len(ids):
        raise ValidationError('Participant ids must be unique.')

    seeds = [p['seed'] for p in normalized if p['seed'] is not None]
    for seed in seeds:
        if isinstance(seed, bool) or not isinstance(seed, int) or seed < 1:
            raise ValidationError(f'Seed must be a positive integer, got {seed!r}')
    if len(set(seeds)) != len(seeds):
        raise ValidationError('Seeds must be unique within a tournament.')

    return normalized

