"""
Tournament settings: defaults and validation.
"""
from typing import Dict, Optional

from .errors import ValidationError


FORMATS = (
    'single_elimination',
    'double_elimination',
    'swiss',
    'round_robin',
    'battle_royale',
)

# Keys that must be positive integers when present
_POSITIVE_INT_KEYS = ('team_size', 'best_of', 'lobby_size', 'games_per_stage',
                      'advancing_per_group', 'swiss_rounds')


def get_default_settings() -> Dict:
    """Return default tournament settings."""
    return {
        'format': 'single_elimination',
        'team_size': 1,
        'best_of': 1,
        'lobby_size': 20,
        'games_per_stage': 3,
        'advancing_per_group': None,  # lobby_size // 2 when unset
        'swiss_rounds': None,         # ceil(log2(n)) when unset
        'seeding_enabled': True,
    }


def normalize_settings(settings: Optional[Dict] = None) -> Dict:
    """Merge caller settings over the defaults and validate them."""
    merged = get_default_settings()
    if settings:
        if not isinstance(settings, dict):
            raise ValidationError('Settings must be a mapping.')
        for key, value in settings.items():
            merged[key] = value

    if merged['format'] not in FORMATS:
        raise ValidationError(f"Unknown tournament format: {merged['format']}")

    for key in _POSITIVE_INT_KEYS:
        value = merged.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValidationError(f'{key} must be a positive integer, got {value!r}')

    if merged['advancing_per_group'] is None:
        merged['advancing_per_group'] = max(1, merged['lobby_size'] // 2)

    if merged['best_of'] % 2 == 0:
        raise ValidationError('best_of must be odd')

    merged['seeding_enabled'] = bool(merged.get('seeding_enabled', True))
    return merged
