"""
Tournament format engines.

Each format module exposes the same contract: generate_bracket,
advance_winner (report_game_results for battle royale), get_active_matches,
is_complete, get_results, get_standings and find_match. Use
engine.formats to dispatch on a bracket's 'type'.
"""
from .errors import BracketError, ReferenceNotFoundError, StateConflictError, ValidationError
from .models import Participant
