# Command line entry point: build a bracket from YAML files and print it

import argparse
import logging
import random
import sys

import yaml

from engine import formats
from engine.errors import BracketError
from engine.settings import get_default_settings


def load_participants(file_path):
    """
    Load a roster from YAML.

    Accepts a list, or a mapping with a 'participants' list. Plain string
    entries become participants whose id and name are that string.
    """
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or []
    if isinstance(data, dict):
        data = data.get('participants', [])
    participants = []
    for entry in data:
        if isinstance(entry, str):
            participants.append({'id': entry, 'name': entry})
        else:
            participants.append(entry)
    return participants


def load_settings(file_path=None):
    """Load settings from YAML, merging with defaults."""
    defaults = get_default_settings()
    if not file_path:
        return defaults
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file)
    if not data:
        return defaults
    for key, value in defaults.items():
        if key not in data:
            data[key] = value
    return data


def _name(bracket, participant_id):
    if participant_id is None:
        return 'BYE'
    return bracket['participants'][participant_id]['name']


def print_rounds(bracket, rounds_key='rounds', title=None):
    if title:
        print(f"\n=== {title} ===")
    for round_entry in bracket[rounds_key]:
        print(f"\n{round_entry['name']}")
        for match_id in round_entry['match_ids']:
            match = bracket['matches'][match_id]
            line = f"  {match['id']}: {_name(bracket, match['participant1'])} vs {_name(bracket, match['participant2'])}"
            if match['winner'] is not None:
                line += f" -> {_name(bracket, match['winner'])}"
            print(line)


def print_groups(bracket):
    for group in bracket['groups']:
        teams = ', '.join(_name(bracket, t) for t in group['teams'])
        print(f"\n{group['name']} ({len(group['teams'])} teams, {len(group['games'])} games)")
        print(f"  {teams}")


def print_bracket(bracket):
    print(f"--- {formats.FORMAT_NAMES[bracket['type']]} ---")
    if bracket['type'] == 'battle_royale':
        print_groups(bracket)
    elif bracket['type'] == 'double_elimination':
        print_rounds(bracket, 'winners_rounds', 'Winners Bracket')
        if bracket['losers_rounds']:
            print_rounds(bracket, 'losers_rounds', 'Losers Bracket')
        print_rounds(bracket, 'grand_finals_rounds', 'Grand Finals')
    else:
        print_rounds(bracket)

    print("\n--- Playable now ---")
    active = formats.get_active_matches(bracket)
    if not active:
        print("Nothing to play.")
    for match in active:
        if bracket['type'] == 'battle_royale':
            print(f"  {match['group_name']} game {match['game_number']} ({match['team_count']} teams)")
        else:
            print(f"  {match['id']}: {_name(bracket, match['participant1'])} vs {_name(bracket, match['participant2'])}")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Generate a tournament bracket.')
    parser.add_argument('participants', help='YAML file with the roster')
    parser.add_argument('settings', nargs='?', help='YAML file with tournament settings')
    parser.add_argument('--format', choices=sorted(formats.ENGINES), help='Override the settings format')
    parser.add_argument('--seed', type=int, help='Random seed for Swiss and battle royale shuffles')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    participants = load_participants(args.participants)
    settings = load_settings(args.settings)
    if args.format:
        settings['format'] = args.format
    rng = random.Random(args.seed) if args.seed is not None else None

    try:
        bracket = formats.generate_bracket(participants, settings, rng=rng)
    except BracketError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print_bracket(bracket)
    return 0


if __name__ == "__main__":
    sys.exit(main())
