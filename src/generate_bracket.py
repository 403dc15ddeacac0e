#!/usr/bin/env python3
"""
Generate a double elimination bracket and write it as YAML.

Usage:
    python src/generate_bracket.py data/players.yaml
    python src/generate_bracket.py data/players.yaml --output bracket.yaml --starting-round 3
    python src/generate_bracket.py --count 12

The players file holds either a list of player names in seed order, or a
mapping with a `players` list and optional `starting_round` / `ordered` keys.
Command line flags override values from the file.

Exit codes:
    0: Success
    1: Invalid input (players file or arguments)
    2: Output write failure
"""
import argparse
import logging
import os
import random
import sys

import yaml
from filelock import FileLock

from brackets.double_elimination import generate, get_round_label, plan_layout
from brackets.models import InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_LOG_LEVEL = os.environ.get('BRACKET_LOG_LEVEL', 'WARNING')


def load_players(file_path):
    """Read players and generation options from a YAML file."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file)

    if data is None:
        raise InvalidInputError(f"{file_path} is empty")
    if isinstance(data, list):
        return {'players': data}
    if not isinstance(data, dict) or not isinstance(data.get('players'), list):
        raise InvalidInputError(f"{file_path} must hold a list of players or a 'players' list")
    if not isinstance(data.get('ordered', False), bool):
        raise InvalidInputError(f"'ordered' in {file_path} must be true or false, got {data['ordered']!r}")
    return data


def bracket_to_dict(matches, player_count, starting_round):
    """Serializable form of a generated bracket, each match carrying its round label."""
    layout = plan_layout(player_count, starting_round)
    rows = []
    for match in matches:
        row = match.to_dict()
        row['label'] = get_round_label(layout, match.round)
        rows.append(row)
    return {'players': player_count, 'starting_round': starting_round, 'matches': rows}


def write_bracket(data, output_path):
    lock = FileLock(output_path + '.lock', timeout=10)
    with lock:
        with open(output_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def build_parser():
    parser = argparse.ArgumentParser(
        description='Generate the match structure of a double elimination bracket'
    )
    parser.add_argument(
        'players_file',
        nargs='?',
        help='YAML file with the players (list, or mapping with a players key)'
    )
    parser.add_argument(
        '--count',
        type=int,
        help='Generate for players numbered 1..COUNT instead of reading a file'
    )
    parser.add_argument(
        '--output',
        help='Output YAML file (default: stdout)'
    )
    parser.add_argument(
        '--starting-round',
        type=int,
        help='Number of the first round (default: 1)'
    )
    order = parser.add_mutually_exclusive_group()
    order.add_argument(
        '--ordered',
        dest='ordered',
        action='store_true',
        default=None,
        help='Seed players in file order'
    )
    order.add_argument(
        '--shuffle',
        dest='ordered',
        action='store_false',
        help='Draw seeds at random (default for player files)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        help='Random seed for a reproducible shuffle'
    )
    parser.add_argument(
        '--log-level',
        default=DEFAULT_LOG_LEVEL,
        help=f'Logging level (default: {DEFAULT_LOG_LEVEL}, from BRACKET_LOG_LEVEL)'
    )
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if args.count is None and not args.players_file:
        parser.error('either a players file or --count is required')

    try:
        if args.count is not None:
            options = {'players': args.count, 'ordered': True}
        else:
            options = load_players(args.players_file)
    except (OSError, yaml.YAMLError) as e:
        print(f"Error: Failed to read players: {e}", file=sys.stderr)
        return 1
    except InvalidInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    starting_round = args.starting_round if args.starting_round is not None else options.get('starting_round', 1)
    ordered = args.ordered if args.ordered is not None else options.get('ordered', False)
    shuffle = None
    if args.seed is not None:
        rng = random.Random(args.seed)
        shuffle = lambda players: rng.sample(players, len(players))

    try:
        matches = generate(options['players'], starting_round=starting_round,
                           ordered=ordered, shuffle=shuffle)
    except InvalidInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    player_count = options['players'] if isinstance(options['players'], int) else len(options['players'])
    data = bracket_to_dict(matches, player_count, starting_round)

    if not args.output:
        yaml.safe_dump(data, sys.stdout, default_flow_style=False, sort_keys=False)
        return 0

    try:
        write_bracket(data, args.output)
    except OSError as e:
        print(f"Error: Failed to write {args.output}: {e}", file=sys.stderr)
        return 2

    logger.info("Wrote %d matches to %s", len(matches), args.output)
    return 0


if __name__ == '__main__':
    sys.exit(main())
