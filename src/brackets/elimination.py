"""
Bracket arithmetic and seeding shared by the bracket builders.
"""
import logging
import math
import random
from collections import abc
from typing import AbstractSet, Any, Callable, List, Optional, Sequence, Union

from .models import InvalidInputError

logger = logging.getLogger(__name__)

Shuffle = Callable[[List[Any]], List[Any]]


def calculate_bracket_size(num_players: int) -> int:
    """Calculate the full bracket size (next power of 2)."""
    if num_players <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_players))


def calculate_main_bracket_size(num_players: int) -> int:
    """Calculate the number of seeds in the first real round (previous power of 2)."""
    if num_players <= 0:
        return 0
    return 2 ** (num_players.bit_length() - 1)


def calculate_byes(num_players: int) -> int:
    """
    Calculate how many players do not fit a power-of-2 first round.

    Each of them gets a bye-round match against the mirrored seed, so this is
    also the size of the bye round. 0 for a power of 2.
    """
    if num_players <= 0:
        return 0
    return num_players - calculate_main_bracket_size(num_players)


def generate_seed_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.
    This ensures that if all higher seeds win, they meet in the proper rounds.

    For 8 seeds: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    Winners: 1v4 side, 2v3 side
    Final: 1v2 (if chalk)

    Equivalent to starting from [1, 4, 2, 3] and, per doubling level L,
    inserting 2^L + 1 - a after every first-of-pair seed a.
    """
    if bracket_size < 1 or bracket_size & (bracket_size - 1):
        raise ValueError(f"bracket size must be a power of 2, got {bracket_size}")
    if bracket_size == 1:
        return [1]
    if bracket_size == 2:
        return [1, 2]

    # Recursive generation
    half_size = bracket_size // 2
    upper_half = generate_seed_order(half_size)

    # Create lower half as complement
    lower_half = [bracket_size + 1 - seed for seed in upper_half]

    # Interleave: pair each upper seed with its complement
    result = []
    for u, l in zip(upper_half, lower_half):
        result.extend([u, l])

    return result


def mirror_seed(seed: int, bracket_size: int) -> int:
    """The seed paired against `seed` in a first round of `bracket_size` seeds."""
    return bracket_size + 1 - seed


def seed_player(players: Sequence[Any], seed: int) -> Optional[Any]:
    """Return the player holding `seed` (1-based), or None if there is no such seed."""
    if 1 <= seed <= len(players):
        return players[seed - 1]
    return None


def default_shuffle(players: List[Any]) -> List[Any]:
    """Uniformly random permutation of the players."""
    return random.sample(players, len(players))


def prepare_players(players: Union[int, Sequence[Any], AbstractSet[Any]], ordered: bool = False,
                    shuffle: Optional[Shuffle] = None) -> List[Any]:
    """
    Normalize the generator input into a seed-ordered player list.

    Args:
        players: Explicit players, or a positive count to synthesize players 1..N.
            A set of players is accepted for a random draw only.
        ordered: If True, list position is the seed (seed 1 = first element);
            otherwise seeds are drawn with `shuffle`
        shuffle: Permutation function used when ordered is False

    Returns:
        List of players, index 0 holding seed 1.
    """
    if isinstance(players, bool):
        raise InvalidInputError("players must be a count or a sequence of players, got a bool")

    if isinstance(players, int):
        if players < 1:
            raise InvalidInputError(f"player count must be at least 1, got {players}")
        return list(range(1, players + 1))

    if isinstance(players, abc.Set):
        if ordered:
            raise InvalidInputError("a set of players has no order to seed by, pass a list")
    elif isinstance(players, (str, bytes)) or not isinstance(players, abc.Sequence):
        raise InvalidInputError(
            f"players must be a count or a sequence of players, got {type(players).__name__}")

    player_list = list(players)
    if not player_list:
        raise InvalidInputError("player list is empty")

    if ordered:
        return player_list

    shuffle = shuffle or default_shuffle
    shuffled = list(shuffle(player_list))
    if len(shuffled) != len(player_list):
        raise InvalidInputError(
            f"shuffle returned {len(shuffled)} players for {len(player_list)} inputs")
    logger.debug("Shuffled %d players into seed order", len(shuffled))
    return shuffled
