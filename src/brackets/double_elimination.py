"""
Double elimination bracket generation.

In double elimination:
- Players must lose twice to be eliminated
- Winners Bracket: players that haven't lost yet
- Losers Bracket: players that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
- Bracket Reset: If losers bracket winner wins Grand Final, a final match decides the champion

generate() lays out every match slot of such a bracket, seeds the first
round and wires the win/loss pointers. It does not play the tournament:
advancing players through the pointers is left to the caller.

Round order of a generated bracket:
    [bye round] winners rounds, grand final, losers rounds, bracket reset
The bye round only exists when the player count is not a power of 2.
"""
import logging
from typing import AbstractSet, Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from .elimination import (
    Shuffle,
    calculate_bracket_size,
    calculate_byes,
    calculate_main_bracket_size,
    generate_seed_order,
    mirror_seed,
    prepare_players,
    seed_player
)
from .linking import (
    LinkingState,
    link_first_round,
    link_large_remainder,
    link_losers_progression,
    link_remaining_winners,
    link_small_remainder
)
from .models import InvalidInputError, Match, Slot

logger = logging.getLogger(__name__)


class BracketLayout(NamedTuple):
    """Round numbers of each part of a bracket, before any match is built."""
    player_count: int
    starting_round: int
    bye_round: Optional[int]
    winners_rounds: Tuple[int, ...]
    grand_final_round: Optional[int]
    losers_rounds: Tuple[int, ...]
    prefill_rounds: int
    decider_round: Optional[int]


def get_losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (0-indexed)."""
    rounds_from_end = total_losers_rounds - round_num - 1
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num + 1}"


def get_winners_round_name(players_in_round: int) -> str:
    """Get the name for a winners bracket round."""
    if players_in_round == 2:
        return "Winners Final"
    elif players_in_round == 4:
        return "Winners Semifinal"
    elif players_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {players_in_round}"


def winners_round_sizes(num_players: int) -> List[int]:
    """Match counts of the winners rounds, first real round to winners final."""
    if num_players < 2:
        return []
    sizes = []
    size = calculate_main_bracket_size(num_players) // 2
    while size >= 1:
        sizes.append(size)
        size //= 2
    return sizes


def losers_round_sizes(num_players: int) -> List[int]:
    """
    Match counts of the losers rounds, pre-fill rounds first.

    Pre-fill rounds absorb the bye-round losers: one round when the byes fit
    in half a first round, otherwise two. The ladder that follows has two
    rounds per size, halving down to the losers final.
    """
    if num_players < 2:
        return []
    main_size = calculate_main_bracket_size(num_players)
    half = main_size // 2
    remainder = calculate_byes(num_players)

    sizes = []
    if remainder:
        if remainder <= half:
            sizes.append(remainder)
        else:
            sizes.extend([remainder - half, half])

    size = main_size // 4
    while size >= 1:
        sizes.extend([size, size])
        size //= 2
    return sizes


def calculate_losers_bracket_rounds(num_players: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For a field whose first real round has 2^k seeds:
    - Winners bracket has k rounds
    - Losers bracket has 2 * (k - 1) rounds, plus one or two pre-fill rounds
      when there are byes
    """
    return len(losers_round_sizes(num_players))


def plan_layout(player_count: int, starting_round: int = 1) -> BracketLayout:
    """Compute the round numbers of every part of the bracket for `player_count` players."""
    if player_count < 1:
        raise InvalidInputError(f"player count must be at least 1, got {player_count}")
    if player_count == 1:
        return BracketLayout(player_count, starting_round, None, (), None, (), 0, None)

    round_num = starting_round
    bye_round = None
    if calculate_byes(player_count):
        bye_round = round_num
        round_num += 1

    winners_count = len(winners_round_sizes(player_count))
    winners_rounds = tuple(range(round_num, round_num + winners_count))
    round_num += winners_count

    grand_final_round = round_num
    round_num += 1

    losers_count = calculate_losers_bracket_rounds(player_count)
    losers_rounds = tuple(range(round_num, round_num + losers_count))
    round_num += losers_count

    remainder = calculate_byes(player_count)
    if not remainder:
        prefill_rounds = 0
    elif remainder <= calculate_main_bracket_size(player_count) // 2:
        prefill_rounds = 1
    else:
        prefill_rounds = 2

    return BracketLayout(
        player_count=player_count,
        starting_round=starting_round,
        bye_round=bye_round,
        winners_rounds=winners_rounds,
        grand_final_round=grand_final_round,
        losers_rounds=losers_rounds,
        prefill_rounds=prefill_rounds,
        decider_round=round_num
    )


def get_bracket_section(layout: BracketLayout, round_num: int) -> str:
    """Which part of the bracket a round belongs to: bye, winners, grand_final, losers or decider."""
    if round_num == layout.bye_round:
        return 'bye'
    if round_num in layout.winners_rounds:
        return 'winners'
    if round_num == layout.grand_final_round:
        return 'grand_final'
    if round_num in layout.losers_rounds:
        return 'losers'
    if round_num == layout.decider_round:
        return 'decider'
    raise ValueError(f"round {round_num} is not part of this bracket")


def get_round_label(layout: BracketLayout, round_num: int) -> str:
    """Human readable name of a round."""
    section = get_bracket_section(layout, round_num)
    if section == 'bye':
        return "Play-in Round"
    if section == 'winners':
        index = layout.winners_rounds.index(round_num)
        sizes = winners_round_sizes(layout.player_count)
        return get_winners_round_name(2 * sizes[index])
    if section == 'grand_final':
        return "Grand Final"
    if section == 'losers':
        index = layout.losers_rounds.index(round_num)
        return get_losers_round_name(index, len(layout.losers_rounds))
    return "Bracket Reset"


class BracketBuilder:
    """
    Builds the matches of a double elimination bracket for a seeded field.

    Matches are kept as dicts in an arena keyed by Slot while the phases run;
    every phase only appends rounds or sets pointers on rounds built before it.
    build() returns them frozen as Match tuples.
    """

    def __init__(self, players: List[Any], starting_round: int = 1):
        if len(players) < 2:
            raise InvalidInputError(f"a bracket needs at least 2 players, got {len(players)}")
        self.players = players
        self.layout = plan_layout(len(players), starting_round)
        self.main_size = calculate_main_bracket_size(len(players))
        self.remainder = calculate_byes(len(players))
        self.arena: Dict[Slot, Dict] = {}
        self.rounds: Dict[int, List[Dict]] = {}
        self.first_round_seeds: List[Tuple[int, int]] = []

    def _add_round(self, round_num: int, size: int) -> List[Dict]:
        assert round_num not in self.rounds, f"round {round_num} built twice"
        records = []
        for i in range(size):
            record = {
                'round': round_num,
                'match': i + 1,
                'player1': None,
                'player2': None,
                'win': None,
                'loss': None
            }
            self.arena[Slot(round_num, i + 1)] = record
            records.append(record)
        self.rounds[round_num] = records
        return records

    def _round_list(self, round_nums: Iterable[int]) -> List[List[Dict]]:
        return [self.rounds[r] for r in round_nums]

    def build_bye_round(self) -> None:
        if self.layout.bye_round is None:
            return
        self._add_round(self.layout.bye_round, self.remainder)
        logger.debug("Bye round %d: %d matches", self.layout.bye_round, self.remainder)

    def build_winners_bracket(self) -> None:
        """Winners rounds halving down to the winners final, then the grand final slot."""
        sizes = winners_round_sizes(len(self.players))
        for round_num, size in zip(self.layout.winners_rounds, sizes):
            self._add_round(round_num, size)
        grand_final = self._add_round(self.layout.grand_final_round, 1)[0]

        winners = self._round_list(self.layout.winners_rounds)
        for current, following in zip(winners, winners[1:]):
            for record in current:
                record['win'] = Slot(following[0]['round'], (record['match'] + 1) // 2)
        winners[-1][0]['win'] = Slot(grand_final['round'], grand_final['match'])
        logger.debug("Winners rounds %s with sizes %s", self.layout.winners_rounds, sizes)

    def seed_first_round(self) -> None:
        """Place seeds 1..2^k into the first real round in fair-seeding order."""
        order = generate_seed_order(self.main_size)
        first_round = self.rounds[self.layout.winners_rounds[0]]
        for i, record in enumerate(first_round):
            seed1, seed2 = order[2 * i], order[2 * i + 1]
            record['player1'] = seed_player(self.players, seed1)
            record['player2'] = seed_player(self.players, seed2)
            self.first_round_seeds.append((seed1, seed2))

    def resolve_byes(self) -> None:
        """
        Move the lowest first-round seeds into the bye round.

        A displaced seed plays the mirrored seed of the full-size bracket in the
        next free bye match; that match's winner takes the vacated slot.
        """
        if not self.remainder:
            return
        bye_round = self.rounds[self.layout.bye_round]
        first_round = self.rounds[self.layout.winners_rounds[0]]
        full_size = calculate_bracket_size(len(self.players))
        cutoff = self.main_size - self.remainder
        used = 0

        for record, seeds in zip(first_round, self.first_round_seeds):
            for position, seed in zip(('player1', 'player2'), seeds):
                if seed <= cutoff:
                    continue
                bye_match = bye_round[used]
                used += 1
                bye_match['player1'] = record[position]
                bye_match['player2'] = seed_player(self.players, mirror_seed(seed, full_size))
                bye_match['win'] = Slot(record['round'], record['match'])
                record[position] = None

        assert used == self.remainder, f"{self.remainder - used} bye matches left empty"
        logger.debug("Moved %d seeds below %d into bye round %d",
                     used, cutoff, self.layout.bye_round)

    def build_losers_bracket(self) -> None:
        """Pre-fill rounds, the losers ladder and the bracket reset slot."""
        sizes = losers_round_sizes(len(self.players))
        for round_num, size in zip(self.layout.losers_rounds, sizes):
            self._add_round(round_num, size)
        self._add_round(self.layout.decider_round, 1)
        logger.debug("Losers rounds %s with sizes %s", self.layout.losers_rounds, sizes)

    def link(self) -> LinkingState:
        """Cross-link winners losses into the losers bracket, then link it to the grand final."""
        state = LinkingState()
        winners = self._round_list(self.layout.winners_rounds)
        losers = self._round_list(self.layout.losers_rounds)
        prefill = losers[:self.layout.prefill_rounds]
        ladder = losers[self.layout.prefill_rounds:]
        half = self.main_size // 2

        if not self.remainder:
            link_first_round(winners[0], ladder, state)
        elif self.remainder <= half:
            link_small_remainder(self.rounds[self.layout.bye_round], winners[0],
                                 prefill[0], ladder, state)
        else:
            link_large_remainder(self.rounds[self.layout.bye_round], winners[0],
                                 prefill, state)

        link_remaining_winners(winners, ladder, state)
        link_losers_progression(
            losers,
            winners[-1][0],
            self.rounds[self.layout.grand_final_round][0],
            self.rounds[self.layout.decider_round][0],
            state
        )
        return state

    def freeze(self) -> Tuple[Match, ...]:
        """Return the matches as immutable records, checking that every pointer resolves."""
        matches = []
        for slot in sorted(self.arena):
            record = self.arena[slot]
            for pointer in ('win', 'loss'):
                target = record[pointer]
                assert target is None or target in self.arena, (
                    f"match {slot} has a {pointer} pointer to missing match {target}")
            matches.append(Match(**record))
        return tuple(matches)

    def build(self) -> Tuple[Match, ...]:
        self.build_bye_round()
        self.build_winners_bracket()
        self.seed_first_round()
        self.resolve_byes()
        self.build_losers_bracket()
        self.link()
        return self.freeze()


def generate(players: Union[int, Sequence[Any], AbstractSet[Any]], starting_round: int = 1,
             ordered: bool = False, shuffle: Optional[Shuffle] = None) -> Tuple[Match, ...]:
    """
    Generate the complete structure of a double elimination bracket.

    Args:
        players: Explicit players (a set only when not ordered), or a positive
            count to synthesize players 1..N
        ordered: Seed players in list order instead of shuffling them
        shuffle: Permutation used when ordered is False (defaults to random.sample)

    Returns:
        Matches ordered by round then match number. A single player has no
        match to play, so N = 1 gives an empty tuple.

    Raises:
        InvalidInputError: fewer than 1 player, or bad arguments
    """
    if isinstance(starting_round, bool) or not isinstance(starting_round, int) or starting_round < 1:
        raise InvalidInputError(f"starting round must be a positive integer, got {starting_round!r}")

    seeded = prepare_players(players, ordered=ordered, shuffle=shuffle)
    if len(seeded) == 1:
        logger.debug("Single player %r: no matches to generate", seeded[0])
        return ()

    matches = BracketBuilder(seeded, starting_round).build()
    logger.info("Generated double elimination bracket: %d players, %d matches, rounds %d-%d",
                len(seeded), len(matches), matches[0].round, matches[-1].round)
    return matches


def index_matches(matches: Iterable[Match]) -> Dict[Slot, Match]:
    """Lookup of a generated bracket by (round, match) address."""
    return {match.key: match for match in matches}


def resolve(matches: Union[Dict[Slot, Match], Iterable[Match]], slot: Optional[Slot]) -> Optional[Match]:
    """Follow a win/loss pointer. Returns None for a missing pointer."""
    if slot is None:
        return None
    lookup = matches if isinstance(matches, dict) else index_matches(matches)
    return lookup[Slot(*slot)]
