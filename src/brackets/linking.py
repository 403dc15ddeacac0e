"""
Cross-linking of winners and losers brackets.

Every pass drains one round of the winners side into the losers bracket by
setting `loss` pointers, and sets the `win` pointers of the losers rounds it
feeds through. The match-number order of each drained round is rotated
(see fill_pattern) so that a dropped player is unlikely to meet, straight
away, the player who just beat them.

Rounds are passed in as lists of working match dicts with keys
'round', 'match', 'player1', 'player2', 'win' and 'loss'.
"""
import logging
from collections import Counter
from typing import Dict, List, Set

from .models import Slot

logger = logging.getLogger(__name__)

Round = List[Dict]


def fill_pattern(count: int, phase: int) -> List[int]:
    """
    Order in which the matches 1..count of a winners round are drained.

    Phase 0 keeps the order, phase 1 reverses it, phase 2 reverses each half
    in place and phase 3 swaps the halves. The phase is taken modulo 4.
    """
    numbers = list(range(1, count + 1))
    half = count // 2
    first, second = numbers[:half], numbers[half:]
    rotation = phase % 4
    if rotation == 0:
        return numbers
    if rotation == 1:
        return numbers[::-1]
    if rotation == 2:
        return first[::-1] + second[::-1]
    return second + first


def slot_of(record: Dict) -> Slot:
    return Slot(record['round'], record['match'])


class LinkingState:
    """
    Cursors threaded through the linking passes.

    phase: number of passes done so far, selects the fill pattern
    winners_index: next winners round (index into the winners rounds) to drain
    ladder_index: main-ladder rounds passed so far, not counting merge skips
    merge_offset: how many times the ladder cursor skipped to a merge point
    first_unlinked: first losers round (index over all losers rounds) whose
        win pointers are left to the final linkage

    The next ladder round that may take drops is ladder_index + merge_offset.
    """

    def __init__(self):
        self.phase = 0
        self.winners_index = 0
        self.ladder_index = 0
        self.merge_offset = 0
        self.first_unlinked = 0

    @property
    def ladder_cursor(self) -> int:
        return self.ladder_index + self.merge_offset

    def next_pattern(self, count: int) -> List[int]:
        pattern = fill_pattern(count, self.phase)
        self.phase += 1
        return pattern

    def __repr__(self):
        return (f"LinkingState(phase={self.phase}, winners_index={self.winners_index}, "
                f"ladder_index={self.ladder_index}, merge_offset={self.merge_offset}, "
                f"first_unlinked={self.first_unlinked})")


def count_bye_feeds(bye_round: Round) -> Counter:
    """Number of bye-round winners entering each first-real-round match, by match number."""
    return Counter(record['win'].match for record in bye_round)


def link_first_round(first_round: Round, ladder: List[Round], state: LinkingState) -> None:
    """Power-of-2 field: the first real round drains two losers per first ladder match."""
    state.winners_index = 1
    if not ladder:
        # Two players: nothing to drain into, the final linkage handles the loser.
        return

    pattern = state.next_pattern(len(first_round))
    ladder_round = ladder[0]
    assert len(pattern) == 2 * len(ladder_round), "first round must drain 2:1"
    for j, losers_match in enumerate(ladder_round):
        for number in pattern[2 * j:2 * j + 2]:
            first_round[number - 1]['loss'] = slot_of(losers_match)
    state.ladder_index = 1
    state.first_unlinked = 0


def pick_redirected(pattern: List[int], feeds: Counter) -> Set[int]:
    """
    First-round matches whose loser plays a pre-fill match.

    These are the bye-fed matches. A single bye match would only leave its own
    first-round match, so the match drained beside it into the ladder is
    redirected instead.
    """
    fed = {number for number in pattern if feeds[number]}
    if len(fed) != 1:
        return fed
    for j in range(0, len(pattern), 2):
        pair = pattern[j:j + 2]
        if fed & set(pair):
            return {number for number in pair if number not in fed}
    return fed


def link_small_remainder(bye_round: Round, first_round: Round, prefill: Round,
                         ladder: List[Round], state: LinkingState) -> None:
    """
    At most half a round of byes: one pre-fill round absorbs them.

    Each pre-fill match pairs a bye-round loser with the loser of a redirected
    first-round match (see pick_redirected), never the one the bye-round winner
    went on to play in while another choice is left. The pre-fill winner then
    takes that first-round loser's place in the first ladder round.
    """
    pattern = state.next_pattern(len(bye_round))
    assert len(pattern) == len(prefill), "bye round must drain 1:1 into the pre-fill round"
    origins = []
    for i, losers_match in enumerate(prefill):
        bye_match = bye_round[pattern[i] - 1]
        bye_match['loss'] = slot_of(losers_match)
        origins.append(bye_match['win'].match)

    feeds = count_bye_feeds(bye_round)
    pattern = state.next_pattern(len(first_round))
    free = list(range(len(prefill)))

    def take_prefill(number):
        for position, i in enumerate(free):
            if origins[i] != number:
                return prefill[free.pop(position)]
        return prefill[free.pop(0)]

    if ladder:
        redirected = pick_redirected(pattern, feeds)
        for j, losers_match in enumerate(ladder[0]):
            for number in pattern[2 * j:2 * j + 2]:
                if number in redirected:
                    absorbing = take_prefill(number)
                    first_round[number - 1]['loss'] = slot_of(absorbing)
                    absorbing['win'] = slot_of(losers_match)
                else:
                    first_round[number - 1]['loss'] = slot_of(losers_match)
        state.ladder_index = 1
        state.first_unlinked = 1
    else:
        # Three players: the pre-fill round is the losers final.
        for number in pattern:
            first_round[number - 1]['loss'] = slot_of(take_prefill(number))
        state.first_unlinked = 0

    assert not free, f"{len(free)} pre-fill matches left without an entrant"
    state.winners_index = 1


def link_large_remainder(bye_round: Round, first_round: Round, prefill: List[Round],
                         state: LinkingState) -> None:
    """
    More than half a round of byes: two pre-fill rounds absorb them.

    The two bye-round losers behind a first-round match fed by two bye matches
    meet in the first pre-fill round, and the winner moves on to that match's
    slot in the second. A bye-round loser behind a singly fed match goes to
    that slot directly. The first real round then drains 1:1 into the second
    pre-fill round in rotation order, so nobody restarts against the pod they
    came from.
    """
    overflow, absorbing_round = prefill
    assert len(first_round) == len(absorbing_round), "first round must drain 1:1 into pre-fill"
    feeds = count_bye_feeds(bye_round)
    pattern = state.next_pattern(len(bye_round))
    pods = {}
    for number in pattern:
        bye_match = bye_round[number - 1]
        target = bye_match['win'].match
        if feeds[target] == 2:
            if target not in pods:
                assert len(pods) < len(overflow), "more double-fed matches than overflow matches"
                pods[target] = overflow[len(pods)]
            bye_match['loss'] = slot_of(pods[target])
        else:
            bye_match['loss'] = slot_of(absorbing_round[target - 1])

    assert len(pods) == len(overflow), f"{len(overflow) - len(pods)} overflow matches left without an entrant"
    for target, overflow_match in pods.items():
        overflow_match['win'] = slot_of(absorbing_round[target - 1])

    pattern = state.next_pattern(len(first_round))
    for number, losers_match in zip(pattern, absorbing_round):
        first_round[number - 1]['loss'] = slot_of(losers_match)

    state.winners_index = 1
    state.ladder_index = 0
    state.first_unlinked = 1


def link_remaining_winners(winners_rounds: List[Round], ladder: List[Round],
                           state: LinkingState) -> None:
    """
    Drain every winners round after the first into the losers ladder.

    Ladder rounds come in equal-size pairs; a winners round drops into the
    second round of its pair, where fresh losers meet ladder survivors.
    """
    for index in range(state.winners_index, len(winners_rounds)):
        winners_round = winners_rounds[index]
        if state.ladder_cursor + 1 < len(ladder) and (
                len(ladder[state.ladder_cursor]) == len(ladder[state.ladder_cursor + 1])):
            state.merge_offset += 1
        cursor = state.ladder_cursor
        assert cursor < len(ladder), f"no losers round left for winners round {index + 1}"
        losers_round = ladder[cursor]
        assert len(losers_round) == len(winners_round), (
            f"winners round {index + 1} has {len(winners_round)} matches, "
            f"losers round has {len(losers_round)}")

        pattern = state.next_pattern(len(winners_round))
        for number, losers_match in zip(pattern, losers_round):
            winners_round[number - 1]['loss'] = slot_of(losers_match)

        logger.debug("Winners round %d drains into losers round %d (%s)",
                     winners_round[0]['round'], losers_round[0]['round'], state)
        state.ladder_index += 1
        state.winners_index = index + 1


def link_losers_progression(losers_rounds: List[Round], winners_final: Dict,
                            grand_final: Dict, decider: Dict,
                            state: LinkingState) -> None:
    """
    Final linkage: losers rounds feed forward, champions meet in the grand final.

    Consecutive losers rounds link 1:1 when they have the same size and 2:1
    when the next one is half as big. The losers final feeds the grand final;
    with no losers rounds the winners final's loser goes there directly.
    Both grand final players go on to the bracket reset slot.
    """
    for index in range(state.first_unlinked, len(losers_rounds) - 1):
        current, following = losers_rounds[index], losers_rounds[index + 1]
        same_size = len(current) == len(following)
        assert same_size or len(current) == 2 * len(following), (
            f"losers round sizes {len(current)} -> {len(following)} cannot be linked")
        for j, record in enumerate(current):
            target = following[j] if same_size else following[j // 2]
            record['win'] = slot_of(target)

    if losers_rounds:
        for record in losers_rounds[-1]:
            record['win'] = slot_of(grand_final)
    elif winners_final['loss'] is None:
        winners_final['loss'] = slot_of(grand_final)

    grand_final['win'] = slot_of(decider)
    grand_final['loss'] = slot_of(decider)
