"""
Shared pytest fixtures for bracket generation tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip the large player-count sweeps
"""
import pytest
import sys
import os
import yaml

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from brackets.models import Slot


@pytest.fixture
def named_players():
    """Eight players listed in seed order."""
    return ["Ana", "Ben", "Cho", "Dev", "Eli", "Fay", "Gus", "Hal"]


@pytest.fixture
def no_shuffle():
    """A shuffle that fails the test if it is ever called."""
    def _shuffle(players):
        raise AssertionError("shuffle must not be called for an ordered field")
    return _shuffle


@pytest.fixture
def reverse_shuffle():
    """Deterministic stand-in for a random permutation; records its calls."""
    calls = []

    def _shuffle(players):
        calls.append(list(players))
        return list(reversed(players))

    _shuffle.calls = calls
    return _shuffle


@pytest.fixture
def make_round():
    """Factory for working-round records as used by the linking passes."""
    def _make_round(round_num, size):
        return [
            {'round': round_num, 'match': i + 1, 'player1': None, 'player2': None,
             'win': None, 'loss': None}
            for i in range(size)
        ]
    return _make_round


@pytest.fixture
def players_file(tmp_path):
    """Write a players YAML file and return its path."""
    def _players_file(data, name="players.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, default_flow_style=False))
        return str(path)
    return _players_file


def entrant_counts(matches):
    """Seeded players plus inbound win/loss pointers, per match address."""
    counts = {m.key: int(m.player1 is not None) + int(m.player2 is not None) for m in matches}
    for m in matches:
        for pointer in (m.win, m.loss):
            if pointer is not None:
                counts[Slot(*pointer)] = counts.get(Slot(*pointer), 0) + 1
    return counts
