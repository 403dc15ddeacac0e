"""
Unit tests for the bracket records (Slot, Match, InvalidInputError).
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from brackets.models import InvalidInputError, Match, Slot


class TestSlot:
    """Tests for the Slot address."""

    def test_slot_is_a_value(self):
        """Slots compare and hash by round and match."""
        assert Slot(3, 2) == Slot(3, 2)
        assert Slot(3, 2) == (3, 2)
        assert {Slot(3, 2): 'x'}[(3, 2)] == 'x'

    def test_slot_ordering(self):
        """Slots sort by round first, then match."""
        assert sorted([Slot(2, 1), Slot(1, 2), Slot(1, 1)]) == [Slot(1, 1), Slot(1, 2), Slot(2, 1)]

    def test_slot_to_dict(self):
        assert Slot(4, 1).to_dict() == {'round': 4, 'match': 1}


class TestMatch:
    """Tests for the Match record."""

    def test_match_defaults(self):
        """A bare match has no players and no pointers."""
        match = Match(round=1, match=1)
        assert match.player1 is None
        assert match.player2 is None
        assert match.win is None
        assert match.loss is None

    def test_match_key(self):
        match = Match(round=2, match=3, player1="Ana")
        assert match.key == Slot(2, 3)

    def test_match_is_immutable(self):
        """Generated matches cannot be changed in place."""
        match = Match(round=1, match=1)
        with pytest.raises(AttributeError):
            match.player1 = "Ana"

    def test_match_to_dict(self):
        """Pointers serialize as nested dicts."""
        match = Match(round=1, match=2, player1="Ana", player2="Ben",
                      win=Slot(2, 1), loss=Slot(5, 1))
        assert match.to_dict() == {
            'round': 1,
            'match': 2,
            'player1': "Ana",
            'player2': "Ben",
            'win': {'round': 2, 'match': 1},
            'loss': {'round': 5, 'match': 1}
        }

    def test_match_to_dict_without_pointers(self):
        data = Match(round=9, match=1).to_dict()
        assert data['win'] is None
        assert data['loss'] is None


class TestInvalidInputError:

    def test_is_value_error(self):
        """Callers catching ValueError also catch invalid bracket input."""
        assert issubclass(InvalidInputError, ValueError)
