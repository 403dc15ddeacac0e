"""
Value records for generated brackets.

A bracket is a flat sequence of Match records. Matches refer to each other
through Slot addresses (round number, match number), never through object
references, so a generated bracket can be stored or serialized as-is.
"""
from typing import Any, Dict, NamedTuple, Optional


class InvalidInputError(ValueError):
    """Raised when a bracket cannot be generated from the given input."""


class Slot(NamedTuple):
    """Address of a match inside a bracket."""
    round: int
    match: int

    def to_dict(self) -> Dict[str, int]:
        return {'round': self.round, 'match': self.match}


class Match(NamedTuple):
    """
    One match slot of a bracket.

    player1/player2 are None when the entrant is not known yet (it arrives
    through another match's win or loss pointer). win is where this match's
    winner goes next, loss is where its loser goes; losers-bracket matches
    have no loss pointer because a second loss eliminates.
    """
    round: int
    match: int
    player1: Any = None
    player2: Any = None
    win: Optional[Slot] = None
    loss: Optional[Slot] = None

    @property
    def key(self) -> Slot:
        return Slot(self.round, self.match)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'round': self.round,
            'match': self.match,
            'player1': self.player1,
            'player2': self.player2,
            'win': self.win.to_dict() if self.win else None,
            'loss': self.loss.to_dict() if self.loss else None
        }
