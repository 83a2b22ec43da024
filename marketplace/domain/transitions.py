# marketplace/domain/transitions.py
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Mapping

from marketplace.domain.errors import InvalidTransition


class TransitionTable:
    """
    Tabela dozwolonych przejsc stanu (current -> allowed next).

    strict=False przepuszcza dowolny skok (reczne poprawki obslugi),
    ale stan terminalny zawsze zostaje terminalny.
    """

    def __init__(self, allowed: Mapping[Enum, Iterable[Enum]], terminal: Iterable[Enum]):
        self.allowed: Dict[Enum, FrozenSet[Enum]] = {k: frozenset(v) for k, v in allowed.items()}
        self.terminal = frozenset(terminal)

    def is_terminal(self, state) -> bool:
        return state in self.terminal

    def can_move(self, current, requested) -> bool:
        return requested in self.allowed.get(current, frozenset())

    def check(self, current, requested, strict: bool = True) -> None:
        if self.is_terminal(current):
            raise InvalidTransition(current, requested)
        if strict and not self.can_move(current, requested):
            raise InvalidTransition(current, requested)
