from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .records import AnyRecord


@dataclass(frozen=True)
class Question:
    """
    Brief: One DNS question.

    Inputs:
      - name: Queried name, no trailing dot.
      - type: Record type mnemonic (``PTR``, ``SRV``, ``TXT``, ``A``, ``AAAA``
        or ``ANY``).

    Outputs:
      - Question instance.
    """

    name: str
    type: str


@dataclass(frozen=True)
class QueryPacket:
    questions: Tuple[Question, ...] = ()


@dataclass(frozen=True)
class ResponsePacket:
    answers: Tuple[AnyRecord, ...] = ()
    additionals: Tuple[AnyRecord, ...] = ()

    def records(self) -> Tuple[AnyRecord, ...]:
        """Answers followed by additionals."""

        return tuple(self.answers) + tuple(self.additionals)
