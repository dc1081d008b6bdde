from __future__ import annotations

from typing import Sequence

from ..errors import TransportError
from ..events import EventEmitter
from ..packets import QueryPacket, Question, ResponsePacket
from ..records import AnyRecord

QUERY_EVENT = "query"
RESPONSE_EVENT = "response"


class Transport(EventEmitter):
    """
    Brief: Interface every mDNS transport implements.

    Inputs:
      - None

    Outputs:
      - Transport instance emitting ``query`` (QueryPacket) and ``response``
        (ResponsePacket) events.

    Notes:
      - ``query``/``respond`` raise TransportError when the packet cannot be
        sent (including after ``destroy``).
      - ``destroy`` is idempotent.
    """

    def query(self, questions: Sequence[Question]) -> None:  # pragma: nocover interface
        raise NotImplementedError

    def respond(
        self,
        answers: Sequence[AnyRecord],
        additionals: Sequence[AnyRecord] = (),
    ) -> None:  # pragma: nocover interface
        raise NotImplementedError

    def destroy(self) -> None:  # pragma: nocover interface
        raise NotImplementedError


__all__ = [
    "QUERY_EVENT",
    "RESPONSE_EVENT",
    "Question",
    "QueryPacket",
    "ResponsePacket",
    "Transport",
    "TransportError",
]
