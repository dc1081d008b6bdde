from __future__ import annotations

import logging
from typing import Sequence

from ..errors import TransportError
from ..records import AnyRecord
from .base import (
    QUERY_EVENT,
    RESPONSE_EVENT,
    QueryPacket,
    Question,
    ResponsePacket,
    Transport,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY = 256


class LocalTransport(Transport):
    """
    Brief: In-process transport that loops every packet back to its listeners.

    Inputs:
      - history: How many sent packets of each kind to keep (default 256).

    Outputs:
      - LocalTransport instance.

    Notes:
      - Delivery is synchronous on the sending thread, in listener
        registration order.
      - Several coordinators may share one instance to exercise publish and
        browse against each other without touching the network.
      - ``sent_queries``/``sent_responses`` hold the most recent ``history``
        packets sent, which tests use to observe wire traffic.
    """

    def __init__(self, history: int = DEFAULT_HISTORY) -> None:
        super().__init__()
        self.closed = False
        self.history = max(0, int(history))
        self.sent_queries: list = []
        self.sent_responses: list = []

    def _remember(self, log: list, packet) -> None:
        log.append(packet)
        if len(log) > self.history:
            del log[: len(log) - self.history]

    def _check_open(self) -> None:
        if self.closed:
            raise TransportError("transport is closed")

    def query(self, questions: Sequence[Question]) -> None:
        self._check_open()
        packet = QueryPacket(questions=tuple(questions))
        self._remember(self.sent_queries, packet)
        logger.debug("local query: %s", [(q.name, q.type) for q in packet.questions])
        self.emit(QUERY_EVENT, packet)

    def respond(
        self,
        answers: Sequence[AnyRecord],
        additionals: Sequence[AnyRecord] = (),
    ) -> None:
        self._check_open()
        packet = ResponsePacket(answers=tuple(answers), additionals=tuple(additionals))
        self._remember(self.sent_responses, packet)
        logger.debug(
            "local response: %d answers, %d additionals",
            len(packet.answers),
            len(packet.additionals),
        )
        self.emit(RESPONSE_EVENT, packet)

    def destroy(self) -> None:
        self.closed = True
        self.remove_all_listeners()
