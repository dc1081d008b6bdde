"""Transports delivering mDNS queries and responses to services and browsers."""

from .base import QUERY_EVENT, RESPONSE_EVENT, Transport
from .local import LocalTransport
from .multicast import MulticastTransport

__all__ = [
    "QUERY_EVENT",
    "RESPONSE_EVENT",
    "Transport",
    "LocalTransport",
    "MulticastTransport",
]
