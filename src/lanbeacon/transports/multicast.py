from __future__ import annotations

import contextlib
import logging
import socket
import struct
import threading
from typing import Optional, Sequence, Tuple

from .. import wire
from ..errors import TransportError
from ..packets import QueryPacket, Question
from ..records import AnyRecord
from .base import QUERY_EVENT, RESPONSE_EVENT, Transport

logger = logging.getLogger(__name__)

MDNS_PORT = 5353
MDNS_GROUP_V4 = "224.0.0.251"
MDNS_GROUP_V6 = "ff02::fb"
MDNS_HOP_LIMIT = 255
RECV_BUFSIZE = 9000


def _ipv6_ifindex(interface: Optional[str]) -> int:
    """Brief: Resolve an IPv6 interface selector into an interface index.

    Inputs:
      - interface: None, a numeric index, an interface name, or an address
        with a ``%scope`` suffix.

    Outputs:
      - int: Interface index (0 lets the kernel choose).
    """

    if not interface:
        return 0
    s = str(interface)
    if "%" in s:
        s = s.split("%", 1)[1]
    if s.isdigit():
        return int(s)
    try:
        return socket.if_nametoindex(s)
    except OSError:
        logger.warning("Unknown IPv6 interface %r; using default", interface)
        return 0


def open_multicast_socket(
    mode: str = "udp4",
    *,
    interface: Optional[str] = None,
    reuse_address: bool = True,
    loopback: bool = True,
    port: int = MDNS_PORT,
) -> socket.socket:
    """Brief: Create a UDP socket joined to the mDNS multicast group.

    Inputs:
      - mode: ``udp4`` or ``udp6``.
      - interface: IPv4 address (udp4) or interface name/index (udp6) used
        for group membership and outgoing multicast.
      - reuse_address: Set SO_REUSEADDR (and SO_REUSEPORT where available) so
        several responders can share port 5353.
      - loopback: Deliver our own multicast packets back to this host.
      - port: UDP port (5353 for mDNS).

    Outputs:
      - socket.socket: Bound socket with a short receive timeout.

    Raises:
      - TransportError when the socket cannot be created, bound or joined.
    """

    family = socket.AF_INET6 if mode == "udp6" else socket.AF_INET
    try:
        sock = socket.socket(family, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    except OSError as e:
        raise TransportError(f"cannot create {mode} socket: {e}")

    try:
        if reuse_address:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, "SO_REUSEPORT"):
                with contextlib.suppress(OSError):
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)

        if family == socket.AF_INET6:
            with contextlib.suppress(OSError):
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
            sock.bind(("", int(port)))
            ifindex = _ipv6_ifindex(interface)
            mreq = socket.inet_pton(socket.AF_INET6, MDNS_GROUP_V6) + struct.pack("@I", ifindex)
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_JOIN_GROUP, mreq)
            if ifindex:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_IF, ifindex)
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_LOOP, 1 if loopback else 0)
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_HOPS, MDNS_HOP_LIMIT)
        else:
            sock.bind(("", int(port)))
            local = socket.inet_aton(interface) if interface else struct.pack("!I", socket.INADDR_ANY)
            mreq = socket.inet_aton(MDNS_GROUP_V4) + local
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
            if interface:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, local)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1 if loopback else 0)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, MDNS_HOP_LIMIT)

        sock.settimeout(0.5)
    except OSError as e:
        with contextlib.suppress(OSError):
            sock.close()
        raise TransportError(f"cannot join mDNS group ({mode}, interface={interface!r}): {e}")
    return sock


class MulticastTransport(Transport):
    """
    Brief: mDNS transport over a UDP multicast socket.

    Inputs:
      - mode: ``udp4`` (default) or ``udp6``.
      - interface: Interface selector forwarded to ``open_multicast_socket``.
      - reuse_address: Share port 5353 with other responders (default True).
      - loopback: Receive our own packets (default True); this is what lets a
        browser in the same process see a locally published service.
      - lock: Lock held while listeners run; the coordinator passes its own
        so that packet dispatch never interleaves with timer callbacks.
      - sock: Pre-built socket (tests); when omitted one is opened.
      - port: UDP port (default 5353).

    Outputs:
      - MulticastTransport instance with a running daemon receive thread.

    Example use:
        >>> t = MulticastTransport()  # doctest: +SKIP
        >>> t.on("response", print)  # doctest: +SKIP
        >>> t.query([Question("_http._tcp.local", "PTR")])  # doctest: +SKIP
    """

    def __init__(
        self,
        mode: str = "udp4",
        *,
        interface: Optional[str] = None,
        reuse_address: bool = True,
        loopback: bool = True,
        lock: Optional[threading.RLock] = None,
        sock: Optional[socket.socket] = None,
        port: int = MDNS_PORT,
    ) -> None:
        super().__init__()
        self.mode = "udp6" if mode == "udp6" else "udp4"
        self.port = int(port)
        self.group: Tuple[str, int] = (
            (MDNS_GROUP_V6, self.port) if self.mode == "udp6" else (MDNS_GROUP_V4, self.port)
        )
        self._lock = lock if lock is not None else threading.RLock()
        self._sock = sock or open_multicast_socket(
            self.mode,
            interface=interface,
            reuse_address=reuse_address,
            loopback=loopback,
            port=self.port,
        )
        self._running = True
        self._thread = threading.Thread(
            target=self._recv_loop,
            daemon=True,
            name="lanbeacon-mdns-recv",
        )
        self._thread.start()
        logger.info(
            "mDNS transport bound: mode=%s interface=%s loopback=%s",
            self.mode,
            interface,
            loopback,
        )

    @property
    def closed(self) -> bool:
        return not self._running

    def _send(self, payload: bytes) -> None:
        sock = self._sock
        if not self._running or sock is None:
            raise TransportError("transport is closed")
        try:
            sock.sendto(payload, self.group)
        except OSError as e:
            raise TransportError(f"mDNS send failed: {e}")

    def query(self, questions: Sequence[Question]) -> None:
        logger.debug("mDNS query: %s", [(q.name, q.type) for q in questions])
        try:
            payload = wire.encode_query(questions)
        except wire.ENCODE_ERRORS as e:
            raise TransportError(f"cannot encode mDNS query: {e}") from e
        self._send(payload)

    def respond(
        self,
        answers: Sequence[AnyRecord],
        additionals: Sequence[AnyRecord] = (),
    ) -> None:
        logger.debug("mDNS response: %d answers, %d additionals", len(answers), len(additionals))
        try:
            payload = wire.encode_response(answers, additionals)
        except wire.ENCODE_ERRORS as e:
            raise TransportError(f"cannot encode mDNS response: {e}") from e
        self._send(payload)

    def handle_datagram(self, data: bytes, addr=None) -> None:
        """Brief: Decode one datagram and dispatch it to listeners.

        Inputs:
          - data: Raw datagram.
          - addr: Sender address (logged only).

        Outputs:
          - None; emits ``query`` or ``response`` under the dispatch lock.
        """

        packet = wire.decode_packet(data)
        if packet is None:
            return
        event = QUERY_EVENT if isinstance(packet, QueryPacket) else RESPONSE_EVENT
        with self._lock:
            if not self._running:
                return
            self.emit(event, packet)

    def _recv_loop(self) -> None:
        while self._running:
            sock = self._sock
            if sock is None:
                break
            try:
                data, addr = sock.recvfrom(RECV_BUFSIZE)
            except socket.timeout:
                continue
            except OSError:
                if not self._running:
                    break
                logger.debug("mDNS receive failed", exc_info=True)
                continue
            try:
                self.handle_datagram(data, addr)
            except Exception:  # pragma: no cover
                logger.warning("mDNS datagram from %s not handled", addr, exc_info=True)

    def destroy(self) -> None:
        if not self._running:
            return
        self._running = False
        sock, self._sock = self._sock, None
        if sock is not None:
            with contextlib.suppress(OSError):
                sock.close()
        thread = self._thread
        if thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=2.0)
        logger.info("mDNS transport closed")
