"""Discovery cache: turns mDNS responses into service up/down events."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple, Union

from . import hostinfo
from . import txt as txt_codec
from .config.config_schema import FindOptions, coerce_options
from .errors import TransportError
from .events import EventEmitter
from .packets import Question, ResponsePacket
from .records import (
    DEFAULT_TTL,
    AnyRecord,
    normalize_domain,
    same_name,
    services_meta_name,
    type_fqdn,
)
from .transports.base import RESPONSE_EVENT

if TYPE_CHECKING:  # pragma: nocover typing only
    from .bonjour import Bonjour

logger = logging.getLogger(__name__)

UP_EVENT = "up"
DOWN_EVENT = "down"

# Active discovery: query now, then again to cover dropped first packets and
# peers whose initial announcements are jittered.
REQUERY_DELAYS = (0.75, 3.0)
EXPIRY_JITTER = (0.5, 1.0)


@dataclass(frozen=True)
class ServiceInstance:
    """Brief: Snapshot of one discovered service instance.

    Inputs:
      - name: Instance label.
      - fqdn: Full instance name (identity key, compared case-insensitively).
      - host: SRV target.
      - port: SRV port.
      - addresses: A/AAAA literals published for ``host``.
      - txt: Decoded TXT mapping (keys lowercased).

    Outputs:
      - ServiceInstance instance.
    """

    name: str
    fqdn: str
    host: str
    port: int
    addresses: Tuple[str, ...] = ()
    txt: Mapping[str, str] = field(default_factory=dict)


@dataclass
class _Entry:
    service: ServiceInstance
    timer: Any = None


class Browser(EventEmitter):
    """
    Brief: Tracks remote instances of one service type, or discovers types.

    Inputs:
      - bonjour: Owning coordinator.
      - options: FindOptions or mapping. Without ``type`` the browser runs in
        wildcard mode: it queries ``_services._dns-sd._udp.<domain>`` and
        issues a typed PTR query for every type it learns about.

    Outputs:
      - Browser instance (stopped until ``start()``).

    Events:
      - ``up(ServiceInstance)``: new instance, or host/port changed.
      - ``down(ServiceInstance)``: goodbye received, TTL lapsed, or
        ``expire()`` called.

    Notes:
      - Responses without an SRV for the announced instance are ignored as
        incomplete; a missing TXT yields an empty mapping.
      - Instances carrying our coordinator's TXT ``id`` are never reported.
    """

    def __init__(
        self,
        bonjour: "Bonjour",
        options: Union[FindOptions, Mapping[str, Any], None] = None,
    ) -> None:
        super().__init__()
        opts = coerce_options(FindOptions, options)
        self._bonjour = bonjour
        self.type: Optional[str] = opts.type
        self.protocol: str = opts.protocol
        self.domain: str = normalize_domain(opts.domain or bonjour.domain)
        self.subtypes: Tuple[str, ...] = tuple(opts.subtypes or ())
        self._started = False
        self._entries: Dict[str, _Entry] = {}
        self._requeries: List[Any] = []

    @property
    def started(self) -> bool:
        return self._started

    @property
    def type_fqdn(self) -> Optional[str]:
        if not self.type:
            return None
        return type_fqdn(self.type, self.protocol, self.domain)

    @property
    def query_name(self) -> str:
        return self.type_fqdn or services_meta_name(self.domain)

    @property
    def services(self) -> List[ServiceInstance]:
        """Current live instances, in discovery order."""

        return [e.service for e in self._entries.values()]

    # -- lifecycle --------------------------------------------------------

    def start(self) -> None:
        with self._bonjour.lock:
            if self._started:
                return
            self._started = True
            self._bonjour.transport.on(RESPONSE_EVENT, self._on_response)
            logger.info("Browsing %s", self.query_name)
            self.update()
            if not self._started:
                return
            self._requeries = [
                self._bonjour.scheduler.call_later(delay, self.update)
                for delay in REQUERY_DELAYS
            ]

    def stop(self) -> None:
        with self._bonjour.lock:
            if not self._started:
                return
            self._started = False
            self._bonjour.transport.off(RESPONSE_EVENT, self._on_response)
            for handle in self._requeries:
                handle.cancel()
            self._requeries = []
            for entry in self._entries.values():
                if entry.timer is not None:
                    entry.timer.cancel()
            self._entries.clear()
            logger.info("Stopped browsing %s", self.query_name)

    def update(self) -> None:
        """Brief: Send one fresh query now (no-op while stopped)."""

        with self._bonjour.lock:
            if not self._started:
                return
            self._query(self.query_name)

    def expire(self) -> None:
        """Brief: Evict every cached instance, emitting ``down`` for each."""

        with self._bonjour.lock:
            for key in list(self._entries):
                self._evict(key)

    # -- internals --------------------------------------------------------

    def _query(self, name: str) -> None:
        try:
            self._bonjour.transport.query([Question(name=name, type="PTR")])
        except (TransportError, OSError) as exc:
            logger.debug("Query for %s not sent: %s", name, exc)

    def _evict(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        if entry.timer is not None:
            entry.timer.cancel()
        logger.debug("Service down: %s", entry.service.fqdn)
        self.emit(DOWN_EVENT, entry.service)

    def _on_expiry(self, key: str, timer_ref: List[Any]) -> None:
        entry = self._entries.get(key)
        # A refresh replaced the timer; this one is stale.
        if entry is None or entry.timer is not timer_ref[0]:
            return
        entry.timer = None
        self._evict(key)

    def _schedule_expiry(self, key: str, entry: _Entry, ttl: int) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
        delay = float(max(1, int(ttl)))
        if self._bonjour.jitter:
            delay += random.uniform(*EXPIRY_JITTER)
        timer_ref: List[Any] = [None]
        timer_ref[0] = self._bonjour.scheduler.call_later(
            delay, lambda: self._on_expiry(key, timer_ref)
        )
        entry.timer = timer_ref[0]

    def _on_response(self, packet: ResponsePacket) -> None:
        if not self._started:
            return
        candidates: List[AnyRecord] = list(packet.answers or ()) + list(packet.additionals or ())
        typed = self.type_fqdn

        if typed:
            for rr in candidates:
                if rr.kind == "PTR" and rr.ttl == 0 and same_name(rr.name, typed):
                    self._evict(_key(str(rr.data)))

        records = [rr for rr in candidates if rr.ttl > 0]

        if not typed:
            meta = services_meta_name(self.domain)
            for rr in records:
                if rr.kind == "PTR" and same_name(rr.name, meta):
                    logger.debug("Discovered service type %s", rr.data)
                    self._query(str(rr.data))
            return

        for ptr in records:
            # An up/down listener may have stopped us mid-packet.
            if not self._started:
                return
            if ptr.kind == "PTR" and same_name(ptr.name, typed):
                self._apply(ptr, records, typed)

    def _apply(self, ptr: AnyRecord, records: List[AnyRecord], typed: str) -> None:
        instance_fqdn = str(ptr.data)
        srv = next(
            (rr for rr in records if rr.kind == "SRV" and same_name(rr.name, instance_fqdn)),
            None,
        )
        if srv is None:
            logger.debug("Ignoring %s: no SRV in response", instance_fqdn)
            return
        txt_rr = next(
            (rr for rr in records if rr.kind == "TXT" and same_name(rr.name, instance_fqdn)),
            None,
        )

        host = str(srv.data.target or "") or hostinfo.local_hostname()
        port = int(srv.data.port or 0)
        addresses: List[str] = []
        for rr in records:
            if rr.kind in ("A", "AAAA") and same_name(rr.name, host):
                if rr.data not in addresses:
                    addresses.append(str(rr.data))

        txt = txt_codec.decode(txt_rr.data) if txt_rr is not None else {}
        own_id = self._bonjour.instance_id
        if own_id and txt.get("id") == own_id:
            return

        snapshot = ServiceInstance(
            name=_instance_label(instance_fqdn, typed),
            fqdn=instance_fqdn,
            host=host,
            port=port,
            addresses=tuple(addresses),
            txt=txt,
        )

        key = _key(instance_fqdn)
        entry = self._entries.get(key)
        changed = entry is None or (
            entry.service.host != snapshot.host or entry.service.port != snapshot.port
        )
        if entry is None:
            entry = _Entry(service=snapshot)
            self._entries[key] = entry
        else:
            entry.service = snapshot

        ttl = ptr.ttl
        if ttl is None:
            ttl = srv.ttl if srv.ttl is not None else (txt_rr.ttl if txt_rr is not None else DEFAULT_TTL)
        self._schedule_expiry(key, entry, ttl)

        if changed:
            logger.debug("Service up: %s at %s:%d", instance_fqdn, host, port)
            self.emit(UP_EVENT, snapshot)


def _instance_label(instance_fqdn: str, typed: str) -> str:
    """Brief: Derive the instance label from its full name.

    Inputs:
      - instance_fqdn: e.g. ``My Printer._ipp._tcp.local``.
      - typed: The browsed type name, e.g. ``_ipp._tcp.local``.

    Outputs:
      - str: ``My Printer``; falls back to the first label when the name does
        not end with the type.
    """

    suffix = "." + typed.lower()
    if instance_fqdn.lower().endswith(suffix) and len(instance_fqdn) > len(suffix):
        return instance_fqdn[: -len(suffix)]
    return instance_fqdn.split(".", 1)[0] or instance_fqdn


def _key(fqdn: str) -> str:
    return fqdn.rstrip(".").lower()
