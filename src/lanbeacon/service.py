"""Advertiser: publishes one DNS-SD service and answers queries for it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple, Union

from . import hostinfo
from .config.config_schema import PublishOptions, coerce_options
from .errors import TransportError
from .events import EventEmitter
from .packets import QueryPacket
from .records import AnyRecord, build_records, normalize_domain, same_name, split_records, type_fqdn
from .transports.base import QUERY_EVENT

if TYPE_CHECKING:  # pragma: nocover typing only
    from .bonjour import Bonjour

logger = logging.getLogger(__name__)

ERROR_EVENT = "error"
REANNOUNCE_DELAY = 1.0


@dataclass(frozen=True)
class ServiceDescriptor:
    """Brief: Resolved, immutable description of a published service.

    Inputs:
      - Fields mirror PublishOptions with every default filled in.

    Outputs:
      - ServiceDescriptor instance; ``type_fqdn`` and ``fqdn`` are derived.
    """

    name: str
    type: str
    port: int
    protocol: str = "tcp"
    host: str = ""
    txt: Mapping[str, Any] = field(default_factory=dict)
    subtypes: Tuple[str, ...] = ()
    domain: str = "local"
    ttl: int = 120
    advertise_ipv6: bool = False

    @property
    def type_fqdn(self) -> str:
        return type_fqdn(self.type, self.protocol, self.domain)

    @property
    def fqdn(self) -> str:
        return f"{self.name}.{self.type_fqdn}"

    @classmethod
    def from_options(cls, options: PublishOptions, default_domain: str) -> "ServiceDescriptor":
        return cls(
            name=options.name,
            type=options.type,
            port=int(options.port),
            protocol=options.protocol,
            host=options.host or hostinfo.local_hostname(),
            txt=dict(options.txt or {}),
            subtypes=tuple(options.subtypes or ()),
            domain=normalize_domain(options.domain or default_domain),
            ttl=int(options.ttl),
            advertise_ipv6=bool(options.advertise_ipv6),
        )


class Service(EventEmitter):
    """
    Brief: One published service instance.

    Inputs:
      - bonjour: Owning coordinator (provides transport, scheduler, lock,
        instance id and default domain).
      - options: PublishOptions or mapping; invalid input raises
        ConfigurationError here, never later.

    Outputs:
      - Service instance (inactive until ``start()``).

    Events:
      - ``error(exc)``: an announce, answer or goodbye could not be sent.

    Notes:
      - Any matching query is answered with the full record set, not only
        the records asked for; browsers expect PTR/SRV/TXT together.
    """

    def __init__(
        self,
        bonjour: "Bonjour",
        options: Union[PublishOptions, Mapping[str, Any]],
    ) -> None:
        super().__init__()
        opts = coerce_options(PublishOptions, options)
        self._bonjour = bonjour
        self.descriptor = ServiceDescriptor.from_options(opts, bonjour.domain)
        self.instance_id: str = bonjour.instance_id
        self.addresses: List[str] = []
        self._active = False
        self._reannounce = None

    # -- identity ---------------------------------------------------------

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def fqdn(self) -> str:
        return self.descriptor.fqdn

    @property
    def type_fqdn(self) -> str:
        return self.descriptor.type_fqdn

    @property
    def host(self) -> str:
        return self.descriptor.host

    @property
    def port(self) -> int:
        return self.descriptor.port

    @property
    def active(self) -> bool:
        return self._active

    published = active

    def records(self, ttl: Optional[int] = None) -> Tuple[AnyRecord, ...]:
        """Brief: Build the current record set.

        Inputs:
          - ttl: Override TTL (0 for the goodbye set); defaults to the
            configured TTL.

        Outputs:
          - Tuple of records (PTR, SRV, TXT, A..., AAAA...).
        """

        return build_records(
            self.descriptor,
            self.descriptor.ttl if ttl is None else ttl,
            self.addresses,
            self.instance_id,
        )

    # -- lifecycle --------------------------------------------------------

    def start(self) -> None:
        with self._bonjour.lock:
            if self._active:
                return
            self._active = True
            self.addresses = hostinfo.lan_addresses(include_ipv6=self.descriptor.advertise_ipv6)
            self._bonjour.transport.on(QUERY_EVENT, self._on_query)
            logger.info(
                "Publishing %s on %s:%d (addresses=%s ttl=%d)",
                self.fqdn,
                self.host,
                self.port,
                self.addresses,
                self.descriptor.ttl,
            )
            self._advertise(self.descriptor.ttl)
            self._reannounce = self._bonjour.scheduler.call_later(
                REANNOUNCE_DELAY, self._on_reannounce
            )

    def stop(self) -> None:
        with self._bonjour.lock:
            if not self._active:
                return
            try:
                if self._reannounce is not None:
                    self._reannounce.cancel()
                self._advertise(0)
            finally:
                self._bonjour.transport.off(QUERY_EVENT, self._on_query)
                self._reannounce = None
                self._active = False
            logger.info("Unpublished %s", self.fqdn)

    # -- internals --------------------------------------------------------

    def _on_reannounce(self) -> None:
        self._reannounce = None
        if self._active:
            self._advertise(self.descriptor.ttl)

    def _wanted(self, packet: QueryPacket) -> bool:
        d = self.descriptor
        owned: Dict[str, Tuple[str, ...]] = {
            "PTR": (d.type_fqdn,),
            "SRV": (d.fqdn,),
            "TXT": (d.fqdn,),
            "A": (d.host,),
            "AAAA": (d.host,),
        }
        for q in packet.questions or ():
            qtype = str(q.type).upper()
            if qtype == "ANY":
                names: Tuple[str, ...] = (d.type_fqdn, d.fqdn, d.host)
            else:
                names = owned.get(qtype, ())
            if any(same_name(q.name, n) for n in names):
                return True
        return False

    def _on_query(self, packet: QueryPacket) -> None:
        if not self._active:
            return
        if self._wanted(packet):
            logger.debug("Answering query for %s", self.fqdn)
            self._advertise(self.descriptor.ttl)

    def _advertise(self, ttl: int) -> None:
        answers, additionals = split_records(self.records(ttl))
        try:
            self._bonjour.transport.respond(answers, additionals)
        except (TransportError, OSError) as exc:
            logger.warning(
                "Failed to send %s for %s: %s",
                "goodbye" if ttl == 0 else "announcement",
                self.fqdn,
                exc,
            )
            self.emit(ERROR_EVENT, exc)
