"""DNS-SD resource records and the record-set builder.

Brief:
  Records are small frozen dataclasses, one class per record kind, so that
  construction and matching stay exhaustive. Names never carry a trailing
  dot; wire codecs add/strip it at the edge.

Inputs:
  - A publish descriptor (``PublishOptions``-like object), a TTL, observed
    addresses, and the publishing coordinator's instance id.

Outputs:
  - Ordered tuples of ``ResourceRecord`` instances.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import ClassVar, Iterable, List, Sequence, Tuple, Union

from . import txt as txt_codec

DEFAULT_DOMAIN = "local"
DEFAULT_TTL = 120

# Meta-name answered with one PTR per advertised service type (RFC 6763 9).
SERVICES_META_LABEL = "_services._dns-sd._udp"


def normalize_domain(domain: str | None) -> str:
    """Brief: Strip surrounding whitespace and trailing dots from a domain.

    Inputs:
      - domain: Domain such as ``local``, ``local.`` or None.

    Outputs:
      - str: Domain without trailing dot (``local`` when empty).
    """

    d = str(domain or "").strip().rstrip(".")
    return d or DEFAULT_DOMAIN


def type_fqdn(service_type: str, protocol: str = "tcp", domain: str = DEFAULT_DOMAIN) -> str:
    """Brief: Build the DNS-SD service type name.

    Inputs:
      - service_type: Bare type token (``http``).
      - protocol: ``tcp`` or ``udp``.
      - domain: Domain, trailing dots allowed.

    Outputs:
      - str: ``_<type>._<protocol>.<domain>``.

    Example:
      >>> type_fqdn("ipp", "tcp", "local.")
      '_ipp._tcp.local'
    """

    return f"_{service_type}._{protocol}.{normalize_domain(domain)}"


def services_meta_name(domain: str = DEFAULT_DOMAIN) -> str:
    return f"{SERVICES_META_LABEL}.{normalize_domain(domain)}"


def same_name(a: str, b: str) -> bool:
    """Brief: Compare two DNS names case-insensitively, ignoring a trailing dot."""

    return str(a).rstrip(".").lower() == str(b).rstrip(".").lower()


@dataclass(frozen=True)
class SrvData:
    port: int
    target: str
    priority: int = 0
    weight: int = 0


@dataclass(frozen=True)
class ResourceRecord:
    """Brief: Common fields shared by every record kind.

    Inputs:
      - name: Owner name, no trailing dot.
      - ttl: TTL in seconds; 0 marks a goodbye.

    Outputs:
      - ResourceRecord instance (use a concrete subclass).
    """

    name: str
    ttl: int

    kind: ClassVar[str] = ""


@dataclass(frozen=True)
class PtrRecord(ResourceRecord):
    data: str = ""

    kind: ClassVar[str] = "PTR"


@dataclass(frozen=True)
class SrvRecord(ResourceRecord):
    data: SrvData = SrvData(port=0, target="")

    kind: ClassVar[str] = "SRV"


@dataclass(frozen=True)
class TxtRecord(ResourceRecord):
    data: Tuple[bytes, ...] = ()

    kind: ClassVar[str] = "TXT"


@dataclass(frozen=True)
class ARecord(ResourceRecord):
    data: str = ""

    kind: ClassVar[str] = "A"


@dataclass(frozen=True)
class AaaaRecord(ResourceRecord):
    data: str = ""

    kind: ClassVar[str] = "AAAA"


AnyRecord = Union[PtrRecord, SrvRecord, TxtRecord, ARecord, AaaaRecord]

RECORD_KINDS = ("PTR", "SRV", "TXT", "A", "AAAA")


def _ip_version(address: str) -> int:
    try:
        return ipaddress.ip_address(str(address).split("%", 1)[0]).version
    except ValueError:
        return 0


def build_records(
    descriptor,
    ttl: int,
    addresses: Iterable[str],
    instance_id: str,
) -> Tuple[AnyRecord, ...]:
    """Brief: Build the canonical record set advertised for one service.

    Inputs:
      - descriptor: Object exposing ``name``, ``type``, ``protocol``, ``port``,
        ``host``, ``txt``, ``domain`` and ``advertise_ipv6``.
      - ttl: TTL applied to every record (0 builds the goodbye set).
      - addresses: IP literals bound to ``descriptor.host``.
      - instance_id: Publisher id injected into TXT as ``id``.

    Outputs:
      - Tuple of records in the order PTR, SRV, TXT, A..., AAAA...

    Notes:
      - ``id`` is always the first TXT entry; an operator-supplied ``id``
        key (any case) is dropped so the instance id always wins.
      - AAAA records are only emitted when ``advertise_ipv6`` is set.
      - Invalid address strings are skipped.
    """

    ttl = int(ttl)
    service_type = type_fqdn(descriptor.type, descriptor.protocol, descriptor.domain)
    fqdn = f"{descriptor.name}.{service_type}"
    host = descriptor.host

    txt_values = {"id": instance_id}
    for key, value in (descriptor.txt or {}).items():
        if str(key).lower() == "id":
            continue
        txt_values[key] = value

    records: List[AnyRecord] = [
        PtrRecord(name=service_type, ttl=ttl, data=fqdn),
        SrvRecord(
            name=fqdn,
            ttl=ttl,
            data=SrvData(port=int(descriptor.port), target=host, priority=0, weight=0),
        ),
        TxtRecord(name=fqdn, ttl=ttl, data=tuple(txt_codec.encode(txt_values))),
    ]

    addrs = list(addresses or [])
    for address in addrs:
        if _ip_version(address) == 4:
            records.append(ARecord(name=host, ttl=ttl, data=address))
    if getattr(descriptor, "advertise_ipv6", False):
        for address in addrs:
            if _ip_version(address) == 6:
                records.append(AaaaRecord(name=host, ttl=ttl, data=address))

    return tuple(records)


def split_records(
    records: Sequence[AnyRecord],
) -> Tuple[List[AnyRecord], List[AnyRecord]]:
    """Brief: Split a record set into (answers, additionals).

    Inputs:
      - records: Sequence from ``build_records``.

    Outputs:
      - (answers, additionals): PTR/SRV/TXT in answers, address glue in
        additionals.
    """

    answers: List[AnyRecord] = []
    additionals: List[AnyRecord] = []
    for rr in records:
        if rr.kind in ("A", "AAAA"):
            additionals.append(rr)
        else:
            answers.append(rr)
    return answers, additionals
