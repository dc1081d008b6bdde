"""dnslib-backed conversion between lanbeacon packets and DNS wire bytes.

Brief:
  The multicast transport speaks standard DNS messages. This module keeps
  dnslib at the edge: the rest of the package only sees ``Question`` and the
  record dataclasses from ``lanbeacon.records``.

Inputs:
  - Questions / records (encode), raw datagrams (decode).

Outputs:
  - bytes (encode), QueryPacket / ResponsePacket / None (decode).
"""

from __future__ import annotations

import ipaddress
import logging
from typing import List, Optional, Sequence, Union

from dnslib import (
    AAAA,
    PTR,
    QTYPE,
    RR,
    SRV,
    TXT,
    A,
    DNSError,
    DNSHeader,
    DNSLabel,
    DNSLabelError,
    DNSQuestion,
    DNSRecord,
)

from .records import (
    AaaaRecord,
    AnyRecord,
    ARecord,
    PtrRecord,
    SrvData,
    SrvRecord,
    TxtRecord,
)
from .packets import QueryPacket, Question, ResponsePacket

logger = logging.getLogger(__name__)

CLASS_IN = 1

# What dnslib raises while building or packing a message: oversized labels or
# TXT strings, unknown record types, malformed address literals.
ENCODE_ERRORS = (DNSError, DNSLabelError, ValueError)


def to_label(name: str) -> DNSLabel:
    """Brief: Build a DNSLabel without IDNA/escape processing.

    Inputs:
      - name: Dotted name; instance labels may contain spaces or any UTF-8.

    Outputs:
      - DNSLabel with one raw UTF-8 label per dot-separated part.
    """

    parts = [p for p in str(name).rstrip(".").split(".") if p]
    return DNSLabel([p.encode("utf-8") for p in parts])


def from_label(label) -> str:
    """Brief: Convert a DNSLabel back to a dotted name with no trailing dot."""

    raw = getattr(label, "label", None)
    if raw is None:
        return str(label).rstrip(".")
    return ".".join(bytes(p).decode("utf-8", errors="replace") for p in raw)


def _rr(record: AnyRecord) -> RR:
    kind = record.kind
    if kind == "PTR":
        rdata = PTR(to_label(record.data))
    elif kind == "SRV":
        srv = record.data
        rdata = SRV(
            priority=int(srv.priority),
            weight=int(srv.weight),
            port=int(srv.port),
            target=to_label(srv.target),
        )
    elif kind == "TXT":
        rdata = TXT(list(record.data))
    elif kind == "A":
        rdata = A(str(record.data))
    elif kind == "AAAA":
        rdata = AAAA(tuple(ipaddress.IPv6Address(str(record.data)).packed))
    else:  # pragma: nocover closed record set
        raise ValueError(f"unsupported record kind: {kind!r}")
    return RR(
        rname=to_label(record.name),
        rtype=getattr(QTYPE, kind),
        rclass=CLASS_IN,
        ttl=int(record.ttl),
        rdata=rdata,
    )


def encode_query(questions: Sequence[Question]) -> bytes:
    """Brief: Pack questions into an mDNS query (id 0, no recursion).

    Inputs:
      - questions: Sequence of Question.

    Outputs:
      - bytes: Wire-format DNS query.
    """

    msg = DNSRecord(DNSHeader(id=0, bitmap=0))
    for q in questions:
        msg.add_question(DNSQuestion(to_label(q.name), getattr(QTYPE, q.type), CLASS_IN))
    return msg.pack()


def encode_response(
    answers: Sequence[AnyRecord],
    additionals: Sequence[AnyRecord] = (),
) -> bytes:
    """Brief: Pack records into an authoritative mDNS response.

    Inputs:
      - answers: Records for the answer section.
      - additionals: Records for the additional section.

    Outputs:
      - bytes: Wire-format DNS response (qr=1, aa=1, id 0).
    """

    msg = DNSRecord(DNSHeader(id=0, bitmap=0, qr=1, aa=1))
    for rr in answers:
        msg.add_answer(_rr(rr))
    for rr in additionals:
        msg.add_ar(_rr(rr))
    return msg.pack()


def from_rr(rr: RR) -> Optional[AnyRecord]:
    """Brief: Convert a dnslib RR into a record dataclass.

    Inputs:
      - rr: Parsed dnslib RR.

    Outputs:
      - Record instance, or None for record types outside PTR/SRV/TXT/A/AAAA.
    """

    kind = QTYPE.get(rr.rtype)
    name = from_label(rr.rname)
    ttl = int(rr.ttl)
    rdata = rr.rdata
    if kind == "PTR":
        return PtrRecord(name=name, ttl=ttl, data=from_label(rdata.label))
    if kind == "SRV":
        return SrvRecord(
            name=name,
            ttl=ttl,
            data=SrvData(
                port=int(rdata.port),
                target=from_label(rdata.target),
                priority=int(rdata.priority),
                weight=int(rdata.weight),
            ),
        )
    if kind == "TXT":
        return TxtRecord(name=name, ttl=ttl, data=tuple(bytes(d) for d in rdata.data))
    if kind == "A":
        return ARecord(name=name, ttl=ttl, data=str(rdata))
    if kind == "AAAA":
        return AaaaRecord(
            name=name, ttl=ttl, data=str(ipaddress.IPv6Address(bytes(rdata.data)))
        )
    return None


def _records(rrs) -> List[AnyRecord]:
    out: List[AnyRecord] = []
    for rr in rrs or []:
        try:
            rec = from_rr(rr)
        except Exception:
            logger.debug("Skipping undecodable record %r", rr, exc_info=True)
            continue
        if rec is not None:
            out.append(rec)
    return out


def decode_packet(data: bytes) -> Optional[Union[QueryPacket, ResponsePacket]]:
    """Brief: Decode a datagram into a QueryPacket or ResponsePacket.

    Inputs:
      - data: Raw datagram bytes.

    Outputs:
      - QueryPacket when QR=0, ResponsePacket when QR=1, or None when the
        datagram is not a parseable DNS message.

    Notes:
      - Questions of unknown type are kept with the type rendered as text
        by dnslib so that listeners can simply ignore them.
    """

    try:
        msg = DNSRecord.parse(data)
    except Exception as exc:
        logger.debug("Dropping undecodable datagram (%d bytes): %s", len(data or b""), exc)
        return None

    if not msg.header.qr:
        questions = tuple(
            Question(name=from_label(q.qname), type=str(QTYPE.get(q.qtype)))
            for q in msg.questions
        )
        return QueryPacket(questions=questions)

    return ResponsePacket(
        answers=tuple(_records(msg.rr)),
        additionals=tuple(_records(msg.ar)),
    )
