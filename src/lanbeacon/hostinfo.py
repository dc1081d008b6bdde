"""Host environment helpers: local hostname and LAN address discovery.

Brief:
  Thin wrappers over ``socket.gethostname()`` and ``psutil.net_if_addrs()``
  used to fill the default SRV target and the A/AAAA glue a service
  advertises.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
from typing import List, Optional

import psutil

logger = logging.getLogger(__name__)

LINK_LOCAL_V4 = ipaddress.ip_network("169.254.0.0/16")


def local_hostname() -> str:
    """Brief: Return this machine's mDNS hostname.

    Inputs:
      - None

    Outputs:
      - str: ``<hostname>.local`` (``host.local`` when the hostname is empty);
        a hostname already ending in ``.local`` is returned unchanged.
    """

    name = (socket.gethostname() or "").strip().rstrip(".") or "host"
    return name if name.endswith(".local") else f"{name}.local"


def _interface_addresses(family: int) -> List[str]:
    try:
        table = psutil.net_if_addrs()
    except Exception as exc:  # pragma: no cover - platform specific
        logger.debug("Interface enumeration failed: %s", exc)
        return []

    out: List[str] = []
    for _ifname, addrs in table.items():
        for snic in addrs or []:
            if snic.family != family or not snic.address:
                continue
            out.append(str(snic.address))
    return out


def _usable_ipv4(address: str) -> bool:
    try:
        ip = ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return not ip.is_loopback and ip not in LINK_LOCAL_V4 and not ip.is_unspecified


def _usable_ipv6(address: str) -> bool:
    try:
        ip = ipaddress.IPv6Address(address.split("%", 1)[0])
    except ValueError:
        return False
    return not (ip.is_loopback or ip.is_link_local or ip.is_unspecified)


def pick_lan_ipv4() -> Optional[str]:
    """Brief: Pick the first non-internal IPv4 address of this host.

    Inputs:
      - None

    Outputs:
      - Optional[str]: First address that is neither loopback nor
        link-local (169.254.0.0/16), or None.
    """

    for address in _interface_addresses(socket.AF_INET):
        if _usable_ipv4(address):
            return address
    return None


def lan_addresses(include_ipv6: bool = False) -> List[str]:
    """Brief: List the addresses a published service should advertise.

    Inputs:
      - include_ipv6: When True, also return global/ULA IPv6 addresses.

    Outputs:
      - List[str]: Deduplicated IPv4 addresses (same filter as
        ``pick_lan_ipv4``, so its result comes first) followed by IPv6
        addresses when requested.
    """

    out: List[str] = []
    for address in _interface_addresses(socket.AF_INET):
        if _usable_ipv4(address) and address not in out:
            out.append(address)
    if include_ipv6:
        for address in _interface_addresses(socket.AF_INET6):
            plain = address.split("%", 1)[0]
            if _usable_ipv6(plain) and plain not in out:
                out.append(plain)
    return out
