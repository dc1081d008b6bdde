"""TXT record codec for DNS-SD key/value metadata.

Brief:
  DNS-SD carries service metadata as a list of ``key=value`` character
  strings inside a single TXT record. This module converts between a Python
  mapping and that list.

Inputs:
  - Mappings of string keys to scalar values (encode).
  - Raw TXT payloads as produced by a transport (decode).

Outputs:
  - ``List[bytes]`` (encode) / ``Dict[str, str]`` (decode).
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

TxtValue = Union[str, int, float, bool]


def _stringify(value: Any) -> str:
    """Brief: Render a scalar TXT value the way other DNS-SD stacks do.

    Inputs:
      - value: str/int/float/bool scalar.

    Outputs:
      - str: ``true``/``false`` for booleans, ``str(value)`` otherwise.
    """

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def encode(txt: Optional[Mapping[str, TxtValue]]) -> List[bytes]:
    """Brief: Encode a mapping into TXT character strings.

    Inputs:
      - txt: Mapping of key -> scalar (None treated as empty).

    Outputs:
      - List[bytes]: One ``key=value`` UTF-8 entry per key, in mapping order.

    Example:
      >>> encode({"path": "/", "secure": True})
      [b'path=/', b'secure=true']
    """

    out: List[bytes] = []
    for key, value in (txt or {}).items():
        out.append(f"{key}={_stringify(value)}".encode("utf-8"))
    return out


def _entries(data: Any) -> Iterable[bytes]:
    if data is None:
        return []
    if isinstance(data, (bytes, bytearray, memoryview)):
        return [bytes(data)]
    if isinstance(data, str):
        return [data.encode("utf-8")]
    if isinstance(data, (list, tuple)):
        return [
            bytes(item) if isinstance(item, (bytes, bytearray, memoryview))
            else str(item).encode("utf-8")
            for item in data
        ]
    return [str(data).encode("utf-8")]


def decode(data: Any) -> Dict[str, str]:
    """Brief: Decode TXT character strings into a mapping.

    Inputs:
      - data: list/tuple of bytes or str, a single bytes/str value, or None.

    Outputs:
      - Dict[str, str]: Keys lowercased; values preserved. Entries without
        ``=`` become keys with an empty value; empty entries are skipped.

    Notes:
      - Invalid UTF-8 is replaced rather than raised; peers sending garbage
        should not be able to break discovery.
    """

    out: Dict[str, str] = {}
    for raw in _entries(data):
        s = raw.decode("utf-8", errors="replace")
        if not s:
            continue
        key, sep, value = s.partition("=")
        if not sep:
            out[s.lower()] = ""
        else:
            out[key.lower()] = value
    return out
