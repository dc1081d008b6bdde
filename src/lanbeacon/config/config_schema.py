"""Typed option models for the coordinator, publish descriptors and browse selectors.

Brief:
  All public entrypoints accept either one of these pydantic models or a plain
  mapping. ``coerce_options`` validates and converts both, translating
  pydantic errors into ``ConfigurationError`` so that callers only ever see
  one exception type for bad input.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError, validator

from .. import txt as txt_codec
from ..errors import ConfigurationError
from ..records import DEFAULT_DOMAIN, DEFAULT_TTL

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_TXT_SCALARS = (str, int, float, bool)

# RFC 1035 wire limits; dnslib refuses to pack anything larger.
MAX_LABEL_BYTES = 63
MAX_NAME_BYTES = 253
MAX_TXT_ENTRY_BYTES = 255


def _check_label(value: str, what: str) -> str:
    size = len(value.encode("utf-8"))
    if size > MAX_LABEL_BYTES:
        raise ValueError(f"{what} is {size} bytes; a DNS label holds at most {MAX_LABEL_BYTES}")
    return value


def _check_dotted(value: str, what: str) -> str:
    """Brief: Validate every label of a dotted name and its total length.

    Inputs:
      - value: Dotted name without trailing dot.
      - what: Field description used in the error message.

    Outputs:
      - str: ``value`` unchanged.

    Raises:
      - ValueError for an empty label, a label over 63 bytes, or a name over
        253 bytes.
    """

    if len(value.encode("utf-8")) > MAX_NAME_BYTES:
        raise ValueError(f"{what} is longer than {MAX_NAME_BYTES} bytes")
    for label in value.split("."):
        if not label:
            raise ValueError(f"{what} {value!r} contains an empty label")
        _check_label(label, what)
    return value


def _normalize_domain_value(v: Any) -> Optional[str]:
    """Brief: Normalize a configured domain.

    Inputs:
      - v: Domain string (e.g. `local`, `.local.`), or None.

    Outputs:
      - Optional[str]: Domain with no leading/trailing dot, or None when empty.

    Example:
      - `.local.` -> `local`
    """

    if v is None:
        return None
    s = str(v).strip().strip(".")
    return s or None


def _normalize_token(v: Any) -> Any:
    if v is None:
        return None
    s = str(v).strip().lstrip("_")
    return s or None


class BonjourOptions(BaseModel):
    """Brief: Coordinator configuration.

    Inputs:
      - transport_mode: `udp4` (default) or `udp6`.
      - interface: Optional interface selector. For udp4 an IPv4 literal; when
        omitted, the first LAN IPv4 address is used.
      - reuse_address: Share UDP 5353 with other responders.
      - loopback: Receive our own multicast packets.
      - domain: Default domain for published and browsed services.
      - instance_id: Identifier embedded in TXT `id` for self-ignore; a random
        UUID when omitted.
      - jitter: Add 500-1000ms of random delay to expiry timers.

    Outputs:
      - BonjourOptions instance.
    """

    transport_mode: Literal["udp4", "udp6"] = "udp4"
    interface: Optional[str] = None
    reuse_address: bool = True
    loopback: bool = True
    domain: str = DEFAULT_DOMAIN
    instance_id: Optional[str] = None
    jitter: bool = True

    @validator("transport_mode", pre=True)
    def normalize_mode(cls, v):  # type: ignore[no-untyped-def]
        return str(v or "udp4").strip().lower()

    @validator("interface", "instance_id", pre=True)
    def empty_to_none(cls, v):  # type: ignore[no-untyped-def]
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @validator("instance_id")
    def check_instance_id(cls, v):  # type: ignore[no-untyped-def]
        if v is not None and len(f"id={v}".encode("utf-8")) > MAX_TXT_ENTRY_BYTES:
            raise ValueError(f"instance_id does not fit a {MAX_TXT_ENTRY_BYTES}-byte TXT entry")
        return v

    @validator("domain", pre=True)
    def normalize_domain(cls, v):  # type: ignore[no-untyped-def]
        return _check_dotted(_normalize_domain_value(v) or DEFAULT_DOMAIN, "domain")

    class Config:
        extra = "forbid"


class PublishOptions(BaseModel):
    """Brief: Description of one service to advertise.

    Inputs:
      - name: Instance label (required).
      - type: Service type token without leading underscore, e.g. `http`
        (required; leading underscores are tolerated and stripped).
      - port: TCP/UDP port 1-65535 (required).
      - protocol: `tcp` (default) or `udp`.
      - host: SRV target; defaults to `<hostname>.local`.
      - txt: Mapping of key -> str/int/float/bool.
      - subtypes: Advisory subtype labels (carried, not advertised).
      - domain: Defaults to the coordinator domain.
      - ttl: Record TTL in seconds (default 120).
      - advertise_ipv6: Also emit AAAA records.

    Outputs:
      - PublishOptions instance.
    """

    name: str
    type: str
    port: int = Field(..., ge=1, le=65535)
    protocol: Literal["tcp", "udp"] = "tcp"
    host: Optional[str] = None
    txt: Dict[str, Any] = Field(default_factory=dict)
    subtypes: List[str] = Field(default_factory=list)
    domain: Optional[str] = None
    ttl: int = Field(default=DEFAULT_TTL, ge=0)
    advertise_ipv6: bool = False

    @validator("name", pre=True)
    def require_name(cls, v):  # type: ignore[no-untyped-def]
        s = "" if v is None else str(v).strip()
        if not s:
            raise ValueError("Required name not given")
        return _check_label(s, "name")

    @validator("type", pre=True)
    def require_type(cls, v):  # type: ignore[no-untyped-def]
        s = _normalize_token(v)
        if not s:
            raise ValueError("Required type not given")
        return _check_label(f"_{s}", "type")[1:]

    @validator("protocol", pre=True)
    def normalize_protocol(cls, v):  # type: ignore[no-untyped-def]
        s = _normalize_token(v)
        return s.lower() if s else "tcp"

    @validator("host", pre=True)
    def normalize_host(cls, v):  # type: ignore[no-untyped-def]
        if v is None:
            return None
        s = str(v).strip().rstrip(".")
        return _check_dotted(s, "host") if s else None

    @validator("domain", pre=True)
    def normalize_domain(cls, v):  # type: ignore[no-untyped-def]
        s = _normalize_domain_value(v)
        return _check_dotted(s, "domain") if s else None

    @validator("txt", pre=True)
    def check_txt(cls, v):  # type: ignore[no-untyped-def]
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            raise ValueError("txt must be a mapping")
        for key, value in v.items():
            if not isinstance(value, _TXT_SCALARS):
                raise ValueError(f"txt[{key!r}] must be a str, number or bool")
            entry = txt_codec.encode({key: value})[0]
            if len(entry) > MAX_TXT_ENTRY_BYTES:
                raise ValueError(
                    f"txt[{key!r}] encodes to {len(entry)} bytes; "
                    f"a TXT entry holds at most {MAX_TXT_ENTRY_BYTES}"
                )
        return {str(k): val for k, val in v.items()}

    class Config:
        extra = "forbid"


class FindOptions(BaseModel):
    """Brief: Browse selector.

    Inputs:
      - type: Service type token (`http`); None browses service types
        (wildcard discovery).
      - protocol: `tcp` (default) or `udp`.
      - domain: Defaults to the coordinator domain.
      - subtypes: Advisory subtype filters (carried, not queried).

    Outputs:
      - FindOptions instance.
    """

    type: Optional[str] = None
    protocol: Literal["tcp", "udp"] = "tcp"
    domain: Optional[str] = None
    subtypes: List[str] = Field(default_factory=list)

    @validator("type", pre=True)
    def normalize_type(cls, v):  # type: ignore[no-untyped-def]
        return _normalize_token(v)

    @validator("protocol", pre=True)
    def normalize_protocol(cls, v):  # type: ignore[no-untyped-def]
        s = _normalize_token(v)
        return s.lower() if s else "tcp"

    @validator("domain", pre=True)
    def normalize_domain(cls, v):  # type: ignore[no-untyped-def]
        return _normalize_domain_value(v)

    class Config:
        extra = "forbid"


class AppConfig(BaseModel):
    """Brief: Root of the YAML configuration file read by the CLI.

    Inputs:
      - logging: Mapping passed to ``init_logging`` (level/stderr/file/syslog).
      - bonjour: BonjourOptions mapping.

    Outputs:
      - AppConfig instance.
    """

    logging: Dict[str, Any] = Field(default_factory=dict)
    bonjour: BonjourOptions = Field(default_factory=BonjourOptions)

    @validator("logging", pre=True)
    def logging_mapping(cls, v):  # type: ignore[no-untyped-def]
        return v or {}

    @validator("bonjour", pre=True)
    def bonjour_mapping(cls, v):  # type: ignore[no-untyped-def]
        return v or {}

    class Config:
        extra = "forbid"


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        parts.append(f"{loc or '<root>'}: {err.get('msg')}")
    return "; ".join(parts) or str(exc)


def coerce_options(
    model: Type[ModelT],
    value: Union[ModelT, Mapping[str, Any], None],
    **overrides: Any,
) -> ModelT:
    """Brief: Validate a mapping (or pass through a model) as ``model``.

    Inputs:
      - model: Target pydantic model class.
      - value: Instance of ``model``, a mapping of fields, or None (defaults).
      - **overrides: Keyword fields merged over ``value`` when it is a mapping.

    Outputs:
      - ``model`` instance.

    Raises:
      - ConfigurationError describing every invalid or missing field.

    Example:
      >>> coerce_options(FindOptions, {"type": "_http"}).type
      'http'
    """

    if isinstance(value, model) and not overrides:
        return value
    if isinstance(value, BaseModel):
        data = dict(vars(value))
    elif value is None:
        data = {}
    elif isinstance(value, Mapping):
        data = dict(value)
    else:
        raise ConfigurationError(
            f"{model.__name__} expects a mapping or {model.__name__}, got {type(value).__name__}"
        )
    data.update(overrides)
    try:
        return model(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid {model.__name__}: {_format_validation_error(exc)}") from exc
    except TypeError as exc:
        raise ConfigurationError(f"invalid {model.__name__}: {exc}") from exc
