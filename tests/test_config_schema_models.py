"""
Brief: Tests for lanbeacon.config.config_schema option models.

Inputs:
  - None

Outputs:
  - None
"""

import pytest

from lanbeacon.config import (
    AppConfig,
    BonjourOptions,
    FindOptions,
    PublishOptions,
    coerce_options,
)
from lanbeacon.errors import ConfigurationError


def test_bonjour_defaults():
    opts = BonjourOptions()
    assert opts.transport_mode == "udp4"
    assert opts.interface is None
    assert opts.reuse_address is True
    assert opts.loopback is True
    assert opts.domain == "local"
    assert opts.instance_id is None
    assert opts.jitter is True


def test_bonjour_normalization():
    opts = coerce_options(
        BonjourOptions,
        {"transport_mode": "UDP6", "domain": ".local.", "interface": " ", "instance_id": ""},
    )
    assert opts.transport_mode == "udp6"
    assert opts.domain == "local"
    assert opts.interface is None
    assert opts.instance_id is None


def test_publish_normalization():
    """
    Brief: Publish options strip underscores, default protocol and coerce txt keys.

    Inputs:
      - mapping with loose values

    Outputs:
      - None: Asserts normalized fields
    """
    opts = coerce_options(
        PublishOptions,
        {
            "name": " Printer ",
            "type": "_ipp",
            "port": "631",
            "protocol": "",
            "host": "box.local.",
            "txt": {"a": 1, "b": True},
            "domain": "local.",
        },
    )
    assert opts.name == "Printer"
    assert opts.type == "ipp"
    assert opts.port == 631
    assert opts.protocol == "tcp"
    assert opts.host == "box.local"
    assert opts.txt == {"a": 1, "b": True}
    assert opts.domain == "local"
    assert opts.ttl == 120


def test_find_options_wildcard_and_protocol():
    assert FindOptions().type is None
    opts = coerce_options(FindOptions, {"type": "_http", "protocol": "UDP"})
    assert opts.type == "http"
    assert opts.protocol == "udp"


def test_coerce_passthrough_and_overrides():
    opts = FindOptions(type="ipp")
    assert coerce_options(FindOptions, opts) is opts
    merged = coerce_options(FindOptions, opts, protocol="udp")
    assert merged.type == "ipp"
    assert merged.protocol == "udp"


@pytest.mark.parametrize("value", [42, "text", ["type", "ipp"]])
def test_coerce_rejects_non_mappings(value):
    with pytest.raises(ConfigurationError):
        coerce_options(FindOptions, value)


def test_configuration_error_names_fields():
    with pytest.raises(ConfigurationError) as ei:
        coerce_options(PublishOptions, {"name": "P", "type": "ipp", "port": -1, "ttl": -5})
    msg = str(ei.value)
    assert "port" in msg
    assert "ttl" in msg
    assert isinstance(ei.value, ValueError)


def test_app_config_sections():
    cfg = coerce_options(AppConfig, {"logging": None, "bonjour": {"jitter": False}})
    assert cfg.logging == {}
    assert cfg.bonjour.jitter is False
    with pytest.raises(ConfigurationError):
        coerce_options(AppConfig, {"listen": {}})


@pytest.mark.parametrize(
    "fields",
    [
        {"name": "x" * 64},
        {"name": "é" * 32},
        {"type": "t" * 63},
        {"host": "a..local"},
        {"host": "h" * 64 + ".local"},
        {"domain": "d" * 64},
        {"txt": {"blob": "y" * 300}},
        {"txt": {"k" * 250: "value"}},
    ],
)
def test_publish_rejects_what_dns_cannot_carry(fields):
    data = {"name": "P", "type": "ipp", "port": 1}
    data.update(fields)
    with pytest.raises(ConfigurationError):
        coerce_options(PublishOptions, data)


def test_publish_accepts_values_at_wire_limits():
    opts = coerce_options(
        PublishOptions,
        {"name": "x" * 63, "type": "t" * 62, "port": 1, "txt": {"k": "v" * 253}},
    )
    assert len(opts.name) == 63
    assert opts.type == "t" * 62


@pytest.mark.parametrize(
    "fields",
    [
        {"domain": "." + "d" * 64},
        {"domain": ".".join(c * 63 for c in "abcd")},
        {"instance_id": "i" * 253},
    ],
)
def test_bonjour_rejects_oversized_domain_or_id(fields):
    with pytest.raises(ConfigurationError):
        coerce_options(BonjourOptions, fields)
