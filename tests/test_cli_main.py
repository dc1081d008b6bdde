"""
Brief: Tests for the lanbeacon.main CLI entry point.

Inputs:
  - None

Outputs:
  - None
"""

import threading

import pytest

import lanbeacon.main as main_mod
from lanbeacon import Bonjour
from lanbeacon.errors import TransportError
from lanbeacon.transports import LocalTransport


@pytest.fixture
def cli(monkeypatch, scheduler, fixed_addresses):
    """
    Brief: Route the CLI's coordinator onto an in-process transport.

    Inputs:
      - monkeypatch, scheduler, fixed_addresses fixtures

    Outputs:
      - dict: {"link": LocalTransport, "logging": list of init_logging configs}
    """
    state = {"link": LocalTransport(), "logging": []}

    def _bonjour(options):
        return Bonjour(options, transport=state["link"], scheduler=scheduler)

    monkeypatch.setattr(main_mod, "Bonjour", _bonjour)
    monkeypatch.setattr(main_mod, "init_logging", lambda cfg: state["logging"].append(cfg))
    return state


def _stopped():
    ev = threading.Event()
    ev.set()
    return ev


def test_publish_announces_and_says_goodbye(cli):
    """
    Brief: publish runs until stopped, then sends a goodbye and closes the transport.

    Inputs:
      - cli fixture

    Outputs:
      - None: Asserts exit code and traffic
    """
    rc = main_mod.main(
        ["publish", "--name", "Printer", "--type", "ipp", "--port", "631", "--txt", "ver=1", "--ttl", "60"],
        stop_event=_stopped(),
    )
    assert rc == 0
    sent = cli["link"].sent_responses
    assert len(sent) == 2
    assert {r.ttl for r in sent[0].records()} == {60}
    assert {r.ttl for r in sent[1].records()} == {0}
    assert sent[0].answers[2].data[1] == b"ver=1"
    assert cli["link"].closed


def test_browse_queries_type(cli):
    rc = main_mod.main(["browse", "--type", "ipp", "--protocol", "udp"], stop_event=_stopped())
    assert rc == 0
    assert cli["link"].sent_queries[0].questions[0].name == "_ipp._udp.local"


def test_browse_without_type_uses_wildcard(cli):
    assert main_mod.main(["browse", "--duration", "0.01"]) == 0
    assert cli["link"].sent_queries[0].questions[0].name == "_services._dns-sd._udp.local"


def test_bad_txt_entry_returns_one(cli):
    rc = main_mod.main(
        ["publish", "--name", "P", "--type", "ipp", "--port", "1", "--txt", "novalue"],
        stop_event=_stopped(),
    )
    assert rc == 1
    assert cli["link"].sent_responses == []


def test_invalid_port_returns_one(cli):
    rc = main_mod.main(
        ["publish", "--name", "P", "--type", "ipp", "--port", "0"],
        stop_event=_stopped(),
    )
    assert rc == 1


def test_config_file_and_log_level_override(cli, tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("logging:\n  level: info\nbonjour:\n  jitter: false\n")
    rc = main_mod.main(
        ["--config", str(path), "--log-level", "debug", "browse", "--type", "http"],
        stop_event=_stopped(),
    )
    assert rc == 0
    assert cli["logging"] == [{"level": "debug"}]


def test_missing_config_returns_one(cli, tmp_path, capsys):
    rc = main_mod.main(["--config", str(tmp_path / "nope.yaml"), "browse"])
    assert rc == 1
    assert "cannot read config" in capsys.readouterr().out


def test_transport_failure_returns_one(monkeypatch):
    def _fail(options):
        raise TransportError("bind failed")

    monkeypatch.setattr(main_mod, "Bonjour", _fail)
    monkeypatch.setattr(main_mod, "init_logging", lambda cfg: None)
    assert main_mod.main(["browse"], stop_event=_stopped()) == 1


def test_subcommand_required():
    with pytest.raises(SystemExit):
        main_mod.build_parser().parse_args([])
