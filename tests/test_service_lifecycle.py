"""
Brief: Tests for lanbeacon.service.Service announce/answer/goodbye behaviour.

Inputs:
  - None

Outputs:
  - None
"""

import pytest

from lanbeacon import Bonjour, ConfigurationError
from lanbeacon.packets import Question
from lanbeacon.service import ERROR_EVENT, Service, ServiceDescriptor
from lanbeacon.transports import LocalTransport


@pytest.fixture
def bonjour(scheduler, fixed_addresses):
    """
    Brief: Coordinator on an in-process transport with a manual clock.

    Inputs:
      - scheduler: ManualScheduler fixture
      - fixed_addresses: pins advertised addresses

    Outputs:
      - Bonjour
    """
    b = Bonjour(
        {"instance_id": "me", "jitter": False},
        transport=LocalTransport(),
        scheduler=scheduler,
    )
    yield b
    b.destroy()


def _printer(**kw):
    opts = {"name": "Printer", "type": "ipp", "port": 631, "txt": {"ver": "1"}}
    opts.update(kw)
    return opts


def test_publish_announces_full_record_set(bonjour):
    """
    Brief: publish() sends PTR/SRV/TXT answers with A glue at the configured TTL.

    Inputs:
      - bonjour fixture

    Outputs:
      - None: Asserts first response contents
    """
    svc = bonjour.publish(_printer())
    assert svc.active and svc.published
    assert svc.fqdn == "Printer._ipp._tcp.local"
    assert svc.host == "testhost.local"
    sent = bonjour.transport.sent_responses
    assert len(sent) == 1
    resp = sent[0]
    assert [r.kind for r in resp.answers] == ["PTR", "SRV", "TXT"]
    assert [r.data for r in resp.additionals] == ["192.168.1.10"]
    assert all(r.ttl == 120 for r in resp.records())
    assert resp.answers[2].data[0] == b"id=me"


def test_reannounce_after_one_second(bonjour, scheduler):
    bonjour.publish(_printer())
    scheduler.advance(0.99)
    assert len(bonjour.transport.sent_responses) == 1
    scheduler.advance(0.02)
    assert len(bonjour.transport.sent_responses) == 2
    scheduler.advance(60)
    assert len(bonjour.transport.sent_responses) == 2


@pytest.mark.parametrize(
    "question",
    [
        Question(name="_ipp._tcp.local", type="PTR"),
        Question(name="_IPP._TCP.LOCAL", type="PTR"),
        Question(name="Printer._ipp._tcp.local", type="SRV"),
        Question(name="Printer._ipp._tcp.local", type="TXT"),
        Question(name="testhost.local", type="A"),
        Question(name="testhost.local", type="AAAA"),
        Question(name="Printer._ipp._tcp.local", type="ANY"),
    ],
)
def test_matching_query_is_answered(bonjour, question):
    bonjour.publish(_printer())
    bonjour.transport.query([question])
    assert len(bonjour.transport.sent_responses) == 2
    assert bonjour.transport.sent_responses[-1].answers[0].kind == "PTR"


@pytest.mark.parametrize(
    "question",
    [
        Question(name="_http._tcp.local", type="PTR"),
        Question(name="_ipp._tcp.local", type="SRV"),
        Question(name="Other._ipp._tcp.local", type="TXT"),
        Question(name="_services._dns-sd._udp.local", type="PTR"),
    ],
)
def test_unrelated_query_is_ignored(bonjour, question):
    bonjour.publish(_printer())
    bonjour.transport.query([question])
    assert len(bonjour.transport.sent_responses) == 1


def test_stop_sends_goodbye_and_stops_answering(bonjour, scheduler):
    """
    Brief: stop() sends TTL-0 records, cancels the re-announce and unsubscribes.

    Inputs:
      - bonjour, scheduler fixtures

    Outputs:
      - None: Asserts goodbye packet and silence afterwards
    """
    svc = bonjour.publish(_printer())
    svc.stop()
    sent = bonjour.transport.sent_responses
    assert len(sent) == 2
    assert all(r.ttl == 0 for r in sent[1].records())
    assert not svc.active

    scheduler.advance(5)
    bonjour.transport.query([Question(name="_ipp._tcp.local", type="PTR")])
    assert len(sent) == 2

    svc.stop()
    assert len(sent) == 2


def test_restart_after_stop(bonjour):
    svc = bonjour.publish(_printer())
    svc.stop()
    svc.start()
    svc.start()
    assert svc.active
    assert len(bonjour.transport.sent_responses) == 3


def test_second_start_schedules_no_extra_reannounce(bonjour, scheduler):
    svc = bonjour.publish(_printer())
    svc.start()
    scheduler.advance(2)
    assert len(bonjour.transport.sent_responses) == 2
    assert scheduler.pending() == []


def test_txt_entry_at_limit_is_accepted(bonjour):
    svc = bonjour.publish(_printer(txt={"k": "v" * 253}))
    entry = bonjour.transport.sent_responses[0].answers[2].data[1]
    assert len(entry) == 255
    assert svc.active


def test_send_failure_emits_error_and_stop_still_completes(bonjour):
    svc = bonjour.publish(_printer())
    errors = []
    svc.on(ERROR_EVENT, errors.append)
    bonjour.transport.closed = True
    svc.stop()
    assert not svc.active
    assert len(errors) == 1
    assert bonjour.transport.listener_count("query") == 0


def test_ipv6_glue_when_requested(bonjour):
    bonjour.publish(_printer(advertise_ipv6=True))
    resp = bonjour.transport.sent_responses[0]
    assert [(r.kind, r.data) for r in resp.additionals] == [
        ("A", "192.168.1.10"),
        ("AAAA", "fd00::10"),
    ]


def test_records_override_ttl(bonjour):
    svc = Service(bonjour, _printer(host="box.local", ttl=30))
    assert svc.active is False
    assert {r.ttl for r in svc.records()} == {30}
    assert {r.ttl for r in svc.records(0)} == {0}
    assert svc.records()[1].data.target == "box.local"


@pytest.mark.parametrize(
    "bad",
    [
        {"type": "ipp", "port": 631},
        {"name": "", "type": "ipp", "port": 631},
        {"name": "P", "port": 631},
        {"name": "P", "type": "ipp"},
        {"name": "P", "type": "ipp", "port": 0},
        {"name": "P", "type": "ipp", "port": 70000},
        {"name": "P", "type": "ipp", "port": 1, "protocol": "sctp"},
        {"name": "P", "type": "ipp", "port": 1, "txt": {"k": [1, 2]}},
        {"name": "P", "type": "ipp", "port": 1, "bogus": True},
        {"name": "x" * 70, "type": "ipp", "port": 631},
        {"name": "P", "type": "ipp", "port": 1, "host": "h" * 64 + ".local"},
        {"name": "P", "type": "ipp", "port": 1, "txt": {"blob": "y" * 300}},
    ],
)
def test_invalid_descriptor_raises_configuration_error(bonjour, bad):
    with pytest.raises(ConfigurationError):
        bonjour.publish(bad)
    assert bonjour.transport.sent_responses == []


def test_descriptor_defaults(fixed_addresses):
    from lanbeacon.config import PublishOptions

    d = ServiceDescriptor.from_options(
        PublishOptions(name="N", type="_http", port=80), "example.local."
    )
    assert d.type == "http"
    assert d.protocol == "tcp"
    assert d.domain == "example.local"
    assert d.host == "testhost.local"
    assert d.fqdn == "N._http._tcp.example.local"
    assert d.ttl == 120
