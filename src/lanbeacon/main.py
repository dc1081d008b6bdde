from __future__ import annotations

import argparse
import logging
import threading
from typing import Dict, List, Optional

from .bonjour import Bonjour
from .browser import DOWN_EVENT, ServiceInstance
from .config.config_parser import load_config
from .config.logging_config import init_logging
from .errors import ConfigurationError, LanBeaconError


def _parse_txt(items: List[str]) -> Dict[str, str]:
    """Brief: Parse repeated ``--txt KEY=VALUE`` options.

    Inputs:
      - items: List of ``KEY=VALUE`` strings.

    Outputs:
      - dict: Parsed mapping.

    Raises:
      - ConfigurationError for entries without ``=``.
    """

    out: Dict[str, str] = {}
    for item in items or []:
        if "=" not in item:
            raise ConfigurationError(f"Invalid --txt entry {item!r}, expected KEY=VALUE")
        key, value = item.split("=", 1)
        out[key] = value
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lanbeacon",
        description="Publish and browse DNS-SD services over multicast DNS",
    )
    parser.add_argument("--config", default=None, help="Path to YAML config")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override logging.level from the config (debug, info, warn, error)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    pub = sub.add_parser("publish", help="Advertise a service until interrupted")
    pub.add_argument("--name", required=True, help="Instance name")
    pub.add_argument("--type", required=True, help="Service type without underscore, e.g. http")
    pub.add_argument("--port", required=True, type=int, help="Service port")
    pub.add_argument("--protocol", default="tcp", choices=["tcp", "udp"])
    pub.add_argument("--host", default=None, help="SRV target (default <hostname>.local)")
    pub.add_argument("--ttl", default=None, type=int, help="Record TTL in seconds")
    pub.add_argument(
        "--txt",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="TXT entry (repeatable)",
    )
    pub.add_argument("--ipv6", action="store_true", help="Also advertise AAAA records")
    pub.add_argument(
        "--duration",
        type=float,
        default=0,
        help="Seconds to stay published (0 runs until Ctrl+C)",
    )

    br = sub.add_parser("browse", help="Log services appearing and disappearing")
    br.add_argument("--type", default=None, help="Service type; omit to discover types")
    br.add_argument("--protocol", default="tcp", choices=["tcp", "udp"])
    br.add_argument(
        "--duration",
        type=float,
        default=0,
        help="Seconds to browse (0 runs until Ctrl+C)",
    )
    return parser


def _wait(duration: float, stop_event: threading.Event) -> None:
    try:
        if duration and duration > 0:
            stop_event.wait(duration)
        else:
            while not stop_event.wait(1.0):
                pass
    except KeyboardInterrupt:
        pass


def _run_publish(bonjour: Bonjour, args, stop_event: threading.Event) -> int:
    logger = logging.getLogger("lanbeacon.main")
    opts = {
        "name": args.name,
        "type": args.type,
        "port": args.port,
        "protocol": args.protocol,
        "host": args.host,
        "txt": _parse_txt(args.txt),
        "advertise_ipv6": bool(args.ipv6),
    }
    if args.ttl is not None:
        opts["ttl"] = args.ttl
    service = bonjour.publish(opts)
    service.on("error", lambda exc: logger.error("Advertisement error: %s", exc))
    logger.info("Published %s on port %d", service.fqdn, service.port)
    try:
        _wait(args.duration, stop_event)
    finally:
        service.stop()
    return 0


def _run_browse(bonjour: Bonjour, args, stop_event: threading.Event) -> int:
    logger = logging.getLogger("lanbeacon.main")

    def _up(svc: ServiceInstance) -> None:
        logger.info(
            "UP %s host=%s port=%d addresses=%s txt=%s",
            svc.fqdn,
            svc.host,
            svc.port,
            list(svc.addresses),
            dict(svc.txt),
        )

    def _down(svc: ServiceInstance) -> None:
        logger.info("DOWN %s", svc.fqdn)

    browser = bonjour.find({"type": args.type, "protocol": args.protocol}, _up)
    browser.on(DOWN_EVENT, _down)
    try:
        _wait(args.duration, stop_event)
    finally:
        browser.stop()
    return 0


def main(argv: Optional[List[str]] = None, stop_event: Optional[threading.Event] = None) -> int:
    """
    Main entry point for the lanbeacon CLI.
    Parses arguments, loads configuration, initializes logging, and runs the
    selected command until its duration elapses or it is interrupted.

    Args:
        argv: Command-line arguments.
        stop_event: Optional event that ends the run early (used by tests).

    Returns:
        An exit code: 0 on success, 1 on configuration or transport errors.

    Example use:
        CLI:
            lanbeacon publish --name "Printer" --type ipp --port 631 --txt ver=1
            lanbeacon --config lanbeacon.yaml browse --type ipp --duration 10
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except ConfigurationError as exc:
        print(str(exc))
        return 1

    log_cfg = dict(cfg.logging)
    if args.log_level:
        log_cfg["level"] = args.log_level
    init_logging(log_cfg)
    logger = logging.getLogger("lanbeacon.main")
    if args.config:
        logger.info("Loaded config from %s", args.config)

    stop_event = stop_event or threading.Event()
    try:
        bonjour = Bonjour(cfg.bonjour)
    except LanBeaconError as exc:
        logger.error("Cannot start mDNS transport: %s", exc)
        return 1

    try:
        if args.command == "publish":
            return _run_publish(bonjour, args, stop_event)
        return _run_browse(bonjour, args, stop_event)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        bonjour.destroy()


if __name__ == "__main__":  # pragma: nocover manual execution
    raise SystemExit(main())
