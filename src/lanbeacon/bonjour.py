"""Coordinator owning the shared transport, instance id and default domain."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, List, Mapping, Optional, Union

from . import hostinfo
from .browser import UP_EVENT, Browser, ServiceInstance
from .config.config_schema import BonjourOptions, FindOptions, PublishOptions, coerce_options
from .scheduler import ThreadingScheduler
from .service import Service
from .transports.base import Transport
from .transports.multicast import MulticastTransport

logger = logging.getLogger(__name__)


class Bonjour:
    """
    Brief: Entry point for publishing and browsing DNS-SD services.

    Inputs:
      - options: BonjourOptions or mapping (see BonjourOptions for fields).
      - transport: Optional pre-built transport; by default a
        MulticastTransport bound per ``options``. Several coordinators may
        share one transport.
      - scheduler: Optional object exposing ``call_later(delay, cb)``;
        defaults to a ThreadingScheduler serialized on this coordinator's
        lock.

    Outputs:
      - Bonjour instance.

    Example use:
        >>> bonjour = Bonjour()  # doctest: +SKIP
        >>> svc = bonjour.publish({"name": "Printer", "type": "ipp", "port": 631})  # doctest: +SKIP
        >>> browser = bonjour.find({"type": "ipp"}, lambda s: print("up", s.fqdn))  # doctest: +SKIP
        >>> svc.stop(); bonjour.destroy()  # doctest: +SKIP
    """

    def __init__(
        self,
        options: Union[BonjourOptions, Mapping[str, Any], None] = None,
        *,
        transport: Optional[Transport] = None,
        scheduler=None,
    ) -> None:
        self.options = coerce_options(BonjourOptions, options)
        self.lock = threading.RLock()
        self.scheduler = scheduler if scheduler is not None else ThreadingScheduler(self.lock)
        self.domain: str = self.options.domain
        self.instance_id: str = self.options.instance_id or str(uuid.uuid4())
        self.jitter: bool = bool(self.options.jitter)
        self._services: List[Service] = []
        self._browsers: List[Browser] = []
        self._destroyed = False

        if transport is None:
            interface = self.options.interface
            if interface is None and self.options.transport_mode == "udp4":
                interface = hostinfo.pick_lan_ipv4()
            transport = MulticastTransport(
                self.options.transport_mode,
                interface=interface,
                reuse_address=self.options.reuse_address,
                loopback=self.options.loopback,
                lock=self.lock,
            )
        self.transport: Transport = transport
        logger.debug(
            "Bonjour coordinator ready: domain=%s instance_id=%s jitter=%s",
            self.domain,
            self.instance_id,
            self.jitter,
        )

    def publish(self, options: Union[PublishOptions, Mapping[str, Any]]) -> Service:
        """Brief: Create and start advertising a service.

        Inputs:
          - options: PublishOptions or mapping.

        Outputs:
          - Service (already started).

        Raises:
          - ConfigurationError for a missing/invalid name, type or port.
        """

        service = Service(self, options)
        self._services = [s for s in self._services if s.active]
        self._services.append(service)
        service.start()
        return service

    def find(
        self,
        options: Union[FindOptions, Mapping[str, Any], None] = None,
        on_up: Optional[Callable[[ServiceInstance], None]] = None,
    ) -> Browser:
        """Brief: Create and start a browser.

        Inputs:
          - options: FindOptions or mapping; omit ``type`` for wildcard
            discovery.
          - on_up: Optional ``up`` listener, attached before the first query
            goes out.

        Outputs:
          - Browser (already started).
        """

        browser = Browser(self, options)
        self._track(browser)
        if on_up is not None:
            browser.on(UP_EVENT, on_up)
        browser.start()
        return browser

    def find_one(
        self,
        options: Union[FindOptions, Mapping[str, Any], None] = None,
        callback: Optional[Callable[[ServiceInstance], None]] = None,
    ) -> Browser:
        """Brief: Browse until the first instance appears, then stop.

        Inputs:
          - options: FindOptions or mapping.
          - callback: Optional callable receiving the first ServiceInstance.

        Outputs:
          - Browser (stopped automatically after the first ``up``).
        """

        browser = Browser(self, options)
        self._track(browser)

        def _first(service: ServiceInstance) -> None:
            browser.stop()
            if callback is not None:
                callback(service)

        browser.on(UP_EVENT, _first)
        browser.start()
        return browser

    def _track(self, browser: Browser) -> None:
        self._browsers = [b for b in self._browsers if b.started]
        self._browsers.append(browser)

    def unpublish_all(self) -> None:
        """Stop (send goodbyes for) every service published through this coordinator."""

        services, self._services = self._services, []
        for service in services:
            service.stop()

    def destroy(self) -> None:
        """Brief: Stop everything and release the shared transport.

        Inputs:
          - None

        Outputs:
          - None; idempotent and never raises.

        Notes:
          - Live services send their goodbye and browsers cancel their timers
            before the transport closes, so no callback fires afterwards.
        """

        if self._destroyed:
            return
        self._destroyed = True
        with self.lock:
            try:
                self.unpublish_all()
            except Exception:
                logger.debug("unpublish_all failed during destroy", exc_info=True)
            browsers, self._browsers = self._browsers, []
            for browser in browsers:
                try:
                    browser.stop()
                except Exception:
                    logger.debug("browser stop failed during destroy", exc_info=True)
        try:
            self.transport.remove_all_listeners()
        except Exception:
            logger.debug("remove_all_listeners failed during destroy", exc_info=True)
        try:
            self.transport.destroy()
        except Exception:
            logger.debug("transport destroy failed", exc_info=True)

    def __enter__(self) -> "Bonjour":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.destroy()
