"""lanbeacon: DNS-SD service advertisement and discovery over multicast DNS."""

from .bonjour import Bonjour
from .browser import Browser, ServiceInstance
from .config.config_schema import BonjourOptions, FindOptions, PublishOptions
from .errors import ConfigurationError, LanBeaconError, TransportError
from .service import Service, ServiceDescriptor

__all__ = [
    "Bonjour",
    "BonjourOptions",
    "Browser",
    "ConfigurationError",
    "FindOptions",
    "LanBeaconError",
    "PublishOptions",
    "Service",
    "ServiceDescriptor",
    "ServiceInstance",
    "TransportError",
]
