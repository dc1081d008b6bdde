from __future__ import annotations


class LanBeaconError(Exception):
    """
    Brief: Base class for lanbeacon errors.

    Inputs:
    - message: description

    Outputs:
    - Exception instance
    """

    pass


class ConfigurationError(LanBeaconError, ValueError):
    """
    Brief: Invalid coordinator options, publish descriptor, or browse selector.

    Raised synchronously at construction time; never delivered as an event.
    """

    pass


class TransportError(LanBeaconError):
    """
    Brief: Send, bind, or use-after-close failure on a transport.

    Inputs:
    - message: description

    Outputs:
    - Exception instance
    """

    pass
