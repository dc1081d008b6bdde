from .config_schema import (
    AppConfig,
    BonjourOptions,
    FindOptions,
    PublishOptions,
    coerce_options,
)

__all__ = [
    "AppConfig",
    "BonjourOptions",
    "FindOptions",
    "PublishOptions",
    "coerce_options",
]
