from twentyonepoints.config.properties import (
    ConfigurationProperties,
    get_config,
    log_config_sources,
    reload_config,
    set_config,
)

__all__ = [
    "ConfigurationProperties",
    "get_config",
    "set_config",
    "reload_config",
    "log_config_sources",
]
