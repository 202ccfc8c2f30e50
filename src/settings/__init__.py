from .settings import ConfigError, ListenAddress, Settings, load_settings, parse_listen_uri

__all__ = [
    "ConfigError",
    "ListenAddress",
    "Settings",
    "load_settings",
    "parse_listen_uri",
]
