import logging
import socket
from dataclasses import dataclass
from typing import Optional

from config import Config


logger = logging.getLogger(__name__)


DEFAULT_LISTEN_URI = "unix:///run/dmarcator/dmarcator.sock"
DEFAULT_REJECT_FMT = "rejected because of DMARC failure for %s overriding policy"
DEFAULT_UMASK = 0o002

LISTEN_SCHEMES = ("unix", "tcp")


class ConfigError(ValueError):
    """
    Raised when the configuration cannot be turned into usable settings.
    """


@dataclass(frozen=True)
class ListenAddress:
    scheme: str
    path: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None


@dataclass(frozen=True)
class Settings:
    """
    The materialised configuration of the filter.

    Configuration is via the following keys:
    * `authserv_id` (defaults to the host name) as the identifier our own
      DMARC verifier writes into its Authentication-Results headers
    * `listen_uri` (defaults to a unix socket) as `unix://<path>` or
      `tcp://<host>:<port>`
    * `reject_domains` (defaults to none) as the domains which get rejected
      on anything but a DMARC pass
    * `reject_fmt` as the rejection message, with a single `%s` for the domain
    * `umask` (defaults to 0o002) applied before the socket is created
    * `log_level` (defaults to "INFO")
    """
    authserv_id: str
    listen_uri: str
    listen: ListenAddress
    reject_domains: tuple[str, ...]
    reject_fmt: str
    umask: int = DEFAULT_UMASK
    log_level: str = "INFO"


def parse_listen_uri(uri: str) -> ListenAddress:
    scheme, sep, address = uri.partition("://")

    if not sep:
        raise ConfigError(f"Invalid listen URI: {uri!r}")

    if scheme not in LISTEN_SCHEMES:
        raise ConfigError(f"Unsupported listen URI scheme {scheme!r} in {uri!r}")

    if scheme == "unix":
        if not address:
            raise ConfigError(f"Missing socket path in listen URI {uri!r}")
        return ListenAddress(scheme, path=address)

    host, sep, port = address.rpartition(":")
    if not sep:
        raise ConfigError(f"Missing port in listen URI {uri!r}")

    try:
        port_number = int(port) if port else 0
    except ValueError:
        raise ConfigError(f"Invalid port {port!r} in listen URI {uri!r}")

    # An empty host listens on all interfaces
    return ListenAddress(scheme, host=host.strip("[]") or None, port=port_number)


def check_reject_fmt(reject_fmt: str) -> str:
    if not isinstance(reject_fmt, str):
        raise ConfigError("reject_fmt must be a string")

    try:
        reject_fmt % ("example.com",)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"reject_fmt must contain exactly one '%s': {e}")

    return reject_fmt


def get_reject_domains(app_config: Config) -> tuple[str, ...]:
    domains = app_config.get("reject_domains", [])

    if isinstance(domains, str):
        raise ConfigError("reject_domains must be a list of domains")

    domains = tuple(domains)

    for domain in domains:
        if not isinstance(domain, str) or not domain.strip():
            raise ConfigError(f"Invalid entry in reject_domains: {domain!r}")

    return domains


def get_umask(app_config: Config) -> int:
    umask = app_config.get("umask", DEFAULT_UMASK)

    if isinstance(umask, str):
        try:
            return int(umask, 8)
        except ValueError:
            raise ConfigError(f"Invalid umask: {umask!r}")

    if isinstance(umask, bool) or not isinstance(umask, int):
        raise ConfigError(f"Invalid umask: {umask!r}")

    return umask


def get_log_level(app_config: Config) -> str:
    level = str(app_config.get("log_level", "INFO")).upper()

    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"Unknown log level: {level!r}")

    return level


def load_settings(app_config: Config) -> Settings:
    authserv_id = app_config.get("authserv_id", "")

    if not authserv_id:
        authserv_id = socket.gethostname()

        if not authserv_id:
            raise ConfigError("authserv_id is empty and the host name could not be read")

    listen_uri = app_config.get("listen_uri", DEFAULT_LISTEN_URI)

    return Settings(
        authserv_id=authserv_id,
        listen_uri=listen_uri,
        listen=parse_listen_uri(listen_uri),
        reject_domains=get_reject_domains(app_config),
        reject_fmt=check_reject_fmt(app_config.get("reject_fmt", DEFAULT_REJECT_FMT)),
        umask=get_umask(app_config),
        log_level=get_log_level(app_config),
    )
