import logging
from typing import Iterable


logger = logging.getLogger(__name__)


class DomainPolicy:
    """
    The set of sender domains whose DMARC failures are rejected, whatever
    policy the domain itself publishes.

    Domains are lowercased once on construction so that membership tests are
    case insensitive. The table is never changed afterwards and is shared by
    all the sessions.
    """

    def __init__(self, domains: Iterable[str]) -> None:
        self._domains = frozenset(domain.strip().lower() for domain in domains)

        logger.debug("Override-reject domains: %(domains)s", {"domains": ", ".join(sorted(self._domains))})

    def __contains__(self, domain: object) -> bool:
        if not isinstance(domain, str):
            return False

        return domain.lower() in self._domains
