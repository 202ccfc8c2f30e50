import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from src.authresults import AuthResults, DmarcEntry, ParseError, parse as parse_auth_results
from src.policy import Decision, DomainPolicy, decide, log_audit, should_reject
from src.settings import Settings


logger = logging.getLogger(__name__)


FROM = "from"
AUTHENTICATION_RESULTS = "authentication-results"

NO_QUEUE_ID = "NOQUEUE"


class CaptureState(enum.Enum):
    IDLE = "idle"
    PARTIAL = "partial"
    FULL = "full"
    DECIDED = "decided"


@dataclass(frozen=True)
class FilterConfig:
    """
    What every session needs to know, built once at startup and shared.
    """
    authserv_id: str
    domains: DomainPolicy
    reject_fmt: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "FilterConfig":
        return cls(
            authserv_id=settings.authserv_id,
            domains=DomainPolicy(settings.reject_domains),
            reject_fmt=settings.reject_fmt,
        )


class FilterSession:
    """
    Follows the headers of one mail transaction and decides its fate.

    Only two header fields matter: the first Authentication-Results written
    by our own authserv-id that carries a dmarc result, and the first From.
    Every other field, and any later occurrence of those two, is ignored.
    Once both are captured the remaining headers are not looked at.

    Nothing is decided before the end of the headers, and nothing in the
    header content can make the session fail: unparsable Authentication-Results
    fields are logged and skipped, so that a later one may still be used.

    A transaction whose client authenticated to us (`on_mail_from(True)`) is
    exempt and accepted without looking at the headers, and without an audit
    line.
    """

    def __init__(
        self,
        config: FilterConfig,
        queue_id: str = NO_QUEUE_ID,
        parser: Callable[[str], AuthResults] = parse_auth_results,
    ) -> None:
        self.config = config
        self.queue_id = queue_id
        self.parser = parser

        self.authenticated = False
        self.verdict: Optional[DmarcEntry] = None
        self.from_header: Optional[str] = None
        self.decision: Optional[Decision] = None

        self._should_reject = False
        self._headers_seen = 0

    @property
    def state(self) -> CaptureState:
        if self.decision is not None:
            return CaptureState.DECIDED

        captured = (self.verdict is not None) + (self.from_header is not None)

        if captured == 2:
            return CaptureState.FULL
        elif captured == 1:
            return CaptureState.PARTIAL

        return CaptureState.IDLE

    @property
    def should_reject(self) -> bool:
        return self._should_reject

    def on_mail_from(self, authenticated: bool) -> None:
        """
        Record whether the client authenticated to us before sending.
        """
        if self._headers_seen or self.decision is not None:
            logger.debug("%(queue_id)s: ignoring late authentication hint", {"queue_id": self.queue_id})
            return

        self.authenticated = bool(authenticated)

        if self.authenticated:
            logger.debug("%(queue_id)s: authenticated sender, skipping DMARC checks", {"queue_id": self.queue_id})

    def on_header(self, name: str, value: str) -> None:
        self._headers_seen += 1

        if self.authenticated or self.state in (CaptureState.FULL, CaptureState.DECIDED):
            return

        field = name.lower()

        if field == FROM:
            if self.from_header is None:
                self.from_header = value

        elif field == AUTHENTICATION_RESULTS:
            if self.verdict is None:
                self._capture_verdict(name, value)

    def _capture_verdict(self, name: str, value: str) -> None:
        try:
            results = self.parser(value)
        except ParseError as e:
            logger.warning("%(queue_id)s: failed to parse header: %(reason)s: %(field)r", {
                "queue_id": self.queue_id,
                "reason": str(e),
                "field": f"{name}: {value}",
            })
            return

        if not results.matches(self.config.authserv_id):
            logger.debug("%(queue_id)s: ignoring results from %(authserv_id)s", {
                "queue_id": self.queue_id,
                "authserv_id": results.identifier,
            })
            return

        verdict = results.last_dmarc()
        if verdict is None:
            return

        self.verdict = verdict
        self._should_reject = should_reject(verdict, self.config.domains)

    def on_headers_end(self) -> Decision:
        """
        Render the final decision, logging the audit line the first time.
        """
        if self.decision is not None:
            return self.decision

        if self.authenticated:
            self.decision = Decision("accept")
            return self.decision

        self.decision = decide(self.verdict, self.config.domains, self.config.reject_fmt)
        log_audit(self.queue_id, self.decision, self.verdict, self.from_header)

        return self.decision
