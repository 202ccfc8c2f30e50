import logging
from dataclasses import dataclass
from typing import Optional

from src.authresults import DmarcEntry
from src.headers import decode_from

from .domain_policy import DomainPolicy
from .typing import Action


logger = logging.getLogger(__name__)

audit_logger = logging.getLogger("dmarcator.audit")


REJECT_CODE = 550
REJECT_STATUS = "5.7.1"

UNKNOWN = "unknown"

QUOTED = str.maketrans({"\\": "\\\\", "\"": "\\\"", "\r": "\\r", "\n": "\\n"})


@dataclass(frozen=True)
class Decision:
    action: Action
    code: Optional[int] = None
    text: Optional[str] = None


ACCEPT = Decision("accept")


def should_reject(verdict: Optional[DmarcEntry], domains: DomainPolicy) -> bool:
    """
    Anything but a DMARC pass for one of the policy domains is rejected.
    """
    if verdict is None or verdict.claimed_domain is None:
        return False

    return verdict.outcome != "pass" and verdict.claimed_domain in domains


def reject_text(reject_fmt: str, domain: str) -> str:
    return f"{REJECT_STATUS} {reject_fmt % (domain,)}"


def decide(verdict: Optional[DmarcEntry], domains: DomainPolicy, reject_fmt: str) -> Decision:
    if not should_reject(verdict, domains):
        return ACCEPT

    return Decision("reject", REJECT_CODE, reject_text(reject_fmt, verdict.claimed_domain))


def audit_line(queue_id: str, decision: Decision, verdict: Optional[DmarcEntry], from_header: Optional[str]) -> str:
    """
    Render the one line summary of a transaction:

        <queue id>: <accept|reject> dmarc=<result> from=<domain> addr="<From>"

    Whatever was not captured is reported as `unknown`, and a missing From
    header as an empty address. Quotes, backslashes and line breaks in the
    address are escaped so that the record stays on one line.
    """
    dmarc = verdict.result if verdict else UNKNOWN
    domain = verdict.claimed_domain if verdict and verdict.claimed_domain else UNKNOWN
    address = decode_from(from_header) if from_header else ""

    return f'{queue_id}: {decision.action} dmarc={dmarc} from={domain} addr="{address.translate(QUOTED)}"'


def log_audit(queue_id: str, decision: Decision, verdict: Optional[DmarcEntry], from_header: Optional[str]) -> str:
    line = audit_line(queue_id, decision, verdict, from_header)
    audit_logger.info(line)

    return line
