import logging
from dataclasses import dataclass
from typing import Optional, Union

import authres
import authres.dmarc
from authres.core import AuthResError

from .typing import DmarcOutcome


logger = logging.getLogger(__name__)


HEADER_NAME = "Authentication-Results"

DMARC_OUTCOMES = ("pass", "fail", "none")

dmarc_context = authres.FeatureContext(authres.dmarc)


class ParseError(ValueError):
    """
    The Authentication-Results value could not be parsed.
    """


@dataclass(frozen=True)
class DmarcEntry:
    """
    A `dmarc` result: the verdict for the domain found in the From header.

    `result` is the result keyword as written in the header, `outcome`
    folds it into the values the policy cares about. `claimed_domain` keeps
    the case it was received in.
    """
    result: str
    outcome: DmarcOutcome
    claimed_domain: Optional[str]


@dataclass(frozen=True)
class OtherEntry:
    """
    Any other result (spf, dkim, auth, ...), kept only for completeness.
    """
    method: str
    result: str


ResultEntry = Union[DmarcEntry, OtherEntry]


@dataclass(frozen=True)
class AuthResults:
    identifier: str
    entries: tuple[ResultEntry, ...]

    def matches(self, authserv_id: str) -> bool:
        return self.identifier.casefold() == authserv_id.casefold()

    def last_dmarc(self) -> Optional[DmarcEntry]:
        """
        Return the last dmarc entry of the header.

        The header format gives no precedence between several entries of
        the same method, so the last one written wins.
        """
        dmarc = None

        for entry in self.entries:
            if isinstance(entry, DmarcEntry):
                dmarc = entry

        return dmarc


def dmarc_outcome(result: str) -> DmarcOutcome:
    result = (result or "").lower()

    return result if result in DMARC_OUTCOMES else "other"


def make_entry(result) -> ResultEntry:
    if isinstance(result, authres.dmarc.DMARCAuthenticationResult):
        return DmarcEntry(
            result=result.result,
            outcome=dmarc_outcome(result.result),
            claimed_domain=result.header_from,
        )

    return OtherEntry(method=result.method, result=result.result)


def parse(value: str) -> AuthResults:
    """
    Parse the value of an Authentication-Results header field.

    Raises ParseError when the value does not follow the header syntax.
    """
    try:
        header = dmarc_context.parse(f"{HEADER_NAME}: {value}")
    except AuthResError as e:
        raise ParseError(str(e)) from e

    return AuthResults(
        identifier=header.authserv_id,
        entries=tuple(make_entry(result) for result in header.results),
    )
