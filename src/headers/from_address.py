import logging
import re
from email.errors import HeaderParseError
from email.header import decode_header, make_header


logger = logging.getLogger(__name__)


FOLDING = re.compile(r"\r?\n[ \t]+")


def unfold(value: str) -> str:
    return FOLDING.sub(" ", value)


def decode_from(raw: str) -> str:
    """
    Decode the RFC 2047 encoded words of a From header value for display.

    Folded values are unfolded first. This is only used for logging, so any
    failure to decode gives back the unfolded value rather than an error.
    """
    if not raw:
        return ""

    value = unfold(raw)

    try:
        return str(make_header(decode_header(value)))
    except (LookupError, UnicodeError, HeaderParseError, ValueError) as e:
        logger.debug("Could not decode %(raw)r: %(reason)s", {"raw": raw, "reason": str(e)})
        return value
