from .results import AuthResults, DmarcEntry, OtherEntry, ParseError, ResultEntry, parse
from .typing import DmarcOutcome

__all__ = [
    "AuthResults",
    "DmarcEntry",
    "DmarcOutcome",
    "OtherEntry",
    "ParseError",
    "ResultEntry",
    "parse",
]
