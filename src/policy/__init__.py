from .decision import ACCEPT, REJECT_CODE, REJECT_STATUS, Decision, audit_line, decide, log_audit, should_reject
from .domain_policy import DomainPolicy
from .typing import Action

__all__ = [
    "ACCEPT",
    "REJECT_CODE",
    "REJECT_STATUS",
    "Action",
    "Decision",
    "DomainPolicy",
    "audit_line",
    "decide",
    "log_audit",
    "should_reject",
]
