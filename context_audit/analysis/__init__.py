"""Reachability analysis of calls made from a restricted execution context."""

from .call_chain import CallChain
from .names import NameResolver, demangle
from .reachability import AuditResult, Outcome, ReachabilityAnalyzer
from .reporter import VIOLATION_MESSAGE, Violation, ViolationReporter

__all__ = [
    "AuditResult",
    "CallChain",
    "NameResolver",
    "Outcome",
    "ReachabilityAnalyzer",
    "VIOLATION_MESSAGE",
    "Violation",
    "ViolationReporter",
    "demangle",
]
