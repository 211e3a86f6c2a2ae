"""Audits which functions are reachable from a restricted execution context."""

from .analysis import (
    AuditResult,
    NameResolver,
    Outcome,
    ReachabilityAnalyzer,
    Violation,
    ViolationReporter,
)
from .config import AuditConfig, AuditConfigError, load_config
from .graph import BasicBlock, Function, Instruction, Program

__version__ = "0.1.0"

__all__ = [
    "AuditConfig",
    "AuditConfigError",
    "AuditResult",
    "BasicBlock",
    "Function",
    "Instruction",
    "NameResolver",
    "Outcome",
    "Program",
    "ReachabilityAnalyzer",
    "Violation",
    "ViolationReporter",
    "load_config",
]
