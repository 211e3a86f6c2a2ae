"""Interrupt-context reachability analysis.

Starting at the source function, the analyzer walks the call graph depth
first, descending through each function's control-flow graph block by block
and into every direct call in instruction order. A path ends when it reaches
a sink function, a blacklisted function (reported with the full call chain),
or a function or block that was already explored.

Memoization does not depend on the path: once a function has been explored
from one call chain it is not explored again from another, so a blacklisted
function reachable only through a shared callee is reported once, via the
first chain that found it.

The walk runs on an explicit stack of generator frames instead of Python
recursion. A frame yields the frame of a callee or successor and receives its
outcome back, which keeps the visiting order of a recursive walk without
being limited by the interpreter's recursion depth.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generator

from loguru import logger

from ..config import AuditConfig
from ..graph.program import BasicBlock, Function, Program
from .call_chain import CallChain
from .names import NameResolver
from .reporter import Violation, ViolationReporter


class Outcome(Enum):
    """Result of exploring a function or block."""

    CLEAN = "clean"
    VIOLATION_FOUND = "violation_found"

    def combine(self, other: "Outcome") -> "Outcome":
        if self is Outcome.CLEAN and other is Outcome.CLEAN:
            return Outcome.CLEAN
        return Outcome.VIOLATION_FOUND


Frame = Generator["Frame", Outcome, Outcome]


@dataclass
class AuditResult:
    """Summary of one analysis run."""

    source_function: str
    source_found: bool
    outcome: Outcome
    violations: list[Violation]
    functions_visited: int = 0
    blocks_visited: int = 0

    @property
    def passed(self) -> bool:
        return self.outcome is Outcome.CLEAN


class _Traversal:
    """State of a single run: memo sets and the current call chain."""

    def __init__(
        self, config: AuditConfig, resolver: NameResolver, reporter: ViolationReporter
    ):
        self.config = config
        self.resolver = resolver
        self.reporter = reporter
        self.chain = CallChain()
        self.visited_functions: set[Function] = set()
        self.visited_blocks: set[BasicBlock] = set()

    def run(self, root: Frame) -> Outcome:
        stack: list[Frame] = [root]
        result: Outcome | None = None
        while stack:
            try:
                child = stack[-1].send(result)
            except StopIteration as stop:
                stack.pop()
                result = stop.value
                continue
            stack.append(child)
            result = None
        return result

    def visit_function(self, function: Function) -> Frame:
        if function in self.visited_functions:
            logger.debug(f"Already explored: {function.name}")
            return Outcome.CLEAN

        name = self.resolver.resolve(function.name)
        if self.config.is_sink(name):
            logger.debug(f"Sink reached, path ends: {name}")
            return Outcome.CLEAN

        self.chain.push(name)
        try:
            if self.config.is_blacklisted(name):
                self.reporter.report(self.chain.snapshot())
                return Outcome.VIOLATION_FOUND

            self.visited_functions.add(function)
            outcome = Outcome.CLEAN
            entry = function.entry_block
            if entry is not None:
                outcome = outcome.combine((yield self.visit_block(entry)))
            return outcome
        finally:
            self.chain.pop()

    def visit_block(self, block: BasicBlock) -> Frame:
        if block in self.visited_blocks:
            return Outcome.CLEAN
        self.visited_blocks.add(block)

        outcome = Outcome.CLEAN
        for instruction in block.instructions:
            if not instruction.is_direct_call:
                continue
            outcome = outcome.combine((yield self.visit_function(instruction.callee)))

        for successor in block.successor_blocks():
            outcome = outcome.combine((yield self.visit_block(successor)))
        return outcome


class ReachabilityAnalyzer:
    """Audits a program for blacklisted calls reachable from a source function."""

    def __init__(
        self,
        config: AuditConfig | None = None,
        resolver: NameResolver | None = None,
        reporter: ViolationReporter | None = None,
    ):
        self.config = config or AuditConfig()
        self.resolver = resolver or NameResolver()
        self.reporter = reporter or ViolationReporter()

    def find_source(self, program: Program) -> Function | None:
        """Look the source up by linkage name, then by display name."""
        source = program.get_function(self.config.source_function)
        if source is not None:
            return source
        for function in program:
            if self.resolver.resolve(function.name) == self.config.source_function:
                return function
        return None

    def analyze(self, program: Program) -> AuditResult:
        """Run one audit. Memo sets and the call chain start empty on every call."""
        first_violation = len(self.reporter.violations)
        source = self.find_source(program)
        if source is None:
            logger.warning(
                f"Source function {self.config.source_function} not found, nothing to audit"
            )
            return AuditResult(
                source_function=self.config.source_function,
                source_found=False,
                outcome=Outcome.CLEAN,
                violations=[],
            )

        logger.info(f"Auditing calls reachable from {self.config.source_function}")
        traversal = _Traversal(self.config, self.resolver, self.reporter)
        outcome = traversal.run(traversal.visit_function(source))

        result = AuditResult(
            source_function=self.config.source_function,
            source_found=True,
            outcome=outcome,
            violations=self.reporter.violations[first_violation:],
            functions_visited=len(traversal.visited_functions),
            blocks_visited=len(traversal.visited_blocks),
        )
        logger.info(
            f"Audit finished: {len(result.violations)} violations, "
            f"{result.functions_visited} functions and "
            f"{result.blocks_visited} blocks explored"
        )
        return result
