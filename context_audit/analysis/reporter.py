"""Violation reporting.

Each violation is one line on the report stream, in a fixed format that
build-log scanners match on:

    Reached a black-listed function via the following call chain: a b c
"""

import sys
from dataclasses import dataclass
from typing import TextIO

from loguru import logger

VIOLATION_MESSAGE = "Reached a black-listed function via the following call chain:"


@dataclass(frozen=True)
class Violation:
    """A call chain from the audit root to a blacklisted function."""

    chain: tuple[str, ...]

    @property
    def function(self) -> str:
        return self.chain[-1]

    @property
    def depth(self) -> int:
        return len(self.chain)

    def format(self) -> str:
        return VIOLATION_MESSAGE + "".join(f" {name}" for name in self.chain)


class ViolationReporter:
    """Writes violation lines and keeps them for later inspection."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream
        self.violations: list[Violation] = []

    @property
    def stream(self) -> TextIO:
        # Resolved late so pytest's capsys sees the default stream
        return self._stream if self._stream is not None else sys.stderr

    def report(self, chain: tuple[str, ...]) -> Violation:
        violation = Violation(chain=tuple(chain))
        self.violations.append(violation)
        self.stream.write(violation.format() + "\n")
        logger.debug(f"Violation reported at depth {violation.depth}: {violation.function}")
        return violation
