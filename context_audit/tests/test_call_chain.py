"""Tests for the call chain tracker and violation reporter."""

import io

import pytest

from context_audit.analysis.call_chain import CallChain
from context_audit.analysis.reporter import VIOLATION_MESSAGE, Violation, ViolationReporter


class TestCallChain:
    def test_push_pop_order(self):
        chain = CallChain()
        chain.push("x86_exception_handler")
        chain.push("platform_irq")

        assert chain.snapshot() == ("x86_exception_handler", "platform_irq")
        assert chain.pop() == "platform_irq"
        assert chain.snapshot() == ("x86_exception_handler",)
        assert len(chain) == 1

    def test_snapshot_is_not_affected_by_later_changes(self):
        chain = CallChain()
        chain.push("entry")
        snapshot = chain.snapshot()
        chain.push("callee")
        chain.pop()
        chain.pop()

        assert snapshot == ("entry",)
        assert len(chain) == 0

    def test_pop_empty_chain_raises(self):
        with pytest.raises(IndexError):
            CallChain().pop()


class TestViolationReporter:
    def test_report_line_format(self):
        stream = io.StringIO()
        reporter = ViolationReporter(stream)

        reporter.report(("entry", "A", "mutex_acquire"))

        assert stream.getvalue() == (
            "Reached a black-listed function via the following call chain: "
            "entry A mutex_acquire\n"
        )

    def test_reports_are_kept_in_order(self):
        reporter = ViolationReporter(io.StringIO())

        reporter.report(("entry", "mutex_acquire"))
        reporter.report(("entry", "B", "mutex_acquire_timeout"))

        assert [v.function for v in reporter.violations] == [
            "mutex_acquire",
            "mutex_acquire_timeout",
        ]
        assert reporter.violations[1].depth == 3

    def test_default_stream_is_stderr(self, capsys):
        ViolationReporter().report(("handler", "mutex_acquire"))

        captured = capsys.readouterr()
        assert captured.out == ""
        assert VIOLATION_MESSAGE in captured.err
        assert "handler mutex_acquire" in captured.err

    def test_violation_keeps_demangled_names_intact(self):
        violation = Violation(chain=("entry", "Thread::wait(int)"))

        assert violation.format() == f"{VIOLATION_MESSAGE} entry Thread::wait(int)"
