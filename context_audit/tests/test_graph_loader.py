"""Tests for loading call graph descriptions."""

from pathlib import Path

import pytest

from context_audit.parsers.graph_loader import GraphLoader, ProgramLoadError

FIXTURES = Path(__file__).parent / "fixtures" / "graphs"


def callee_names(block):
    return [i.callee.name if i.callee else None for i in block.instructions]


class TestGraphLoader:
    @pytest.fixture
    def loader(self):
        return GraphLoader()

    def test_blocks_and_successors(self, loader):
        program = loader.load(
            {
                "functions": [
                    {
                        "name": "isr",
                        "blocks": [
                            {"id": "entry", "calls": ["ack", None], "successors": ["exit"]},
                            {"id": "exit", "calls": ["eoi"]},
                        ],
                    }
                ]
            }
        )

        isr = program.get_function("isr")
        assert [b.label for b in isr.blocks] == ["entry", "exit"]
        assert isr.entry_block.label == "entry"
        assert callee_names(isr.entry_block) == ["ack", None]
        assert isr.entry_block.successors == [isr.blocks[1]]

    def test_undeclared_callees_become_external(self, loader):
        program = loader.load({"functions": [{"name": "isr", "calls": ["ack"]}]})

        ack = program.get_function("ack")
        assert ack is not None
        assert not ack.has_body
        assert ack.entry_block is None

    def test_calls_resolve_to_listed_functions(self, loader):
        program = loader.load(
            {
                "functions": [
                    {"name": "isr", "calls": ["helper"]},
                    {"name": "helper", "calls": []},
                ]
            }
        )

        helper = program.get_function("helper")
        assert program.get_function("isr").entry_block.instructions[0].callee is helper
        assert helper.has_body

    def test_terminator_flag(self, loader):
        program = loader.load(
            {
                "functions": [
                    {
                        "name": "isr",
                        "blocks": [
                            {"id": "a", "successors": ["b"], "terminator": False},
                            {"id": "b"},
                        ],
                    }
                ]
            }
        )

        block = program.get_function("isr").entry_block
        assert block.successors
        assert block.successor_blocks() == []

    @pytest.mark.parametrize(
        "data, message",
        [
            ({}, "functions"),
            ({"functions": [{"calls": []}]}, "name"),
            ({"functions": [{"name": "f"}, {"name": "f"}]}, "Duplicate"),
            ({"functions": [{"name": "f", "blocks": [{"id": "a", "successors": ["z"]}]}]}, "unknown successor"),
            ({"functions": [{"name": "f", "blocks": [{"id": "a"}, {"id": "a"}]}]}, "duplicate block"),
            ({"functions": [{"name": "f", "calls": [3]}]}, "call target"),
            ({"functions": [{"name": "f", "calls": [], "blocks": []}]}, "either"),
            ({"functions": [{"name": "f", "calls": "mutex_acquire"}]}, "must be a list"),
            (
                {"functions": [{"name": "f", "blocks": [{"id": "a", "successors": "ab"}, {"id": "b"}]}]},
                "must be a list",
            ),
        ],
    )
    def test_malformed_descriptions(self, loader, data, message):
        with pytest.raises(ProgramLoadError, match=message):
            loader.load(data)

    def test_load_yaml_fixture(self, loader):
        program = loader.load_file(FIXTURES / "interrupt.yaml")

        handler = program.get_function("x86_exception_handler")
        assert handler.file_path.endswith("interrupt.yaml")
        assert len(handler.blocks) == 3
        assert callee_names(handler.entry_block) == ["_ZN3irq8dispatchEi", None]
        assert not program.get_function("mutex_acquire").has_body
