"""Loads a program description (call graph plus CFGs) from YAML, TOML or JSON.

Example (YAML)::

    functions:
      - name: x86_exception_handler
        blocks:
          - id: entry
            calls: [platform_irq, null]   # null is an indirect call
            successors: [done]
          - id: done
      - name: platform_irq
        calls: [mutex_acquire]            # single-block shorthand
      - name: mutex_acquire               # no blocks: external declaration

The first block of a function is its entry block. Callees that are never
listed become external declarations. A block with ``terminator: false`` is
treated as having no successors.
"""

from pathlib import Path
from typing import Any

from loguru import logger

from ..config import read_structured_file
from ..graph.program import BasicBlock, Function, Program


class ProgramLoadError(ValueError):
    """Raised when a program description is malformed."""


class GraphLoader:
    """Builds a :class:`Program` from a parsed description mapping."""

    def load_file(self, file_path: Path) -> Program:
        file_path = Path(file_path)
        data = read_structured_file(file_path, error=ProgramLoadError)
        program = self.load(data)
        for function in program:
            if function.has_body and function.file_path is None:
                function.file_path = str(file_path)
        return program

    def load(self, data: dict[str, Any]) -> Program:
        entries = data.get("functions")
        if not isinstance(entries, list):
            raise ProgramLoadError("'functions' must be a list")

        program = Program()
        # Declare everything first so calls resolve regardless of order
        for entry in entries:
            if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
                raise ProgramLoadError(f"Function entry needs a 'name': {entry!r}")
            name = entry["name"]
            if name in program:
                raise ProgramLoadError(f"Duplicate function: {name}")
            program.add_function(Function(name=name))

        for entry in entries:
            self._load_body(program.get_function(entry["name"]), entry, program)

        logger.info(f"Loaded program description with {len(program)} functions")
        return program

    def _load_body(self, function: Function, entry: dict[str, Any], program: Program) -> None:
        if "blocks" in entry and "calls" in entry:
            raise ProgramLoadError(f"{function.name}: use either 'blocks' or 'calls'")
        if "calls" in entry:
            block_entries = [{"id": "entry", "calls": entry["calls"]}]
        else:
            block_entries = entry.get("blocks") or []
        if not isinstance(block_entries, list):
            raise ProgramLoadError(f"{function.name}: 'blocks' must be a list")

        blocks: dict[str, BasicBlock] = {}
        for index, block_entry in enumerate(block_entries):
            if not isinstance(block_entry, dict):
                raise ProgramLoadError(f"{function.name}: block {index} must be a mapping")
            label = str(block_entry.get("id", f"bb{index}"))
            if label in blocks:
                raise ProgramLoadError(f"{function.name}: duplicate block '{label}'")
            block = function.new_block(label)
            block.has_terminator = bool(block_entry.get("terminator", True))
            blocks[label] = block

        for block_entry, block in zip(block_entries, function.blocks):
            for callee in self._name_list(function, block, block_entry, "calls"):
                if callee is None:
                    block.add_call(None)
                    continue
                if not isinstance(callee, str):
                    raise ProgramLoadError(
                        f"{function.name}: call target must be a name or null, got {callee!r}"
                    )
                if callee not in program:
                    logger.debug(f"{function.name} calls undeclared {callee}, treating as external")
                block.add_call(program.declare(callee))

            for successor in self._name_list(function, block, block_entry, "successors"):
                target = blocks.get(str(successor))
                if target is None:
                    raise ProgramLoadError(
                        f"{function.name}: block '{block.label}' has unknown successor '{successor}'"
                    )
                block.add_successor(target)

    @staticmethod
    def _name_list(
        function: Function, block: BasicBlock, block_entry: dict[str, Any], key: str
    ) -> list[Any]:
        value = block_entry.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            raise ProgramLoadError(
                f"{function.name}: '{key}' of block '{block.label}' must be a list, got {value!r}"
            )
        return value
