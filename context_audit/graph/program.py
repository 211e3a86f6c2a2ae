"""Program representation consumed by the reachability analysis.

Functions, basic blocks and call instructions form two nested graphs: the
call graph (functions linked by call sites) and, for every defined function,
a control-flow graph of basic blocks. Objects compare by identity, so the
analysis can memoize visits in plain sets.
"""

from dataclasses import dataclass, field
from typing import Iterator


@dataclass(eq=False)
class Instruction:
    """A single instruction inside a basic block.

    ``callee`` is the statically resolved target of a direct call. It is
    ``None`` for indirect calls and for instructions that are not calls.
    """

    callee: "Function | None" = None
    line_number: int = 0

    @property
    def is_direct_call(self) -> bool:
        return self.callee is not None


@dataclass(eq=False)
class BasicBlock:
    """A straight-line run of instructions with its successor blocks."""

    label: str
    instructions: list[Instruction] = field(default_factory=list)
    successors: list["BasicBlock"] = field(default_factory=list)
    has_terminator: bool = True

    def add_call(self, callee: "Function | None", line_number: int = 0) -> Instruction:
        instruction = Instruction(callee=callee, line_number=line_number)
        self.instructions.append(instruction)
        return instruction

    def add_successor(self, block: "BasicBlock") -> None:
        self.successors.append(block)

    def successor_blocks(self) -> list["BasicBlock"]:
        """Successors as given by the block terminator (none without one)."""
        if not self.has_terminator:
            return []
        return self.successors

    def __repr__(self) -> str:
        return f"BasicBlock({self.label!r})"


@dataclass(eq=False)
class Function:
    """A call graph node.

    A function without blocks is an external declaration: it can be called
    and classified, but has no body to explore.
    """

    name: str  # raw linkage name
    blocks: list[BasicBlock] = field(default_factory=list)
    file_path: str | None = None
    start_line: int = 0

    @property
    def has_body(self) -> bool:
        return bool(self.blocks)

    @property
    def entry_block(self) -> BasicBlock | None:
        return self.blocks[0] if self.blocks else None

    def new_block(self, label: str | None = None) -> BasicBlock:
        block = BasicBlock(label=label or f"bb{len(self.blocks)}")
        self.blocks.append(block)
        return block

    def __repr__(self) -> str:
        return f"Function({self.name!r})"


class Program:
    """Function table for one analyzed program, keyed by raw linkage name."""

    def __init__(self) -> None:
        self._functions: dict[str, Function] = {}

    def __iter__(self) -> Iterator[Function]:
        return iter(self._functions.values())

    def __len__(self) -> int:
        return len(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def get_function(self, name: str) -> Function | None:
        return self._functions.get(name)

    def add_function(self, function: Function) -> Function:
        if function.name in self._functions:
            raise ValueError(f"Function already defined: {function.name}")
        self._functions[function.name] = function
        return function

    def declare(self, name: str) -> Function:
        """Return the function called ``name``, creating a body-less one if needed."""
        function = self._functions.get(name)
        if function is None:
            function = Function(name=name)
            self._functions[name] = function
        return function
