"""Call graph and control-flow graph model."""

from .program import BasicBlock, Function, Instruction, Program

__all__ = ["BasicBlock", "Function", "Instruction", "Program"]
